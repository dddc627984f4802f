"""
Auth Client Configuration

Environment-based configuration for the OAuth client and session layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings

if TYPE_CHECKING:
    from checklist_auth.oauth.models import OAuthConfig


class AuthSettings(BaseSettings):
    """Auth client configuration loaded from environment variables."""

    # Auth backend
    BACKEND_URL: str | None = Field(None, description="Auth backend base URL")
    BACKEND_ANON_KEY: str | None = Field(None, description="Auth backend anonymous API key")
    HTTP_TIMEOUT: float = Field(default=30.0, description="HTTP request timeout in seconds")

    # Google OAuth clients
    GOOGLE_WEB_CLIENT_ID: str = Field(default="", description="Google web client ID")
    GOOGLE_IOS_CLIENT_ID: str = Field(default="", description="Google iOS client ID")
    GOOGLE_ANDROID_CLIENT_ID: str = Field(default="", description="Google Android client ID")
    GOOGLE_AUTHORIZATION_ENDPOINT: str = Field(
        default="https://accounts.google.com/o/oauth2/v2/auth",
        description="Google authorization endpoint"
    )
    GOOGLE_TOKEN_ENDPOINT: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="Google token endpoint"
    )
    GOOGLE_SCOPES: list[str] = Field(
        default=["openid", "profile", "email"],
        description="Scopes requested by the direct browser flow"
    )

    # Redirect targets
    APP_SCHEME: str = Field(default="in.botle.checklistapp", description="Custom URL scheme of the app")
    WEB_BASE_URL: str = Field(default="http://localhost:3000", description="Base URL of the web app")
    IOS_RELAY_URL: str | None = Field(
        None,
        description="Hosted relay page for iOS (defaults to <web base>/auth/callback-mobile-web)"
    )

    # Platform
    PLATFORM: str | None = Field(None, description="Platform override (web, ios, android)")
    DEVELOPMENT: bool = Field(default=False, description="Running on an emulator/simulator or dev build")

    # Session
    SESSION_EXPIRY_BUFFER_SECONDS: int = Field(default=300, description="Session expiry buffer in seconds")
    SESSION_REDIS_URL: str | None = Field(None, description="Redis URL for session persistence")
    SESSION_STORAGE_KEY: str = Field(default="checklist_auth:session", description="Session storage key")

    # Navigation
    LOGIN_ROUTE: str = Field(default="/auth/login", description="Route shown when signed out")
    MAIN_ROUTE: str = Field(default="/(tabs)", description="Route shown when signed in")

    # Monitoring
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=False, description="Render logs as JSON")

    model_config = {
        "env_file": ".env",
        "env_prefix": "CHECKLIST_AUTH_",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @property
    def oauth_config(self) -> OAuthConfig:
        """Immutable client id configuration."""
        from checklist_auth.oauth.models import OAuthConfig

        return OAuthConfig(
            web_client_id=self.GOOGLE_WEB_CLIENT_ID,
            ios_client_id=self.GOOGLE_IOS_CLIENT_ID,
            android_client_id=self.GOOGLE_ANDROID_CLIENT_ID,
        )

    @property
    def app_callback_url(self) -> str:
        """Deep link that hands control back to the app."""
        return f"{self.APP_SCHEME}://auth/callback"

    @property
    def web_callback_url(self) -> str:
        """Hosted callback route of the web app."""
        return f"{self.WEB_BASE_URL.rstrip('/')}/auth/callback"

    @property
    def ios_relay_url(self) -> str:
        """Relay page that receives tokens and forwards them to the app scheme."""
        return self.IOS_RELAY_URL or f"{self.WEB_BASE_URL.rstrip('/')}/auth/callback-mobile-web"


# Global settings instance
settings = AuthSettings()

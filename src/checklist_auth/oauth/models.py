"""
OAuth Models

Pydantic models for platform OAuth sign-in, token exchange results,
backend sessions and identity change events.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# Marker left in client ids that were never filled in
PLACEHOLDER_MARKER = "REPLACE_WITH"

T = TypeVar("T")


class PlatformType(str, Enum):
    """Runtime platforms with a dedicated sign-in strategy."""

    WEB = "web"
    IOS = "ios"
    ANDROID = "android"


class OAuthErrorKind(str, Enum):
    """Closed set of error kinds surfaced to callers."""

    NOT_CONFIGURED = "not_configured"
    USER_CANCELLED = "user_cancelled"
    INVALID_GRANT = "invalid_grant"
    NETWORK_ERROR = "network_error"
    SESSION_ERROR = "session_error"
    CALLBACK_ERROR = "callback_error"
    UNKNOWN = "unknown_error"


class Severity(str, Enum):
    """Whether a fresh user-initiated attempt can succeed."""

    RECOVERABLE = "recoverable"
    FATAL = "fatal"


# Wire codes that map onto a kind other than their own value
_CODE_KINDS: dict[str, OAuthErrorKind] = {
    "configuration_error": OAuthErrorKind.NOT_CONFIGURED,
    "session_invalid": OAuthErrorKind.SESSION_ERROR,
    "no_session": OAuthErrorKind.SESSION_ERROR,
    "no_tokens": OAuthErrorKind.CALLBACK_ERROR,
    "no_result_url": OAuthErrorKind.CALLBACK_ERROR,
    "url_parse_error": OAuthErrorKind.CALLBACK_ERROR,
    "invalid_request": OAuthErrorKind.CALLBACK_ERROR,
    "invalid_state": OAuthErrorKind.CALLBACK_ERROR,
    "access_denied": OAuthErrorKind.USER_CANCELLED,
    "oauth_initiation_failed": OAuthErrorKind.UNKNOWN,
    "oauth_service_error": OAuthErrorKind.UNKNOWN,
}

_FATAL_KINDS = frozenset({OAuthErrorKind.NOT_CONFIGURED})


def classify_error_code(code: str) -> OAuthErrorKind:
    """
    Map a wire error code onto its error kind.

    Provider supplied codes that are not known are treated as callback errors,
    since they can only arrive through a callback.
    """
    try:
        return OAuthErrorKind(code)
    except ValueError:
        return _CODE_KINDS.get(code, OAuthErrorKind.CALLBACK_ERROR)


class OAuthConfig(BaseModel):
    """Google client identifiers, one per platform."""

    web_client_id: str = Field(default="", description="Web client ID")
    ios_client_id: str = Field(default="", description="iOS client ID")
    android_client_id: str = Field(default="", description="Android client ID")

    model_config = ConfigDict(frozen=True)

    @staticmethod
    def is_usable(client_id: str | None) -> bool:
        """Check that a client id is present and not a placeholder."""
        return bool(client_id) and PLACEHOLDER_MARKER not in client_id

    def client_id_for(self, platform: PlatformType) -> str:
        """
        Get the client id used on a platform.

        iOS falls back to the web client id when its own id is not set.
        """
        if platform == PlatformType.ANDROID:
            return self.android_client_id
        if platform == PlatformType.IOS:
            if self.is_usable(self.ios_client_id):
                return self.ios_client_id
            return self.web_client_id
        return self.web_client_id


class AuthTokens(BaseModel):
    """Tokens returned by a successful sign-in or exchange."""

    access_token: str = Field(..., description="Access token")
    refresh_token: str | None = Field(None, description="Refresh token")
    expires_at: datetime | None = Field(None, description="Access token expiry")
    token_type: str = Field(default="bearer", description="Token type")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_params(cls, params: dict[str, str], now: datetime | None = None) -> AuthTokens:
        """Build tokens from flat callback parameters."""
        expires_at = None
        expires_in = params.get("expires_in")
        if expires_in and expires_in.isdigit():
            expires_at = (now or datetime.now(UTC)) + timedelta(seconds=int(expires_in))

        return cls(
            access_token=params["access_token"],
            refresh_token=params.get("refresh_token") or None,
            expires_at=expires_at,
            token_type=params.get("token_type") or "bearer",
        )


class ExchangedTokens(AuthTokens):
    """Token endpoint response, including the OpenID Connect ID token."""

    id_token: str | None = Field(None, description="OpenID Connect ID token")


class AuthUser(BaseModel):
    """User identity as reported by the auth backend."""

    id: str = Field(..., description="Backend user ID")
    email: str | None = Field(None, description="User email address")
    name: str | None = Field(None, description="Display name")
    avatar_url: str | None = Field(None, description="Profile picture URL")
    provider: str | None = Field(None, description="Identity provider used to sign in")
    raw: dict[str, Any] = Field(default_factory=dict, description="Raw backend user record")

    @classmethod
    def from_backend(cls, data: dict[str, Any]) -> AuthUser:
        """Build a user from a backend user record."""
        metadata = data.get("user_metadata") or {}
        app_metadata = data.get("app_metadata") or {}
        email = data.get("email")

        name = metadata.get("name") or metadata.get("full_name")
        if not name and email:
            name = email.split("@")[0]

        return cls(
            id=str(data["id"]),
            email=email,
            name=name,
            avatar_url=metadata.get("avatar_url") or metadata.get("picture"),
            provider=app_metadata.get("provider"),
            raw=data,
        )


class Session(BaseModel):
    """Backend session established from validated tokens."""

    user: AuthUser = Field(..., description="Authenticated user")
    tokens: AuthTokens = Field(..., description="Session tokens")
    expires_at: datetime | None = Field(None, description="Session expiry")

    def is_valid(self, buffer: timedelta, now: datetime | None = None) -> bool:
        """Check that the session does not expire within the buffer."""
        if self.expires_at is None:
            return True
        return self.expires_at - buffer > (now or datetime.now(UTC))


class OAuthError(BaseModel):
    """Structured OAuth error."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any | None = Field(None, description="Additional error context")

    @property
    def kind(self) -> OAuthErrorKind:
        """Error kind derived from the code."""
        return classify_error_code(self.code)

    @property
    def severity(self) -> Severity:
        """Recoverable or fatal classification."""
        if self.kind in _FATAL_KINDS:
            return Severity.FATAL
        return Severity.RECOVERABLE


class OAuthResult(BaseModel):
    """Outcome of a sign-in or callback; the only value handed to the UI."""

    success: bool = Field(..., description="Whether the operation succeeded")
    error: OAuthError | None = Field(None, description="Error when success is false")
    user: AuthUser | None = Field(None, description="Signed in user, when known")
    tokens: AuthTokens | None = Field(None, description="Tokens, when obtained directly")

    @classmethod
    def ok(cls, user: AuthUser | None = None, tokens: AuthTokens | None = None) -> OAuthResult:
        """Create a successful result."""
        return cls(success=True, user=user, tokens=tokens)

    @classmethod
    def fail(cls, code: str | OAuthErrorKind, message: str, details: Any | None = None) -> OAuthResult:
        """Create a failed result."""
        if isinstance(code, OAuthErrorKind):
            code = code.value
        return cls(success=False, error=OAuthError(code=code, message=message, details=details))

    @classmethod
    def from_error(cls, error: OAuthError) -> OAuthResult:
        """Create a failed result from an existing error."""
        return cls(success=False, error=error)


class Result(BaseModel, Generic[T]):
    """Value or error returned by components that never raise."""

    value: T | None = Field(None, description="Value on success")
    error: OAuthError | None = Field(None, description="Error on failure")

    @property
    def ok(self) -> bool:
        """True when the result holds a value."""
        return self.error is None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        """Wrap a value."""
        return cls(value=value)

    @classmethod
    def failure(cls, code: str | OAuthErrorKind, message: str, details: Any | None = None) -> Result[T]:
        """Wrap an error."""
        if isinstance(code, OAuthErrorKind):
            code = code.value
        return cls(error=OAuthError(code=code, message=message, details=details))


class AuthStatus(BaseModel):
    """Authentication status derived from the stored session."""

    is_authenticated: bool = Field(default=False, description="A user is signed in")
    has_valid_session: bool = Field(default=False, description="Session is not near expiry")
    provider: str | None = Field(None, description="Identity provider of the session")


class BrowserResultType(str, Enum):
    """Outcome of a system browser auth session."""

    SUCCESS = "success"
    CANCEL = "cancel"
    DISMISS = "dismiss"
    LOCKED = "locked"


class BrowserResult(BaseModel):
    """Result of a system browser auth session."""

    type: BrowserResultType = Field(..., description="Session outcome")
    url: str | None = Field(None, description="Redirect URL that closed the session")


class SignInState(str, Enum):
    """Progress of a single sign-in attempt."""

    IDLE = "idle"
    AUTHORIZING = "authorizing"
    EXCHANGING = "exchanging"
    SESSION_ESTABLISHING = "session_establishing"
    AUTHENTICATED = "authenticated"
    CANCELLED = "cancelled"
    FAILED = "failed"


class AuthChangeEvent(str, Enum):
    """Identity change events emitted by the session gateway."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    INITIAL_SESSION = "INITIAL_SESSION"

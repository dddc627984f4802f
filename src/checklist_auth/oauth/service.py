"""
OAuth Service

Single entry point the application uses for Google sign-in, callbacks,
sign-out and session status.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog

from checklist_auth.oauth.factory import ProviderFactory
from checklist_auth.oauth.models import (
    AuthStatus,
    OAuthErrorKind,
    OAuthResult,
)
from checklist_auth.oauth.session import SessionGateway

logger = structlog.get_logger()


class OAuthService:
    """
    OAuth service facade.

    Delegates to the platform provider and the session gateway. Every method
    converts failures into results; nothing raises past this boundary.
    """

    def __init__(self, factory: ProviderFactory, gateway: SessionGateway | None = None) -> None:
        """
        Initialize OAuth service.

        Args:
            factory: Provider factory created at start-up
            gateway: Session gateway (the factory's gateway if None)
        """
        self.factory = factory
        self.gateway = gateway or factory.gateway

    async def sign_in_with_google(self) -> OAuthResult:
        """
        Sign in with Google on the current platform.

        When the provider returns tokens, the backend session is set here as
        well; failing to set it turns the result into a session error.
        """
        try:
            provider = self.factory.get_provider()
            logger.info("Starting Google sign-in", platform=provider.get_platform().value)

            result = await provider.sign_in()

            if result.success and result.tokens:
                session_result = await self.gateway.set_session(result.tokens)
                if not session_result.ok:
                    logger.error("Sign-in succeeded but session could not be set", error=session_result.error.message)
                    return OAuthResult.fail(
                        OAuthErrorKind.SESSION_ERROR,
                        f"Failed to set session: {session_result.error.message}",
                        details=session_result.error.model_dump(),
                    )
                return OAuthResult.ok(user=session_result.value.user, tokens=result.tokens)

            if not result.success:
                logger.warning("Google sign-in failed", code=result.error.code, kind=result.error.kind.value)

            return result
        except Exception as e:
            logger.error("OAuth service error", error=str(e), exc_info=True)
            return OAuthResult.fail("oauth_service_error", str(e) or "Unknown OAuth error")

    async def sign_in(self) -> OAuthResult:
        """Alias of sign_in_with_google."""
        return await self.sign_in_with_google()

    async def handle_callback(self, params: dict[str, str]) -> OAuthResult:
        """Complete sign-in from callback parameters."""
        try:
            provider = self.factory.get_provider()
            return await provider.handle_callback(params)
        except Exception as e:
            logger.error("OAuth callback error", error=str(e), exc_info=True)
            return OAuthResult.fail(OAuthErrorKind.CALLBACK_ERROR, str(e) or "Callback handling failed")

    async def sign_out(self) -> None:
        """
        Sign out from the provider and the backend.

        The backend sign-out runs even if the provider sign-out fails.
        """
        logger.info("Starting sign-out")
        try:
            provider = self.factory.get_provider()
            await provider.sign_out()
        except Exception as e:
            logger.error("Provider sign-out failed", error=str(e))
        finally:
            try:
                await self.gateway.sign_out()
            except Exception as e:
                logger.error("Backend sign-out failed", error=str(e))

        logger.info("Sign-out completed")

    async def get_auth_status(self) -> AuthStatus:
        """
        Derive authentication status from the stored session.

        Reads the session store only; no backend calls.
        """
        try:
            session = await self.gateway.get_session()
        except Exception as e:
            logger.error("Error checking auth status", error=str(e))
            return AuthStatus()

        if session is None:
            return AuthStatus()

        return AuthStatus(
            is_authenticated=True,
            has_valid_session=session.is_valid(self.gateway.expiry_buffer),
            provider=session.user.provider,
        )

    async def refresh_session(self) -> bool:
        """Renew the stored session; returns whether a valid session resulted."""
        try:
            return await self.gateway.refresh_session()
        except Exception as e:
            logger.error("Error refreshing session", error=str(e))
            return False

    def is_available(self) -> bool:
        """Check whether Google sign-in can be offered on this platform."""
        try:
            return self.factory.get_provider().is_available()
        except Exception as e:
            logger.error("Error checking OAuth availability", error=str(e))
            return False

    def get_platform(self) -> str:
        """Get the resolved platform name."""
        try:
            return self.factory.get_provider().get_platform().value
        except Exception as e:
            logger.error("Error getting platform", error=str(e))
            return "unknown"

    def get_debug_info(self) -> dict[str, Any]:
        """Collect configuration details for troubleshooting."""
        timestamp = datetime.now(UTC).isoformat()
        try:
            info = self.factory.get_provider().debug_config()
        except Exception as e:
            return {"error": str(e), "timestamp": timestamp}

        info["timestamp"] = timestamp
        return info

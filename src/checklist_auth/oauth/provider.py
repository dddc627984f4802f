"""
Platform OAuth Provider Base Class

Abstract base class for platform sign-in strategies with the shared
configuration checks, callback handling and session establishment.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import structlog

from checklist_auth.oauth.models import (
    AuthTokens,
    OAuthConfig,
    OAuthErrorKind,
    OAuthResult,
    PlatformType,
    SignInState,
)
from checklist_auth.oauth.params import has_tokens, normalize_callback_params
from checklist_auth.oauth.session import SessionGateway

logger = structlog.get_logger()


class PlatformOAuthProvider(ABC):
    """
    Abstract base class for platform OAuth providers.

    Each subclass implements one platform's way of starting sign-in; callback
    handling and session establishment are shared.
    """

    platform: PlatformType

    def __init__(
        self,
        config: OAuthConfig,
        gateway: SessionGateway,
        development: bool = False,
    ) -> None:
        """
        Initialize platform provider.

        Args:
            config: Client id configuration shared by all providers
            gateway: Session gateway used to establish sessions
            development: Running on an emulator/simulator or dev build
        """
        self.config = config
        self.gateway = gateway
        self.development = development
        self._state = SignInState.IDLE

    @property
    def state(self) -> SignInState:
        """State of the current or last sign-in attempt."""
        return self._state

    def _transition(self, state: SignInState) -> None:
        logger.debug(
            "Sign-in state changed",
            platform=self.platform.value,
            from_state=self._state.value,
            to_state=state.value,
        )
        self._state = state

    def _fail(self, code: str | OAuthErrorKind, message: str, details: Any | None = None) -> OAuthResult:
        result = OAuthResult.fail(code, message, details)
        if result.error.kind == OAuthErrorKind.USER_CANCELLED:
            self._transition(SignInState.CANCELLED)
        else:
            self._transition(SignInState.FAILED)
        return result

    def get_platform(self) -> PlatformType:
        """Get the platform this provider serves."""
        return self.platform

    def get_client_id(self) -> str:
        """Get the client id used on this platform."""
        return self.config.client_id_for(self.platform)

    def is_configured(self) -> bool:
        """Check that this platform's client id is set and not a placeholder."""
        return OAuthConfig.is_usable(self.get_client_id())

    def is_available(self) -> bool:
        """Check whether sign-in can be offered on this platform."""
        return self.is_configured()

    async def sign_in(self) -> OAuthResult:
        """
        Start a sign-in attempt.

        Returns:
            OAuth result; never raises
        """
        self._transition(SignInState.IDLE)

        if not self.is_configured():
            logger.warning("OAuth client not configured", platform=self.platform.value)
            return self._fail(
                OAuthErrorKind.NOT_CONFIGURED,
                f"Google OAuth is not properly configured for {self.platform.value}",
            )

        if not self.gateway.is_configured:
            return self._fail("configuration_error", "Auth backend URL not configured")

        try:
            return await self._authorize()
        except Exception as e:
            logger.error("Sign-in failed", platform=self.platform.value, error=str(e), exc_info=True)
            return self._fail(OAuthErrorKind.UNKNOWN, str(e) or "Unknown error occurred")

    @abstractmethod
    async def _authorize(self) -> OAuthResult:
        """
        Run the platform-specific part of sign-in.

        Called only when the provider and backend are configured.
        """
        pass

    async def handle_callback(self, params: dict[str, str]) -> OAuthResult:
        """
        Complete sign-in from callback parameters.

        An error parameter always fails with that code. Tokens are turned into
        a session; without tokens, an already established session counts as
        success.

        Args:
            params: Flat callback parameters

        Returns:
            OAuth result; never raises
        """
        try:
            if "error" in params:
                error_code = str(params["error"])
                logger.warning("OAuth callback carried an error", platform=self.platform.value, error=error_code)
                return self._fail(error_code, params.get("error_description") or "OAuth callback error")

            params = normalize_callback_params(query=params)

            if has_tokens(params):
                return await self._establish_session(AuthTokens.from_params(params))

            session = await self.gateway.get_session()
            if session is None:
                return self._fail("no_session", "No session found after OAuth callback")

            self._transition(SignInState.AUTHENTICATED)
            return OAuthResult.ok(user=session.user)
        except Exception as e:
            logger.error("OAuth callback failed", platform=self.platform.value, error=str(e), exc_info=True)
            return self._fail(OAuthErrorKind.CALLBACK_ERROR, str(e) or "Callback handling failed")

    async def _establish_session(self, tokens: AuthTokens) -> OAuthResult:
        self._transition(SignInState.SESSION_ESTABLISHING)

        result = await self.gateway.set_session(tokens)
        if not result.ok:
            return self._fail(
                OAuthErrorKind.SESSION_ERROR,
                f"Failed to establish session with OAuth tokens: {result.error.message}",
                details=result.error.model_dump(),
            )

        self._transition(SignInState.AUTHENTICATED)
        return OAuthResult.ok(user=result.value.user, tokens=tokens)

    async def sign_out(self) -> None:
        """Provider-side sign-out; the backend session is cleared by the service."""
        logger.debug("Provider sign-out", platform=self.platform.value)
        self._transition(SignInState.IDLE)

    def redirect_url(self) -> str:
        """URL the identity flow finally returns to."""
        raise NotImplementedError

    def debug_config(self) -> dict[str, Any]:
        """
        Describe the provider configuration for troubleshooting.

        Client ids are public identifiers and are included as-is.
        """
        return {
            "platform": self.platform.value,
            "client_id": self.get_client_id(),
            "is_configured": self.is_configured(),
            "is_available": self.is_available(),
            "backend_configured": self.gateway.is_configured,
            "development": self.development,
            "redirect_url": self.redirect_url(),
            "state": self.state.value,
        }

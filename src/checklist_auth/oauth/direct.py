"""
Direct Browser Flow

Secondary sign-in path that talks to Google directly: authorization code
with a CSRF state, code exchange, then backend sign-in with the ID token.
"""

from __future__ import annotations

import secrets
from urllib.parse import urlencode

import structlog

from checklist_auth.oauth.browser import SystemBrowser
from checklist_auth.oauth.models import BrowserResultType, OAuthErrorKind, OAuthResult
from checklist_auth.oauth.params import AUTHORIZATION_CODE_KEYS, normalize_callback_params
from checklist_auth.oauth.provider import PlatformOAuthProvider
from checklist_auth.oauth.session import SessionGateway
from checklist_auth.oauth.token_exchange import TokenExchangeClient

logger = structlog.get_logger()


class DirectBrowserFlow:
    """
    Direct Google sign-in through the system browser.

    The only path that sends and validates a state parameter; the
    backend-hosted redirect paths do not use one.
    """

    def __init__(
        self,
        provider: PlatformOAuthProvider,
        gateway: SessionGateway,
        browser: SystemBrowser,
        exchange_client: TokenExchangeClient,
        authorization_endpoint: str,
        redirect_uri: str,
        scopes: list[str] | None = None,
    ) -> None:
        """
        Initialize direct browser flow.

        Args:
            provider: Provider supplying the platform client id
            gateway: Session gateway for the ID token sign-in
            browser: System browser for the authorization step
            exchange_client: Token exchange client
            authorization_endpoint: Google authorization endpoint
            redirect_uri: Redirect URI registered for the client id
            scopes: Requested scopes
        """
        self.provider = provider
        self.gateway = gateway
        self.browser = browser
        self.exchange_client = exchange_client
        self.authorization_endpoint = authorization_endpoint
        self.redirect_uri = redirect_uri
        self.scopes = scopes or ["openid", "profile", "email"]

    @staticmethod
    def generate_state() -> str:
        """Generate a URL-safe random state parameter."""
        return secrets.token_urlsafe(32)

    def build_authorization_url(self, state: str) -> str:
        """Build the Google authorization URL for the code flow."""
        params = {
            "client_id": self.provider.get_client_id(),
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        return f"{self.authorization_endpoint}?{urlencode(params)}"

    async def sign_in(self) -> OAuthResult:
        """
        Run the direct flow.

        Returns:
            OAuth result; never raises
        """
        if not self.provider.is_configured():
            return OAuthResult.fail(
                OAuthErrorKind.NOT_CONFIGURED,
                "Google OAuth client ID not configured for this platform",
            )

        try:
            state = self.generate_state()
            result = await self.browser.open_auth_session(self.build_authorization_url(state), self.redirect_uri)

            if result.type in (BrowserResultType.CANCEL, BrowserResultType.DISMISS):
                return OAuthResult.fail(OAuthErrorKind.USER_CANCELLED, "Authentication cancelled")
            if result.type != BrowserResultType.SUCCESS or not result.url:
                return OAuthResult.fail(OAuthErrorKind.UNKNOWN, "Authentication failed")

            params = normalize_callback_params(result.url, keys=AUTHORIZATION_CODE_KEYS)

            if params.get("error"):
                return OAuthResult.fail(params["error"], params.get("error_description") or "Authorization failed")

            if params.get("state") != state:
                logger.warning("OAuth state mismatch")
                return OAuthResult.fail("invalid_state", "Invalid state parameter")

            code = params.get("code")
            if not code:
                return OAuthResult.fail("no_tokens", "No authorization code received from Google")

            exchanged = await self.exchange_client.exchange(self.provider.get_client_id(), code, self.redirect_uri)
            if not exchanged.ok:
                return OAuthResult.from_error(exchanged.error)

            if not exchanged.value.id_token:
                return OAuthResult.fail(OAuthErrorKind.SESSION_ERROR, "Token response did not include an ID token")

            session_result = await self.gateway.sign_in_with_id_token(exchanged.value.id_token)
            if not session_result.ok:
                return OAuthResult.fail(
                    OAuthErrorKind.SESSION_ERROR,
                    session_result.error.message,
                    details=session_result.error.model_dump(),
                )

            return OAuthResult.ok(user=session_result.value.user, tokens=session_result.value.tokens)
        except Exception as e:
            logger.error("Direct browser sign-in failed", error=str(e), exc_info=True)
            return OAuthResult.fail(OAuthErrorKind.UNKNOWN, str(e) or "Unknown error occurred")

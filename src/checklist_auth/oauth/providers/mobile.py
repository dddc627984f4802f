"""
Mobile OAuth Provider

Shared system-browser sign-in for the native platforms.
"""

from __future__ import annotations

import structlog

from checklist_auth.oauth.browser import SystemBrowser
from checklist_auth.oauth.models import (
    AuthTokens,
    BrowserResultType,
    OAuthConfig,
    OAuthErrorKind,
    OAuthResult,
    SignInState,
)
from checklist_auth.oauth.params import has_tokens, normalize_callback_params
from checklist_auth.oauth.provider import PlatformOAuthProvider
from checklist_auth.oauth.session import SessionGateway

logger = structlog.get_logger()


class MobileOAuthProvider(PlatformOAuthProvider):
    """
    System browser sign-in through the backend's hosted authorize endpoint.

    The browser session blocks until the app's callback URL is reached or the
    user closes the browser. Subclasses choose where the backend redirects.
    """

    # Success without tokens in the result URL leaves completion to the deep link
    completes_by_deep_link = True

    def __init__(
        self,
        config: OAuthConfig,
        gateway: SessionGateway,
        browser: SystemBrowser,
        app_callback_url: str,
        development: bool = False,
    ) -> None:
        super().__init__(config, gateway, development)
        self.browser = browser
        self.app_callback_url = app_callback_url

    def redirect_url(self) -> str:
        return self.app_callback_url

    def backend_redirect_target(self) -> str:
        """Where the backend sends the browser after sign-in."""
        return self.app_callback_url

    async def _authorize(self) -> OAuthResult:
        redirect_to = self.backend_redirect_target()
        authorization_url = self.gateway.authorize_url(redirect_to)

        if self.development:
            logger.warning(
                "Running on an emulator or simulator, OAuth redirects may need extra setup",
                platform=self.platform.value,
            )

        logger.info(
            "Opening OAuth browser session",
            platform=self.platform.value,
            redirect_to=redirect_to,
            wait_for=self.app_callback_url,
        )

        self._transition(SignInState.AUTHORIZING)
        result = await self.browser.open_auth_session(authorization_url, self.app_callback_url)

        logger.info("Browser session finished", platform=self.platform.value, result=result.type.value)

        if result.type in (BrowserResultType.CANCEL, BrowserResultType.DISMISS):
            return self._fail(
                OAuthErrorKind.USER_CANCELLED,
                "Google sign-in was cancelled. Please try again and complete the authentication process.",
            )

        if result.type != BrowserResultType.SUCCESS:
            return self._fail("oauth_initiation_failed", "Failed to open OAuth browser session")

        return await self._complete_from_url(result.url)

    async def _complete_from_url(self, url: str | None) -> OAuthResult:
        if not url:
            if self.completes_by_deep_link:
                return OAuthResult.ok()
            return self._fail("no_result_url", "OAuth completed but no result URL received")

        self._transition(SignInState.EXCHANGING)
        params = normalize_callback_params(url=url)

        if params.get("error"):
            return self._fail(params["error"], params.get("error_description") or "OAuth callback error")

        if has_tokens(params):
            logger.info("Tokens found in result URL, setting session", platform=self.platform.value)
            return await self._establish_session(AuthTokens.from_params(params))

        if self.completes_by_deep_link:
            # The OS-level deep link delivers the tokens to the router
            logger.info("No tokens in result URL, waiting for deep link", platform=self.platform.value)
            return OAuthResult.ok()

        return self._fail("no_tokens", "No authentication tokens received")

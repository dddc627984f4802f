"""
Web OAuth Provider

Backend-hosted redirect sign-in for the web app.
"""

from __future__ import annotations

import structlog

from checklist_auth.oauth.browser import WebRedirector
from checklist_auth.oauth.models import OAuthConfig, OAuthResult, PlatformType, SignInState
from checklist_auth.oauth.provider import PlatformOAuthProvider
from checklist_auth.oauth.session import SessionGateway

logger = structlog.get_logger()


class WebOAuthProvider(PlatformOAuthProvider):
    """
    Web OAuth provider.

    Sends the page to the backend's authorization endpoint. The backend
    returns to the hosted callback route with tokens in the hash fragment,
    so no code exchange happens on this path.
    """

    platform = PlatformType.WEB

    def __init__(
        self,
        config: OAuthConfig,
        gateway: SessionGateway,
        redirector: WebRedirector,
        callback_url: str,
        development: bool = False,
    ) -> None:
        super().__init__(config, gateway, development)
        self.redirector = redirector
        self.callback_url = callback_url

    def redirect_url(self) -> str:
        return self.callback_url

    async def _authorize(self) -> OAuthResult:
        authorization_url = self.gateway.authorize_url(self.callback_url)

        logger.info(
            "Starting web OAuth redirect",
            redirect_url=self.callback_url,
            development=self.development,
        )

        self._transition(SignInState.AUTHORIZING)
        await self.redirector.redirect(authorization_url)

        # The page is leaving; the callback route completes the attempt
        return OAuthResult.ok()

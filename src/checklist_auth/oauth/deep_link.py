"""
Deep Link Router

Routes incoming auth callback URLs (native deep links or the web page's
location) to the OAuth service.
"""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from checklist_auth.oauth.browser import AuthSessionBrowser
from checklist_auth.oauth.models import OAuthResult
from checklist_auth.oauth.params import normalize_callback_params
from checklist_auth.oauth.service import OAuthService

logger = structlog.get_logger()


class DeepLinkRouter:
    """
    Normalizes callback URLs and dispatches them to OAuthService.handle_callback.

    When a system browser session is still waiting for the URL, the URL
    resolves that session instead of being dispatched a second time.
    """

    CALLBACK_PATH = "auth/callback"

    def __init__(self, service: OAuthService, browser: AuthSessionBrowser | None = None) -> None:
        self.service = service
        self.browser = browser

    def is_auth_callback(self, url: str) -> bool:
        """Check whether a URL targets the auth callback route."""
        return self.CALLBACK_PATH in url.split("?", 1)[0].split("#", 1)[0]

    async def handle_url(self, url: str) -> OAuthResult | None:
        """
        Handle a native deep link.

        Args:
            url: Incoming URL, e.g. scheme://auth/callback?access_token=...

        Returns:
            Callback result, or None if the URL is not an auth callback or was
            handed to the pending browser session's sign-in
        """
        if not self.is_auth_callback(url):
            logger.debug("Ignoring non-auth deep link")
            return None

        if self.browser is not None and self.browser.complete(url):
            # The waiting sign_in() processes this URL itself
            logger.info("Deep link resolved pending browser session")
            return None

        return await self.dispatch(normalize_callback_params(url=url))

    async def handle_web_location(
        self,
        hash_fragment: str | None = None,
        search: str | Mapping[str, object] | None = None,
    ) -> OAuthResult:
        """
        Handle the web callback page's location.

        Args:
            hash_fragment: window.location.hash
            search: Query string or route parameters

        Returns:
            Callback result
        """
        return await self.dispatch(normalize_callback_params(fragment=hash_fragment, query=search))

    async def dispatch(self, params: dict[str, str]) -> OAuthResult:
        """Forward normalized parameters to the OAuth service."""
        logger.info(
            "Dispatching auth callback",
            has_access_token="access_token" in params,
            has_refresh_token="refresh_token" in params,
            error=params.get("error"),
        )
        return await self.service.handle_callback(params)

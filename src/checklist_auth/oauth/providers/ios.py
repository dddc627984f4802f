"""
iOS OAuth Provider

System browser sign-in through a hosted relay page.
"""

from __future__ import annotations

from typing import Any

from checklist_auth.oauth.browser import SystemBrowser
from checklist_auth.oauth.models import OAuthConfig, PlatformType
from checklist_auth.oauth.providers.mobile import MobileOAuthProvider
from checklist_auth.oauth.session import SessionGateway


class IOSOAuthProvider(MobileOAuthProvider):
    """
    iOS OAuth provider.

    Redirect URI validation does not reliably hand control back to a bare
    custom scheme on iOS, so the backend redirects to a hosted relay page
    which forwards the fragment tokens to the app scheme. The browser session
    still waits for the app scheme: browser -> relay page -> app.
    """

    platform = PlatformType.IOS
    completes_by_deep_link = False

    def __init__(
        self,
        config: OAuthConfig,
        gateway: SessionGateway,
        browser: SystemBrowser,
        app_callback_url: str,
        relay_url: str,
        development: bool = False,
    ) -> None:
        super().__init__(config, gateway, browser, app_callback_url, development)
        self.relay_url = relay_url

    def backend_redirect_target(self) -> str:
        return self.relay_url

    def debug_config(self) -> dict[str, Any]:
        info = super().debug_config()
        info["relay_url"] = self.relay_url
        info["uses_web_client_fallback"] = not OAuthConfig.is_usable(self.config.ios_client_id)
        return info

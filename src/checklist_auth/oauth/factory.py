"""
OAuth Provider Factory

Resolves the runtime platform once and builds the matching provider.
"""

from __future__ import annotations

import sys

import structlog

from checklist_auth.config import AuthSettings, settings as default_settings
from checklist_auth.oauth.browser import (
    AuthSessionBrowser,
    SystemBrowser,
    WebbrowserRedirector,
    WebRedirector,
)
from checklist_auth.oauth.models import OAuthConfig, PlatformType
from checklist_auth.oauth.provider import PlatformOAuthProvider
from checklist_auth.oauth.providers import (
    AndroidOAuthProvider,
    IOSOAuthProvider,
    WebOAuthProvider,
)
from checklist_auth.oauth.session import SessionGateway

logger = structlog.get_logger()


def detect_platform(override: str | None = None) -> PlatformType:
    """
    Detect the runtime platform.

    An explicit override wins; otherwise the interpreter's platform is used
    (CPython reports "ios" and "android" on mobile builds). Anything else is
    served by the web provider.

    Args:
        override: Platform name from configuration

    Returns:
        Detected platform
    """
    candidate = (override or sys.platform).lower()

    try:
        return PlatformType(candidate)
    except ValueError:
        if override:
            logger.warning("Unknown platform override, defaulting to web", platform=override)
        return PlatformType.WEB


class ProviderFactory:
    """
    Provider factory.

    Created once at start-up and passed to the services that need it. The
    provider is built on first use and reused until reset() is called.
    """

    def __init__(
        self,
        gateway: SessionGateway,
        config: OAuthConfig | None = None,
        app_settings: AuthSettings | None = None,
        platform: PlatformType | None = None,
        browser: SystemBrowser | None = None,
        redirector: WebRedirector | None = None,
    ) -> None:
        """
        Initialize provider factory.

        Args:
            gateway: Session gateway shared by all providers
            config: Client id configuration (taken from settings if None)
            app_settings: Settings supplying redirect URLs and flags
            platform: Fixed platform (detected on first use if None)
            browser: System browser for native sign-in
            redirector: Page redirector for web sign-in
        """
        self.settings = app_settings or default_settings
        self.gateway = gateway
        self.config = config or self.settings.oauth_config
        self.browser = browser or AuthSessionBrowser()
        self.redirector = redirector or WebbrowserRedirector()

        self._platform_override = platform
        self._platform: PlatformType | None = None
        self._provider: PlatformOAuthProvider | None = None

    @property
    def platform(self) -> PlatformType:
        """Platform resolved for this process."""
        if self._platform is None:
            self._platform = self._platform_override or detect_platform(self.settings.PLATFORM)
        return self._platform

    def get_provider(self) -> PlatformOAuthProvider:
        """Get the provider for the resolved platform, creating it once."""
        if self._provider is None:
            self._provider = self.create_provider(self.platform)
        return self._provider

    def create_provider(self, platform: PlatformType) -> PlatformOAuthProvider:
        """
        Build a new provider for a platform.

        Args:
            platform: Target platform

        Returns:
            Unshared provider instance
        """
        development = self.settings.DEVELOPMENT

        if platform == PlatformType.IOS:
            logger.info("Creating iOS OAuth provider")
            return IOSOAuthProvider(
                self.config,
                self.gateway,
                browser=self.browser,
                app_callback_url=self.settings.app_callback_url,
                relay_url=self.settings.ios_relay_url,
                development=development,
            )

        if platform == PlatformType.ANDROID:
            logger.info("Creating Android OAuth provider")
            return AndroidOAuthProvider(
                self.config,
                self.gateway,
                browser=self.browser,
                app_callback_url=self.settings.app_callback_url,
                development=development,
            )

        logger.info("Creating web OAuth provider")
        return WebOAuthProvider(
            self.config,
            self.gateway,
            redirector=self.redirector,
            callback_url=self.settings.web_callback_url,
            development=development,
        )

    def reset(self) -> None:
        """Drop the cached provider and platform; for tests and debugging."""
        self._provider = None
        self._platform = None
        logger.debug("Provider factory reset")

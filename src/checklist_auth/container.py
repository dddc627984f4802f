"""Composition root for the auth client.

Builds every component once at process start and wires them together, so
the platform provider is resolved once and passed around explicitly instead
of living in module-level caches.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import httpx

from checklist_auth.config import AuthSettings, settings as default_settings
from checklist_auth.oauth.browser import AuthSessionBrowser, SystemBrowser, WebbrowserRedirector, WebRedirector
from checklist_auth.oauth.deep_link import DeepLinkRouter
from checklist_auth.oauth.direct import DirectBrowserFlow
from checklist_auth.oauth.factory import ProviderFactory
from checklist_auth.oauth.listener import AuthStateListener, Navigator, ProfileFetcher, UserSetter
from checklist_auth.oauth.service import OAuthService
from checklist_auth.oauth.session import SessionGateway
from checklist_auth.oauth.store import MemorySessionStore, RedisSessionStore, SessionStore
from checklist_auth.oauth.token_exchange import TokenExchangeClient


@dataclass
class AuthContainer:
    """Wired auth components for one process."""

    settings: AuthSettings
    http_client: httpx.AsyncClient
    store: SessionStore
    gateway: SessionGateway
    factory: ProviderFactory
    service: OAuthService
    exchange_client: TokenExchangeClient
    browser: SystemBrowser
    router: DeepLinkRouter

    def create_listener(
        self,
        set_current_user: UserSetter,
        navigate: Navigator,
        fetch_profile: ProfileFetcher | None = None,
    ) -> AuthStateListener:
        """Create the auth state listener for the host's user and navigation hooks."""
        return AuthStateListener(
            self.gateway,
            set_current_user=set_current_user,
            navigate=navigate,
            fetch_profile=fetch_profile,
            login_route=self.settings.LOGIN_ROUTE,
            main_route=self.settings.MAIN_ROUTE,
        )

    def create_direct_flow(self, redirect_uri: str | None = None) -> DirectBrowserFlow:
        """Create the direct Google browser flow for the resolved provider."""
        return DirectBrowserFlow(
            provider=self.factory.get_provider(),
            gateway=self.gateway,
            browser=self.browser,
            exchange_client=self.exchange_client,
            authorization_endpoint=self.settings.GOOGLE_AUTHORIZATION_ENDPOINT,
            redirect_uri=redirect_uri or self.settings.app_callback_url,
            scopes=self.settings.GOOGLE_SCOPES,
        )

    async def initialize(self) -> None:
        """Open connections that need an event loop."""
        if isinstance(self.store, RedisSessionStore):
            await self.store.initialize()

    async def close(self) -> None:
        """Release network resources."""
        if isinstance(self.store, RedisSessionStore):
            await self.store.close()
        await self.http_client.aclose()


def build_container(
    app_settings: AuthSettings | None = None,
    store: SessionStore | None = None,
    browser: SystemBrowser | None = None,
    redirector: WebRedirector | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AuthContainer:
    """
    Build the auth components from settings.

    Args:
        app_settings: Settings (global settings if None)
        store: Session store (Redis when configured, else in-memory)
        browser: System browser (deep-link resolved browser if None)
        redirector: Web page redirector (default browser if None)
        http_client: Shared HTTP client

    Returns:
        Wired container
    """
    cfg = app_settings or default_settings
    client = http_client or httpx.AsyncClient(timeout=cfg.HTTP_TIMEOUT)

    if store is None:
        if cfg.SESSION_REDIS_URL:
            store = RedisSessionStore(cfg.SESSION_REDIS_URL, key=cfg.SESSION_STORAGE_KEY)
        else:
            store = MemorySessionStore()

    gateway = SessionGateway(
        cfg.BACKEND_URL,
        anon_key=cfg.BACKEND_ANON_KEY,
        store=store,
        http_client=client,
        timeout=cfg.HTTP_TIMEOUT,
        expiry_buffer=timedelta(seconds=cfg.SESSION_EXPIRY_BUFFER_SECONDS),
    )

    system_browser = browser or AuthSessionBrowser()
    factory = ProviderFactory(
        gateway,
        app_settings=cfg,
        browser=system_browser,
        redirector=redirector or WebbrowserRedirector(),
    )
    service = OAuthService(factory, gateway)

    return AuthContainer(
        settings=cfg,
        http_client=client,
        store=store,
        gateway=gateway,
        factory=factory,
        service=service,
        exchange_client=TokenExchangeClient(
            cfg.GOOGLE_TOKEN_ENDPOINT,
            http_client=client,
            timeout=cfg.HTTP_TIMEOUT,
            development=cfg.DEVELOPMENT,
        ),
        browser=system_browser,
        router=DeepLinkRouter(
            service,
            browser=system_browser if isinstance(system_browser, AuthSessionBrowser) else None,
        ),
    )

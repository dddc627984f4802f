"""
Browser Integration

System browser auth sessions for mobile sign-in and page redirects for web
sign-in. Hosts plug in their own implementations of the two protocols.
"""

from __future__ import annotations

import asyncio
import webbrowser
from collections.abc import Callable
from typing import Protocol

import structlog

from checklist_auth.oauth.models import BrowserResult, BrowserResultType

logger = structlog.get_logger()


class SystemBrowser(Protocol):
    """Opens an auth session and waits for it to finish."""

    async def open_auth_session(self, url: str, redirect_url: str) -> BrowserResult:
        """
        Open url and wait until the browser navigates to redirect_url or is closed.

        There is no timeout: the call waits for as long as the user keeps the
        browser open.
        """
        ...


class WebRedirector(Protocol):
    """Navigates the current page to another URL."""

    async def redirect(self, url: str) -> None:
        """Leave the current page for url."""
        ...


class AuthSessionBrowser:
    """
    System browser session resolved by deep links.

    Opens the authorization URL with an opener (the platform browser by
    default) and waits for the host to report the redirect back into the app
    through complete(), or a dismissal through dismiss().
    """

    def __init__(self, opener: Callable[[str], object] | None = None) -> None:
        self._opener = opener or webbrowser.open
        self._pending: asyncio.Future[BrowserResult] | None = None
        self._redirect_url: str | None = None

    @property
    def is_pending(self) -> bool:
        """Check whether a session is waiting for its redirect."""
        return self._pending is not None and not self._pending.done()

    async def open_auth_session(self, url: str, redirect_url: str) -> BrowserResult:
        if self.is_pending:
            logger.warning("Auth session already in progress")
            return BrowserResult(type=BrowserResultType.LOCKED)

        loop = asyncio.get_running_loop()
        self._pending = loop.create_future()
        self._redirect_url = redirect_url

        logger.info("Opening auth session", redirect_url=redirect_url)
        try:
            await asyncio.to_thread(self._opener, url)
            return await self._pending
        finally:
            self._pending = None
            self._redirect_url = None

    def complete(self, url: str) -> bool:
        """
        Resolve the pending session with an incoming URL.

        Returns:
            True if the URL matched the pending session's redirect
        """
        if not self.is_pending or not self._redirect_url:
            return False
        if not url.startswith(self._redirect_url):
            return False

        self._pending.set_result(BrowserResult(type=BrowserResultType.SUCCESS, url=url))
        return True

    def dismiss(self) -> None:
        """Resolve the pending session as cancelled by the user."""
        if self.is_pending:
            self._pending.set_result(BrowserResult(type=BrowserResultType.CANCEL))


class WebbrowserRedirector:
    """Redirects by opening the URL in the default browser."""

    def __init__(self, opener: Callable[[str], object] | None = None) -> None:
        self._opener = opener or webbrowser.open

    async def redirect(self, url: str) -> None:
        await asyncio.to_thread(self._opener, url)

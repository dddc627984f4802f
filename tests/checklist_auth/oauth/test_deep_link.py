"""
Tests for deep link routing.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from checklist_auth.oauth.browser import AuthSessionBrowser
from checklist_auth.oauth.deep_link import DeepLinkRouter
from checklist_auth.oauth.models import BrowserResultType, OAuthResult

APP_CALLBACK = "in.botle.checklistapp://auth/callback"


@pytest.fixture
def service() -> Mock:
    """Mocked OAuth service."""
    service = Mock()
    service.handle_callback = AsyncMock(return_value=OAuthResult.ok())
    return service


class TestDeepLinkRouter:
    """Test DeepLinkRouter."""

    def test_is_auth_callback(self, service: Mock) -> None:
        """Test callback route detection ignores query and fragment."""
        router = DeepLinkRouter(service)

        assert router.is_auth_callback(f"{APP_CALLBACK}?access_token=x")
        assert router.is_auth_callback("https://app.test/auth/callback#access_token=x")
        assert not router.is_auth_callback("in.botle.checklistapp://settings?next=auth/callback")

    @pytest.mark.asyncio
    async def test_native_deep_link(self, service: Mock) -> None:
        """Test query tokens are normalized and dispatched."""
        router = DeepLinkRouter(service)

        result = await router.handle_url(f"{APP_CALLBACK}?access_token=abc&refresh_token=def&state=ignored")

        assert result.success
        service.handle_callback.assert_awaited_once_with({"access_token": "abc", "refresh_token": "def"})

    @pytest.mark.asyncio
    async def test_unrelated_link_ignored(self, service: Mock) -> None:
        """Test other deep links are not dispatched."""
        router = DeepLinkRouter(service)

        assert await router.handle_url("in.botle.checklistapp://lists/42") is None
        service.handle_callback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_web_location(self, service: Mock) -> None:
        """Test the web callback page's hash tokens."""
        router = DeepLinkRouter(service)

        await router.handle_web_location(
            hash_fragment="#access_token=abc&expires_in=3600&token_type=bearer",
            search="",
        )

        service.handle_callback.assert_awaited_once_with(
            {"access_token": "abc", "token_type": "bearer", "expires_in": "3600"}
        )

    @pytest.mark.asyncio
    async def test_error_link(self, service: Mock) -> None:
        """Test error parameters are forwarded."""
        router = DeepLinkRouter(service)

        await router.handle_url(f"{APP_CALLBACK}?error=access_denied&error_description=denied")

        service.handle_callback.assert_awaited_once_with(
            {"error": "access_denied", "error_description": "denied"}
        )

    @pytest.mark.asyncio
    async def test_pending_browser_session_claims_url(self, service: Mock) -> None:
        """Test a waiting browser session receives the URL instead of the service."""
        browser = AuthSessionBrowser(opener=Mock())
        router = DeepLinkRouter(service, browser=browser)

        session = asyncio.create_task(browser.open_auth_session("https://backend.test/authorize", APP_CALLBACK))
        await asyncio.sleep(0)
        assert browser.is_pending

        url = f"{APP_CALLBACK}?access_token=abc"
        assert await router.handle_url(url) is None

        result = await session
        assert result.type == BrowserResultType.SUCCESS
        assert result.url == url
        service.handle_callback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_pending_session_dispatches(self, service: Mock) -> None:
        """Test links after the browser session ended go to the service."""
        router = DeepLinkRouter(service, browser=AuthSessionBrowser(opener=Mock()))

        await router.handle_url(f"{APP_CALLBACK}?access_token=abc")

        service.handle_callback.assert_awaited_once()

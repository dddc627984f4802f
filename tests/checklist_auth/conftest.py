"""Shared fixtures for auth client tests."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import httpx
import pytest
import respx
from jose import jwt

from checklist_auth.config import AuthSettings
from checklist_auth.oauth.models import AuthTokens, BrowserResult, BrowserResultType, OAuthConfig
from checklist_auth.oauth.session import SessionGateway

BACKEND_URL = "https://backend.test"

USER_RECORD: dict[str, Any] = {
    "id": "user-1",
    "email": "ada@example.com",
    "user_metadata": {"full_name": "Ada Lovelace", "picture": "https://img.test/ada.png"},
    "app_metadata": {"provider": "google"},
}


def _access_token(expires_in: int = 3600, sub: str = "user-1") -> str:
    return jwt.encode(
        {"sub": sub, "exp": int(time.time()) + expires_in},
        "test-secret",
        algorithm="HS256",
    )


def _grant_body(expires_in: int = 3600) -> dict[str, Any]:
    return {
        "access_token": _access_token(expires_in),
        "refresh_token": "refreshed-refresh-token",
        "token_type": "bearer",
        "expires_in": expires_in,
        "expires_at": int(time.time()) + expires_in,
        "user": USER_RECORD,
    }


class FakeBrowser:
    """System browser returning a fixed result."""

    def __init__(self, result: BrowserResult) -> None:
        self.result = result
        self.calls: list[tuple[str, str]] = []

    async def open_auth_session(self, url: str, redirect_url: str) -> BrowserResult:
        self.calls.append((url, redirect_url))
        return self.result


class FakeRedirector:
    """Web redirector recording target URLs."""

    def __init__(self) -> None:
        self.urls: list[str] = []

    async def redirect(self, url: str) -> None:
        self.urls.append(url)


@pytest.fixture
def user_record() -> dict[str, Any]:
    """Backend user record."""
    return dict(USER_RECORD)


@pytest.fixture
def make_access_token() -> Callable[..., str]:
    """Factory for JWT access tokens with an exp claim."""
    return _access_token


@pytest.fixture
def grant_body() -> Callable[..., dict[str, Any]]:
    """Factory for backend token grant responses."""
    return _grant_body


@pytest.fixture
def browser_factory() -> Callable[..., FakeBrowser]:
    """Factory for system browsers returning a fixed result."""

    def create(result_type: BrowserResultType = BrowserResultType.SUCCESS, url: str | None = None) -> FakeBrowser:
        return FakeBrowser(BrowserResult(type=result_type, url=url))

    return create


@pytest.fixture
def redirector() -> FakeRedirector:
    """Recording web redirector."""
    return FakeRedirector()


@pytest.fixture
def oauth_config() -> OAuthConfig:
    """Fully configured client ids."""
    return OAuthConfig(
        web_client_id="web-client.apps.googleusercontent.com",
        ios_client_id="ios-client.apps.googleusercontent.com",
        android_client_id="android-client.apps.googleusercontent.com",
    )


@pytest.fixture
def app_settings() -> AuthSettings:
    """Settings pointing at the mocked backend."""
    return AuthSettings(
        _env_file=None,
        BACKEND_URL=BACKEND_URL,
        BACKEND_ANON_KEY="anon-key",
        GOOGLE_WEB_CLIENT_ID="web-client.apps.googleusercontent.com",
        GOOGLE_IOS_CLIENT_ID="ios-client.apps.googleusercontent.com",
        GOOGLE_ANDROID_CLIENT_ID="android-client.apps.googleusercontent.com",
        WEB_BASE_URL="https://app.test",
        PLATFORM="web",
    )


@pytest.fixture
def backend():
    """Mocked auth backend with user, token and logout endpoints."""

    def token_grant(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_grant_body())

    with respx.mock(base_url=BACKEND_URL, assert_all_called=False) as mock:
        mock.get("/auth/v1/user", name="user").mock(return_value=httpx.Response(200, json=USER_RECORD))
        mock.post("/auth/v1/token", name="token").mock(side_effect=token_grant)
        mock.post("/auth/v1/logout", name="logout").mock(return_value=httpx.Response(204))
        yield mock


@pytest.fixture
def gateway() -> SessionGateway:
    """Session gateway against the mocked backend with in-memory storage."""
    return SessionGateway(BACKEND_URL, anon_key="anon-key")


@pytest.fixture
def tokens() -> AuthTokens:
    """Tokens as delivered by a callback."""
    return AuthTokens(access_token=_access_token(), refresh_token="refresh-token")

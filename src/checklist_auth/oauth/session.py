"""
Session Gateway

Thin wrapper over the auth backend's session API. The gateway is the only
writer of the stored session and the source of identity change events.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode
from uuid import uuid4

import httpx
import structlog
from jose import JWTError, jwt

from checklist_auth.exceptions import BackendError, ConfigurationError
from checklist_auth.oauth.models import (
    AuthChangeEvent,
    AuthTokens,
    AuthUser,
    OAuthErrorKind,
    Result,
    Session,
)
from checklist_auth.oauth.store import MemorySessionStore, SessionStore

logger = structlog.get_logger()

# Callback invoked with every identity change; may be sync or async
AuthStateCallback = Callable[[AuthChangeEvent, Session | None], Awaitable[None] | None]

DEFAULT_EXPIRY_BUFFER = timedelta(minutes=5)

# Reported for 2xx responses whose body cannot be used
MALFORMED_RESPONSE_STATUS = 502


class Subscription:
    """Handle returned by on_auth_state_change."""

    def __init__(self, subscription_id: str, gateway: SessionGateway) -> None:
        self.id = subscription_id
        self._gateway = gateway

    def unsubscribe(self) -> None:
        """Stop receiving events; safe to call twice."""
        self._gateway._subscribers.pop(self.id, None)


class SessionGateway:
    """
    Auth backend session API client.

    Handles session establishment, refresh and sign-out, and publishes
    identity change events to subscribers.
    """

    def __init__(
        self,
        backend_url: str | None,
        anon_key: str | None = None,
        store: SessionStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        expiry_buffer: timedelta = DEFAULT_EXPIRY_BUFFER,
    ) -> None:
        """
        Initialize session gateway.

        Args:
            backend_url: Auth backend base URL (gateway is unconfigured if None)
            anon_key: Backend anonymous API key
            store: Session storage (process-local if None)
            http_client: Shared HTTP client (short-lived ones are used if None)
            timeout: Request timeout in seconds
            expiry_buffer: Sessions this close to expiry count as expired
        """
        self.backend_url = backend_url.rstrip("/") if backend_url else None
        self.anon_key = anon_key
        self.store = store or MemorySessionStore()
        self.timeout = timeout
        self.expiry_buffer = expiry_buffer

        self._http_client = http_client
        self._subscribers: dict[str, AuthStateCallback] = {}

    @property
    def is_configured(self) -> bool:
        """Check that a backend URL is available."""
        return bool(self.backend_url)

    def _auth_url(self, path: str) -> str:
        if not self.backend_url:
            raise ConfigurationError("Auth backend URL not configured")
        return f"{self.backend_url}/auth/v1{path}"

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.anon_key:
            headers["apikey"] = self.anon_key
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        access_token: str | None = None,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = self._auth_url(path)
        headers = self._headers(access_token)

        if self._http_client is not None:
            response = await self._http_client.request(method, url, headers=headers, params=params, json=json)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, headers=headers, params=params, json=json)

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise BackendError(
                response.status_code,
                body.get("error_description") or body.get("msg") or body.get("message") or response.text,
                code=body.get("error_code") or body.get("error"),
            )

        if not response.content:
            return {}

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error("Backend returned unreadable body", path=path, status_code=response.status_code)
            raise BackendError(MALFORMED_RESPONSE_STATUS, "Backend returned an unreadable response")
        return data

    def authorize_url(
        self,
        redirect_to: str,
        provider: str = "google",
        query_params: dict[str, str] | None = None,
    ) -> str:
        """
        Build the backend-hosted authorization URL.

        Args:
            redirect_to: Where the backend sends the browser after sign-in
            provider: Identity provider name
            query_params: Extra parameters forwarded to the identity provider

        Returns:
            Authorization URL

        Raises:
            ConfigurationError: If no backend URL is configured
        """
        params = {"provider": provider, "redirect_to": redirect_to}
        params.update(query_params or {"access_type": "offline", "prompt": "consent"})
        return f"{self._auth_url('/authorize')}?{urlencode(params)}"

    @staticmethod
    def _token_expiry(tokens: AuthTokens) -> datetime | None:
        if tokens.expires_at is not None:
            return tokens.expires_at

        try:
            claims = jwt.get_unverified_claims(tokens.access_token)
        except JWTError:
            return None

        try:
            return datetime.fromtimestamp(int(claims["exp"]), tz=UTC)
        except (KeyError, TypeError, ValueError):
            return None

    def _session_from_grant(self, data: dict[str, Any]) -> Session:
        try:
            return self._parse_grant(data)
        except (KeyError, TypeError, ValueError) as e:
            raise BackendError(MALFORMED_RESPONSE_STATUS, f"Malformed session grant: {e}") from e

    def _parse_grant(self, data: dict[str, Any]) -> Session:
        expires_at = None
        if data.get("expires_at") is not None:
            expires_at = datetime.fromtimestamp(int(data["expires_at"]), tz=UTC)
        elif data.get("expires_in") is not None:
            expires_at = datetime.now(UTC) + timedelta(seconds=int(data["expires_in"]))

        tokens = AuthTokens(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=expires_at,
            token_type=data.get("token_type", "bearer"),
        )
        return Session(
            user=AuthUser.from_backend(data["user"]),
            tokens=tokens,
            expires_at=self._token_expiry(tokens),
        )

    async def get_user(self, access_token: str) -> AuthUser:
        """
        Fetch the user owning an access token.

        Raises:
            BackendError: If the backend rejects the token or returns a malformed record
            httpx.HTTPError: On transport failure
        """
        data = await self._request("GET", "/user", access_token=access_token)
        try:
            return AuthUser.from_backend(data)
        except (KeyError, TypeError, ValueError) as e:
            raise BackendError(MALFORMED_RESPONSE_STATUS, f"Malformed user record: {e}") from e

    async def set_session(self, tokens: AuthTokens) -> Result[Session]:
        """
        Establish a backend session from tokens.

        The access token is validated against the backend before anything is
        stored; an expired access token is renewed with the refresh token.

        Args:
            tokens: Tokens from a sign-in or callback

        Returns:
            Result holding the stored session, or the failure
        """
        if not tokens.access_token:
            return Result.failure(OAuthErrorKind.SESSION_ERROR, "Access token is required")
        if not self.is_configured:
            return Result.failure("configuration_error", "Auth backend URL not configured")

        try:
            try:
                user = await self.get_user(tokens.access_token)
                session = Session(user=user, tokens=tokens, expires_at=self._token_expiry(tokens))
            except BackendError as e:
                if e.status_code != 401 or not tokens.refresh_token:
                    raise
                logger.info("Access token rejected, renewing with refresh token")
                session = await self._refresh_grant(tokens.refresh_token)
        except BackendError as e:
            logger.error("Failed to establish session", status_code=e.status_code, error=e.message)
            return Result.failure(
                OAuthErrorKind.SESSION_ERROR,
                f"Failed to establish session: {e.message}",
                details={"status_code": e.status_code, "code": e.code},
            )
        except httpx.HTTPError as e:
            logger.error("Session request failed", error=str(e))
            return Result.failure(OAuthErrorKind.NETWORK_ERROR, f"Session request failed: {e}")

        await self.store.save(session)

        logger.info(
            "Session established",
            user_id=session.user.id,
            expires_at=session.expires_at.isoformat() if session.expires_at else None,
        )

        await self._emit(AuthChangeEvent.SIGNED_IN, session)
        return Result.success(session)

    async def sign_in_with_id_token(self, id_token: str, provider: str = "google") -> Result[Session]:
        """
        Sign in to the backend with an OpenID Connect ID token.

        Args:
            id_token: ID token from the identity provider
            provider: Identity provider name

        Returns:
            Result holding the stored session, or the failure
        """
        if not id_token:
            return Result.failure(OAuthErrorKind.SESSION_ERROR, "ID token is required")
        if not self.is_configured:
            return Result.failure("configuration_error", "Auth backend URL not configured")

        try:
            data = await self._request(
                "POST",
                "/token",
                params={"grant_type": "id_token"},
                json={"provider": provider, "id_token": id_token},
            )
            session = self._session_from_grant(data)
        except BackendError as e:
            logger.error("ID token sign-in rejected", status_code=e.status_code, error=e.message)
            return Result.failure(OAuthErrorKind.SESSION_ERROR, e.message, details={"status_code": e.status_code})
        except httpx.HTTPError as e:
            logger.error("ID token sign-in request failed", error=str(e))
            return Result.failure(OAuthErrorKind.NETWORK_ERROR, f"Session request failed: {e}")

        await self.store.save(session)
        logger.info("Signed in with ID token", user_id=session.user.id, provider=provider)

        await self._emit(AuthChangeEvent.SIGNED_IN, session)
        return Result.success(session)

    async def get_session(self) -> Session | None:
        """Read the stored session without modifying it."""
        return await self.store.load()

    async def _refresh_grant(self, refresh_token: str) -> Session:
        data = await self._request(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return self._session_from_grant(data)

    async def refresh_session(self) -> bool:
        """
        Renew the stored session with its refresh token.

        Returns:
            True if a valid session resulted
        """
        current = await self.store.load()
        if current is None or not current.tokens.refresh_token:
            logger.info("No refreshable session")
            return False

        try:
            session = await self._refresh_grant(current.tokens.refresh_token)
        except (BackendError, ConfigurationError, httpx.HTTPError) as e:
            logger.error("Session refresh failed", error=str(e))
            return False

        await self.store.save(session)
        logger.info("Session refreshed", user_id=session.user.id)

        await self._emit(AuthChangeEvent.TOKEN_REFRESHED, session)
        return session.is_valid(self.expiry_buffer)

    async def sign_out(self) -> None:
        """
        Sign out from the backend and clear the stored session.

        Safe to call without a session. Backend failures are logged; the local
        session is cleared regardless.
        """
        current = await self.store.load()
        if current is None:
            logger.debug("Sign-out without active session")
            return

        if self.is_configured:
            try:
                await self._request("POST", "/logout", access_token=current.tokens.access_token)
            except (BackendError, httpx.HTTPError) as e:
                logger.warning("Backend sign-out failed, clearing local session", error=str(e))

        await self.store.clear()
        logger.info("Signed out", user_id=current.user.id)

        await self._emit(AuthChangeEvent.SIGNED_OUT, None)

    async def on_auth_state_change(self, callback: AuthStateCallback) -> Subscription:
        """
        Subscribe to identity change events.

        The new subscriber immediately receives INITIAL_SESSION with the
        stored session.

        Args:
            callback: Called with (event, session) for every change

        Returns:
            Subscription handle
        """
        subscription = Subscription(str(uuid4()), self)
        self._subscribers[subscription.id] = callback

        logger.debug("Auth state subscription created", subscription_id=subscription.id)

        await self._deliver(callback, AuthChangeEvent.INITIAL_SESSION, await self.store.load())
        return subscription

    async def _emit(self, event: AuthChangeEvent, session: Session | None) -> None:
        for callback in list(self._subscribers.values()):
            await self._deliver(callback, event, session)

    async def _deliver(
        self,
        callback: AuthStateCallback,
        event: AuthChangeEvent,
        session: Session | None,
    ) -> None:
        try:
            result = callback(event, session)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error("Auth state subscriber failed", auth_event=event.value, error=str(e))

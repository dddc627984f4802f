"""
Auth State Listener

Reconciles identity change events with the application's current user and
navigation. Events are handled one at a time by a single consumer task.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import structlog

from checklist_auth.config import settings
from checklist_auth.oauth.models import AuthChangeEvent, Session
from checklist_auth.oauth.session import SessionGateway, Subscription

logger = structlog.get_logger()

ProfileFetcher = Callable[[Session], Awaitable[Any]]
UserSetter = Callable[[Any], Awaitable[None] | None]
Navigator = Callable[[str], Awaitable[None] | None]

# Events that duplicate the initial session check while it is running
_INITIAL_DUPLICATES = frozenset({AuthChangeEvent.SIGNED_IN, AuthChangeEvent.INITIAL_SESSION})


class ListenerState(str, Enum):
    """Listener view of the current identity."""

    UNINITIALIZED = "uninitialized"
    CHECKING_INITIAL_SESSION = "checking_initial_session"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


async def _call(callback: Callable[..., Any], *args: Any) -> Any:
    result = callback(*args)
    if inspect.isawaitable(result):
        return await result
    return result


class AuthStateListener:
    """
    Auth state listener.

    Checks the stored session once, then handles gateway events in arrival
    order. SIGNED_IN and INITIAL_SESSION events that arrive before the
    initial check finishes are dropped as artifacts of that check. Any
    failure while handling an event leaves the user signed out on the login
    route.
    """

    def __init__(
        self,
        gateway: SessionGateway,
        set_current_user: UserSetter,
        navigate: Navigator,
        fetch_profile: ProfileFetcher | None = None,
        login_route: str | None = None,
        main_route: str | None = None,
    ) -> None:
        """
        Initialize auth state listener.

        Args:
            gateway: Session gateway publishing identity events
            set_current_user: Receives the current user profile, or None
            navigate: Replaces the current route
            fetch_profile: Loads the user profile for a session
                (backend user lookup if None)
            login_route: Route shown when signed out
            main_route: Route shown when signed in
        """
        self.gateway = gateway
        self._set_current_user = set_current_user
        self._navigate = navigate
        self._fetch_profile = fetch_profile or self._fetch_backend_user
        self.login_route = login_route or settings.LOGIN_ROUTE
        self.main_route = main_route or settings.MAIN_ROUTE

        self.state = ListenerState.UNINITIALIZED
        self.current_user: Any = None
        self.transitions: list[tuple[ListenerState, ListenerState]] = []
        self.initial_check_done = False

        self._queue: asyncio.Queue[tuple[AuthChangeEvent, Session | None]] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None
        self._subscription: Subscription | None = None
        self._processing = False

    @property
    def is_processing(self) -> bool:
        """True while the initial check or an event handler is running."""
        return self._processing

    async def _fetch_backend_user(self, session: Session) -> Any:
        return await self.gateway.get_user(session.tokens.access_token)

    async def start(self) -> None:
        """Subscribe, run the initial session check, then start handling events."""
        if self._consumer is not None:
            logger.warning("Auth state listener already started")
            return

        self._transition(ListenerState.CHECKING_INITIAL_SESSION)
        self._subscription = await self.gateway.on_auth_state_change(self._on_event)

        await self._check_initial_session()

        self._consumer = asyncio.create_task(self._consume())
        logger.info("Auth state listener started", state=self.state.value)

    async def stop(self) -> None:
        """Unsubscribe and stop the consumer task."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if self._consumer is None:
            return

        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass

        self._consumer = None
        logger.info("Auth state listener stopped")

    async def wait_idle(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    def _transition(self, state: ListenerState) -> bool:
        if state == self.state:
            return False

        self.transitions.append((self.state, state))
        logger.info("Auth state changed", from_state=self.state.value, to_state=state.value)
        self.state = state
        return True

    def _on_event(self, event: AuthChangeEvent, session: Session | None) -> None:
        if event in _INITIAL_DUPLICATES and not self.initial_check_done:
            logger.debug("Ignoring event during initial session check", auth_event=event.value)
            return

        self._queue.put_nowait((event, session))

    async def _check_initial_session(self) -> None:
        self._processing = True
        try:
            session = await self.gateway.get_session()
            if session is None:
                await self._sign_out_locally(always_navigate=True)
            else:
                profile = await self._fetch_profile(session)
                await self._sign_in_locally(profile)
        except Exception as e:
            logger.error("Initial session check failed", error=str(e))
            await self._fail_safe()
        finally:
            self.initial_check_done = True
            self._processing = False

    async def _consume(self) -> None:
        while True:
            event, session = await self._queue.get()
            self._processing = True
            try:
                await self._handle(event, session)
            finally:
                self._processing = False
                self._queue.task_done()

    async def _handle(self, event: AuthChangeEvent, session: Session | None) -> None:
        logger.info("Handling auth event", auth_event=event.value, has_session=session is not None)

        try:
            if event == AuthChangeEvent.SIGNED_OUT:
                await self._sign_out_locally(always_navigate=True)
                return

            if session is None:
                await self._sign_out_locally(always_navigate=False)
                return

            profile = await self._fetch_profile(session)
            await self._sign_in_locally(profile)
        except Exception as e:
            logger.error("Auth event handling failed", auth_event=event.value, error=str(e))
            await self._fail_safe()

    async def _sign_in_locally(self, profile: Any) -> None:
        self.current_user = profile
        await _call(self._set_current_user, profile)
        self._transition(ListenerState.AUTHENTICATED)
        await _call(self._navigate, self.main_route)

    async def _sign_out_locally(self, always_navigate: bool) -> None:
        self.current_user = None
        await _call(self._set_current_user, None)
        changed = self._transition(ListenerState.UNAUTHENTICATED)
        if changed or always_navigate:
            await _call(self._navigate, self.login_route)

    async def _fail_safe(self) -> None:
        try:
            await self._sign_out_locally(always_navigate=True)
        except Exception as e:
            # Collaborators failed again; keep the listener itself consistent
            logger.error("Fail-safe sign-out failed", error=str(e))
            self.current_user = None
            self._transition(ListenerState.UNAUTHENTICATED)

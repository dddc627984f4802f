"""
Session Storage

Persistence backends for the single stored session. Only SessionGateway
writes through these stores.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import redis.asyncio as aioredis
import structlog
from redis.asyncio.connection import ConnectionPool

from checklist_auth.oauth.models import Session

logger = structlog.get_logger()


class SessionStore(ABC):
    """Storage for the current session."""

    @abstractmethod
    async def load(self) -> Session | None:
        """Load the stored session, if any."""

    @abstractmethod
    async def save(self, session: Session) -> None:
        """Replace the stored session."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove the stored session; no-op when empty."""


class MemorySessionStore(SessionStore):
    """Process-local session storage."""

    def __init__(self) -> None:
        self._session: Session | None = None

    async def load(self) -> Session | None:
        return self._session

    async def save(self, session: Session) -> None:
        self._session = session

    async def clear(self) -> None:
        self._session = None


class RedisSessionStore(SessionStore):
    """
    Redis-backed session storage.

    Keeps the session as JSON under a single key so it survives restarts.
    """

    def __init__(self, redis_url: str, key: str = "checklist_auth:session") -> None:
        """
        Initialize Redis session store.

        Args:
            redis_url: Redis connection URL
            key: Key holding the serialized session
        """
        self.redis_url = redis_url
        self.key = key

        self._client: aioredis.Redis | None = None
        self._pool: ConnectionPool | None = None

    async def initialize(self) -> None:
        """Initialize Redis connection."""
        logger.info("Initializing session store", redis_url=self.redis_url)

        self._pool = ConnectionPool.from_url(
            self.redis_url,
            decode_responses=False,
            max_connections=5,
        )
        self._client = aioredis.Redis(connection_pool=self._pool)

        await self._client.ping()

        logger.info("Session store initialized")

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

        if self._pool:
            await self._pool.aclose()
            self._pool = None

        logger.info("Session store closed")

    @property
    def client(self) -> aioredis.Redis:
        """Get Redis client instance."""
        if not self._client:
            raise RuntimeError(
                "Session store not initialized. Call initialize() first."
            )
        return self._client

    async def load(self) -> Session | None:
        data = await self.client.get(self.key)
        if not data:
            return None

        try:
            return Session.model_validate_json(data)
        except ValueError as e:
            logger.warning("Ignoring unreadable stored session", error=str(e))
            return None

    async def save(self, session: Session) -> None:
        await self.client.set(self.key, session.model_dump_json())

    async def clear(self) -> None:
        await self.client.delete(self.key)

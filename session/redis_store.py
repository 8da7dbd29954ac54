"""
Redis-based session store implementation.

Payloads are stored under "sessions:<id>" with SETEX, so every save
replaces the value and restarts its expiry in one command. Expired
sessions are evicted by Redis itself.
"""

import logging
from typing import Optional

from redis.exceptions import RedisError

from errors.exceptions import StoreUnavailable
from session.store import SessionStore, session_key

logger = logging.getLogger(__name__)


DEFAULT_REDIS_URL = "redis://127.0.0.1:6379/0"


class RedisSessionStore(SessionStore):
    """
    Redis-backed session store implementation.

    Attributes:
        redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
        client: Redis async client instance (initialized via connect())
    """

    def __init__(self, redis_url: str = DEFAULT_REDIS_URL):
        """
        Initialize the Redis session store.

        Args:
            redis_url: Redis connection URL. A "rediss://" URL enables TLS.
        """
        self.redis_url = redis_url
        self.client = None

    async def connect(self) -> None:
        """
        Create the Redis client.

        Calling this more than once keeps the existing client. The client
        owns a connection pool shared by every request.
        """
        if self.client is not None:
            return
        import redis.asyncio as redis
        self.client = redis.from_url(self.redis_url, decode_responses=False)
        logger.info(
            "Redis session store connected",
            extra={"extra_data": {"redis_url": self._safe_url()}}
        )

    async def disconnect(self) -> None:
        """
        Close the Redis connection.

        Should be called during application shutdown to cleanly
        release resources.
        """
        if self.client:
            await self.client.aclose()
            self.client = None

    def _safe_url(self) -> str:
        # Strip credentials before logging
        scheme, _, rest = self.redis_url.partition("://")
        return f"{scheme}://{rest.rsplit('@', 1)[-1]}"

    def _require_client(self, operation: str):
        if not self.client:
            raise StoreUnavailable(
                "Redis client not connected. Call connect() first.",
                details={"operation": operation},
            )
        return self.client

    async def load(self, session_id: str) -> Optional[bytes]:
        """
        Retrieve the stored payload for a session.

        Returns:
            The payload bytes, or None on a miss or after expiry.

        Raises:
            StoreUnavailable: On any Redis or network failure.
        """
        client = self._require_client("load")
        try:
            return await client.get(session_key(session_id))
        except (RedisError, OSError) as e:
            raise StoreUnavailable(
                "Failed to load session from Redis",
                details={"operation": "load", "error": type(e).__name__},
            ) from e

    async def save(self, session_id: str, payload: bytes, ttl_seconds: int) -> None:
        """
        Store a payload with SETEX, resetting its TTL.

        Raises:
            StoreUnavailable: On any Redis or network failure.
        """
        client = self._require_client("save")
        try:
            await client.setex(session_key(session_id), int(ttl_seconds), payload)
        except (RedisError, OSError) as e:
            raise StoreUnavailable(
                "Failed to save session to Redis",
                details={"operation": "save", "error": type(e).__name__},
            ) from e

    async def delete(self, session_id: str) -> None:
        """
        Delete a session key. A missing key is not an error.

        Raises:
            StoreUnavailable: On any Redis or network failure.
        """
        client = self._require_client("delete")
        try:
            await client.delete(session_key(session_id))
        except (RedisError, OSError) as e:
            raise StoreUnavailable(
                "Failed to delete session from Redis",
                details={"operation": "delete", "error": type(e).__name__},
            ) from e

    async def health_check(self) -> bool:
        """
        Check connectivity and health of the Redis store.

        Returns:
            True if Redis answers PING, False otherwise.
        """
        if not self.client:
            return False

        try:
            result = await self.client.ping()
            return result is True
        except (RedisError, OSError):
            return False

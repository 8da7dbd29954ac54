"""
Process-wide session context.

Built once at application startup and shared by every request. It holds
the settings, the store client and the save handler, and hands out a
fresh SessionLifecycleManager per request.
"""

import asyncio
import logging
from typing import Optional

from session.handler import StoreSessionHandler
from session.headers import OutgoingHeaders
from session.manager import SessionLifecycleManager
from session.memory_store import InMemorySessionStore
from session.redis_store import RedisSessionStore
from session.serializer import JSONSessionSerializer
from session.store import SessionStore

logger = logging.getLogger(__name__)


def create_session_store(settings) -> SessionStore:
    """
    Build the session store selected by settings.

    Args:
        settings: Application settings

    Returns:
        A RedisSessionStore, or an InMemorySessionStore when
        session_store_type is "memory".
    """
    if settings.session_store_type == "memory":
        logger.warning("Using in-memory session store; sessions are lost on restart")
        return InMemorySessionStore()
    return RedisSessionStore(settings.effective_redis_url)


class SessionContext:
    """
    Shared session dependencies.

    Args:
        settings: Application settings
        store: Session store; built from settings if omitted
        serializer: Payload serializer; JSON if omitted
    """

    def __init__(
        self,
        settings,
        store: Optional[SessionStore] = None,
        serializer: Optional[JSONSessionSerializer] = None,
    ):
        self.settings = settings
        self.store = store if store is not None else create_session_store(settings)
        self.handler = StoreSessionHandler(
            self.store,
            lifetime_seconds=settings.session_lifetime_seconds,
            serializer=serializer,
        )
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Connect the store once, no matter how many requests ask."""
        if self._initialized:
            return
        async with self._lock:
            if self._initialized:
                return
            await self.store.connect()
            self._initialized = True
            logger.info(
                "Session context initialized",
                extra={"extra_data": {
                    "store": type(self.store).__name__,
                    "lifetime_seconds": self.settings.session_lifetime_seconds,
                }}
            )

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        await self.store.disconnect()
        self._initialized = False

    def new_session(
        self,
        inbound_session_id: Optional[str] = None,
        headers: Optional[OutgoingHeaders] = None,
    ) -> SessionLifecycleManager:
        """Create the lifecycle manager for one request."""
        return SessionLifecycleManager(self, inbound_session_id=inbound_session_id, headers=headers)

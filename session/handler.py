"""
Session save handler interface and its store-backed implementation.

The session host drives a SessionHandler through open, read, write or
destroy, and close. StoreSessionHandler is the bridge between that
lifecycle and an external SessionStore.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from errors.exceptions import CorruptPayload, StoreUnavailable
from session.ids import fingerprint
from session.serializer import JSONSessionSerializer, SessionRecord
from session.store import SessionStore
from telemetry.service import get_telemetry_service

logger = logging.getLogger(__name__)


class SessionHandler(ABC):
    """Callbacks a SessionHost invokes over one session's life."""

    @abstractmethod
    async def open(self) -> bool:
        pass

    @abstractmethod
    async def close(self) -> bool:
        pass

    @abstractmethod
    async def read(self, session_id: str) -> SessionRecord:
        """Return the stored record for `session_id`, or an empty record."""
        pass

    @abstractmethod
    async def write(self, session_id: str, record: SessionRecord) -> bool:
        pass

    @abstractmethod
    async def destroy(self, session_id: str) -> bool:
        pass

    @abstractmethod
    async def gc(self, max_lifetime: int) -> bool:
        pass


class StoreSessionHandler(SessionHandler):
    """
    SessionHandler that persists records in a SessionStore.

    Reads fail open: a miss, an unreachable store and a corrupt payload all
    produce an empty record, so a broken cache entry never blocks a request.
    Writes and deletes let StoreUnavailable propagate to the caller.

    Args:
        store: The backing session store
        lifetime_seconds: TTL applied on every write
        serializer: Payload serializer, JSON by default
    """

    def __init__(
        self,
        store: SessionStore,
        lifetime_seconds: int = 3600,
        serializer: Optional[JSONSessionSerializer] = None,
    ):
        self.store = store
        self.lifetime_seconds = lifetime_seconds
        self.serializer = serializer or JSONSessionSerializer()

    def _record_duration(self, operation: str, started: float) -> None:
        telemetry = get_telemetry_service()
        if telemetry:
            telemetry.record_metric(
                "session_store.duration_ms",
                (time.perf_counter() - started) * 1000,
                tags={"operation": operation},
            )

    async def open(self) -> bool:
        return True

    async def close(self) -> bool:
        return True

    async def read(self, session_id: str) -> SessionRecord:
        started = time.perf_counter()
        try:
            payload = await self.store.load(session_id)
        except StoreUnavailable as e:
            logger.warning(
                "Session store unavailable on load, starting with an empty session",
                extra={"extra_data": {
                    "session": fingerprint(session_id),
                    "details": e.details,
                }}
            )
            return {}
        finally:
            self._record_duration("load", started)

        if payload is None:
            return {}

        try:
            return self.serializer.decode(payload)
        except CorruptPayload as e:
            logger.warning(
                "Discarding corrupt session payload",
                extra={"extra_data": {
                    "session": fingerprint(session_id),
                    "details": e.details,
                }}
            )
            return {}

    async def write(self, session_id: str, record: SessionRecord) -> bool:
        payload = self.serializer.encode(record)
        started = time.perf_counter()
        try:
            await self.store.save(session_id, payload, self.lifetime_seconds)
        finally:
            self._record_duration("save", started)
        return True

    async def destroy(self, session_id: str) -> bool:
        started = time.perf_counter()
        try:
            await self.store.delete(session_id)
        finally:
            self._record_duration("delete", started)
        return True

    async def gc(self, max_lifetime: int) -> bool:
        # Expiry is enforced by the store's TTL on every key
        logger.debug(
            "Session garbage collection delegated to store TTL",
            extra={"extra_data": {"max_lifetime": max_lifetime}}
        )
        return True

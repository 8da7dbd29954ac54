"""
In-process session store for development and tests.

Mirrors the Redis store's TTL semantics against a monotonic clock. Data
lives in one process only, so this store is rejected in production.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from session.store import SessionStore, session_key


@dataclass
class _Entry:
    payload: bytes
    expires_at: float


class InMemorySessionStore(SessionStore):
    """
    Dict-backed store with lazy expiry.

    Args:
        clock: Returns the current time in seconds. Defaults to
            time.monotonic; tests pass a controllable clock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}

    async def load(self, session_id: str) -> Optional[bytes]:
        key = session_key(session_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return entry.payload

    async def save(self, session_id: str, payload: bytes, ttl_seconds: int) -> None:
        self._entries[session_key(session_id)] = _Entry(
            payload=payload,
            expires_at=self._clock() + ttl_seconds,
        )

    async def delete(self, session_id: str) -> None:
        self._entries.pop(session_key(session_id), None)

    async def health_check(self) -> bool:
        return True

    def keys(self) -> list:
        """Keys of entries that have not expired yet."""
        now = self._clock()
        return [key for key, entry in self._entries.items() if entry.expires_at > now]

"""
Session store abstraction for external session storage.

This module defines the interface every session store implements. A store
only moves opaque payload bytes; encoding and decoding session records is
the serializer's job. Every call is a round trip to the backend, with no
local caching.
"""

from abc import ABC, abstractmethod
from typing import Optional


# Namespace prefix for every session key in the store
SESSION_KEY_PREFIX = "sessions:"


def session_key(session_id: str) -> str:
    """
    Build the store key for a session.

    Args:
        session_id: The session identifier.

    Returns:
        Key of the form "sessions:<session_id>".
    """
    return f"{SESSION_KEY_PREFIX}{session_id}"


class SessionStore(ABC):
    """
    Abstract base class for session storage implementations.

    All methods are async to support non-blocking I/O with the external
    store. Implementations raise StoreUnavailable for any backend failure so
    callers can decide between failing open (load) and surfacing the error
    (save, delete).
    """

    async def connect(self) -> None:
        """Open the connection to the backend. Must be safe to call twice."""

    async def disconnect(self) -> None:
        """Release the backend connection."""

    @abstractmethod
    async def load(self, session_id: str) -> Optional[bytes]:
        """
        Retrieve the stored payload for a session.

        Args:
            session_id: Unique identifier for the session.

        Returns:
            The payload bytes, or None if the session does not exist or
            has expired.

        Raises:
            StoreUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    async def save(self, session_id: str, payload: bytes, ttl_seconds: int) -> None:
        """
        Store a payload, replacing any prior value and resetting its TTL.

        The write and the expiry must be applied as a single store operation.

        Args:
            session_id: Unique identifier for the session.
            payload: Serialized session record.
            ttl_seconds: Time-to-live in seconds.

        Raises:
            StoreUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """
        Delete the stored payload for a session.

        Deleting a session that does not exist is not an error.

        Raises:
            StoreUnavailable: If the backend cannot be reached.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check connectivity to the store.

        Returns:
            True if the store is reachable, False otherwise. Never raises.
        """
        pass

"""
Per-request session host.

SessionHost owns the mechanics the lifecycle manager delegates to:
choosing or minting the session id, driving the registered save handler,
and emitting the session cookie into the pending outgoing headers. It
keeps no session data of its own; the record is handed back to the
caller on start and passed in again on write.
"""

import logging
import random
from enum import Enum
from typing import Callable, Optional

from errors.exceptions import InvalidSessionId, InvalidSessionState
from session.headers import SET_COOKIE, OutgoingHeaders
from session.handler import SessionHandler
from session.ids import fingerprint, is_valid_session_id, new_session_id
from session.serializer import SessionRecord

logger = logging.getLogger(__name__)


class HostStatus(str, Enum):
    NONE = "none"
    ACTIVE = "active"


class CookieParams:
    """Attributes of the session cookie as the host emits it."""

    def __init__(
        self,
        name: str = "session_id",
        path: str = "/",
        domain: Optional[str] = None,
        secure: bool = False,
        httponly: bool = True,
        lifetime: int = 0,
    ):
        self.name = name
        self.path = path
        self.domain = domain
        self.secure = secure
        self.httponly = httponly
        self.lifetime = lifetime

    @classmethod
    def from_settings(cls, settings) -> "CookieParams":
        return cls(
            name=settings.session_cookie_name,
            path=settings.session_cookie_path,
            domain=settings.session_cookie_domain,
            secure=settings.session_cookie_secure,
            httponly=settings.session_cookie_httponly,
            lifetime=settings.session_cookie_lifetime,
        )

    def header_value(self, session_id: str) -> str:
        parts = [f"{self.name}={session_id}"]
        if self.lifetime:
            parts.append(f"Max-Age={self.lifetime}")
        parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        return "; ".join(parts)


class SessionHost:
    """
    Drives one session's start, id changes and close for one request.

    Args:
        cookie: Session cookie attributes
        headers: Pending outgoing headers the session cookie is added to
        lifetime_seconds: Passed to the handler's gc hook
        gc_probability: Chance that start() invokes the gc hook
        rng: Random source returning floats in [0, 1)
    """

    def __init__(
        self,
        cookie: CookieParams,
        headers: OutgoingHeaders,
        lifetime_seconds: int = 3600,
        gc_probability: float = 0.0,
        rng: Callable[[], float] = random.random,
    ):
        self.cookie = cookie
        self.headers = headers
        self.lifetime_seconds = lifetime_seconds
        self.gc_probability = gc_probability
        self._rng = rng
        self.handler: Optional[SessionHandler] = None
        self.status = HostStatus.NONE
        self.session_id: Optional[str] = None

    def set_save_handler(self, handler: SessionHandler) -> bool:
        """
        Register the save handler.

        Returns:
            True if the handler was registered, False if it already was.

        Raises:
            InvalidSessionState: If a session is active or a different
                handler is already registered.
        """
        if self.handler is handler:
            return False
        if self.status == HostStatus.ACTIVE:
            raise InvalidSessionState("Cannot change the save handler of an active session")
        if self.handler is not None:
            raise InvalidSessionState("A different save handler is already registered")
        self.handler = handler
        return True

    def _require_handler(self) -> SessionHandler:
        if self.handler is None:
            raise InvalidSessionState("No session save handler registered")
        return self.handler

    def _send_cookie(self) -> None:
        # Only the latest session cookie may be sent
        self.headers.remove(SET_COOKIE, f"{self.cookie.name}=")
        self.headers.add(SET_COOKIE, self.cookie.header_value(self.session_id))

    async def start(self, session_id: Optional[str] = None, from_cookie: bool = True) -> SessionRecord:
        """
        Resume `session_id` or start a new session.

        An id that is missing or fails validation is replaced by a freshly
        minted one. A cookie is emitted unless the id was resumed from the
        inbound cookie unchanged.

        Returns:
            The record read through the save handler.
        """
        handler = self._require_handler()
        if self.status == HostStatus.ACTIVE:
            raise InvalidSessionState("Session already active")

        send_cookie = not from_cookie
        if session_id is not None and is_valid_session_id(session_id):
            self.session_id = session_id
        else:
            if session_id is not None:
                logger.info("Ignoring malformed inbound session id")
            self.session_id = new_session_id()
            send_cookie = True

        await handler.open()
        record = await handler.read(self.session_id)

        if self.gc_probability and self._rng() < self.gc_probability:
            await handler.gc(self.lifetime_seconds)

        self.status = HostStatus.ACTIVE
        if send_cookie:
            self._send_cookie()

        logger.debug(
            "Session started",
            extra={"extra_data": {
                "session": fingerprint(self.session_id),
                "resumed": bool(record),
            }}
        )
        return record

    def rebind(self, session_id: str) -> None:
        """
        Point the active session at a different id.

        The caller's in-memory record is not reloaded; it will be written
        under the new id.

        Raises:
            InvalidSessionId: If the id is not safe to use as a store key.
        """
        if not is_valid_session_id(session_id):
            raise InvalidSessionId(details={"reason": "invalid_characters_or_length"})
        if self.status != HostStatus.ACTIVE:
            raise InvalidSessionState("Cannot rebind a session that is not active")
        self.session_id = session_id
        self._send_cookie()

    async def regenerate_id(self, delete_old: bool = False) -> str:
        """
        Mint a new id for the active session.

        Args:
            delete_old: Delete the old id's stored entry immediately instead
                of leaving it to expire.

        Returns:
            The new session id.
        """
        handler = self._require_handler()
        if self.status != HostStatus.ACTIVE:
            raise InvalidSessionState("Cannot regenerate the id of a session that is not active")

        old_id = self.session_id
        if delete_old:
            await handler.destroy(old_id)
        self.session_id = new_session_id()
        self._send_cookie()
        return self.session_id

    async def write_close(self, record: SessionRecord) -> bool:
        """Write the record under the current id and close the session."""
        handler = self._require_handler()
        if self.status != HostStatus.ACTIVE:
            raise InvalidSessionState("Cannot write a session that is not active")
        try:
            return await handler.write(self.session_id, record)
        finally:
            self.status = HostStatus.NONE
            await handler.close()

    async def destroy(self) -> bool:
        """Delete the stored session and close it. The id is forgotten."""
        handler = self._require_handler()
        if self.status != HostStatus.ACTIVE:
            raise InvalidSessionState("Cannot destroy a session that is not active")
        try:
            return await handler.destroy(self.session_id)
        finally:
            self.status = HostStatus.NONE
            self.session_id = None
            await handler.close()

"""
Request-scoped session lifecycle.

SessionLifecycleManager owns one request's session record and walks it
through UNINITIALIZED -> ACTIVE -> FLUSHED or ACTIVE -> DESTROYED. Reads
and mutations touch only the in-memory record; the store sees the
record once, when the session is flushed at the end of the request.

Two concurrent requests carrying the same session id each work on their
own copy and the later flush wins. No locking is done here.
"""

import logging
from enum import Enum
from typing import Any, Mapping, Optional, TYPE_CHECKING

from errors.exceptions import InvalidSessionId, InvalidSessionState
from session.cookie import SameSite
from session.headers import OutgoingHeaders
from session.host import CookieParams, SessionHost
from session.ids import fingerprint, is_valid_session_id
from session.rewriter import CookieRewriter
from session.serializer import SessionRecord
from telemetry.service import get_telemetry_service

if TYPE_CHECKING:
    from session.context import SessionContext

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    FLUSHED = "flushed"
    DESTROYED = "destroyed"


class SessionLifecycleManager:
    """
    One request's view of its session.

    Usable as an async context manager; leaving the block flushes a
    session that is still active.

    Args:
        context: Process-wide session context (settings, store, handler)
        inbound_session_id: Session id from the request cookie, if any
        headers: Pending outgoing headers; a fresh buffer if omitted
    """

    def __init__(
        self,
        context: "SessionContext",
        inbound_session_id: Optional[str] = None,
        headers: Optional[OutgoingHeaders] = None,
    ):
        settings = context.settings
        self.context = context
        self.headers = headers if headers is not None else OutgoingHeaders()
        self.host = SessionHost(
            cookie=CookieParams.from_settings(settings),
            headers=self.headers,
            lifetime_seconds=settings.session_lifetime_seconds,
            gc_probability=settings.session_gc_probability,
        )
        self.rewriter = CookieRewriter(settings.session_cookie_name, self.headers)
        self._raise_on_invalid_state = settings.raise_on_invalid_state
        self._same_site: SameSite = settings.session_same_site
        self._requested_id = inbound_session_id
        self._id_from_cookie = True
        self._record: SessionRecord = {}
        self._state = SessionState.UNINITIALIZED
        self._initialized = False

    async def __aenter__(self) -> "SessionLifecycleManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if self._state != SessionState.ACTIVE:
            return False
        if exc_type is None:
            await self.flush()
            return False
        # The request already failed; save what we have but keep its error
        try:
            await self.flush()
        except Exception:
            logger.exception("Failed to save session after request error")
        return False

    @property
    def state(self) -> SessionState:
        return self._state

    def _invalid_state(self, operation: str) -> None:
        exc = InvalidSessionState(
            f"Cannot {operation} a session in state {self._state.value}",
            details={"operation": operation, "state": self._state.value},
        )
        if self._raise_on_invalid_state:
            raise exc
        logger.error(
            exc.message,
            extra={"extra_data": exc.details},
            stack_info=True,
        )

    def _require_active(self, operation: str) -> bool:
        if self._state == SessionState.ACTIVE:
            return True
        self._invalid_state(operation)
        return False

    def _audit(self, action: str, session_id: Optional[str], **details: Any) -> None:
        telemetry = get_telemetry_service()
        if telemetry:
            telemetry.log_audit_event(
                event_type="session",
                resource_type="session",
                resource_id=fingerprint(session_id),
                action=action,
                details=details or None,
            )

    async def initialize(self) -> None:
        """
        Connect the store and register the save handler.

        Safe to call repeatedly; only the first call has an effect.
        """
        if self._initialized:
            return
        await self.context.initialize()
        self.host.set_save_handler(self.context.handler)
        self._initialized = True

    async def start(self, same_site=None) -> SessionRecord:
        """
        Resume the inbound session or start a new one.

        Args:
            same_site: SameSite restriction for the session cookie; the
                configured default if omitted

        Returns:
            The live session record. Mutating it mutates the session.
        """
        if self._state == SessionState.ACTIVE:
            return self._record
        if self._state != SessionState.UNINITIALIZED:
            self._invalid_state("start")
            return {}

        await self.initialize()
        if same_site is not None:
            self._same_site = SameSite.parse(same_site)

        self._record = await self.host.start(self._requested_id, from_cookie=self._id_from_cookie)
        self._state = SessionState.ACTIVE
        if self.host.session_id != self._requested_id:
            self._audit("create", self.host.session_id)

        self.rewriter.apply(self._same_site)
        return self._record

    def get(self, key: str, default: Any = None) -> Any:
        if not self._require_active("read"):
            return default
        value = self._record.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        if self._require_active("modify"):
            self._record[key] = value

    def has(self, key: str) -> bool:
        """True if `key` is present with a value other than None."""
        if not self._require_active("read"):
            return False
        return self._record.get(key) is not None

    def delete(self, key: str) -> None:
        if self._require_active("modify"):
            self._record.pop(key, None)

    def take(self, key: str, default: Any = None) -> Any:
        """
        Return the value of `key` and remove it, or `default` if unset.

        A key holding None counts as unset and is left in place.
        """
        if not self._require_active("modify"):
            return default
        if self._record.get(key) is None:
            return default
        return self._record.pop(key)

    def get_all(self) -> SessionRecord:
        """A shallow copy of the whole record."""
        if not self._require_active("read"):
            return {}
        return dict(self._record)

    def replace_all(self, data: Mapping[str, Any]) -> None:
        """Replace the entire record with `data`; nothing is merged."""
        if self._require_active("modify"):
            data = dict(data)
            self._record.clear()
            self._record.update(data)

    def id(self, new_id: Optional[str] = None) -> Optional[str]:
        """
        Get the session id, or set it when `new_id` is given.

        Before start, the new id is the one start() resumes and a cookie is
        sent for it. While active, the session is rebound: the in-memory
        record is kept and flushed under the new id, and the next request
        loads it from there.

        Raises:
            InvalidSessionId: If `new_id` is not safe to use as a store key.
        """
        if new_id is None:
            if self._state == SessionState.UNINITIALIZED:
                return self._requested_id if not self._id_from_cookie else None
            return self.host.session_id

        if self._state == SessionState.UNINITIALIZED:
            if not is_valid_session_id(new_id):
                raise InvalidSessionId(details={"reason": "invalid_characters_or_length"})
            self._requested_id = new_id
            self._id_from_cookie = False
            return new_id

        if not self._require_active("change the id of"):
            return self.host.session_id

        old_id = self.host.session_id
        self.host.rebind(new_id)
        self.rewriter.apply(self._same_site)
        self._audit("rebind", new_id, previous=fingerprint(old_id))
        return new_id

    async def regenerate(self, delete_old: bool = False) -> Optional[str]:
        """
        Give the current record a fresh session id.

        Args:
            delete_old: Delete the old id's stored entry now instead of
                letting it expire.

        Returns:
            The new session id.

        Raises:
            StoreUnavailable: If deleting the old entry fails.
        """
        if not self._require_active("regenerate"):
            return self.host.session_id
        old_id = self.host.session_id
        new_id = await self.host.regenerate_id(delete_old)
        self.rewriter.apply(self._same_site)
        self._audit("regenerate", new_id, previous=fingerprint(old_id), deleted_old=delete_old)
        return new_id

    async def flush(self) -> None:
        """
        Write the record to the store and end the session for this request.

        The session is FLUSHED afterwards even if the write failed.

        Raises:
            StoreUnavailable: If the store rejected the write.
        """
        if not self._require_active("flush"):
            return
        try:
            await self.host.write_close(self._record)
        finally:
            self._state = SessionState.FLUSHED

    async def destroy(self) -> None:
        """
        Clear the record, delete it from the store and end the session.

        Calling destroy() again afterwards does nothing.

        Raises:
            StoreUnavailable: If the store delete failed.
        """
        if self._state == SessionState.DESTROYED:
            logger.debug("Session already destroyed")
            return
        if not self._require_active("destroy"):
            return

        session_id = self.host.session_id
        self._record.clear()
        try:
            await self.host.destroy()
        finally:
            self._state = SessionState.DESTROYED
        self._audit("destroy", session_id)

    def is_active(self) -> bool:
        return self._state == SessionState.ACTIVE

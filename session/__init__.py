"""
Session management backed by an external key-value store.

This package keeps per-user session state in Redis instead of process
memory and rewrites the session cookie's SameSite attribute before the
response is sent.
"""

from session.context import SessionContext, create_session_store
from session.cookie import SameSite, SessionCookie
from session.handler import SessionHandler, StoreSessionHandler
from session.headers import OutgoingHeaders
from session.manager import SessionLifecycleManager, SessionState
from session.memory_store import InMemorySessionStore
from session.redis_store import RedisSessionStore
from session.rewriter import CookieRewriter
from session.serializer import JSONSessionSerializer
from session.store import SESSION_KEY_PREFIX, SessionStore, session_key

__all__ = [
    "SessionContext",
    "create_session_store",
    "SameSite",
    "SessionCookie",
    "SessionHandler",
    "StoreSessionHandler",
    "OutgoingHeaders",
    "SessionLifecycleManager",
    "SessionState",
    "InMemorySessionStore",
    "RedisSessionStore",
    "CookieRewriter",
    "JSONSessionSerializer",
    "SESSION_KEY_PREFIX",
    "SessionStore",
    "session_key",
]

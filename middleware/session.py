"""
Session middleware for FastAPI applications.

This module attaches a SessionLifecycleManager to every request, saves the
session once the route has returned, and copies the (already rewritten)
session cookie onto the outgoing response.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from errors.exceptions import AppException, InvalidSessionState
from errors.handlers import handle_app_exception
from session.context import SessionContext
from session.manager import SessionLifecycleManager

logger = logging.getLogger(__name__)


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware that manages one session per request.

    For each request the middleware:
    1. Reads the session id from the inbound session cookie
    2. Stores a SessionLifecycleManager in request.state.session
    3. Starts the session up front when session_auto_start is set
    4. Flushes a still-active session after the route returns
    5. Appends pending Set-Cookie headers to the response

    Routes that need the session call `await request.state.session.start()`
    (or use the get_session dependency).
    """

    def __init__(self, app: ASGIApp, context: SessionContext):
        """
        Initialize the session middleware.

        Args:
            app: The ASGI application to wrap
            context: Process-wide session context
        """
        super().__init__(app)
        self.context = context
        self.settings = context.settings

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        """
        Process the request within a session lifecycle.

        Args:
            request: The incoming FastAPI request
            call_next: The next middleware or route handler

        Returns:
            The response with the session cookie attached
        """
        inbound_id = request.cookies.get(self.settings.session_cookie_name)
        session = self.context.new_session(inbound_session_id=inbound_id)
        request.state.session = session

        if self.settings.session_auto_start:
            await session.start()

        try:
            response = await call_next(request)
        except Exception:
            # The route's own error is what propagates
            if session.is_active():
                try:
                    await session.flush()
                except Exception:
                    logger.exception("Failed to save session after request error")
            raise

        if session.is_active():
            try:
                await session.flush()
            except AppException as exc:
                if self.settings.fail_request_on_save_error:
                    response = await handle_app_exception(request, exc)
                else:
                    logger.error(
                        "Session save failed; response sent without persisting session",
                        extra={"extra_data": {"error_code": exc.error_code.value}}
                    )

        for name, value in session.headers:
            response.headers.append(name, value)

        return response


def get_session(request: Request) -> SessionLifecycleManager:
    """
    FastAPI dependency returning the request's session manager.

    Raises:
        InvalidSessionState: If SessionMiddleware is not installed.
    """
    session = getattr(request.state, "session", None)
    if session is None:
        raise InvalidSessionState("SessionMiddleware is not installed")
    return session


def setup_session(app, context: SessionContext) -> None:
    """
    Add SessionMiddleware to a FastAPI application.

    Args:
        app: The FastAPI application instance
        context: Process-wide session context shared by all requests
    """
    app.add_middleware(SessionMiddleware, context=context)

    logger.info(
        f"Session middleware configured: cookie={context.settings.session_cookie_name}, "
        f"same_site={context.settings.session_same_site.value}"
    )

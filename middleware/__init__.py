"""
Middleware components for the session bridge.

This module contains the FastAPI middleware that binds a session
lifecycle to each request.
"""

from middleware.session import SessionMiddleware, get_session, setup_session

__all__ = [
    "SessionMiddleware",
    "get_session",
    "setup_session",
]

"""
Error handling module for the session bridge.

This module provides structured error handling with:
- ErrorCode enum for standardized error codes
- AppException and the session exception taxonomy
- Error response models and FastAPI exception handlers
"""

from errors.codes import ErrorCode
from errors.exceptions import (
    AppException,
    CorruptPayload,
    InvalidCookieHeader,
    InvalidSessionId,
    InvalidSessionState,
    StoreUnavailable,
)
from errors.handlers import (
    ErrorResponse,
    handle_app_exception,
    handle_unexpected_exception,
    register_exception_handlers,
)

__all__ = [
    "ErrorCode",
    "AppException",
    "CorruptPayload",
    "InvalidCookieHeader",
    "InvalidSessionId",
    "InvalidSessionState",
    "StoreUnavailable",
    "ErrorResponse",
    "handle_app_exception",
    "handle_unexpected_exception",
    "register_exception_handlers",
]

"""
Exception classes for the session bridge.

This module provides the AppException base class and the concrete
session exceptions raised by the store, serializer, cookie rewriter
and lifecycle manager.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    Base exception class for all application-specific errors.

    This exception provides structured error information including:
    - error_code: A standardized error code from the ErrorCode enum
    - message: A human-readable error message
    - status_code: The HTTP status code to return
    - details: Optional additional context

    Example:
        raise AppException(
            error_code=ErrorCode.SESSION_STORE_UNAVAILABLE,
            message="Session store unavailable",
            details={"operation": "save"}
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        """
        Initialize an AppException.

        Args:
            error_code: The error code from the ErrorCode enum
            message: A human-readable error message
            status_code: The HTTP status code (defaults to the error code's default)
            details: Optional dictionary with additional error context
        """
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for JSON serialization.

        Returns:
            Dictionary containing error_code, message, and details
        """
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, status_code={self.status_code}, "
            f"details={self.details!r})"
        )


class StoreUnavailable(AppException):
    """The session store could not be reached or rejected the command."""

    def __init__(
        self,
        message: str = "Session store unavailable",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(
            error_code=ErrorCode.SESSION_STORE_UNAVAILABLE,
            message=message,
            details=details
        )


class CorruptPayload(AppException):
    """A stored session payload could not be decoded."""

    def __init__(
        self,
        message: str = "Session payload is corrupt",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(
            error_code=ErrorCode.CORRUPT_PAYLOAD,
            message=message,
            details=details
        )


class InvalidCookieHeader(AppException):
    """A Set-Cookie header value is not in name=value form."""

    def __init__(
        self,
        message: str = "Malformed Set-Cookie header",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(
            error_code=ErrorCode.INVALID_COOKIE_HEADER,
            message=message,
            details=details
        )


class InvalidSessionState(AppException):
    """
    A lifecycle operation was called in a state that does not allow it.

    This is always a programming error, for example mutating a session
    after it was destroyed or reading one that was never started.
    """

    def __init__(
        self,
        message: str = "Invalid session state",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(
            error_code=ErrorCode.INVALID_SESSION_STATE,
            message=message,
            details=details
        )


class InvalidSessionId(AppException):
    """A caller-supplied session id is not safe to use as a store key."""

    def __init__(
        self,
        message: str = "Invalid session id",
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(
            error_code=ErrorCode.INVALID_SESSION_ID,
            message=message,
            details=details
        )

"""
Error code catalog for the session bridge.

This module defines all error codes used by the session lifecycle,
covering store failures, payload corruption, cookie rewriting problems
and lifecycle misuse.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used in the application.

    Each error code maps to a specific HTTP status code and error category:
    - Client errors (4xx): Bad input supplied by the caller
    - External service errors (5xx): Session store failures
    - Internal errors (5xx): Misuse of the lifecycle API or corrupted data
    """

    # Client errors (4xx)
    INVALID_SESSION_ID = "INVALID_SESSION_ID"
    """Session id contains characters that cannot be used as a key (HTTP 400)"""

    # External service errors (5xx)
    SESSION_STORE_UNAVAILABLE = "SESSION_STORE_UNAVAILABLE"
    """Redis unavailable or returned an error (HTTP 503)"""

    # Internal errors (5xx)
    CORRUPT_PAYLOAD = "CORRUPT_PAYLOAD"
    """Stored session payload could not be decoded (HTTP 500)"""

    INVALID_COOKIE_HEADER = "INVALID_COOKIE_HEADER"
    """Outgoing Set-Cookie header could not be parsed (HTTP 500)"""

    INVALID_SESSION_STATE = "INVALID_SESSION_STATE"
    """Lifecycle operation called in the wrong state (HTTP 500)"""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected server error (HTTP 500)"""


# Mapping of error codes to their default HTTP status codes
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.INVALID_SESSION_ID: 400,
    ErrorCode.SESSION_STORE_UNAVAILABLE: 503,
    ErrorCode.CORRUPT_PAYLOAD: 500,
    ErrorCode.INVALID_COOKIE_HEADER: 500,
    ErrorCode.INVALID_SESSION_STATE: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_default_status_code(error_code: ErrorCode) -> int:
    """
    Get the default HTTP status code for an error code.

    Args:
        error_code: The error code to look up

    Returns:
        The default HTTP status code for the error code
    """
    return ERROR_CODE_STATUS_MAP.get(error_code, 500)

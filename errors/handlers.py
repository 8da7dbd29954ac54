"""
Exception handlers for the session bridge.

This module provides FastAPI exception handlers that convert session
exceptions to structured JSON error responses. Store outages become
503 responses; lifecycle misuse is logged at error level with a stack
trace because it always points at a bug in the calling code.
"""

import logging
from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from errors.codes import ErrorCode
from errors.exceptions import AppException, InvalidSessionState

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """
    Structured error response model.

    All error responses follow this format so clients can branch on
    error_code instead of parsing messages.
    """
    error_code: str
    message: str
    details: Optional[dict[str, Any]] = None


async def handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle known application exceptions and convert to structured response.

    Args:
        request: The FastAPI request object
        exc: The AppException that was raised

    Returns:
        JSONResponse with structured error format
    """
    log_data = {
        "error_code": exc.error_code.value,
        "error_message": exc.message,
        "status_code": exc.status_code,
        "details": exc.details,
        "path": request.url.path,
        "method": request.method,
    }

    if isinstance(exc, InvalidSessionState):
        logger.error(
            "Session lifecycle misuse",
            extra={"extra_data": log_data},
            exc_info=exc,
        )
    else:
        logger.warning("Application error occurred", extra={"extra_data": log_data})

    error_response = ErrorResponse(
        error_code=exc.error_code.value,
        message=exc.message,
        details=exc.details,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(exclude_none=True),
    )


async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions without exposing internal details.

    The full stack trace is logged; the client only sees a generic
    INTERNAL_ERROR body.

    Args:
        request: The FastAPI request object
        exc: The unexpected exception that was raised

    Returns:
        JSONResponse with a generic error message
    """
    logger.error(
        "Unexpected error occurred",
        extra={"extra_data": {
            "error_code": ErrorCode.INTERNAL_ERROR.value,
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
        }},
        exc_info=exc,
    )

    error_response = ErrorResponse(
        error_code=ErrorCode.INTERNAL_ERROR.value,
        message="An unexpected error occurred. Please try again later.",
    )

    return JSONResponse(
        status_code=500,
        content=error_response.model_dump(exclude_none=True),
    )


def register_exception_handlers(app) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(AppException, handle_app_exception)
    app.add_exception_handler(Exception, handle_unexpected_exception)

    logger.info("Exception handlers registered successfully")

"""
Standardized error response utilities for the CardLink API.

Provides consistent error response format across all endpoints:
{
    "success": false,
    "error": {
        "message": "User-friendly error message",
        "code": "ERROR_CODE"
    }
}

Usage:
    from cardlink.utils.errors import error_response, ErrorCode

    return error_response("Account not found", ErrorCode.NOT_FOUND, 404)
"""
import logging
from enum import Enum
from flask import jsonify
from typing import Optional

from .exceptions import (
    CardLinkError,
    ValidationError,
    NotFoundError,
    InvalidStatusTransitionError,
    LinkConflictError,
    StorageError,
    StorageTimeoutError,
)

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Validation Errors (400)
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_FIELD = "MISSING_FIELD"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Not Found (404)
    NOT_FOUND = "NOT_FOUND"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    SYNC_SESSION_NOT_FOUND = "SYNC_SESSION_NOT_FOUND"

    # Conflict (409)
    STATE_CONFLICT = "STATE_CONFLICT"

    # Method (405)
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # Store (500, 503, 504)
    STORAGE_ERROR = "STORAGE_ERROR"
    STORAGE_TIMEOUT = "STORAGE_TIMEOUT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Server Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
    details: Optional[dict] = None,
    detail: Optional[str] = None
) -> tuple:
    """
    Create a standardized error response.

    Args:
        message: User-friendly error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code
        log_error: Whether to log the error (default True for 500s)
        details: Optional additional details (only logged, not returned to user)
        detail: Optional operator-facing detail string returned to the caller

    Returns:
        Tuple of (response, status_code) for Flask
    """
    if log_error and status_code >= 500:
        logger.error(f"API Error [{code}]: {message}", extra={"details": details})
    elif log_error and status_code >= 400:
        logger.warning(f"API Error [{code}]: {message}", extra={"details": details})

    response = {
        "success": False,
        "error": {
            "message": message,
            "code": code.value if isinstance(code, ErrorCode) else code
        }
    }
    if detail:
        response["error"]["detail"] = detail

    return jsonify(response), status_code


def internal_error(message: str = "An unexpected error occurred", details: Optional[dict] = None) -> tuple:
    """500 Internal Server Error."""
    return error_response(message, ErrorCode.INTERNAL_ERROR, 500, log_error=True, details=details)


def response_for_exception(error: CardLinkError) -> tuple:
    """Map a CardLinkError onto the standard error response."""
    if isinstance(error, ValidationError):
        return error_response(error.message, error.code, 400, log_error=False)
    if isinstance(error, NotFoundError):
        return error_response(error.message, error.code, 404, log_error=False)
    if isinstance(error, (InvalidStatusTransitionError, LinkConflictError)):
        return error_response(error.message, error.code, 409, log_error=False)
    if isinstance(error, StorageTimeoutError):
        return error_response(
            "The data store did not respond in time, please retry",
            ErrorCode.STORAGE_TIMEOUT,
            504,
            details={"operation": error.operation, "timeout_ms": error.timeout_ms},
            detail=error.detail,
        )
    if isinstance(error, StorageError):
        return error_response(
            "Internal server error",
            ErrorCode.STORAGE_ERROR,
            500,
            details={"original": repr(error.original_error)},
            detail=error.detail,
        )
    return internal_error(error.message)

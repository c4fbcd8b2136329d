"""
Custom exceptions for CardLink business logic.

These exceptions provide more specific error handling than generic Exception,
allowing for better error messages and appropriate HTTP status codes.
"""


class CardLinkError(Exception):
    """Base exception for all CardLink errors."""

    def __init__(self, message: str, code: str = "CARDLINK_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(CardLinkError):
    """Missing or malformed caller input."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class NotFoundError(CardLinkError):
    """Identifiers do not resolve to a known record."""

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} '{identifier}' not found"
        super().__init__(message, f"{resource.upper().replace(' ', '_')}_NOT_FOUND")


class AccountNotFoundError(NotFoundError):
    """Loyalty account not found or not linked."""

    def __init__(self, identifier=None):
        super().__init__("Account", identifier)


class SyncSessionNotFoundError(NotFoundError):
    """Sync session not found."""

    def __init__(self, identifier=None):
        super().__init__("Sync session", identifier)


class InvalidStatusTransitionError(CardLinkError):
    """Invalid status transition for a resource."""

    def __init__(self, resource: str, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        message = f"Cannot change {resource} status from '{from_status}' to '{to_status}'"
        super().__init__(message, "INVALID_STATUS_TRANSITION")


class StorageError(CardLinkError):
    """
    Underlying store failure.

    `detail` is meant for operators: it names the failing operation and the
    driver error class, never the SQL text or bound parameters.
    """

    def __init__(self, message: str = "Storage operation failed", detail: str = None,
                 original_error: Exception = None):
        self.detail = detail
        self.original_error = original_error
        super().__init__(message, "STORAGE_ERROR")


class StorageTimeoutError(StorageError):
    """A store call exceeded its time bound. Safe for the caller to retry."""

    def __init__(self, operation: str, timeout_ms: int = None, original_error: Exception = None):
        self.operation = operation
        self.timeout_ms = timeout_ms
        bound = f" after {timeout_ms}ms" if timeout_ms else ""
        super().__init__(
            f"Storage call timed out{bound}",
            detail=f"{operation}: timeout",
            original_error=original_error,
        )
        self.code = "STORAGE_TIMEOUT"


class BestEffortFailure(CardLinkError):
    """
    Failure of a side-effect operation (audit logging, profile sync).

    Never raised to callers. run_best_effort() returns it so the caller can
    discard it explicitly.
    """

    def __init__(self, source: str, original_error: Exception):
        self.source = source
        self.original_error = original_error
        super().__init__(f"{source} failed: {original_error}", "BEST_EFFORT_FAILURE")


class LinkConflictError(CardLinkError):
    """Loyalty account already actively linked to a different identity."""

    def __init__(self, loyalty_username: str):
        self.loyalty_username = loyalty_username
        super().__init__(
            f"Account '{loyalty_username}' is already linked to another user",
            "ACCOUNT_ALREADY_LINKED"
        )

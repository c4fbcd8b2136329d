"""
Utility modules for CardLink.
"""
from .logging_config import setup_logging, get_logger
from .errors import (
    ErrorCode,
    error_response,
    internal_error,
    response_for_exception,
)
from .exceptions import (
    CardLinkError,
    ValidationError,
    NotFoundError,
    AccountNotFoundError,
    SyncSessionNotFoundError,
    InvalidStatusTransitionError,
    LinkConflictError,
    StorageError,
    StorageTimeoutError,
    BestEffortFailure,
)

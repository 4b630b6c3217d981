"""
Error Code Definitions and Classification.

Every exception the granule API can surface maps to one ErrorCode, and
every ErrorCode carries its HTTP status and whether a caller may retry.

Exports:
    ErrorCode: Standardized error codes enum
    is_retryable: Helper to check if error should be retried
    get_http_status_code: HTTP status lookup
    error_code_for_exception: Map an exception instance to an ErrorCode
    create_error_response: Standard error response builder
"""

from enum import Enum
from typing import Dict, Any, Tuple

from exceptions import (
    CatalogError,
    ConfigurationError,
    DatabaseError,
    GranuleConflictError,
    GranulePublishedError,
    InvalidTransitionError,
    MoveError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
    WorkflowLaunchError,
)


class ErrorCode(str, Enum):
    """
    Standardized error codes returned in the "error" field of API responses.
    """

    # Client errors
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    GRANULE_PUBLISHED = "GRANULE_PUBLISHED"  # Delete of a published granule
    DESTINATION_CONFLICT = "DESTINATION_CONFLICT"  # Move would overwrite objects
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # Service errors
    CONFIG_ERROR = "CONFIG_ERROR"
    MOVE_FAILED = "MOVE_FAILED"  # Completed files are no-ops on retry
    CATALOG_ERROR = "CATALOG_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    QUEUE_ERROR = "QUEUE_ERROR"
    TIMEOUT = "TIMEOUT"
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


# code -> (http status, retryable)
_ERROR_TABLE: Dict[ErrorCode, Tuple[int, bool]] = {
    ErrorCode.RESOURCE_NOT_FOUND: (404, False),
    ErrorCode.VALIDATION_ERROR: (400, False),
    ErrorCode.GRANULE_PUBLISHED: (400, False),
    ErrorCode.DESTINATION_CONFLICT: (409, False),
    ErrorCode.INVALID_TRANSITION: (409, False),
    ErrorCode.CONFIG_ERROR: (500, False),
    ErrorCode.MOVE_FAILED: (500, True),
    ErrorCode.CATALOG_ERROR: (502, True),
    ErrorCode.DATABASE_ERROR: (500, True),
    ErrorCode.STORAGE_ERROR: (500, True),
    ErrorCode.QUEUE_ERROR: (503, True),
    ErrorCode.TIMEOUT: (500, True),
    ErrorCode.UNEXPECTED_ERROR: (500, True),
}

# Ordered: subclasses before base classes
_EXCEPTION_CODES = (
    (GranuleConflictError, ErrorCode.DESTINATION_CONFLICT),
    (InvalidTransitionError, ErrorCode.INVALID_TRANSITION),
    (GranulePublishedError, ErrorCode.GRANULE_PUBLISHED),
    (ValidationError, ErrorCode.VALIDATION_ERROR),
    (ResourceNotFoundError, ErrorCode.RESOURCE_NOT_FOUND),
    (MoveError, ErrorCode.MOVE_FAILED),
    (CatalogError, ErrorCode.CATALOG_ERROR),
    (WorkflowLaunchError, ErrorCode.QUEUE_ERROR),
    (StorageError, ErrorCode.STORAGE_ERROR),
    (DatabaseError, ErrorCode.DATABASE_ERROR),
    (ConfigurationError, ErrorCode.CONFIG_ERROR),
    (TimeoutError, ErrorCode.TIMEOUT),
)


def is_retryable(error_code: ErrorCode) -> bool:
    """
    Determine if an error code should trigger a retry.

    Example:
        >>> is_retryable(ErrorCode.DESTINATION_CONFLICT)
        False
    """
    return _ERROR_TABLE.get(error_code, (500, True))[1]


def get_http_status_code(error_code: ErrorCode) -> int:
    """HTTP status for an error code; unknown codes are 500."""
    return _ERROR_TABLE.get(error_code, (500, True))[0]


def error_code_for_exception(error: BaseException) -> ErrorCode:
    """
    Map an exception instance to its ErrorCode.

    Example:
        >>> error_code_for_exception(GranuleConflictError(["g.txt"]))
        <ErrorCode.DESTINATION_CONFLICT: 'DESTINATION_CONFLICT'>
    """
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(error, exc_type):
            return code
    return ErrorCode.UNEXPECTED_ERROR


def create_error_response(
    error_code: ErrorCode,
    message: str,
    **kwargs: Any
) -> Dict[str, Any]:
    """
    Create a standardized error response dictionary.

    Args:
        error_code: ErrorCode enum value
        message: Human-readable error message
        **kwargs: Additional fields to include in response
            (error_type defaults to "ValidationError")

    Returns:
        Dict with success, error, error_type, message, retryable,
        http_status and any extra fields
    """
    return {
        "success": False,
        "error": error_code.value,
        "error_type": kwargs.pop("error_type", "ValidationError"),
        "message": message,
        "retryable": is_retryable(error_code),
        "http_status": get_http_status_code(error_code),
        **kwargs
    }

"""
Error code catalog for the location service.

Every failure the service can report to a client maps to one of these
codes. Client-side problems (a bad label, an unparsable filter bound, an
undecodable body) are 4xx; store failures and anything unexpected are 5xx.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used in the application.

    Each error code maps to a default HTTP status code:
    - Client errors (4xx): rejected before any store interaction
    - Server errors (5xx): the store call failed or something unexpected happened
    """

    # Client errors (4xx)
    INVALID_INPUT = "INVALID_INPUT"
    """A source label failed validation (HTTP 400)"""

    MALFORMED_FIELD = "MALFORMED_FIELD"
    """An optional field could not be parsed as its type (HTTP 400)"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Request body could not be decoded (HTTP 400)"""

    # Server errors (5xx)
    STORAGE_FAILURE = "STORAGE_FAILURE"
    """The store rejected or failed the operation (HTTP 500)"""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected server error (HTTP 500)"""


# Mapping of error codes to their default HTTP status codes
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.MALFORMED_FIELD: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.STORAGE_FAILURE: 500,
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

"""
Exception classes for the location service.

AppException is the boundary representation of a failure: the service layer
returns error outcomes, and the HTTP layer turns them into AppExceptions that
the registered handlers render as structured JSON.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    A failure that should reach the client as a structured error.

    ``message`` is shown to clients verbatim, so it must never contain
    driver output, paths or stack details. ``status_code`` defaults to the
    status mapped to ``error_code``.

    Example:
        raise AppException(
            error_code=ErrorCode.MALFORMED_FIELD,
            message="Invalid query parameter",
            details={"field": "from", "reason": "expected YYYY-MM-DD HH:MM:SS"}
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"AppException(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, status_code={self.status_code}, "
            f"details={self.details!r})"
        )


def validation_error(
    message: str,
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a validation error exception."""
    return AppException(
        error_code=ErrorCode.VALIDATION_ERROR,
        message=message,
        details=details
    )

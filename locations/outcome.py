"""
Result values returned by the location service.

Expected failures (a bad label, an unparsable filter field, a store error)
are returned as an ``Outcome`` carrying a ``ServiceError`` instead of being
raised. The HTTP layer calls ``unwrap()``, which turns the error into the
matching AppException for the registered handlers.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from errors.codes import ErrorCode
from errors.exceptions import AppException

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceError:
    """
    A typed failure.

    Attributes:
        code: INVALID_INPUT, MALFORMED_FIELD or STORAGE_FAILURE
        message: Client-safe message
        details: Optional client-safe context (e.g. the offending field)
        cause: The underlying exception; logged, never sent to clients
    """
    code: ErrorCode
    message: str
    details: Optional[dict[str, Any]] = None
    cause: Optional[BaseException] = None

    def to_exception(self) -> AppException:
        return AppException(
            error_code=self.code,
            message=self.message,
            details=self.details,
        )


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a success payload or a ServiceError, never both."""
    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ServiceError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """
        Return the payload, or raise the error as an AppException.

        Raises:
            AppException: If the outcome is a failure
        """
        if self.error is not None:
            raise self.error.to_exception()
        return self.value

"""
Store abstraction for location records.

The service needs exactly two things from its store: an atomic
insert-and-return of one row, and a scan filtered by up to three optional
predicates. Implementations own id and created_at assignment.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from locations.models import LocationRecord


class StoreError(Exception):
    """
    Raised when the underlying store fails an operation.

    The original driver exception is chained as ``__cause__``.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class LocationStore(ABC):
    """
    Abstract base class for location stores.

    All methods are async; implementations must be safe to call from many
    concurrent requests.
    """

    @abstractmethod
    async def insert(self, source: str, latitude: float, longitude: float) -> LocationRecord:
        """
        Insert one row and return it fully populated.

        Args:
            source: The validated source label
            latitude: Latitude, stored as given
            longitude: Longitude, stored as given

        Returns:
            The stored record with its assigned ``id`` and ``created_at``

        Raises:
            StoreError: If the row could not be written.
        """

    @abstractmethod
    async def scan(
        self,
        source: Optional[str] = None,
        from_: Optional[datetime] = None,
        to: Optional[datetime] = None,
    ) -> List[LocationRecord]:
        """
        Return every row matching all of the given predicates.

        A None predicate matches everything. ``from_`` and ``to`` are
        inclusive bounds on ``created_at``. Row order is store-defined.

        Raises:
            StoreError: If the scan could not be executed.
        """

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check connectivity to the store.

        Returns:
            True if the store answered, False otherwise. Never raises.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release connections held by the store."""

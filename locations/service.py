"""
Location service: validates requests and runs them against the store.

Both operations issue at most one store call and report expected failures
as ``Outcome`` values:

- INVALID_INPUT when a source label fails validation (no store call is made)
- STORAGE_FAILURE when the store call itself fails (the cause is logged only)

Nothing is retried here and no state is kept between calls.
"""

import logging
import time
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

from errors.codes import ErrorCode
from locations.models import LocationFilter, LocationInput, LocationRecord, format_timestamp
from locations.outcome import Outcome, ServiceError
from locations.validation import is_valid_label
from storage.base import LocationStore, StoreError
from telemetry.service import TelemetryService, get_telemetry_service

logger = logging.getLogger(__name__)

INVALID_SOURCE = ServiceError(
    code=ErrorCode.INVALID_INPUT,
    message="Invalid source",
    details={"field": "source"},
)


class LocationService:
    """
    Records and queries location readings.

    Attributes:
        store: The location store; shared by all requests
        telemetry: Telemetry service for metrics and spans, if initialized
    """

    def __init__(
        self,
        store: LocationStore,
        telemetry: Optional[TelemetryService] = None
    ):
        """
        Initialize the LocationService.

        Args:
            store: Store implementation used for every operation
            telemetry: Optional telemetry service (uses the global one if not provided)
        """
        self.store = store
        self.telemetry = telemetry or get_telemetry_service()
        self._logger = logging.getLogger(__name__)

    def _store_span(self, operation: str, attributes: Optional[Dict[str, Any]] = None):
        if self.telemetry:
            return self.telemetry.create_store_span(operation, attributes)
        return nullcontext()

    def _record_duration(self, operation: str, start_time: float) -> float:
        duration_ms = (time.perf_counter() - start_time) * 1000
        if self.telemetry:
            self.telemetry.record_metric(
                f"location_{operation}_duration_ms",
                duration_ms,
                tags={"operation": operation}
            )
        return duration_ms

    async def record(self, location: LocationInput) -> Outcome[LocationRecord]:
        """
        Store a new location reading.

        Latitude and longitude are stored exactly as received.

        Args:
            location: The client payload

        Returns:
            The stored record (with id and created_at), or an INVALID_INPUT /
            STORAGE_FAILURE error
        """
        if not is_valid_label(location.source):
            self._logger.warning(
                "Location rejected: invalid source",
                extra={"extra_data": {"source": location.source}}
            )
            return Outcome.failure(INVALID_SOURCE)

        start_time = time.perf_counter()
        try:
            with self._store_span("insert", {"location.source": location.source}):
                record = await self.store.insert(
                    source=location.source,
                    latitude=location.latitude,
                    longitude=location.longitude,
                )
        except StoreError as e:
            self._logger.error(
                f"Cannot add record: {e}",
                extra={"extra_data": {
                    "source": location.source,
                    "error": str(e),
                    "duration_ms": self._record_duration("record", start_time),
                }},
                exc_info=True,
            )
            return Outcome.failure(ServiceError(
                code=ErrorCode.STORAGE_FAILURE,
                message="No record added",
                cause=e,
            ))

        self._logger.info(
            f"Record added: {record.id}",
            extra={"extra_data": {
                "id": record.id,
                "source": record.source,
                "latitude": record.latitude,
                "longitude": record.longitude,
                "created_at": format_timestamp(record.created_at),
                "duration_ms": self._record_duration("record", start_time),
            }}
        )
        return Outcome.success(record)

    async def query(self, location_filter: LocationFilter) -> Outcome[List[LocationRecord]]:
        """
        Fetch every record matching the filter.

        Absent filter fields place no constraint; present ones are combined
        with AND. The order of the returned records is whatever the store
        yields and must not be relied upon. An empty list is a success.

        Args:
            location_filter: The parsed read predicates

        Returns:
            The matching records, or an INVALID_INPUT / STORAGE_FAILURE error
        """
        filter_data = location_filter.model_dump(mode="json", by_alias=True)

        if location_filter.source is not None and not is_valid_label(location_filter.source):
            self._logger.warning(
                "Query rejected: invalid source",
                extra={"extra_data": {"filter": filter_data}}
            )
            return Outcome.failure(INVALID_SOURCE)

        start_time = time.perf_counter()
        try:
            with self._store_span("scan", {"location.filter": str(filter_data)}):
                records = await self.store.scan(
                    source=location_filter.source,
                    from_=location_filter.from_,
                    to=location_filter.to,
                )
        except StoreError as e:
            self._logger.error(
                f"Cannot fetch records: {e}",
                extra={"extra_data": {
                    "filter": filter_data,
                    "error": str(e),
                    "duration_ms": self._record_duration("query", start_time),
                }},
                exc_info=True,
            )
            return Outcome.failure(ServiceError(
                code=ErrorCode.STORAGE_FAILURE,
                message="No records fetched",
                cause=e,
            ))

        self._logger.info(
            f"{len(records)} records fetched",
            extra={"extra_data": {
                "filter": filter_data,
                "count": len(records),
                "duration_ms": self._record_duration("query", start_time),
            }}
        )
        return Outcome.success(records)

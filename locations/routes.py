"""
HTTP endpoints for recording and querying locations.

Both operations live on the root resource:

- ``POST /`` with ``{"source", "latitude", "longitude"}`` records a reading
- ``GET /?source=&from=&to=`` lists readings; ``from``/``to`` use
  ``YYYY-MM-DD HH:MM:SS`` and are inclusive

Error outcomes are unwrapped into AppExceptions and rendered by the
registered exception handlers.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request

from locations.models import LocationInput, parse_filter
from locations.service import LocationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["locations"])


def get_location_service(request: Request) -> LocationService:
    """Return the LocationService created by the application lifespan."""
    return request.app.state.location_service


@router.post("/")
async def record_location(
    location: LocationInput,
    service: LocationService = Depends(get_location_service),
) -> Dict[str, Any]:
    """
    Record a location reading.

    Returns:
        A confirmation message and the stored record

    Raises:
        AppException: 400 INVALID_INPUT for a bad source, 500 STORAGE_FAILURE
    """
    logger.info(
        f"POST / <- {location.source}",
        extra={"extra_data": location.model_dump()}
    )

    record = (await service.record(location)).unwrap()

    return {
        "message": "Record added",
        "record": record.model_dump(mode="json"),
    }


@router.get("/")
async def query_locations(
    source: Optional[str] = Query(default=None, description="Exact source label"),
    from_: Optional[str] = Query(
        default=None,
        alias="from",
        description="Inclusive lower bound, YYYY-MM-DD HH:MM:SS (UTC, no fractional seconds)",
    ),
    to: Optional[str] = Query(
        default=None,
        description="Inclusive upper bound, YYYY-MM-DD HH:MM:SS (UTC, no fractional seconds)",
    ),
    service: LocationService = Depends(get_location_service),
) -> List[Dict[str, Any]]:
    """
    List recorded locations, optionally filtered.

    Empty parameters count as absent. Bounds with fractional seconds
    (e.g. ``10:30:00.5``) are rejected as MALFORMED_FIELD. Result order is
    unspecified.

    Raises:
        AppException: 400 INVALID_INPUT / MALFORMED_FIELD, 500 STORAGE_FAILURE
    """
    raw_filter = {"source": source, "from": from_, "to": to}
    logger.info("GET / <- filter", extra={"extra_data": {"filter": raw_filter}})

    location_filter = parse_filter(raw_filter).unwrap()
    records = (await service.query(location_filter)).unwrap()

    return [record.model_dump(mode="json") for record in records]

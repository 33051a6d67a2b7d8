"""
Location records: models, label validation and result values.

The service (``locations.service``) and the HTTP router
(``locations.routes``) are imported from their modules directly; they
depend on ``storage``, which in turn depends on these models.
"""

from locations.models import (
    LocationFilter,
    LocationInput,
    LocationRecord,
    TIMESTAMP_FORMAT,
    empty_string_as_none,
    format_timestamp,
    parse_filter,
    parse_timestamp,
)
from locations.outcome import Outcome, ServiceError
from locations.validation import LABEL_PATTERN, is_valid_label

__all__ = [
    "LocationFilter",
    "LocationInput",
    "LocationRecord",
    "TIMESTAMP_FORMAT",
    "empty_string_as_none",
    "format_timestamp",
    "parse_filter",
    "parse_timestamp",
    "Outcome",
    "ServiceError",
    "LABEL_PATTERN",
    "is_valid_label",
]

"""
Data models for location records, write payloads and read filters.

Timestamps cross the API boundary in one fixed text form,
``YYYY-MM-DD HH:MM:SS`` (UTC). ``created_at`` is rendered that way and the
``from``/``to`` filter bounds are parsed that way, so a ``created_at`` value
can be sent straight back as a bound.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Callable, Mapping, Optional, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
)

from errors.codes import ErrorCode
from locations.outcome import Outcome, ServiceError

T = TypeVar("T")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_timestamp(value: str) -> datetime:
    """
    Parse a ``YYYY-MM-DD HH:MM:SS`` timestamp.

    Raises:
        ValueError: If the text does not match the format exactly
    """
    return datetime.strptime(value, TIMESTAMP_FORMAT)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ``YYYY-MM-DD HH:MM:SS`` in UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime(TIMESTAMP_FORMAT)


def empty_string_as_none(value: Any, parse: Callable[[str], T]) -> Optional[T]:
    """
    Coerce a raw optional field.

    ``None`` and ``""`` both mean "not specified" and become None. Any other
    string is handed to ``parse``, whose ValueError fails the whole request.
    Non-string values are passed through for the model's own type check.

    Args:
        value: The raw field value
        parse: Converts the non-empty text into the target type

    Returns:
        The parsed value, or None when the field was not specified
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return parse(value)
    return value


def OptionalField(parse: Callable[[str], Any]) -> BeforeValidator:
    """Annotation applying empty_string_as_none with the given parser."""
    return BeforeValidator(lambda value: empty_string_as_none(value, parse))


class LocationInput(BaseModel):
    """
    Write payload submitted by a client.

    Coordinates must be finite JSON numbers: NaN, infinities (e.g. the
    literal 1e400) and numeric strings fail decoding. There is no range
    check on latitude or longitude. The source label is checked by the
    service, not here, so a bad label is reported as INVALID_INPUT rather
    than a decoding error.
    """

    source: str
    latitude: float = Field(strict=True, allow_inf_nan=False)
    longitude: float = Field(strict=True, allow_inf_nan=False)


class LocationRecord(BaseModel):
    """
    A stored location reading.

    ``id`` and ``created_at`` are assigned by the store at insertion and
    never change afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    source: str
    latitude: float
    longitude: float
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return format_timestamp(value)


class LocationFilter(BaseModel):
    """
    Read predicates. Every field is optional and independent.

    An absent field places no constraint on the scan; ``from`` and ``to``
    are inclusive bounds on ``created_at``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source: Annotated[Optional[str], OptionalField(str)] = None
    from_: Annotated[Optional[datetime], OptionalField(parse_timestamp)] = Field(
        default=None, alias="from"
    )
    to: Annotated[Optional[datetime], OptionalField(parse_timestamp)] = None


def parse_filter(params: Mapping[str, Any]) -> Outcome[LocationFilter]:
    """
    Build a LocationFilter from raw query parameters.

    Args:
        params: Mapping with any of the keys ``source``, ``from``, ``to``

    Returns:
        The filter, or a MALFORMED_FIELD failure naming the first bad field
    """
    try:
        return Outcome.success(LocationFilter.model_validate(dict(params)))
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(loc) for loc in first.get("loc", ())) or "query"
        details = {"field": field, "reason": first.get("msg", str(e))}
        if field in ("from", "to"):
            details["expected_format"] = "YYYY-MM-DD HH:MM:SS"
        return Outcome.failure(ServiceError(
            code=ErrorCode.MALFORMED_FIELD,
            message="Invalid query parameter",
            details=details,
            cause=e,
        ))

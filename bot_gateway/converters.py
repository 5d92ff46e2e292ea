"""JSON value converters used by the gateway models.

Both converters are lenient on input: values the gateway sends in an
unexpected shape decode to None instead of failing the whole payload.
"""

import math
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer


def parse_duration_seconds(value: Any) -> timedelta | None:
    """Decode a duration sent as a number of seconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, timedelta):
        return value
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds):
        return None
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        return None


def serialize_duration_seconds(value: timedelta | None) -> int | float | None:
    if value is None:
        return None
    seconds = value.total_seconds()
    return int(seconds) if seconds.is_integer() else seconds


def parse_unix_timestamp(value: Any) -> datetime | None:
    """Decode a timestamp sent as epoch seconds or as an ISO string.

    Numbers are tried first; strings are parsed as ISO 8601 as a fallback.
    Naive datetimes are taken to be UTC.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def serialize_unix_timestamp(value: datetime | None) -> int | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp())


DurationSeconds = Annotated[
    timedelta | None,
    BeforeValidator(parse_duration_seconds),
    PlainSerializer(serialize_duration_seconds),
]

UnixTimestamp = Annotated[
    datetime | None,
    BeforeValidator(parse_unix_timestamp),
    PlainSerializer(serialize_unix_timestamp),
]

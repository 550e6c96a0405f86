from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, overload

from dateutil import parser as date_parser

from spector.error import DecodeError
from spector.json import get_optional, get_required, nested

if TYPE_CHECKING:
    from typing import Any, Optional

# Format used to write timestamps without sub-second precision
TIMESTAMP_FORMAT: str = "%Y-%m-%dT%H:%M:%SZ"
TIMESTAMP_FORMAT_US: str = "%Y-%m-%dT%H:%M:%S.%fZ"


def parse_timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 timestamp.

    :param value: the timestamp string, e.g. ``2023-07-01T12:00:00Z``
    :return: an aware datetime converted to UTC
    :raise DecodeError: if *value* is not a string holding a date, a time and
        a UTC offset
    """
    if not isinstance(value, str):
        raise DecodeError(
            f"Invalid timestamp type {type(value).__name__}, expected a string"
        )
    try:
        result = date_parser.isoparse(value)
    except (ValueError, OverflowError) as err:
        raise DecodeError(f"Invalid timestamp {value!r}: {err}") from err
    if result.tzinfo is None:
        raise DecodeError(f"Invalid timestamp {value!r}: missing UTC offset")
    return result.astimezone(timezone.utc)


@overload
def timestamp_as_string(value: None) -> None: ...


@overload
def timestamp_as_string(value: datetime) -> str: ...


def timestamp_as_string(value: datetime | None) -> str | None:
    """Convert a datetime into an RFC 3339 UTC timestamp.

    Sub-second precision is kept only when there is some.

    :param value: a datetime or None
    :return: the string representing the timestamp or None if value is None
    """
    if value is None:
        return None
    value = value.astimezone(timezone.utc)
    if value.microsecond:
        return value.strftime(TIMESTAMP_FORMAT_US)
    return value.strftime(TIMESTAMP_FORMAT)


def get_timestamp(
    obj: dict[str, Any], key: str, required: bool = False, origin: str | None = None
) -> Optional[datetime]:
    """Decode a field of a JSON object holding a timestamp."""
    if required:
        value = get_required(obj, key, origin=origin)
    else:
        value = get_optional(obj, key, origin=origin)
    if value is None:
        return None
    with nested(key):
        return parse_timestamp(value)

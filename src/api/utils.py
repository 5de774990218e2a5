from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union

TimestampInput = Union[date, datetime, str]

# Sorts unparseable legacy timestamps after every valid one
_EPOCH_FLOOR = datetime.min.replace(tzinfo=timezone.utc)


# PUBLIC_INTERFACE
def parse_timestamp(value: TimestampInput) -> datetime:
    """
    Normalize a timestamp input into an aware UTC datetime.

    - Strings are parsed as ISO8601 date or datetime; a trailing 'Z' is accepted.
    - Dates (and date-only strings) are promoted to midnight UTC.
    - Naive datetimes are taken to be UTC.

    Raises:
        ValueError if the value cannot be interpreted as a timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        s = value.strip()
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            try:
                d = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Invalid timestamp. Use an ISO8601 date or datetime string "
                    "(e.g., '2025-01-31' or '2025-01-31T13:45:00Z')."
                ) from e
            dt = datetime(d.year, d.month, d.day)
    else:
        raise ValueError("Invalid type for timestamp; expected date, datetime, or ISO8601 string.")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError("Timestamp is outside the supported date range.") from e


# PUBLIC_INTERFACE
def format_timestamp(dt: datetime) -> str:
    """Render a datetime as UTC ISO8601 with millisecond precision and a 'Z' suffix."""
    utc = parse_timestamp(dt)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# PUBLIC_INTERFACE
def normalize_timestamp(value: Optional[TimestampInput]) -> str:
    """Return the canonical stored form of a timestamp; None means now."""
    if value is None:
        return format_timestamp(datetime.now(timezone.utc))
    return format_timestamp(parse_timestamp(value))


def sort_key(value: object) -> datetime:
    """Ordering key for a stored publishedAt value."""
    if not isinstance(value, str):
        return _EPOCH_FLOOR
    try:
        return parse_timestamp(value)
    except ValueError:
        return _EPOCH_FLOOR

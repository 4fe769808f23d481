"""
Date and time utilities for Fanpage Service.

MongoDB hands datetimes back as naive UTC, so everything persisted by the
service is normalized to naive UTC as well. The Graph API reports times
either as ISO-8601 strings with a ``+0000`` offset or, in webhook payloads,
as Unix epochs (seconds for feed changes, milliseconds for messaging).
"""

from datetime import datetime, timezone, timedelta
from typing import Optional, Union

UTC = timezone.utc

# Epoch values above this are treated as milliseconds
_MILLISECOND_THRESHOLD = 10 ** 11

_PLATFORM_FORMATS = [
    "%Y-%m-%dT%H:%M:%S%z",  # Graph API: 2024-01-01T10:00:00+0000
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S",
]


def utc_now() -> datetime:
    """Current time as naive UTC, matching what MongoDB returns."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def from_epoch(value: Union[int, float]) -> datetime:
    """
    Convert a Unix epoch to naive UTC.

    Seconds and milliseconds are both accepted; webhook messaging events
    use milliseconds while feed changes use seconds.
    """
    seconds = value / 1000 if value > _MILLISECOND_THRESHOLD else value
    return datetime.fromtimestamp(seconds, UTC).replace(tzinfo=None)


def parse_platform_time(value: Optional[Union[str, int, float, datetime]]) -> Optional[datetime]:
    """
    Parse a timestamp as reported by the Graph API.

    Args:
        value: ISO string, epoch number or datetime

    Returns:
        Naive UTC datetime, or None when value is empty

    Raises:
        ValueError: If the value cannot be interpreted
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return to_naive_utc(value)

    if isinstance(value, bool):
        raise ValueError(f"Unable to parse platform time: {value!r}")

    if isinstance(value, (int, float)):
        return from_epoch(value)

    if isinstance(value, str) and value.isdigit():
        return from_epoch(int(value))

    for fmt in _PLATFORM_FORMATS:
        try:
            return to_naive_utc(datetime.strptime(value, fmt))
        except ValueError:
            continue

    try:
        return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        raise ValueError(f"Unable to parse platform time: {value!r}")


def is_older_than(dt: Optional[datetime], days: int, now: Optional[datetime] = None) -> bool:
    """True when ``dt`` is missing or more than ``days`` days in the past."""
    if dt is None:
        return True
    now = now or utc_now()
    return to_naive_utc(dt) < now - timedelta(days=days)


def format_for_api(dt: Optional[datetime]) -> Optional[str]:
    """Format a stored naive UTC datetime as ISO-8601 with a Z suffix."""
    if dt is None:
        return None
    return to_naive_utc(dt).isoformat() + "Z"

"""
Time conversion utilities for event and candle timestamps.

Every timestamp handled by the cache and the plugins is an integer number
of unix seconds in UTC. The helpers here turn the various date shapes found
in raw records into that canonical form and reject anything that would
produce an invalid instant.
"""

import math
import re
from datetime import date, datetime, timezone
from typing import Any

from ..errors import TemporalDataError

# Numeric timestamps above this are taken to be milliseconds
MILLISECONDS_THRESHOLD = 10 ** 11

TIMEFRAME_UNITS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}
MONTH_SECONDS = 30 * 24 * 60 * 60

_TIMEFRAME_PATTERN = re.compile(r"^\s*(\d+)\s*([a-zA-Z]+)\s*$")


def _number_to_datetime(value: float) -> datetime:
    if isinstance(value, float) and not math.isfinite(value):
        raise TemporalDataError(f"Timestamp is not finite: {value}", value=value)
    seconds = value / 1000 if abs(value) > MILLISECONDS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise TemporalDataError(f"Timestamp out of range: {value}", value=value) from e


def _string_to_datetime(value: str) -> datetime:
    text = value.strip()
    if not text:
        raise TemporalDataError("Empty date string", value=value)
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise TemporalDataError(f"Unparseable date string: {value!r}", value=value) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_datetime(value: Any) -> datetime:
    """
    Convert a date-like value to an aware UTC datetime.

    Args:
        value: datetime, date, unix seconds/milliseconds or ISO8601 string.
            Naive datetimes and strings without an offset are taken as UTC.

    Returns:
        Aware datetime in UTC

    Raises:
        TemporalDataError: If the value cannot be interpreted as an instant
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise TemporalDataError(f"Boolean is not a date: {value}", value=value)
    if isinstance(value, (int, float)):
        return _number_to_datetime(value)
    if isinstance(value, str):
        return _string_to_datetime(value)
    raise TemporalDataError(
        f"Unsupported date type: {type(value).__name__}", value=value
    )


def to_timestamp(value: Any) -> int:
    """Convert a date-like value to integer unix seconds (floored)."""
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) <= MILLISECONDS_THRESHOLD:
        return value
    return math.floor(to_datetime(value).timestamp())


def timestamp_to_datetime(ts: float) -> datetime:
    """Convert unix seconds to an aware UTC datetime."""
    return _number_to_datetime(ts)


def format_timestamp(ts: float) -> str:
    """
    Format unix seconds for logging.

    Returns:
        ISO8601 formatted string
    """
    return timestamp_to_datetime(ts).isoformat()


def timeframe_to_seconds(timeframe: str) -> int:
    """
    Convert a timeframe label to its duration in seconds.

    Labels are a count followed by a unit: ``s`` seconds, ``m`` minutes,
    ``H``/``h`` hours, ``D``/``d`` days, ``W``/``w`` weeks and ``M`` months.
    ``m`` is minutes and ``M`` is months, matching chart toolbars.

    Raises:
        ValueError: If the label cannot be parsed
    """
    if not isinstance(timeframe, str):
        raise TypeError(f"Timeframe must be a string, got {type(timeframe).__name__}")

    match = _TIMEFRAME_PATTERN.match(timeframe)
    if not match:
        raise ValueError(f"Invalid timeframe: {timeframe!r}")

    count = int(match.group(1))
    unit = match.group(2)

    if unit in ("M", "mo", "MO", "Mo"):
        return count * MONTH_SECONDS
    if unit == "min":
        return count * TIMEFRAME_UNITS["m"]

    seconds = TIMEFRAME_UNITS.get(unit.lower()) if len(unit) == 1 else None
    if seconds is None:
        raise ValueError(f"Invalid timeframe unit: {timeframe!r}")
    return count * seconds

"""
Julian day conversions (Meeus, Astronomical Algorithms, chapter 7).

Julian days count days from noon UTC on 1 January 4713 BC; they make date
differences plain subtraction and are the input of the seasonal formulas.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any

from ..utils.time import to_datetime

UNIX_EPOCH_JD = 2440587.5
SECONDS_PER_DAY = 24 * 60 * 60
GREGORIAN_START_JD = 2299161


def calendar_to_julian_day(year: int, month: int, day: float) -> float:
    """Julian day for a Gregorian calendar date; ``day`` may be fractional."""
    if month <= 2:
        year -= 1
        month += 12

    a = math.floor(year / 100)
    b = 2 - a + math.floor(a / 4)

    return math.floor(365.25 * (year + 4716)) + math.floor(30.6001 * (month + 1)) + day + b - 1524.5


def to_julian_day(date: Any) -> float:
    """Julian day of a date-like value."""
    dt = to_datetime(date)
    day_fraction = (dt.hour + (dt.minute + (dt.second + dt.microsecond / 1e6) / 60) / 60) / 24
    return calendar_to_julian_day(dt.year, dt.month, dt.day + day_fraction)


def from_julian_day(jd: float) -> datetime:
    """Aware UTC datetime for a Julian day."""
    a_full = jd + 0.5
    z = math.floor(a_full)
    f = a_full - z

    a = z
    if z >= GREGORIAN_START_JD:
        alpha = math.floor((z - 1867216.25) / 36524.25)
        a = z + 1 + alpha - math.floor(alpha / 4)

    b = a + 1524
    c = math.floor((b - 122.1) / 365.25)
    d = math.floor(365.25 * c)
    e = math.floor((b - d) / 30.6001)

    day = b - d - math.floor(30.6001 * e)
    month = e - 1 if e < 14 else e - 13
    year = c - 4716 if month > 2 else c - 4715

    return datetime(year, month, day, tzinfo=timezone.utc) + timedelta(days=f)


def timestamp_to_julian_day(ts: float) -> float:
    return ts / SECONDS_PER_DAY + UNIX_EPOCH_JD


def julian_day_to_timestamp(jd: float) -> float:
    return (jd - UNIX_EPOCH_JD) * SECONDS_PER_DAY

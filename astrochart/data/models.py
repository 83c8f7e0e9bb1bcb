"""
Canonical data models for normalized events and time ranges.

This module defines immutable data structures that represent events after
normalization from raw records, the time ranges the cache reasons about,
and the markers plugins hand to the chart host.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..errors import MalformedDataError
from ..utils.time import timestamp_to_datetime


class EventType(str, Enum):
    """Event families understood by the overlay plugins."""
    LUNAR = "lunar"
    ECONOMIC = "economic"
    SOLAR = "solar"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Event:
    """Normalized event with a canonical unix-seconds timestamp."""
    id: str
    timestamp: int          # UTC unix seconds
    type: EventType
    subtype: str            # e.g. "new_moon", "spring_equinox", "cpi"
    title: str
    important: bool = False
    source: str = ""        # Collaborator that produced the record
    description: str = ""

    @property
    def dedup_key(self) -> tuple[int, str, str]:
        """Identity used to collapse the same event loaded twice."""
        return (self.timestamp, self.type.value, self.subtype)

    @property
    def date(self) -> datetime:
        """Event instant as an aware UTC datetime."""
        return timestamp_to_datetime(self.timestamp)


@dataclass(frozen=True)
class TimeRange:
    """Closed-inclusive range of unix seconds."""
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise MalformedDataError(
                f"TimeRange start {self.start} is after end {self.end}",
                raw_data=f"{self.start}-{self.end}",
                expected_format="start <= end"
            )

    @property
    def span(self) -> int:
        return self.end - self.start

    def contains(self, timestamp: float) -> bool:
        return self.start <= timestamp <= self.end

    def covers(self, other: "TimeRange") -> bool:
        """True if ``other`` lies entirely inside this range."""
        return self.start <= other.start and self.end >= other.end

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start <= other.end and other.start <= self.end

    def union(self, other: "TimeRange") -> "TimeRange":
        """Smallest range spanning both ranges."""
        return TimeRange(min(self.start, other.start), max(self.end, other.end))

    @classmethod
    def coerce(cls, value: Any) -> "TimeRange":
        """
        Build a TimeRange from the shapes chart hosts report.

        Accepts a TimeRange, a ``{"from", "to"}`` or ``{"start", "end"}``
        mapping, an object with ``from_``/``to`` or ``start``/``end``
        attributes, or a two-item sequence.
        """
        if isinstance(value, TimeRange):
            return value
        if isinstance(value, Mapping):
            if "from" in value and "to" in value:
                return cls(value["from"], value["to"])
            if "start" in value and "end" in value:
                return cls(value["start"], value["end"])
        elif hasattr(value, "start") and hasattr(value, "end"):
            return cls(value.start, value.end)
        elif hasattr(value, "from_") and hasattr(value, "to"):
            return cls(value.from_, value.to)
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(value[0], value[1])
        raise MalformedDataError(
            f"Cannot interpret {value!r} as a time range",
            raw_data=str(value)[:100],
            expected_format="{from, to}"
        )


@dataclass(frozen=True)
class CacheEntry:
    """Events loaded for one time range, owned by the range cache."""
    time_range: TimeRange
    events: tuple[Event, ...]
    loaded_at: float        # Cache clock reading at load time


@dataclass(frozen=True)
class SeriesMarker:
    """Marker drawn by the chart host; a list of these replaces prior markers."""
    time: int
    position: str           # aboveBar, belowBar or inBar
    color: str
    shape: str              # circle, square, arrowUp, arrowDown
    text: str = ""
    size: float = 1


def point_time(point: Any) -> Optional[float]:
    """Extract the timestamp of a candle given as a mapping or an object."""
    if isinstance(point, Mapping):
        return point.get("time")
    return getattr(point, "time", None)

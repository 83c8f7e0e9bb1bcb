"""Catalogue of known solar and lunar eclipses."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from ..utils.time import to_datetime


@dataclass(frozen=True)
class Eclipse:
    """A catalogued eclipse at its greatest phase."""
    type: str               # solar_eclipse or lunar_eclipse
    date: datetime
    title: str
    magnitude: float
    duration: int           # seconds of the central or umbral phase
    visibility: str


def _utc(year, month, day, hour, minute):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


KNOWN_ECLIPSES = (
    Eclipse("lunar_eclipse", _utc(2024, 3, 25, 7, 12), "Penumbral Lunar Eclipse", 0.96, 270,
            "Americas, Europe, Africa"),
    Eclipse("solar_eclipse", _utc(2024, 4, 8, 18, 17), "Total Solar Eclipse", 1.0, 268,
            "North America"),
    Eclipse("lunar_eclipse", _utc(2024, 9, 18, 2, 44), "Partial Lunar Eclipse", 0.08, 63,
            "Americas, Europe, Africa"),
    Eclipse("solar_eclipse", _utc(2024, 10, 2, 18, 45), "Annular Solar Eclipse", 0.93, 444,
            "South America, Pacific"),
    Eclipse("lunar_eclipse", _utc(2025, 3, 14, 6, 58), "Total Lunar Eclipse", 1.18, 225,
            "Pacific, Americas, Western Europe"),
    Eclipse("solar_eclipse", _utc(2025, 3, 29, 10, 47), "Partial Solar Eclipse", 0.94, 180,
            "Atlantic, Europe, Asia, Africa"),
    Eclipse("lunar_eclipse", _utc(2025, 9, 7, 18, 11), "Total Lunar Eclipse", 1.36, 207,
            "Europe, Africa, Asia, Australia"),
    Eclipse("solar_eclipse", _utc(2025, 9, 21, 19, 43), "Partial Solar Eclipse", 0.86, 160,
            "Pacific, New Zealand"),
)


def eclipses_between(start_date: Any, end_date: Any, kind: Optional[str] = None) -> list[Eclipse]:
    """Catalogued eclipses inside the closed range, optionally of one kind."""
    start = to_datetime(start_date)
    end = to_datetime(end_date)
    return [
        e for e in KNOWN_ECLIPSES
        if start <= e.date <= end and (kind is None or e.type == kind)
    ]

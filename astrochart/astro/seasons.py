"""
Equinoxes and solstices from Meeus' mean season polynomials (chapter 27).

Only the mean JDE0 terms are evaluated; results are within about an hour
of the true instants for years near 2000, which is plenty for chart markers.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..utils.time import to_datetime
from .julian import from_julian_day

# JDE0 = c0 + c1*Y + c2*Y^2 + c3*Y^3 + c4*Y^4 with Y = (year - 2000) / 1000
SEASON_COEFFICIENTS = {
    "spring_equinox": (2451623.80984, 365242.37404, 0.05169, -0.00411, -0.00057),
    "summer_solstice": (2451716.56767, 365241.62603, 0.00325, 0.00888, -0.00030),
    "autumn_equinox": (2451810.21715, 365242.01767, -0.11575, 0.00337, 0.00078),
    "winter_solstice": (2451900.05952, 365242.74049, -0.06223, -0.00823, 0.00032),
}

SEASON_TITLES = {
    "spring_equinox": ("Spring Equinox", "Spring"),
    "summer_solstice": ("Summer Solstice", "Summer"),
    "autumn_equinox": ("Autumn Equinox", "Autumn"),
    "winter_solstice": ("Winter Solstice", "Winter"),
}


@dataclass(frozen=True)
class SeasonalEvent:
    """An equinox or solstice."""
    type: str
    date: datetime
    title: str
    season: str

    @property
    def description(self) -> str:
        return f"{self.title} {self.date.year}"


def season_julian_day(year: int, season: str) -> float:
    """Mean Julian ephemeris day of a season start."""
    try:
        c0, c1, c2, c3, c4 = SEASON_COEFFICIENTS[season]
    except KeyError:
        raise ValueError(f"Unknown season: {season!r}") from None

    y = (year - 2000) / 1000
    return c0 + c1 * y + c2 * y ** 2 + c3 * y ** 3 + c4 * y ** 4


def calculate_seasonal_events(year: int) -> list[SeasonalEvent]:
    """The four season starts of a year in calendar order."""
    events = []
    for season_type in SEASON_COEFFICIENTS:
        title, season = SEASON_TITLES[season_type]
        events.append(SeasonalEvent(
            type=season_type,
            date=from_julian_day(season_julian_day(year, season_type)),
            title=title,
            season=season,
        ))
    return events


def seasonal_events_between(start_date: Any, end_date: Any) -> list[SeasonalEvent]:
    """Season starts falling inside the closed date range."""
    start = to_datetime(start_date)
    end = to_datetime(end_date)

    events = []
    for year in range(start.year, end.year + 1):
        events.extend(e for e in calculate_seasonal_events(year) if start <= e.date <= end)
    return events

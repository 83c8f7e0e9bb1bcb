"""Local astronomical event source built on the phase, season and eclipse calculators."""

from datetime import timedelta
from typing import Any, Optional

from ..astro.eclipses import eclipses_between
from ..astro.phases import (
    PRINCIPAL_PHASES,
    SignificantPhase,
    find_next_significant_phases,
    iter_phase_instants,
)
from ..astro.seasons import seasonal_events_between
from ..config.defaults import PhaseParams
from ..config.loader import params_from_dict
from ..data.models import TimeRange
from ..utils.time import timestamp_to_datetime, to_datetime
from .base import BaseEventSource

PHASE_TITLES = {
    "new_moon": "New Moon",
    "first_quarter": "First Quarter",
    "full_moon": "Full Moon",
    "last_quarter": "Last Quarter",
}


class AstroEventSource(BaseEventSource):
    """
    Computes lunar phases, season starts and catalogued eclipses for a range.

    Records are shaped like the ones the astronomy API returns, so they go
    through the same normalizer as network data.
    The lunar model (synodic month, reference new moon, detector step and
    count) comes from ``PhaseParams``.
    """

    def __init__(
        self,
        include_phases: bool = True,
        include_quarters: bool = True,
        include_seasons: bool = True,
        include_eclipses: bool = True,
        phase_params: Optional[PhaseParams] = None,
        name: str = "astro"
    ):
        super().__init__(name)
        self.phase_params = phase_params or PhaseParams()
        self.reference_new_moon = to_datetime(self.phase_params.reference_new_moon)
        self.include_phases = include_phases
        self.include_quarters = include_quarters
        self.include_seasons = include_seasons
        self.include_eclipses = include_eclipses

        if include_quarters:
            self.phases = PRINCIPAL_PHASES
        else:
            self.phases = tuple(p for p in PRINCIPAL_PHASES if p[1] in ("new_moon", "full_moon"))

    @classmethod
    def from_config(cls, config: dict[str, Any], **kwargs: Any) -> "AstroEventSource":
        """Build a source using the ``phases`` section of a merged config."""
        return cls(phase_params=params_from_dict(PhaseParams, config.get("phases")), **kwargs)

    def upcoming_phases(self, from_date: Any, count: Optional[int] = None) -> list[SignificantPhase]:
        """
        New and full moons after a date, found with the configured detector.

        Args:
            from_date: Date to start searching after
            count: Number of phases; defaults to ``default_count``
        """
        return find_next_significant_phases(
            from_date,
            count=self.phase_params.default_count if count is None else count,
            step=timedelta(days=self.phase_params.step_days),
            synodic_month=self.phase_params.synodic_month,
            reference=self.reference_new_moon
        )

    async def _fetch(self, time_range: TimeRange) -> list[dict[str, Any]]:
        start = timestamp_to_datetime(time_range.start)
        end = timestamp_to_datetime(time_range.end)
        records: list[dict[str, Any]] = []

        if self.include_phases:
            for instant in iter_phase_instants(
                start,
                end,
                self.phases,
                synodic_month=self.phase_params.synodic_month,
                reference=self.reference_new_moon
            ):
                records.append({
                    "time": instant.date.timestamp(),
                    "type": instant.subtype,
                    "title": PHASE_TITLES[instant.subtype],
                    "phaseName": PHASE_TITLES[instant.subtype],
                })

        if self.include_seasons:
            for season in seasonal_events_between(start, end):
                records.append({
                    "date": season.date.isoformat(),
                    "type": "seasonal",
                    "subtype": season.type,
                    "title": season.title,
                    "description": season.description,
                })

        if self.include_eclipses:
            for eclipse in eclipses_between(start, end):
                records.append({
                    "date": eclipse.date.isoformat(),
                    "type": eclipse.type,
                    "title": eclipse.title,
                    "description": f"{eclipse.title}, visible from {eclipse.visibility}",
                    "important": True,
                })

        self.logger.debug(
            "Computed astronomical events",
            range_start=time_range.start,
            range_end=time_range.end,
            records=len(records)
        )
        return records

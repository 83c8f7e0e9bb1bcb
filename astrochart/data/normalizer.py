"""
Event normalization pipeline for converting raw event records to canonical events.

Raw records come from the network or from the local astronomy calculators
and disagree on field names: timestamps may be unix seconds, milliseconds
or ISO strings, and the event family may be spelled as a generic type
("moon") or as the specific occurrence ("full_moon"). The EventNormalizer
maps all of them onto the Event model.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional

import structlog

from ..errors import DataQualityError, MalformedDataError, MissingDataError
from ..utils.time import to_timestamp
from .models import Event, EventType

logger = structlog.get_logger(__name__)

LUNAR_SUBTYPES = frozenset({
    "new_moon",
    "first_quarter",
    "full_moon",
    "last_quarter",
    "lunar_eclipse",
})
SOLAR_SUBTYPES = frozenset({
    "spring_equinox",
    "summer_solstice",
    "autumn_equinox",
    "winter_solstice",
    "solar_eclipse",
})
IMPORTANT_SUBTYPES = frozenset({
    "new_moon",
    "full_moon",
    "lunar_eclipse",
    "solar_eclipse",
})

# Generic raw type spellings and the family they belong to
RAW_TYPE_ALIASES = {
    "moon": EventType.LUNAR,
    "moon_phase": EventType.LUNAR,
    "lunar": EventType.LUNAR,
    "seasonal": EventType.SOLAR,
    "solar": EventType.SOLAR,
    "economic": EventType.ECONOMIC,
    "announcement": EventType.ECONOMIC,
    "custom": EventType.CUSTOM,
}

DEFAULT_SUBTYPES = {
    EventType.LUNAR: "moon_phase",
    EventType.SOLAR: "seasonal",
    EventType.ECONOMIC: "announcement",
    EventType.CUSTOM: "custom",
}

TIMESTAMP_FIELDS = ("timestamp", "time")
DATE_FIELDS = ("date", "datetime")
TITLE_FIELDS = ("title", "phaseName", "name")


def _classify(raw_type: Optional[str], raw_subtype: Optional[str]) -> tuple[EventType, str]:
    """Resolve the event family and subtype from the raw spelling."""
    raw_type = (raw_type or "").strip().lower()
    subtype = (raw_subtype or "").strip().lower()

    if raw_type in RAW_TYPE_ALIASES:
        event_type = RAW_TYPE_ALIASES[raw_type]
    elif raw_type in LUNAR_SUBTYPES or raw_type.endswith("_moon") or raw_type.endswith("_quarter"):
        event_type = EventType.LUNAR
        subtype = subtype or raw_type
    elif raw_type in SOLAR_SUBTYPES or raw_type.endswith(("_equinox", "_solstice")):
        event_type = EventType.SOLAR
        subtype = subtype or raw_type
    elif not raw_type and subtype in LUNAR_SUBTYPES:
        event_type = EventType.LUNAR
    elif not raw_type and subtype in SOLAR_SUBTYPES:
        event_type = EventType.SOLAR
    else:
        event_type = EventType.CUSTOM
        subtype = subtype or raw_type

    return event_type, subtype or DEFAULT_SUBTYPES[event_type]


class EventNormalizer:
    """
    Converts raw event records into canonical Event objects.

    Every Event produced carries an integer timestamp, even if the raw record
    only had an ISO date string. Records whose date cannot be parsed raise
    instead of producing a bogus timestamp.
    """

    def __init__(self, default_source: str = "unknown"):
        self.default_source = default_source

    def extract_timestamp(self, raw: Mapping[str, Any]) -> int:
        """Find and convert the record's instant to unix seconds."""
        for field in TIMESTAMP_FIELDS:
            value = raw.get(field)
            if value is not None:
                return to_timestamp(value)

        for field in DATE_FIELDS:
            value = raw.get(field)
            if value is not None:
                return to_timestamp(value)

        raise MissingDataError(
            "Event record has no timestamp or date",
            field="timestamp",
            context={"keys": sorted(raw.keys())}
        )

    def normalize_event(self, raw: Mapping[str, Any], source: Optional[str] = None) -> Event:
        """
        Normalize a single raw record.

        Args:
            raw: Raw event record
            source: Fallback producer name for records without their own ``source``

        Returns:
            Canonical Event

        Raises:
            MalformedDataError: If the record is not a mapping
            MissingDataError: If the record carries no date at all
            TemporalDataError: If the date cannot be parsed
        """
        if not isinstance(raw, Mapping):
            raise MalformedDataError(
                f"Event record must be a mapping, got {type(raw).__name__}",
                raw_data=str(raw)[:100]
            )

        timestamp = self.extract_timestamp(raw)
        event_type, subtype = _classify(raw.get("type"), raw.get("subtype"))

        title = next((str(raw[f]) for f in TITLE_FIELDS if raw.get(f)), None)
        if title is None:
            title = subtype.replace("_", " ").title()

        important = raw.get("important")
        if important is None:
            important = subtype in IMPORTANT_SUBTYPES

        event_id = raw.get("id")
        if not event_id:
            event_id = f"{event_type.value}_{timestamp}_{subtype}"

        return Event(
            id=str(event_id),
            timestamp=timestamp,
            type=event_type,
            subtype=subtype,
            title=title,
            important=bool(important),
            source=raw.get("source") or source or self.default_source,
            description=str(raw.get("description") or ""),
        )

    def normalize_events(
        self,
        raw_events: Iterable[Mapping[str, Any]],
        source: Optional[str] = None
    ) -> list[Event]:
        """Normalize a batch, skipping records with data quality problems."""
        events = []
        skipped = 0

        for raw in raw_events:
            try:
                events.append(self.normalize_event(raw, source))
            except DataQualityError as e:
                skipped += 1
                logger.warning(
                    "Skipping malformed event record",
                    error=str(e),
                    error_type=type(e).__name__,
                    source=source,
                    context=e.context
                )

        if skipped:
            logger.info(
                "Event batch normalized with skipped records",
                source=source,
                normalized=len(events),
                skipped=skipped
            )

        return events

"""Scheduled economic announcements read from a YAML calendar."""

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..data.models import TimeRange
from ..errors import DataQualityError, MalformedDataError
from ..utils.time import to_timestamp
from .base import BaseEventSource


class CalendarEventSource(BaseEventSource):
    """
    Serves economic calendar entries falling inside a requested range.

    The calendar is either passed in as a list of records or loaded from a
    YAML file with a top-level ``events`` list. Each entry needs a ``date``;
    ``type`` defaults to ``economic``. Entries whose date cannot be read are
    logged and skipped so one bad line does not hide the rest of the range.
    """

    def __init__(
        self,
        events: Optional[Sequence[dict[str, Any]]] = None,
        path: Optional[Union[str, Path]] = None,
        name: str = "economic_calendar"
    ):
        super().__init__(name)
        if events is None and path is None:
            raise ValueError("CalendarEventSource needs events or a calendar path")
        self.path = Path(path) if path is not None else None
        self._events = list(events) if events is not None else None

    def _load(self) -> list[dict[str, Any]]:
        if self._events is not None:
            return self._events

        with open(self.path) as f:
            content = yaml.safe_load(f) or {}

        if not isinstance(content, dict) or not isinstance(content.get("events", []), list):
            raise MalformedDataError(
                f"Calendar file {self.path} must contain an 'events' list",
                raw_data=str(content)[:100],
                expected_format="events: [...]"
            )

        self._events = content.get("events", [])
        self.logger.info("Loaded economic calendar", path=str(self.path), events=len(self._events))
        return self._events

    async def _fetch(self, time_range: TimeRange) -> list[dict[str, Any]]:
        records = []
        skipped = 0

        for entry in self._load():
            if not isinstance(entry, dict):
                skipped += 1
                self.logger.warning("Skipping calendar entry that is not a mapping", entry=str(entry)[:100])
                continue
            when = entry.get("timestamp", entry.get("date"))
            if when is None:
                continue
            try:
                timestamp = to_timestamp(when)
            except DataQualityError as e:
                skipped += 1
                self.logger.warning(
                    "Skipping calendar entry with unusable date",
                    error=str(e),
                    error_type=type(e).__name__,
                    subtype=entry.get("subtype"),
                    date=str(when)
                )
                continue
            if time_range.contains(timestamp):
                records.append({"type": "economic", **entry})

        if skipped:
            self.logger.info("Calendar entries skipped", skipped=skipped, returned=len(records))
        return records

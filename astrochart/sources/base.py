"""Base classes for raw event sources."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import structlog

from ..data.models import TimeRange
from ..errors import EventFetchError


class BaseEventSource(ABC):
    """Base class for collaborators that load raw event records for a range."""

    def __init__(self, name: str):
        self.name = name
        self.logger = structlog.get_logger(f"astrochart.source.{name}")
        self._fetch_count = 0
        self._error_count = 0

    @abstractmethod
    async def _fetch(self, time_range: TimeRange) -> list[dict[str, Any]]:
        """Load raw records for the range."""

    async def fetch_events(self, time_range: TimeRange) -> list[dict[str, Any]]:
        """
        Load raw event records whose instant falls inside the range.

        Args:
            time_range: Closed range of unix seconds

        Returns:
            Raw event records

        Raises:
            EventFetchError: If loading failed
        """
        try:
            records = await self._fetch(time_range)
        except EventFetchError:
            self._error_count += 1
            raise
        except Exception as e:
            self._error_count += 1
            raise EventFetchError(
                f"{self.name} failed to load events: {e}",
                time_range=time_range,
                source=self.name
            ) from e

        self._fetch_count += 1
        return records

    def get_stats(self) -> dict[str, Any]:
        """Get fetch statistics."""
        return {
            "name": self.name,
            "fetch_count": self._fetch_count,
            "error_count": self._error_count,
        }


class CompositeEventSource(BaseEventSource):
    """
    Fans a fetch out to several sources concurrently and concatenates results.

    A failure in any member fails the whole fetch, so the cache keeps the
    range missing and retries it as a unit.
    """

    def __init__(self, sources: Sequence[BaseEventSource], name: str = "composite"):
        super().__init__(name)
        self.sources = list(sources)

    async def _fetch(self, time_range: TimeRange) -> list[dict[str, Any]]:
        results = await asyncio.gather(*(s.fetch_events(time_range) for s in self.sources))
        records = []
        for source, batch in zip(self.sources, results):
            for record in batch:
                records.append({"source": source.name, **record})
        return records

"""
Windowed event cache kept in step with the chart's data and viewport.

The cache answers one question for the chart: which events belong to the
part of the timeline the user can currently reach? That part is the union
of the time extent of the candles loaded so far and the visible window
inflated by a safety buffer. Ranges that are not yet covered are fetched
from the event source, normalized and stored; ranges far from the current
window are evicted periodically.
"""

import asyncio
import math
import time
from collections.abc import Callable, Iterable
from typing import Any, Optional, Protocol

from ..config.defaults import CacheParams
from ..data.event_utils import deduplicate_events, sort_events_by_timestamp
from ..data.models import CacheEntry, Event, TimeRange, point_time
from ..data.normalizer import EventNormalizer
from ..errors import EventFetchError
from ..logging.config import get_cache_logger, log_cache_sync

logger = get_cache_logger(__name__)


class EventSource(Protocol):
    """Anything that can load raw event records for a time range."""

    async def fetch_events(self, time_range: TimeRange) -> list[dict[str, Any]]:
        ...


class RangeCache:
    """
    Hybrid viewport and data-extent event cache.

    Owns the loaded range bookkeeping and the cache entries exclusively; both
    are replaced wholesale on mutation so readers never observe a partially
    updated structure. A generation counter bumped by ``clear`` and
    ``dispose`` lets loads that finish afterwards discard their results.
    """

    def __init__(
        self,
        source: EventSource,
        params: Optional[CacheParams] = None,
        normalizer: Optional[EventNormalizer] = None,
        clock: Callable[[], float] = time.monotonic,
        source_name: str = "astro"
    ) -> None:
        self.source = source
        self.params = params or CacheParams()
        self.normalizer = normalizer or EventNormalizer(default_source=source_name)
        self.source_name = source_name
        self._clock = clock

        self._entries: dict[TimeRange, CacheEntry] = {}
        self._loaded_ranges: tuple[TimeRange, ...] = ()
        self._last_cleanup: Optional[float] = None
        self._generation = 0
        self._disposed = False

        self._fetch_count = 0
        self._failed_fetch_count = 0

        logger.info(
            "Range cache initialized",
            buffer_multiplier=self.params.buffer_multiplier,
            max_cache_span=self.params.max_cache_span,
            cleanup_interval=self.params.cleanup_interval
        )

    @property
    def loaded_ranges(self) -> tuple[TimeRange, ...]:
        """Snapshot of the ranges currently backed by cache entries."""
        return self._loaded_ranges

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def sync(
        self,
        viewport: Optional[Any],
        data_points: Iterable[Any],
        direction: Optional[str] = None
    ) -> list[Event]:
        """
        Make sure events for the reachable timeline are cached and return them.

        Args:
            viewport: Visible time range (TimeRange or ``{"from", "to"}``), or None
            data_points: Candles loaded so far, each with a ``time``
            direction: Infinite scroll direction that triggered the call, if any

        Returns:
            Deduplicated events inside the target range, ascending by timestamp
        """
        if self._disposed:
            logger.debug("Sync requested on disposed cache")
            return []

        data_range = self.calculate_data_range(data_points)
        viewport_range = self.calculate_viewport_range(viewport)
        target_range = self.merge_ranges(data_range, viewport_range)

        if target_range is None:
            logger.warning("Cannot determine target range", direction=direction)
            return []

        missing_ranges = self.calculate_missing_ranges(target_range)
        if missing_ranges:
            logger.debug(
                "Loading missing ranges",
                count=len(missing_ranges),
                direction=direction
            )
            await asyncio.gather(*(self._load_and_cache_range(r) for r in missing_ranges))

        if self._disposed:
            return []

        self.perform_periodic_cleanup(target_range)

        events = self.get_events(target_range.start, target_range.end)

        log_cache_sync(
            logger,
            target_start=target_range.start,
            target_end=target_range.end,
            missing_ranges=len(missing_ranges),
            returned_events=len(events),
            context={"direction": direction} if direction else None
        )
        return events

    def calculate_data_range(self, data_points: Iterable[Any]) -> Optional[TimeRange]:
        """Time extent of the loaded candles, None when there are none."""
        times = [t for t in (point_time(p) for p in data_points) if t is not None]
        if not times:
            return None
        return TimeRange(math.floor(min(times)), math.ceil(max(times)))

    def calculate_viewport_range(self, viewport: Optional[Any]) -> Optional[TimeRange]:
        """Visible range inflated symmetrically by the buffer multiplier."""
        if viewport is None:
            return None

        visible = TimeRange.coerce(viewport)
        buffer_size = visible.span * (self.params.buffer_multiplier - 1) / 2

        return TimeRange(
            math.floor(visible.start - buffer_size),
            math.ceil(visible.end + buffer_size)
        )

    @staticmethod
    def merge_ranges(
        data_range: Optional[TimeRange],
        viewport_range: Optional[TimeRange]
    ) -> Optional[TimeRange]:
        """Union of whichever ranges are available."""
        if data_range is None:
            return viewport_range
        if viewport_range is None:
            return data_range
        return data_range.union(viewport_range)

    def is_covered(self, target: TimeRange) -> bool:
        """True if a single loaded range fully contains the target."""
        return any(r.covers(target) for r in self._loaded_ranges)

    def calculate_missing_ranges(self, target: TimeRange) -> list[TimeRange]:
        """
        Ranges that still have to be fetched to cover the target.

        Partial overlap is not split: unless one loaded range contains the
        whole target, the whole target is reported missing.
        """
        if self.is_covered(target):
            return []
        return [target]

    async def _load_and_cache_range(self, time_range: TimeRange) -> None:
        """Fetch, normalize and store one range; failures leave it missing."""
        generation = self._generation

        try:
            raw_events = await self.source.fetch_events(time_range)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failed_fetch_count += 1
            error = e if isinstance(e, EventFetchError) else EventFetchError(
                str(e), time_range=time_range, source=self.source_name
            )
            logger.warning(
                "Event fetch failed, range left missing",
                range_start=time_range.start,
                range_end=time_range.end,
                source=error.source,
                error=str(error),
                error_type=type(e).__name__
            )
            return

        if self._disposed or generation != self._generation:
            logger.debug(
                "Discarding events loaded for a stale cache generation",
                range_start=time_range.start,
                range_end=time_range.end
            )
            return

        events = self.normalizer.normalize_events(raw_events, self.source_name)
        entry = CacheEntry(
            time_range=time_range,
            events=tuple(events),
            loaded_at=self._clock()
        )

        self._entries = {**self._entries, time_range: entry}
        if time_range not in self._loaded_ranges:
            self._loaded_ranges = self._loaded_ranges + (time_range,)
        self._fetch_count += 1

        logger.debug(
            "Cached event range",
            range_start=time_range.start,
            range_end=time_range.end,
            events=len(events)
        )

    def get_events(self, start: int, end: int) -> list[Event]:
        """Cached events with start <= timestamp <= end, deduplicated and sorted."""
        matching = (
            event
            for entry in self._entries.values()
            for event in entry.events
            if start <= event.timestamp <= end
        )
        return sort_events_by_timestamp(deduplicate_events(matching))

    def perform_periodic_cleanup(self, current_range: TimeRange, force: bool = False) -> int:
        """
        Evict ranges far from the current range, at most once per interval.

        A range is dropped when it lies entirely outside
        ``[current.start - max_cache_span, current.end + max_cache_span]``.

        Returns:
            Number of ranges evicted
        """
        now = self._clock()
        if (
            not force
            and self._last_cleanup is not None
            and now - self._last_cleanup < self.params.cleanup_interval
        ):
            return 0

        self._last_cleanup = now
        span = self.params.max_cache_span
        keep_start = current_range.start - span
        keep_end = current_range.end + span

        kept = tuple(r for r in self._loaded_ranges if not (r.end < keep_start or r.start > keep_end))
        evicted = [r for r in self._loaded_ranges if r not in kept]

        if evicted:
            self._entries = {r: e for r, e in self._entries.items() if r in kept}
            self._loaded_ranges = kept
            for r in evicted:
                logger.debug("Evicted cached range", range_start=r.start, range_end=r.end)

        logger.debug("Cache cleanup complete", evicted=len(evicted), remaining=len(kept))
        return len(evicted)

    def clear(self) -> None:
        """Drop every cached range; loads still in flight are discarded."""
        self._generation += 1
        self._entries = {}
        self._loaded_ranges = ()
        self._last_cleanup = None
        logger.info("Range cache cleared")

    def dispose(self) -> None:
        """Clear the cache and refuse further work."""
        if self._disposed:
            return
        self.clear()
        self._disposed = True
        logger.info("Range cache disposed")

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        return {
            "ranges": len(self._loaded_ranges),
            "events": sum(len(e.events) for e in self._entries.values()),
            "fetch_count": self._fetch_count,
            "failed_fetch_count": self._failed_fetch_count,
            "generation": self._generation,
            "disposed": self._disposed,
        }

"""
Event overlay engine wiring configuration, the range cache and the plugin manager.

The engine is what a chart view owns: it follows the chart host's visible
range notifications, keeps the range cache in step with the loaded candles
and hands every fresh event set to the plugin manager for rendering. Results
of overlapping refreshes follow "latest wins": a refresh that completes
after a newer one was started is dropped.
"""

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from pathlib import Path
from typing import Any, Optional, Union

from .cache.range_cache import EventSource, RangeCache
from .config.defaults import CacheParams
from .config.loader import ConfigLoader, deep_merge, params_from_dict
from .config.validation import ConfigValidator
from .data.models import Event, TimeRange
from .errors import ConfigurationError, ManagerDestroyedError, PluginError
from .logging.config import get_logger
from .plugins.base import ChartHost, EventPlugin, PluginContext
from .plugins.economic import EconomicEventsPlugin
from .plugins.lunar import LunarEventsPlugin
from .plugins.manager import PluginManager
from .plugins.scheduler import AsyncioFrameScheduler, FrameScheduler
from .utils.time import timeframe_to_seconds

logger = get_logger(__name__)

LEFT = "left"
RIGHT = "right"

NeedMoreDataHook = Callable[[str], Union[None, Awaitable[None]]]


def _validated(config: dict[str, Any]) -> dict[str, Any]:
    errors = ConfigValidator.validate_config(config)
    if errors:
        raise ConfigurationError(
            "Invalid overlay configuration: "
            + "; ".join(f"{e.field}: {e.message}" for e in errors),
            errors=errors
        )
    return config


class EventOverlayEngine:
    """
    Composes ConfigLoader, RangeCache and PluginManager for one chart.

    Args:
        chart: Chart host adapter
        source: Raw event source for the range cache
        config_dir: Directory holding ``overlay.yaml``; repo ``config/`` by default
        overrides: Caller configuration overrides
        scheduler: Frame scheduler for render passes
        on_need_more_data: Called with ``"left"`` or ``"right"`` when the
            visible bars approach an end of the loaded series
        clock: Monotonic clock for cache eviction

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """

    def __init__(
        self,
        chart: ChartHost,
        source: EventSource,
        config_dir: Optional[Path] = None,
        overrides: Optional[dict[str, Any]] = None,
        scheduler: Optional[FrameScheduler] = None,
        on_need_more_data: Optional[NeedMoreDataHook] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        loader = ConfigLoader.create(config_dir)
        self.config = _validated(loader.merge_config(overrides))

        self.chart = chart
        self.on_need_more_data = on_need_more_data
        self.cache = RangeCache(
            source,
            params=params_from_dict(CacheParams, self.config["cache"]),
            clock=clock
        )
        self.context = PluginContext(
            chart=chart,
            timeframe=self.config["chart"]["initial_timeframe"],
            config=self.config
        )
        self.plugins = PluginManager(
            self.context,
            scheduler or AsyncioFrameScheduler(self.config["render"]["frames_per_second"])
        )

        self._data_points: tuple[Any, ...] = ()
        self._viewport: Optional[TimeRange] = None
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()
        self._subscribed = False
        self._alive = True

        logger.info(
            "Overlay engine created",
            timeframe=self.context.timeframe,
            config_dir=str(loader.config_dir)
        )

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def viewport(self) -> Optional[TimeRange]:
        return self._viewport

    async def start(self, plugins: Optional[Sequence[EventPlugin]] = None) -> list[str]:
        """
        Register plugins and subscribe to the chart's range notifications.

        A plugin whose init fails is left out; the others still start.

        Returns:
            Ids of the plugins that were registered
        """
        if not self._alive:
            raise ManagerDestroyedError("Overlay engine disposed", operation="start")

        if plugins is None:
            plugins = [LunarEventsPlugin(), EconomicEventsPlugin()]

        started = []
        for plugin in plugins:
            try:
                await self.plugins.register(plugin)
                started.append(plugin.id)
            except PluginError as e:
                logger.error("Plugin disabled after failed init", plugin_id=e.plugin_id, error=str(e))

        if not self._subscribed and self._alive:
            self.chart.subscribe_visible_range_change(self.handle_visible_range_change)
            self.chart.subscribe_visible_logical_range_change(self.handle_visible_logical_range_change)
            self._subscribed = True

        logger.info("Overlay engine started", plugins=started)
        return started

    def set_data(self, data_points: Iterable[Any]) -> None:
        """Replace the loaded candle series."""
        self._data_points = tuple(data_points)

    def set_viewport(self, visible_range: Any) -> None:
        self._viewport = TimeRange.coerce(visible_range) if visible_range is not None else None

    async def load_more(self, data_points: Iterable[Any], direction: str) -> Optional[list[Event]]:
        """Accept an extended candle series after infinite scroll and refresh."""
        self.set_data(data_points)
        return await self.refresh(direction)

    async def refresh(self, direction: Optional[str] = None) -> Optional[list[Event]]:
        """
        Sync the cache with the current data and viewport and render the result.

        Returns:
            The rendered events, or None if the engine was disposed or a newer
            refresh started while this one was loading
        """
        if not self._alive:
            return None

        self._generation += 1
        generation = self._generation

        events = await self.cache.sync(self._viewport, self._data_points, direction)

        if not self._alive or generation != self._generation:
            logger.debug("Dropping superseded refresh", generation=generation, latest=self._generation)
            return None

        self.plugins.render_events(events)
        return events

    def handle_visible_range_change(self, visible_range: Any) -> None:
        """Chart host callback: remember the viewport and refresh in the background."""
        if not self._alive or visible_range is None:
            return

        self.set_viewport(visible_range)
        self._spawn(self.refresh())

    def handle_visible_logical_range_change(self, logical_range: Any) -> Optional[str]:
        """
        Chart host callback: request more candles near either end of the series.

        Returns:
            The direction more data was requested for, if any
        """
        if not self._alive or logical_range is None or self.on_need_more_data is None:
            return None
        if not self._data_points:
            return None

        bars = TimeRange.coerce(logical_range)
        threshold = self.config["chart"]["load_more_threshold"]

        if bars.start < threshold:
            direction = LEFT
        elif bars.end > len(self._data_points) - 1 - threshold:
            direction = RIGHT
        else:
            return None

        logger.debug("Requesting more data", direction=direction, bars_from=bars.start, bars_to=bars.end)
        try:
            result = self.on_need_more_data(direction)
        except Exception as e:
            logger.error("Load more hook failed", direction=direction, error=str(e))
            return None

        if inspect.isawaitable(result):
            self._spawn(result)
        return direction

    def set_timeframe(self, timeframe: str) -> None:
        """Switch the chart timeframe; raises ValueError for unknown labels."""
        timeframe_to_seconds(timeframe)
        if not self._alive:
            return
        self.plugins.on_timeframe_change(timeframe)
        logger.info("Timeframe changed", timeframe=timeframe)

    def update_config(self, config: dict[str, Any]) -> None:
        """Apply a partial configuration change to the cache and the plugins."""
        _validated(config)
        if not self._alive:
            return

        self.config = deep_merge(self.config, config)
        if "cache" in config:
            self.cache.params = params_from_dict(CacheParams, self.config["cache"])
        self.plugins.on_config_change(config)
        logger.info("Configuration updated", sections=sorted(config))

    def get_stats(self) -> dict[str, Any]:
        """Get engine statistics."""
        return {
            "alive": self._alive,
            "timeframe": self.context.timeframe,
            "data_points": len(self._data_points),
            "viewport": (self._viewport.start, self._viewport.end) if self._viewport else None,
            "pending_tasks": len(self._tasks),
            "cache": self.cache.get_stats(),
            "plugins": self.plugins.get_stats(),
        }

    def dispose(self) -> None:
        """Tear down once: cancel pending work, unsubscribe, clean up plugins and cache."""
        if not self._alive:
            return
        self._alive = False

        for task in tuple(self._tasks):
            task.cancel()
        self._tasks = set()

        if self._subscribed:
            self.chart.unsubscribe_visible_range_change(self.handle_visible_range_change)
            self.chart.unsubscribe_visible_logical_range_change(self.handle_visible_logical_range_change)
            self._subscribed = False

        self.plugins.cleanup()
        self.cache.dispose()
        logger.info("Overlay engine disposed")

    def _spawn(self, awaitable: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Background overlay task failed",
                error=str(error),
                error_type=type(error).__name__
            )

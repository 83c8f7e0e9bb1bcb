"""Lunar phase overlay: new, full and quarter moon markers."""

from collections.abc import Sequence
from typing import Any, Optional

from ..config.defaults import LunarPluginParams, MarkerStyle
from ..config.loader import config_to_dict, deep_merge, params_from_dict
from ..data.models import Event, EventType, SeriesMarker
from ..logging.config import get_plugin_logger
from ..utils.time import timeframe_to_seconds
from .base import EventPlugin, MarkerOverlay, MarkerSurface, PluginContext

logger = get_plugin_logger(__name__)

CONFIG_SECTION = "lunar"


def apply_lunar_overrides(params: LunarPluginParams, overrides: dict[str, Any]) -> LunarPluginParams:
    """Return new params with a (possibly partial) ``lunar`` config section applied."""
    merged = deep_merge(config_to_dict(params), overrides)
    styles = {
        subtype: params_from_dict(MarkerStyle, style)
        for subtype, style in (merged.pop("styles", None) or {}).items()
    }
    return params_from_dict(LunarPluginParams, {**merged, "styles": styles})


class LunarEventsOverlay(MarkerOverlay):
    """Live lunar overlay bound to one marker surface."""

    plugin_id = "lunar-events"

    def __init__(self, context: PluginContext, surface: MarkerSurface, params: LunarPluginParams):
        super().__init__(context, surface)
        self.params = params

    @property
    def visible_subtypes(self) -> frozenset[str]:
        subtypes = set()
        if self.params.show_full_moon:
            subtypes.add("full_moon")
        if self.params.show_new_moon:
            subtypes.add("new_moon")
        if self.params.show_quarter_moon:
            subtypes.update(("first_quarter", "last_quarter"))
        return frozenset(subtypes)

    def is_hidden(self) -> bool:
        """Markers are suppressed entirely on timeframes shorter than the threshold."""
        try:
            return (
                timeframe_to_seconds(self.timeframe)
                < timeframe_to_seconds(self.params.short_timeframe_threshold)
            )
        except (TypeError, ValueError):
            logger.warning(
                "Unknown timeframe, lunar markers left visible",
                timeframe=self.timeframe,
                threshold=self.params.short_timeframe_threshold
            )
            return False

    def build_markers(self, events: Sequence[Event]) -> list[SeriesMarker]:
        subtypes = self.visible_subtypes
        markers = []

        for event in events:
            if event.type != EventType.LUNAR or event.subtype not in subtypes:
                continue
            style = self.params.styles.get(event.subtype)
            if style is None:
                continue
            markers.append(SeriesMarker(
                time=event.timestamp,
                position=style.position,
                color=style.color,
                shape=style.shape,
                text=(style.label or event.title) if self.params.show_labels else "",
                size=self.params.marker_size,
            ))

        return markers

    def on_config_change(self, config: dict[str, Any]) -> None:
        section = config.get(CONFIG_SECTION)
        if not section:
            return
        self.params = apply_lunar_overrides(self.params, section)
        if self.is_active():
            self._draw()


class LunarEventsPlugin(EventPlugin):
    """
    Reference overlay for lunar phases.

    Draws full and new moons (and optionally the quarters) with per-subtype
    styling taken from LunarPluginParams. A ``lunar`` section in the plugin
    context config is applied on top of the params given here.
    """

    id = "lunar-events"
    name = "Lunar Events"
    version = "1.0.0"
    interests = frozenset({EventType.LUNAR})

    def __init__(self, params: Optional[LunarPluginParams] = None):
        self.params = params or LunarPluginParams()

    async def init(self, context: PluginContext) -> LunarEventsOverlay:
        params = self.params
        section = context.config.get(CONFIG_SECTION)
        if section:
            params = apply_lunar_overrides(params, section)

        surface = context.chart.add_marker_surface(self.id)
        logger.debug("Lunar overlay surface created", plugin_id=self.id, timeframe=context.timeframe)
        return LunarEventsOverlay(context, surface, params)

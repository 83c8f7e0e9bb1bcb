"""Economic calendar overlay."""

from collections.abc import Sequence
from dataclasses import fields, replace
from typing import Any, Optional

from ..config.defaults import EconomicPluginParams
from ..data.models import Event, EventType, SeriesMarker
from .base import EventPlugin, MarkerOverlay, MarkerSurface, PluginContext

CONFIG_SECTION = "economic"


class EconomicEventsOverlay(MarkerOverlay):
    """Square markers for scheduled announcements, colored by importance."""

    plugin_id = "economic-events"

    def __init__(self, context: PluginContext, surface: MarkerSurface, params: EconomicPluginParams):
        super().__init__(context, surface)
        self.params = params

    def build_markers(self, events: Sequence[Event]) -> list[SeriesMarker]:
        markers = []
        for event in events:
            if event.type != EventType.ECONOMIC:
                continue
            if self.params.important_only and not event.important:
                continue
            markers.append(SeriesMarker(
                time=event.timestamp,
                position=self.params.position,
                color=self.params.important_color if event.important else self.params.regular_color,
                shape=self.params.shape,
                text=event.title,
                size=self.params.marker_size,
            ))
        return markers

    def on_config_change(self, config: dict[str, Any]) -> None:
        section = config.get(CONFIG_SECTION)
        if not section:
            return
        self.params = _with_overrides(self.params, section)
        if self.is_active():
            self._draw()


def _with_overrides(params: EconomicPluginParams, section: dict[str, Any]) -> EconomicPluginParams:
    known = {f.name for f in fields(EconomicPluginParams)}
    return replace(params, **{k: v for k, v in section.items() if k in known})


class EconomicEventsPlugin(EventPlugin):
    id = "economic-events"
    name = "Economic Calendar"
    version = "1.0.0"
    interests = frozenset({EventType.ECONOMIC})

    def __init__(self, params: Optional[EconomicPluginParams] = None):
        self.params = params or EconomicPluginParams()

    async def init(self, context: PluginContext) -> EconomicEventsOverlay:
        params = self.params
        section = context.config.get(CONFIG_SECTION)
        if section:
            params = _with_overrides(params, section)
        surface = context.chart.add_marker_surface(self.id)
        return EconomicEventsOverlay(context, surface, params)

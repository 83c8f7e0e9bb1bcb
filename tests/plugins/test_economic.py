"""Tests for the economic calendar overlay."""

import asyncio

from astrochart.config.defaults import EconomicPluginParams
from astrochart.data.models import Event, EventType
from astrochart.plugins.base import PluginContext
from astrochart.plugins.economic import EconomicEventsPlugin

EVENTS = [
    Event(id="e1", timestamp=200, type=EventType.ECONOMIC, subtype="fomc", title="FOMC", important=True),
    Event(id="e2", timestamp=100, type=EventType.ECONOMIC, subtype="pce", title="Core PCE"),
    Event(id="l1", timestamp=150, type=EventType.LUNAR, subtype="full_moon", title="Full Moon", important=True),
]


def start_overlay(chart, params=None, config=None):
    context = PluginContext(chart=chart, config=config or {})
    return asyncio.run(EconomicEventsPlugin(params).init(context))


class TestEconomicOverlay:
    """Test economic marker generation."""

    def test_markers_colored_by_importance(self, chart):
        """Important announcements use the important color."""
        overlay = start_overlay(chart)
        overlay.render(EVENTS)

        markers = overlay.surface.markers
        assert [(m.time, m.color, m.text) for m in markers] == [
            (100, "#3182CE", "Core PCE"),
            (200, "#E53E3E", "FOMC"),
        ]
        assert {m.shape for m in markers} == {"square"}
        assert {m.position for m in markers} == {"aboveBar"}

    def test_important_only(self, chart):
        """Regular announcements can be filtered out."""
        overlay = start_overlay(chart, EconomicPluginParams(important_only=True))
        overlay.render(EVENTS)
        assert [m.time for m in overlay.markers] == [200]

    def test_config_change(self, chart):
        """An economic config section is applied live."""
        overlay = start_overlay(chart)
        overlay.render(EVENTS)
        overlay.on_config_change({"economic": {"important_only": True, "unknown": 1}})
        assert [m.time for m in overlay.markers] == [200]

    def test_context_config_applied(self, chart):
        """An economic section in the context config overrides the params."""
        overlay = start_overlay(chart, config={"economic": {"shape": "circle"}})
        overlay.render(EVENTS)
        assert {m.shape for m in overlay.markers} == {"circle"}

    def test_not_hidden_on_short_timeframes(self, chart):
        """Announcements stay visible on intraday charts."""
        overlay = start_overlay(chart)
        overlay.on_timeframe_change("5m")
        overlay.render(EVENTS)
        assert len(overlay.markers) == 2
        assert overlay.surface.visible is True

    def test_cleanup(self, chart):
        """Cleanup removes the surface."""
        overlay = start_overlay(chart)
        overlay.cleanup()
        assert chart.removed == [overlay.surface]
        assert not overlay.is_active()

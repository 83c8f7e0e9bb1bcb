"""
End-to-end tests for the overlay engine.

Drives the engine through a fake chart host: visible range changes load
events through the range cache and the next frame draws them on the
lunar and economic marker surfaces.
"""

import asyncio

import pytest

from astrochart.engine import LEFT, RIGHT, EventOverlayEngine
from astrochart.errors import ConfigurationError, ManagerDestroyedError
from astrochart.plugins.base import EventPlugin
from astrochart.plugins.economic import EconomicEventsPlugin
from astrochart.plugins.lunar import LunarEventsPlugin

from conftest import CANDLE_END, CANDLE_START, FakeEventSource

VIEWPORT = {"from": CANDLE_START, "to": CANDLE_END}
# Events inside the inflated viewport [1699136000, 1701728000]
FIRST_QUARTER = 1699200000
CPI = 1700481600
FULL_MOON = 1700500000
LAST_QUARTER = 1701700000


class BrokenPlugin(EventPlugin):
    id = "broken"
    name = "Broken"

    async def init(self, context):
        raise RuntimeError("no surface for you")


@pytest.fixture
def source(sample_raw_events) -> FakeEventSource:
    return FakeEventSource(sample_raw_events)


@pytest.fixture
def make_engine(chart, source, scheduler, clock, tmp_path):
    def make(**kwargs):
        kwargs.setdefault("config_dir", tmp_path)
        return EventOverlayEngine(chart, source, scheduler=scheduler, clock=clock, **kwargs)
    return make


async def drain(engine):
    """Wait for every background refresh spawned by the engine."""
    while engine.get_stats()["pending_tasks"]:
        await asyncio.sleep(0)


class TestStartup:
    """Test engine construction and start."""

    def test_start_registers_default_plugins(self, make_engine, chart):
        """Start registers both overlays and subscribes once to the chart."""
        engine = make_engine()

        assert asyncio.run(engine.start()) == ["lunar-events", "economic-events"]
        assert set(chart.surfaces) == {"lunar-events", "economic-events"}
        assert len(chart.range_callbacks) == 1
        assert len(chart.logical_range_callbacks) == 1

        asyncio.run(engine.start([]))
        assert len(chart.range_callbacks) == 1

    def test_failed_plugin_skipped(self, make_engine, chart):
        """A plugin whose init fails is left out; the rest still start."""
        engine = make_engine()
        started = asyncio.run(engine.start([BrokenPlugin(), LunarEventsPlugin(), EconomicEventsPlugin()]))

        assert started == ["lunar-events", "economic-events"]
        assert engine.plugins.get_plugin_state("broken").value == "error"

    def test_invalid_config_rejected(self, make_engine):
        """Invalid overrides fail construction with every problem listed."""
        with pytest.raises(ConfigurationError) as exc_info:
            make_engine(overrides={"cache": {"buffer_multiplier": 0}, "chart": {"load_more_threshold": -1}})

        assert [e.field for e in exc_info.value.errors] == ["buffer_multiplier", "load_more_threshold"]

    def test_overlay_file_applied(self, make_engine, tmp_path):
        """The overlay file in the config directory is honored."""
        (tmp_path / "overlay.yaml").write_text("chart:\n  initial_timeframe: 4H\n")
        engine = make_engine()
        assert engine.get_stats()["timeframe"] == "4H"


class TestRefresh:
    """Test the cache to plugin flow."""

    def test_visible_range_change_renders_markers(self, make_engine, chart, scheduler, source, sample_candles):
        """A visible range change loads events and the next frame draws them."""
        engine = make_engine()

        async def run():
            await engine.start()
            engine.set_data(sample_candles)
            chart.emit_visible_range(VIEWPORT)
            await drain(engine)

        asyncio.run(run())
        assert len(source.calls) == 1
        assert chart.surfaces["lunar-events"].markers == []

        assert scheduler.flush() == 1
        lunar = chart.surfaces["lunar-events"].markers
        economic = chart.surfaces["economic-events"].markers
        assert [m.time for m in lunar] == [FIRST_QUARTER, FULL_MOON, LAST_QUARTER]
        assert [(m.time, m.text) for m in economic] == [(CPI, "US CPI")]

    def test_refresh_returns_events(self, make_engine, sample_candles):
        """Refresh returns the events it rendered."""
        engine = make_engine()
        engine.set_data(sample_candles)
        engine.set_viewport(VIEWPORT)

        events = asyncio.run(engine.refresh())
        assert [e.timestamp for e in events] == [FIRST_QUARTER, CPI, FULL_MOON, LAST_QUARTER]

    def test_covered_refresh_does_not_fetch(self, make_engine, source, sample_candles):
        """A second refresh over the same range is served from the cache."""
        engine = make_engine()
        engine.set_data(sample_candles)
        engine.set_viewport(VIEWPORT)

        async def run():
            await engine.refresh()
            return await engine.refresh()

        events = asyncio.run(run())
        assert len(events) == 4
        assert len(source.calls) == 1

    def test_several_refreshes_one_frame(self, make_engine, scheduler, chart, sample_candles):
        """Refreshes within one frame produce a single render pass."""
        engine = make_engine()

        async def run():
            await engine.start()
            engine.set_data(sample_candles)
            engine.set_viewport(VIEWPORT)
            await engine.refresh()
            await engine.refresh()

        asyncio.run(run())
        scheduler.flush()

        assert engine.plugins.get_stats()["render_passes"] == 1
        assert chart.surfaces["lunar-events"].set_markers_calls == 1

    def test_latest_refresh_wins(self, make_engine, source, sample_candles):
        """A refresh overtaken by a newer one returns nothing."""
        engine = make_engine()
        engine.set_data(sample_candles)
        engine.set_viewport(VIEWPORT)
        source.gate = asyncio.Event()

        async def run():
            first = asyncio.ensure_future(engine.refresh())
            while not source.calls:
                await asyncio.sleep(0)
            second = asyncio.ensure_future(engine.refresh())
            while len(source.calls) < 2:
                await asyncio.sleep(0)
            source.gate.set()
            return await first, await second

        first, second = asyncio.run(run())
        assert first is None
        assert len(second) == 4

    def test_fetch_failure_renders_nothing_new(self, make_engine, source, sample_candles):
        """A failing source yields an empty event set."""
        engine = make_engine()
        engine.set_data(sample_candles)
        engine.set_viewport(VIEWPORT)
        source.fail = True

        assert asyncio.run(engine.refresh()) == []
        assert engine.get_stats()["cache"]["failed_fetch_count"] == 1

    def test_load_more_extends_range(self, make_engine, source, sample_candles):
        """Loading older candles fetches the newly reachable range."""
        engine = make_engine()
        engine.set_viewport(VIEWPORT)

        async def run():
            engine.set_data(sample_candles)
            await engine.refresh()
            older = [{"time": 1698000000}, *sample_candles]
            return await engine.load_more(older, LEFT)

        events = asyncio.run(run())
        assert len(source.calls) == 2
        assert events[0].timestamp == 1699000000


class TestLoadMoreRequests:
    """Test infinite scroll requests from logical range changes."""

    def test_directions(self, make_engine, chart, sample_candles):
        """Bars near either end request more data in that direction."""
        requested = []
        engine = make_engine(
            overrides={"chart": {"load_more_threshold": 2}},
            on_need_more_data=requested.append
        )
        engine.set_data(sample_candles)

        assert engine.handle_visible_logical_range_change({"from": 1, "to": 5}) == LEFT
        assert engine.handle_visible_logical_range_change({"from": 4, "to": 9}) == RIGHT
        assert engine.handle_visible_logical_range_change({"from": 3, "to": 7}) is None
        assert requested == [LEFT, RIGHT]

    def test_no_data_no_request(self, make_engine):
        """Without candles nothing is requested."""
        requested = []
        engine = make_engine(on_need_more_data=requested.append)
        assert engine.handle_visible_logical_range_change({"from": 0, "to": 1}) is None
        assert requested == []

    def test_async_hook(self, make_engine, chart, sample_candles):
        """Coroutine hooks run in the background."""
        requested = []

        async def hook(direction):
            requested.append(direction)

        engine = make_engine(on_need_more_data=hook)

        async def run():
            await engine.start([])
            engine.set_data(sample_candles)
            chart.emit_visible_logical_range({"from": 0, "to": 5})
            await drain(engine)

        asyncio.run(run())
        assert requested == [LEFT]

    def test_failing_hook(self, make_engine, sample_candles):
        """A failing hook is logged and reported as no request."""
        def hook(direction):
            raise RuntimeError("loader offline")

        engine = make_engine(on_need_more_data=hook)
        engine.set_data(sample_candles)
        assert engine.handle_visible_logical_range_change({"from": 0, "to": 5}) is None


class TestLiveChanges:
    """Test timeframe and configuration changes."""

    def render(self, engine, scheduler, sample_candles):
        async def run():
            await engine.start()
            engine.set_data(sample_candles)
            engine.set_viewport(VIEWPORT)
            await engine.refresh()

        asyncio.run(run())
        scheduler.flush()

    def test_short_timeframe_hides_lunar(self, make_engine, chart, scheduler, sample_candles):
        """Intraday timeframes hide lunar markers but keep economic ones."""
        engine = make_engine()
        self.render(engine, scheduler, sample_candles)

        engine.set_timeframe("1H")
        assert chart.surfaces["lunar-events"].markers == []
        assert chart.surfaces["lunar-events"].visible is False
        assert len(chart.surfaces["economic-events"].markers) == 1

        engine.set_timeframe("1D")
        assert len(chart.surfaces["lunar-events"].markers) == 3

    def test_unknown_timeframe(self, make_engine):
        """Unknown timeframe labels are rejected."""
        with pytest.raises(ValueError):
            make_engine().set_timeframe("fortnightly")

    def test_update_config(self, make_engine, chart, scheduler, sample_candles):
        """Config changes reach the plugins and the cache."""
        engine = make_engine()
        self.render(engine, scheduler, sample_candles)

        engine.update_config({
            "lunar": {"show_full_moon": False},
            "cache": {"buffer_multiplier": 5},
        })

        assert FULL_MOON not in [m.time for m in chart.surfaces["lunar-events"].markers]
        assert engine.cache.params.buffer_multiplier == 5
        assert engine.config["cache"]["max_cache_span"] == 30 * 24 * 60 * 60

    def test_invalid_update_rejected(self, make_engine):
        """Invalid changes raise and leave the config untouched."""
        engine = make_engine()
        with pytest.raises(ConfigurationError):
            engine.update_config({"economic": {"shape": "hexagon"}})
        assert engine.config["economic"]["shape"] == "square"


class TestDispose:
    """Test teardown."""

    def test_dispose_releases_everything(self, make_engine, chart, scheduler, sample_candles):
        """Dispose unsubscribes, removes surfaces and stops refreshing."""
        engine = make_engine()

        async def run():
            await engine.start()
            engine.set_data(sample_candles)
            chart.emit_visible_range(VIEWPORT)
            engine.dispose()
            await asyncio.sleep(0)

        asyncio.run(run())

        assert not engine.alive
        assert chart.range_callbacks == []
        assert chart.logical_range_callbacks == []
        assert len(chart.removed) == 2
        assert scheduler.pending == 0
        assert engine.get_stats()["plugins"]["destroyed"] is True
        assert asyncio.run(engine.refresh()) is None

    def test_dispose_idempotent(self, make_engine, chart):
        """A second dispose does nothing."""
        engine = make_engine()
        asyncio.run(engine.start())
        engine.dispose()
        engine.dispose()
        assert len(chart.removed) == 2

    def test_start_after_dispose(self, make_engine):
        """A disposed engine cannot be started again."""
        engine = make_engine()
        engine.dispose()
        with pytest.raises(ManagerDestroyedError):
            asyncio.run(engine.start())

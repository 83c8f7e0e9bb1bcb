"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from astrochart.data.models import TimeRange
from astrochart.plugins.base import ChartHost, MarkerSurface
from astrochart.plugins.scheduler import ManualFrameScheduler
from astrochart.utils.time import to_timestamp

# Candle data spanning [1700000000, 1700864000], one bar per day
CANDLE_START = 1700000000
CANDLE_END = 1700864000
DAY = 86400


class FakeMarkerSurface(MarkerSurface):
    """Marker surface that records what was drawn."""

    def __init__(self, name: str):
        self.name = name
        self.markers: List[Any] = []
        self.visible = True
        self.set_markers_calls = 0

    def set_markers(self, markers) -> None:
        self.markers = list(markers)
        self.set_markers_calls += 1

    def set_visible(self, visible: bool) -> None:
        self.visible = visible


class FakeChartHost(ChartHost):
    """In-memory chart host adapter."""

    def __init__(self):
        self.surfaces: Dict[str, FakeMarkerSurface] = {}
        self.removed: List[FakeMarkerSurface] = []
        self.range_callbacks: List[Any] = []
        self.logical_range_callbacks: List[Any] = []

    def add_marker_surface(self, name: str) -> FakeMarkerSurface:
        surface = FakeMarkerSurface(name)
        self.surfaces[name] = surface
        return surface

    def remove_marker_surface(self, surface: MarkerSurface) -> None:
        self.removed.append(surface)
        self.surfaces = {k: v for k, v in self.surfaces.items() if v is not surface}

    def subscribe_visible_range_change(self, callback) -> None:
        self.range_callbacks.append(callback)

    def unsubscribe_visible_range_change(self, callback) -> None:
        self.range_callbacks.remove(callback)

    def subscribe_visible_logical_range_change(self, callback) -> None:
        self.logical_range_callbacks.append(callback)

    def unsubscribe_visible_logical_range_change(self, callback) -> None:
        self.logical_range_callbacks.remove(callback)

    def emit_visible_range(self, visible_range: Any) -> None:
        for callback in list(self.range_callbacks):
            callback(visible_range)

    def emit_visible_logical_range(self, logical_range: Any) -> None:
        for callback in list(self.logical_range_callbacks):
            callback(logical_range)


class FakeEventSource:
    """Event source serving a fixed list of raw records and recording requests."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records = list(records or [])
        self.calls: List[TimeRange] = []
        self.fail = False
        self.gate: Optional[asyncio.Event] = None

    async def fetch_events(self, time_range: TimeRange) -> List[Dict[str, Any]]:
        self.calls.append(time_range)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("event service unavailable")
        return [
            dict(r) for r in self.records
            if time_range.contains(to_timestamp(r.get("time", r.get("date"))))
        ]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def chart() -> FakeChartHost:
    """Fake chart host adapter."""
    return FakeChartHost()


@pytest.fixture
def scheduler() -> ManualFrameScheduler:
    """Frame scheduler advanced by calling flush()."""
    return ManualFrameScheduler()


@pytest.fixture
def clock() -> FakeClock:
    """Fake monotonic clock starting at zero."""
    return FakeClock()


@pytest.fixture
def sample_candles() -> List[Dict[str, Any]]:
    """Daily candles spanning [1700000000, 1700864000]."""
    return [
        {"time": t, "open": 100.0, "high": 105.0, "low": 99.0, "close": 103.0}
        for t in range(CANDLE_START, CANDLE_END + 1, DAY)
    ]


@pytest.fixture
def sample_raw_events() -> List[Dict[str, Any]]:
    """Raw records around the sample candles, some outside the buffered window."""
    return [
        {"time": 1699000000, "type": "new_moon", "title": "New Moon"},
        {"time": 1699200000, "type": "first_quarter", "title": "First Quarter"},
        {"time": 1700500000, "type": "full_moon", "title": "Full Moon"},
        {"date": "2023-11-20T12:00:00Z", "type": "economic", "subtype": "cpi",
         "title": "US CPI", "important": True},
        {"time": 1701700000, "type": "last_quarter", "title": "Last Quarter"},
        {"time": 1701800000, "type": "new_moon", "title": "New Moon"},
    ]

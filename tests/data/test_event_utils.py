"""Tests for event list helpers and the core data models."""

import pytest

from astrochart.data.event_utils import (
    calculate_event_density,
    deduplicate_events,
    filter_events_by_range,
    filter_events_by_type,
    group_events_by_type,
    sort_events_by_timestamp,
    throttle_events,
)
from astrochart.data.models import Event, EventType, SeriesMarker, TimeRange, point_time
from astrochart.errors import MalformedDataError


def make_event(ts, event_type=EventType.LUNAR, subtype="full_moon", important=False, title="Event"):
    return Event(
        id=f"{event_type.value}_{ts}_{subtype}",
        timestamp=ts,
        type=event_type,
        subtype=subtype,
        title=title,
        important=important,
    )


class TestTimeRange:
    """Test closed time ranges."""

    def test_start_after_end_rejected(self):
        """A reversed range is malformed."""
        with pytest.raises(MalformedDataError):
            TimeRange(10, 5)

    def test_closed_bounds(self):
        """Both bounds are inside the range."""
        r = TimeRange(10, 20)
        assert r.contains(10)
        assert r.contains(20)
        assert not r.contains(21)
        assert r.span == 10

    def test_covers_and_overlaps(self):
        """Coverage needs full containment, overlap needs one shared instant."""
        outer = TimeRange(0, 100)
        assert outer.covers(TimeRange(10, 90))
        assert outer.covers(outer)
        assert not outer.covers(TimeRange(50, 150))
        assert outer.overlaps(TimeRange(100, 150))
        assert not outer.overlaps(TimeRange(101, 150))

    def test_union(self):
        """Union spans both ranges, gaps included."""
        assert TimeRange(0, 10).union(TimeRange(20, 30)) == TimeRange(0, 30)

    @pytest.mark.parametrize("value", [
        {"from": 1, "to": 2},
        {"start": 1, "end": 2},
        (1, 2),
        [1, 2],
        TimeRange(1, 2),
    ])
    def test_coerce_shapes(self, value):
        """Chart host range shapes are accepted."""
        assert TimeRange.coerce(value) == TimeRange(1, 2)

    def test_coerce_rejects_unknown(self):
        """Anything else is malformed."""
        with pytest.raises(MalformedDataError):
            TimeRange.coerce({"begin": 1})
        with pytest.raises(MalformedDataError):
            TimeRange.coerce(42)

    def test_usable_as_dict_key(self):
        """Frozen ranges hash by value."""
        assert {TimeRange(1, 2): "a"}[TimeRange(1, 2)] == "a"


class TestEventModel:
    """Test the canonical event."""

    def test_dedup_key(self):
        """Identity is timestamp, family and subtype; the id is ignored."""
        a = make_event(100)
        b = Event(id="other", timestamp=100, type=EventType.LUNAR, subtype="full_moon", title="Copy")
        assert a.dedup_key == b.dedup_key == (100, "lunar", "full_moon")

    def test_date(self):
        """The date property is an aware UTC datetime."""
        assert make_event(1700000000).date.isoformat() == "2023-11-14T22:13:20+00:00"

    def test_point_time(self):
        """Candle times are read from mappings and attributes."""
        assert point_time({"time": 5}) == 5
        assert point_time(SeriesMarker(time=7, position="inBar", color="#fff", shape="circle")) == 7
        assert point_time({"close": 1.0}) is None


class TestEventUtils:
    """Test filtering, ordering and thinning helpers."""

    def test_filter_by_type(self):
        """Only events of the requested family are kept; strings are accepted."""
        events = [make_event(1), make_event(2, EventType.ECONOMIC, "cpi")]
        assert filter_events_by_type(events, EventType.ECONOMIC) == [events[1]]
        assert filter_events_by_type(events, "lunar") == [events[0]]

    def test_filter_by_range(self):
        """Range filtering is closed on both ends."""
        events = [make_event(ts) for ts in (5, 10, 15, 20, 25)]
        kept = filter_events_by_range(events, TimeRange(10, 20))
        assert [e.timestamp for e in kept] == [10, 15, 20]

    def test_sort_is_stable_on_ties(self):
        """Equal timestamps are ordered by family then subtype."""
        events = [
            make_event(2),
            make_event(1, EventType.SOLAR, "spring_equinox"),
            make_event(1, EventType.LUNAR, "new_moon"),
        ]
        ordered = sort_events_by_timestamp(events)
        assert [(e.timestamp, e.type) for e in ordered] == [
            (1, EventType.LUNAR), (1, EventType.SOLAR), (2, EventType.LUNAR)
        ]

    def test_group_by_type(self):
        """Events are grouped by family."""
        groups = group_events_by_type([make_event(1), make_event(2, EventType.ECONOMIC, "cpi"), make_event(3)])
        assert len(groups[EventType.LUNAR]) == 2
        assert len(groups[EventType.ECONOMIC]) == 1

    def test_deduplicate_keeps_first(self):
        """Repeats of the same key collapse to the first occurrence."""
        first = make_event(100, title="first")
        second = make_event(100, title="second")
        other = make_event(100, subtype="new_moon")
        assert deduplicate_events([first, second, other]) == [first, other]

    def test_event_density(self):
        """Density is events per second, zero for empty durations."""
        events = [make_event(i) for i in range(10)]
        assert calculate_event_density(events, 100) == pytest.approx(0.1)
        assert calculate_event_density(events, 0) == 0.0

    def test_throttle_prefers_important_then_recent(self):
        """Important events survive thinning first, then the most recent."""
        events = [make_event(ts, important=(ts == 1)) for ts in range(1, 11)]
        kept = throttle_events(events, max_events=3)
        assert [e.timestamp for e in kept] == [1, 9, 10]

    def test_throttle_under_limit(self):
        """Short lists are returned unchanged."""
        events = [make_event(1), make_event(2)]
        assert throttle_events(events, max_events=5) == events

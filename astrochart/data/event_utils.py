"""Helpers for filtering, ordering and thinning event lists."""

from collections.abc import Iterable
from typing import Union

from .models import Event, EventType, TimeRange


def filter_events_by_type(events: Iterable[Event], event_type: Union[EventType, str]) -> list[Event]:
    """Keep events of one family."""
    wanted = EventType(event_type)
    return [e for e in events if e.type == wanted]


def filter_events_by_range(events: Iterable[Event], time_range: TimeRange) -> list[Event]:
    """Keep events whose timestamp falls inside the closed range."""
    return [e for e in events if time_range.contains(e.timestamp)]


def sort_events_by_timestamp(events: Iterable[Event]) -> list[Event]:
    """Ascending by timestamp; ties ordered by type then subtype."""
    return sorted(events, key=lambda e: (e.timestamp, e.type.value, e.subtype))


def group_events_by_type(events: Iterable[Event]) -> dict[EventType, list[Event]]:
    groups: dict[EventType, list[Event]] = {}
    for event in events:
        groups.setdefault(event.type, []).append(event)
    return groups


def deduplicate_events(events: Iterable[Event]) -> list[Event]:
    """Drop repeats of the same (timestamp, type, subtype), keeping the first."""
    seen = set()
    unique = []
    for event in events:
        key = event.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)
    return unique


def calculate_event_density(events: list[Event], time_range_seconds: float) -> float:
    """Events per second over the given duration."""
    if time_range_seconds <= 0:
        return 0.0
    return len(events) / time_range_seconds


def throttle_events(events: list[Event], max_events: int = 100) -> list[Event]:
    """
    Keep at most ``max_events``, preferring important then most recent events.

    The result is returned in ascending timestamp order.
    """
    if len(events) <= max_events:
        return list(events)

    ranked = sorted(events, key=lambda e: (not e.important, -e.timestamp))
    return sort_events_by_timestamp(ranked[:max_events])

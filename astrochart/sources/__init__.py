"""
Event source module.

Collaborators the range cache fetches raw event records from: the local
astronomy calculators, scheduled economic calendars, and compositions of
both.
"""
from .astro_source import AstroEventSource
from .base import BaseEventSource, CompositeEventSource
from .calendar_source import CalendarEventSource

__all__ = [
    "AstroEventSource",
    "BaseEventSource",
    "CalendarEventSource",
    "CompositeEventSource",
]

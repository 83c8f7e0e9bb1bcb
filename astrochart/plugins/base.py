"""
Plugin contract and chart host boundary.

A plugin is a named, versioned factory whose ``init`` produces a live
PluginInstance bound to a PluginContext. The chart host is the external
charting widget; plugins draw on it exclusively through marker surfaces.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..data.models import Event, EventType, SeriesMarker
from ..logging.config import get_plugin_logger

logger = get_plugin_logger(__name__)


class MarkerSurface(ABC):
    """A drawing surface on the chart host that holds one marker set."""

    @abstractmethod
    def set_markers(self, markers: Sequence[SeriesMarker]) -> None:
        """Replace every marker on the surface."""

    @abstractmethod
    def set_visible(self, visible: bool) -> None:
        """Show or hide the surface without dropping its markers."""


class ChartHost(ABC):
    """Adapter around the charting widget consumed by the overlay core."""

    @abstractmethod
    def add_marker_surface(self, name: str) -> MarkerSurface:
        """Create a new marker surface."""

    @abstractmethod
    def remove_marker_surface(self, surface: MarkerSurface) -> None:
        """Remove a surface created by add_marker_surface."""

    @abstractmethod
    def subscribe_visible_range_change(self, callback: Callable[[Any], None]) -> None:
        """Call ``callback({from, to})`` whenever the visible time range changes."""

    @abstractmethod
    def unsubscribe_visible_range_change(self, callback: Callable[[Any], None]) -> None:
        ...

    @abstractmethod
    def subscribe_visible_logical_range_change(self, callback: Callable[[Any], None]) -> None:
        """Call ``callback({from, to})`` with bar indexes whenever the visible bars change."""

    @abstractmethod
    def unsubscribe_visible_logical_range_change(self, callback: Callable[[Any], None]) -> None:
        ...


@dataclass
class PluginContext:
    """Shared state handed to every plugin of one manager."""
    chart: ChartHost
    timeframe: str = "1D"
    config: dict[str, Any] = field(default_factory=dict)


class PluginInstance(ABC):
    """Live, initialized state of one plugin."""

    @abstractmethod
    def render(self, events: Sequence[Event]) -> None:
        """Draw the events, replacing whatever was drawn before."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release chart resources; the instance is inactive afterwards."""

    @abstractmethod
    def is_active(self) -> bool:
        ...

    def on_timeframe_change(self, timeframe: str) -> None:
        """Optional hook; the default ignores the change."""

    def on_config_change(self, config: dict[str, Any]) -> None:
        """Optional hook; the default ignores the change."""


class EventPlugin(ABC):
    """
    Named, versioned plugin factory.

    ``interests`` declares which event families the plugin wants to see;
    None leaves the choice to the manager's id mapping.
    """

    id: str = ""
    name: str = ""
    version: str = "1.0.0"
    interests: Optional[frozenset[EventType]] = None

    @abstractmethod
    async def init(self, context: PluginContext) -> PluginInstance:
        """Initialize the plugin and return its live instance."""


class PluginLifecycleEvent(str, Enum):
    """Lifecycle notifications delivered to manager listeners."""
    INIT = "init"
    MOUNT = "mount"
    UNMOUNT = "unmount"
    CLEANUP = "cleanup"
    ERROR = "error"


class PluginState(str, Enum):
    """Per-plugin-id registration state."""
    UNREGISTERED = "unregistered"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    ERROR = "error"


PluginEventHandler = Callable[[PluginLifecycleEvent, str, Optional[Any]], None]


class MarkerOverlay(PluginInstance):
    """
    Plugin instance that draws its events on a single marker surface.

    Every render replaces the surface's markers wholesale, so rendering the
    same events twice yields the same picture. The last event set is kept
    to redraw after timeframe or config changes.
    """

    plugin_id = ""

    def __init__(self, context: PluginContext, surface: MarkerSurface):
        self.context = context
        self.surface = surface
        self.timeframe = context.timeframe
        self._events: tuple[Event, ...] = ()
        self._markers: tuple[SeriesMarker, ...] = ()
        self._active = True

    @property
    def markers(self) -> tuple[SeriesMarker, ...]:
        """Markers drawn by the last render."""
        return self._markers

    def render(self, events: Sequence[Event]) -> None:
        if not self._active:
            logger.warning("Render on cleaned up plugin ignored", plugin_id=self.plugin_id)
            return
        self._events = tuple(events)
        self._draw()

    def _draw(self) -> None:
        if self.is_hidden():
            self._markers = ()
            self.surface.set_markers([])
            self.surface.set_visible(False)
            return

        markers = sorted(self.build_markers(self._events), key=lambda m: m.time)
        self._markers = tuple(markers)
        self.surface.set_markers(markers)
        self.surface.set_visible(True)

    def is_hidden(self) -> bool:
        return False

    @abstractmethod
    def build_markers(self, events: Sequence[Event]) -> list[SeriesMarker]:
        """Markers for the events this overlay draws."""

    def is_active(self) -> bool:
        return self._active

    def on_timeframe_change(self, timeframe: str) -> None:
        self.timeframe = timeframe
        if self._active:
            self._draw()

    def cleanup(self) -> None:
        if not self._active:
            return
        self._active = False
        self._events = ()
        self._markers = ()
        self.surface.set_markers([])
        self.context.chart.remove_marker_surface(self.surface)

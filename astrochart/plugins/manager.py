"""
Plugin registry and batched render dispatch.

The PluginManager owns the registry of live plugin instances, fans each
event set out to them once per animation frame and isolates every plugin
failure so that one broken overlay cannot take down the chart or the
other overlays.
"""

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from ..config.loader import deep_merge
from ..data.models import Event, EventType
from ..errors import ManagerDestroyedError, PluginError
from ..logging.config import get_plugin_logger, log_plugin_lifecycle
from .base import (
    EventPlugin,
    PluginContext,
    PluginEventHandler,
    PluginInstance,
    PluginLifecycleEvent,
    PluginState,
)
from .scheduler import AsyncioFrameScheduler, FrameScheduler

logger = get_plugin_logger(__name__)

# Event families for plugins that do not declare their interests
PLUGIN_ID_INTERESTS: dict[str, frozenset[EventType]] = {
    "lunar-events": frozenset({EventType.LUNAR}),
    "economic-events": frozenset({EventType.ECONOMIC}),
    "solar-events": frozenset({EventType.SOLAR}),
}


def resolve_interests(plugin: EventPlugin) -> Optional[frozenset[EventType]]:
    """Event families a plugin renders; None means every event."""
    if plugin.interests is not None:
        return frozenset(plugin.interests)
    return PLUGIN_ID_INTERESTS.get(plugin.id)


@dataclass(frozen=True)
class _Registration:
    plugin: EventPlugin
    instance: PluginInstance
    interests: Optional[frozenset[EventType]]

    def select(self, events: Sequence[Event]) -> list[Event]:
        if self.interests is None:
            return list(events)
        return [e for e in events if e.type in self.interests]


class PluginManager:
    """
    Registers event plugins and drives their render passes.

    Render requests are coalesced: any number of ``render_events`` calls
    within one frame produce a single batched pass over the latest event
    set. After ``cleanup`` the manager is destroyed for good; ``register``
    raises ManagerDestroyedError and every other call is a no-op.
    """

    def __init__(self, context: PluginContext, scheduler: Optional[FrameScheduler] = None):
        self.context = context
        self.scheduler = scheduler or AsyncioFrameScheduler()

        self._registry: dict[str, _Registration] = {}
        self._states: dict[str, PluginState] = {}
        self._listeners: list[PluginEventHandler] = []

        self._latest_events: tuple[Event, ...] = ()
        self._render_scheduled = False
        self._render_passes = 0
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    async def register(self, plugin: EventPlugin) -> PluginInstance:
        """
        Initialize a plugin and add it to the registry.

        A plugin registered under an id that is already taken replaces the
        previous instance, which is cleaned up first.

        Raises:
            ManagerDestroyedError: If the manager was cleaned up
            PluginError: If the plugin's init fails; nothing is registered
        """
        if self._destroyed:
            raise ManagerDestroyedError(operation="register", context={"plugin_id": plugin.id})
        if not plugin.id:
            raise ValueError("Plugin must have a non-empty id")

        plugin_id = plugin.id
        if plugin_id in self._registry:
            logger.info("Replacing registered plugin", plugin_id=plugin_id)
            self.unregister(plugin_id)

        self._states[plugin_id] = PluginState.INITIALIZING
        log_plugin_lifecycle(logger, plugin_id, PluginLifecycleEvent.INIT.value,
                             {"name": plugin.name, "version": plugin.version})
        self._emit_event(PluginLifecycleEvent.INIT, plugin_id)

        try:
            instance = await plugin.init(self.context)
        except asyncio.CancelledError:
            self._states[plugin_id] = PluginState.UNREGISTERED
            raise
        except Exception as e:
            self._states[plugin_id] = PluginState.ERROR
            raise self._report_error(plugin_id, "init", e) from e

        if self._destroyed:
            # The manager was torn down while init was pending
            self._cleanup_instance(plugin_id, instance)
            self._states[plugin_id] = PluginState.UNREGISTERED
            raise ManagerDestroyedError(operation="register", context={"plugin_id": plugin_id})

        if plugin_id in self._registry:
            # A concurrent registration of the same id finished first
            self.unregister(plugin_id)

        self._registry = {
            **self._registry,
            plugin_id: _Registration(plugin, instance, resolve_interests(plugin)),
        }
        self._states[plugin_id] = PluginState.ACTIVE
        log_plugin_lifecycle(logger, plugin_id, PluginLifecycleEvent.MOUNT.value)
        self._emit_event(PluginLifecycleEvent.MOUNT, plugin_id, instance)

        if self._latest_events:
            self._schedule_render()

        return instance

    def unregister(self, plugin_id: str) -> bool:
        """
        Remove a plugin and clean up its instance.

        A failing cleanup is reported but the plugin is removed regardless.

        Returns:
            True if a plugin was registered under the id
        """
        registration = self._registry.get(plugin_id)
        if registration is None:
            return False

        self._registry = {k: v for k, v in self._registry.items() if k != plugin_id}
        self._emit_event(PluginLifecycleEvent.UNMOUNT, plugin_id)
        self._cleanup_instance(plugin_id, registration.instance)
        self._states[plugin_id] = PluginState.UNREGISTERED

        log_plugin_lifecycle(logger, plugin_id, PluginLifecycleEvent.UNMOUNT.value)
        return True

    def _cleanup_instance(self, plugin_id: str, instance: PluginInstance) -> None:
        try:
            instance.cleanup()
        except Exception as e:
            self._report_error(plugin_id, "cleanup", e)
            return
        self._emit_event(PluginLifecycleEvent.CLEANUP, plugin_id)

    def render_events(self, events: Iterable[Event]) -> None:
        """Store the latest event set and schedule one render pass for the next frame."""
        if self._destroyed:
            logger.debug("Render requested on destroyed plugin manager")
            return

        self._latest_events = tuple(events)
        self._schedule_render()

    def _schedule_render(self) -> None:
        if self._render_scheduled:
            return
        self._render_scheduled = True
        self.scheduler.request_frame(self._on_frame)

    def _on_frame(self) -> None:
        self._render_scheduled = False
        if self._destroyed:
            return
        self._batch_render(self._latest_events)

    def _batch_render(self, events: Sequence[Event]) -> int:
        """Render every active plugin with its event subset; returns plugins rendered."""
        rendered = 0

        for plugin_id, registration in self._registry.items():
            if not self._instance_active(plugin_id, registration.instance):
                continue
            try:
                registration.instance.render(registration.select(events))
                rendered += 1
            except Exception as e:
                self._report_error(plugin_id, "render", e)

        self._render_passes += 1
        logger.debug("Render pass complete", events=len(events), plugins=rendered)
        return rendered

    def on_timeframe_change(self, timeframe: str) -> None:
        """Record the new timeframe and forward it to every plugin."""
        if self._destroyed:
            logger.debug("Timeframe change on destroyed plugin manager", timeframe=timeframe)
            return

        self.context.timeframe = timeframe
        for plugin_id, registration in self._registry.items():
            handler = getattr(registration.instance, "on_timeframe_change", None)
            if handler is None:
                continue
            try:
                handler(timeframe)
            except Exception as e:
                self._report_error(plugin_id, "timeframe change", e)

    def on_config_change(self, config: dict[str, Any]) -> None:
        """Merge a config change into the shared context and forward it to every plugin."""
        if self._destroyed:
            logger.debug("Config change on destroyed plugin manager")
            return

        self.context.config = deep_merge(self.context.config, config)
        for plugin_id, registration in self._registry.items():
            handler = getattr(registration.instance, "on_config_change", None)
            if handler is None:
                continue
            try:
                handler(config)
            except Exception as e:
                self._report_error(plugin_id, "config change", e)

    def cleanup(self) -> None:
        """Unregister every plugin and destroy the manager."""
        if self._destroyed:
            return

        self._destroyed = True
        self.scheduler.cancel_all()
        self._render_scheduled = False

        for plugin_id in list(self._registry):
            self.unregister(plugin_id)

        self._latest_events = ()
        self._listeners = []
        logger.info("Plugin manager destroyed")

    def get_stats(self) -> dict[str, Any]:
        """Get plugin statistics."""
        plugins = [
            {
                "id": plugin_id,
                "active": self._instance_active(plugin_id, registration.instance, report=False),
                "state": self.get_plugin_state(plugin_id).value,
            }
            for plugin_id, registration in self._registry.items()
        ]
        return {
            "total_plugins": len(plugins),
            "active_plugins": sum(1 for p in plugins if p["active"]),
            "plugins": plugins,
            "render_passes": self._render_passes,
            "destroyed": self._destroyed,
        }

    def get_plugin(self, plugin_id: str) -> Optional[PluginInstance]:
        registration = self._registry.get(plugin_id)
        return registration.instance if registration else None

    def has_plugin(self, plugin_id: str) -> bool:
        return plugin_id in self._registry

    def get_plugin_ids(self) -> list[str]:
        return list(self._registry)

    def has_active_plugins(self) -> bool:
        return any(
            self._instance_active(plugin_id, r.instance, report=False)
            for plugin_id, r in self._registry.items()
        )

    def get_plugin_state(self, plugin_id: str) -> PluginState:
        return self._states.get(plugin_id, PluginState.UNREGISTERED)

    def add_event_listener(self, handler: PluginEventHandler) -> None:
        """Subscribe to lifecycle events as ``handler(event, plugin_id, data)``."""
        if self._destroyed:
            return
        self._listeners = [*self._listeners, handler]

    def remove_event_listener(self, handler: PluginEventHandler) -> bool:
        if handler not in self._listeners:
            return False
        self._listeners = [h for h in self._listeners if h is not handler]
        return True

    def _instance_active(self, plugin_id: str, instance: PluginInstance, report: bool = True) -> bool:
        try:
            return bool(instance.is_active())
        except Exception as e:
            if report:
                self._report_error(plugin_id, "is_active", e)
            else:
                logger.warning("Plugin activity check failed", plugin_id=plugin_id, error=str(e))
            return False

    def _report_error(self, plugin_id: str, operation: str, error: Exception) -> PluginError:
        """Wrap a plugin failure, log it and deliver it to listeners."""
        plugin_error = PluginError(
            plugin_id,
            f"{operation} failed: {error}",
            cause=error,
            context={"operation": operation, "error_type": type(error).__name__}
        )
        log_plugin_lifecycle(
            logger,
            plugin_id,
            PluginLifecycleEvent.ERROR.value,
            {"operation": operation, "error": str(error), "error_type": type(error).__name__}
        )
        self._emit_event(PluginLifecycleEvent.ERROR, plugin_id, plugin_error)
        return plugin_error

    def _emit_event(self, event: PluginLifecycleEvent, plugin_id: str, data: Optional[Any] = None) -> None:
        for handler in self._listeners:
            try:
                handler(event, plugin_id, data)
            except Exception as e:
                logger.warning(
                    "Plugin event listener failed",
                    lifecycle_event=event.value,
                    plugin_id=plugin_id,
                    error=str(e),
                    error_type=type(e).__name__
                )

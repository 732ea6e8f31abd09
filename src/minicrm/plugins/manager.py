"""Plugin discovery, loading, and attachment to an event bus."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING

import pluggy

from minicrm.plugins.hookspecs import MinicrmHookSpec

if TYPE_CHECKING:
    from minicrm.events.bus import EventBus

PROJECT_NAME = "minicrm"
ENTRY_POINT_GROUP = "minicrm.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and handler registration."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(MinicrmHookSpec)

    def discover_and_load(self) -> list[str]:
        """Load plugins from the ``minicrm.plugins`` entry-point group.

        Returns a list of loaded plugin names.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def attach(self, bus: EventBus) -> list[str]:
        """Let every plugin subscribe its handlers on *bus*.

        Each plugin is called on its own so one broken plugin does not
        stop the others. Returns the names of plugins that failed.
        """
        failed: list[str] = []
        for name, plugin in self._pm.list_name_plugin():
            if plugin is None:
                continue
            others = [p for p in self._pm.get_plugins() if p is not plugin]
            hook = self._pm.subset_hook_caller("register_event_handlers", remove_plugins=others)
            try:
                hook(bus=bus)
            except Exception:
                logger.warning("Plugin %s failed to register handlers", name, exc_info=True)
                failed.append(name)
        return failed

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly. Hook
        calls against class objects leave ``self`` unbound.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)

            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue

            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)

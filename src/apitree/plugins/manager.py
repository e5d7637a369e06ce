"""Plugin manager -- discovery, loading, and lifecycle management.

:class:`PluginManager` discovers plugins registered as Python entry points,
applies the enable/disable lists of the global configuration, and installs
the loaded plugins on a request pipeline.

Third-party packages register plugins under the ``apitree.plugins`` group::

    [project.entry-points."apitree.plugins"]
    user-agent = "my_package.plugin:UserAgentPlugin"
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import TYPE_CHECKING, Optional

from apitree.exceptions import PluginError
from apitree.models import GlobalConfig
from apitree.plugins.base import Plugin
from apitree.plugins.hooks import HookRunner

if TYPE_CHECKING:
    from apitree.client.pipeline import Pipeline

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "apitree.plugins"
"""The entry-point group name used for plugin discovery."""


class PluginManager:
    """Discovers, loads, and manages the lifecycle of apitree plugins.

    When ``plugins.enabled`` in the global config is non-empty only those
    plugins are loaded; otherwise every discovered plugin not listed in
    ``plugins.disabled`` is.

    Example::

        manager = PluginManager()
        manager.discover(global_config)
        manager.install(pipeline)
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}
        self._hook_runner: Optional[HookRunner] = None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, config: GlobalConfig) -> list[str]:
        """Load the plugins of the ``apitree.plugins`` entry-point group.

        Returns:
            The names of the plugins that were loaded. Plugins that fail to
            load are logged as warnings and skipped.
        """
        loaded_names: list[str] = []
        enabled_set = set(config.plugins.enabled)
        disabled_set = set(config.plugins.disabled)

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            name = ep.name
            if enabled_set and name not in enabled_set:
                logger.debug("Plugin '%s' not in enabled list, skipping", name)
                continue
            if name in disabled_set:
                logger.debug("Plugin '%s' is disabled, skipping", name)
                continue

            try:
                plugin_cls = ep.load()
                self.load_plugin(name, plugin_cls(), config)
                loaded_names.append(name)
            except Exception as exc:
                logger.warning("Failed to load plugin '%s': %s", name, exc)

        return loaded_names

    # ------------------------------------------------------------------
    # Loading and querying
    # ------------------------------------------------------------------

    def load_plugin(self, name: str, plugin: Plugin, config: GlobalConfig) -> None:
        """Initialize *plugin* and register it under *name*.

        Raises:
            PluginError: A plugin with the same *name* is already loaded.
        """
        if name in self._plugins:
            raise PluginError(f"Plugin '{name}' is already loaded")

        plugin.on_init(config)
        self._plugins[name] = plugin
        self._hook_runner = None
        logger.info("Loaded plugin '%s' v%s", name, plugin.version)

    def get_plugin(self, name: str) -> Plugin:
        """Return the loaded plugin *name*.

        Raises:
            PluginError: No plugin with that name is loaded.
        """
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginError(f"Plugin '{name}' is not loaded") from None

    def list_plugins(self) -> list[dict[str, str]]:
        return [
            {
                "name": plugin.name,
                "version": plugin.version,
                "description": plugin.description,
            }
            for plugin in self._plugins.values()
        ]

    def get_hook_runner(self) -> HookRunner:
        """Return a (cached) :class:`HookRunner` over the loaded plugins."""
        if self._hook_runner is None:
            self._hook_runner = HookRunner(list(self._plugins.values()))
        return self._hook_runner

    # ------------------------------------------------------------------
    # Pipeline integration
    # ------------------------------------------------------------------

    def install(self, pipeline: Pipeline) -> Pipeline:
        """Register the plugin hooks as ``outgoing-request`` layers of *pipeline*.

        ``on_request`` runs as a plain layer and ``on_error`` as an
        error-aware layer placed after it, so it observes failures raised by
        plugins and earlier layers. Transport failures reach ``on_error``
        through the runner handed to
        :class:`~apitree.client.transport.HttpxTransport`.
        """
        from apitree.client.pipeline import OUTGOING_REQUEST

        runner = self.get_hook_runner()
        pipeline.use(OUTGOING_REQUEST, runner.request_layer)
        pipeline.use_error(OUTGOING_REQUEST, runner.error_layer)
        return pipeline

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cleanup(self) -> None:
        """Call ``cleanup`` on every plugin and forget them.

        One plugin's failure does not prevent the others from cleaning up.
        """
        for name, plugin in self._plugins.items():
            try:
                plugin.cleanup()
            except Exception as exc:
                logger.warning("Error cleaning up plugin '%s': %s", name, exc)
        self._plugins.clear()
        self._hook_runner = None

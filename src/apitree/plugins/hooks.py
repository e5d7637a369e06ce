"""Run plugin hooks and expose them as pipeline layers.

:class:`HookRunner` calls ``on_request`` and ``on_error`` across all loaded
plugins in registration order. Its :meth:`~HookRunner.request_layer` and
:meth:`~HookRunner.error_layer` methods have the plain and error-aware layer
signatures of :class:`~apitree.client.pipeline.Pipeline`, so
:meth:`~apitree.plugins.manager.PluginManager.install` can register them
directly on the ``outgoing-request`` event.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apitree.exceptions import PluginError
from apitree.plugins.base import Plugin

if TYPE_CHECKING:
    from apitree.client.pipeline import Done, Next, RequestDescriptor

logger = logging.getLogger(__name__)


class HookRunner:
    """Executes plugin hooks in registration order.

    Holds a snapshot of the plugin list taken at creation; obtain a new
    runner from the manager after loading more plugins.
    """

    def __init__(self, plugins: list[Plugin]) -> None:
        self._plugins = list(plugins)

    def run_request(self, request: RequestDescriptor) -> RequestDescriptor:
        """Call ``on_request`` on every plugin.

        Raises:
            PluginError: A plugin's hook raised; the original exception is
                chained.
        """
        for plugin in self._plugins:
            try:
                plugin.on_request(request)
            except Exception as exc:
                raise PluginError(
                    f"Plugin '{plugin.name}' failed in on_request: {exc}"
                ) from exc
        return request

    def run_error(self, error: Exception) -> None:
        """Call ``on_error`` on every plugin; failures are logged and ignored."""
        for plugin in self._plugins:
            try:
                plugin.on_error(error)
            except Exception as exc:
                logger.warning("Plugin '%s' failed in on_error: %s", plugin.name, exc)

    # ------------------------------------------------------------------
    # Pipeline layers
    # ------------------------------------------------------------------

    def request_layer(self, request: RequestDescriptor, next_: Next, done: Done) -> None:
        self.run_request(request)
        next_()

    def error_layer(
        self, error: Exception, request: RequestDescriptor, next_: Next, done: Done
    ) -> None:
        self.run_error(error)
        next_(error)

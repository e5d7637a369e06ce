"""Abstract base class for apitree plugins.

Every plugin must subclass :class:`Plugin` and implement the :attr:`name`
property. The lifecycle hooks (``on_init``, ``on_request``, ``on_error``,
``cleanup``) are optional -- default implementations are no-ops so plugins
only override what they need.

Plugins are registered as entry points in the ``apitree.plugins`` group and
discovered at runtime by :class:`~apitree.plugins.manager.PluginManager`.

Example:
    Minimal plugin implementation::

        class UserAgentPlugin(Plugin):
            @property
            def name(self) -> str:
                return "user-agent"

            def on_request(self, request):
                request.headers.setdefault("User-Agent", "apitree")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from apitree.models import GlobalConfig

if TYPE_CHECKING:
    from apitree.client.pipeline import RequestDescriptor


class Plugin(ABC):
    """Base class for all apitree plugins.

    The plugin lifecycle is:

    1. Instantiation -- the :class:`PluginManager` calls the no-arg constructor.
    2. :meth:`on_init` -- called once with the global configuration.
    3. :meth:`on_request` / :meth:`on_error` -- called for every request the
       pipeline the plugins are installed on processes.
    4. :meth:`cleanup` -- called once during shutdown.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique plugin name used for discovery and logging."""
        ...

    @property
    def version(self) -> str:
        return "0.1.0"

    @property
    def description(self) -> str:
        return ""

    def on_init(self, config: GlobalConfig) -> None:
        """Called once when the plugin is loaded.

        Args:
            config: The global apitree configuration.
        """

    def on_request(self, request: RequestDescriptor) -> None:
        """Called before each request is dispatched.

        Plugins modify the descriptor in place (URL, method, headers, body
        or timeout); the next plugin and finally the transport see the
        changes.

        Args:
            request: The outgoing :class:`~apitree.client.pipeline.RequestDescriptor`.
        """

    def on_error(self, error: Exception) -> None:
        """Called when a request fails, in a plugin or in the transport.

        Exceptions raised here are logged and swallowed so they never mask
        the original failure.
        """

    def cleanup(self) -> None:
        """Called once during shutdown to release plugin resources."""

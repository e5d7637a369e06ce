"""Plugin system for apitree -- discovery, loading, and request hooks.

Third-party packages register plugins in the ``apitree.plugins`` entry-point
group. :class:`PluginManager` discovers and loads them and installs their
hooks on a request pipeline through a :class:`HookRunner`.

Example::

    from apitree.plugins import PluginManager

    manager = PluginManager()
    manager.discover(global_config)
    manager.install(pipeline)
"""

from apitree.plugins.base import Plugin
from apitree.plugins.hooks import HookRunner
from apitree.plugins.manager import PluginManager

__all__ = ["Plugin", "HookRunner", "PluginManager"]

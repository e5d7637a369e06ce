"""Built-in CLI sub-commands for apitree.

This package groups the Typer command modules that form the CLI's top-level
command tree:

* :mod:`~apitree.commands.init` -- create a profile from an API description.
* :mod:`~apitree.commands.inspect` -- render the call graph, its routes and
  the description's metadata.
* :mod:`~apitree.commands.request` -- issue a request through the root
  escape hatch of a generated client.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``inspect``) or a plain callback function
registered directly on the root app (for single commands like ``init``).
"""

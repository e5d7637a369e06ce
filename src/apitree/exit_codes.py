"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~apitree.exceptions.ApitreeError` subclass.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ apitree request get /users/{id} -P id=404
    $ echo $?
    4   # EXIT_NOT_FOUND -- the API answered 404
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments: a URI parameter failed validation or too few were given."""

EXIT_AUTH_FAILURE = 3
"""The API rejected the request's credentials (HTTP 401/403)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP error status other than 401/403/404."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_DESCRIPTION_ERROR = 7
"""The API description could not be loaded, parsed or normalized."""

EXIT_PIPELINE_ERROR = 8
"""Work was submitted to a request pipeline that had been shut down."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load, initialise, or execute."""

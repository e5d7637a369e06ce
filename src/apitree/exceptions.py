"""Exception hierarchy for apitree.

All exceptions inherit from :class:`ApitreeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`apitree.exit_codes`.
The top-level error handler in :func:`apitree.app.main` catches
``ApitreeError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Two families behave differently at runtime:

* **Synchronous usage errors** -- :class:`ParameterError` and its subclasses,
  :class:`InsufficientArgumentsError` and :class:`InvalidHeadersError` are
  raised directly from the call graph, before a request is dispatched.
* **Transport errors** -- :class:`ConnectionError_`, :class:`AuthError`,
  :class:`NotFoundError` and :class:`ServerError` are never raised to the
  caller of a verb; they are delivered through the completion callback's
  error slot and the returned future.

Subclass hierarchy::

    ApitreeError (exit 1)
    +-- InvalidUsageError           (exit 2)
    |   +-- ParameterError
    |   |   +-- MissingRequiredError
    |   |   +-- TypeMismatchError
    |   |   +-- EnumViolationError
    |   |   +-- LengthViolationError
    |   |   +-- PatternViolationError
    |   |   +-- RangeViolationError
    |   +-- InsufficientArgumentsError
    |   +-- InvalidHeadersError
    +-- AuthError                   (exit 3)
    +-- NotFoundError               (exit 4)
    +-- ServerError                 (exit 5)
    +-- ConnectionError_            (exit 6)
    +-- DescriptionParseError       (exit 7)
    +-- PipelineError               (exit 8)
    +-- PluginError                 (exit 10)
    +-- ConfigError                 (exit 1)
"""

from __future__ import annotations

from typing import Any, Optional

from apitree.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_DESCRIPTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PIPELINE_ERROR,
    EXIT_PLUGIN_ERROR,
    EXIT_SERVER_ERROR,
)


class ApitreeError(Exception):
    """Base exception for all apitree errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`apitree.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ApitreeError):
    """Raised when the call graph is used with invalid arguments."""

    exit_code = EXIT_INVALID_USAGE


class ParameterError(InvalidUsageError):
    """Base class for URI parameter validation failures.

    Attributes:
        param: Display name of the parameter that failed validation.
        value: The rejected value.
    """

    def __init__(self, message: str, param: str = "", value: Any = None):
        super().__init__(message)
        self.param = param
        self.value = value


class MissingRequiredError(ParameterError):
    """A required parameter was absent (``None``)."""


class TypeMismatchError(ParameterError):
    """A value does not have the parameter's declared type."""


class EnumViolationError(ParameterError):
    """A string value is not a member of the declared ``enum``."""


class LengthViolationError(ParameterError):
    """A string value is shorter than ``minLength`` or longer than ``maxLength``."""


class PatternViolationError(ParameterError):
    """A string value does not match the declared ``pattern``."""


class RangeViolationError(ParameterError):
    """A numeric value is below ``minimum`` or above ``maximum``."""


class InsufficientArgumentsError(InvalidUsageError):
    """A dynamic accessor was called with fewer arguments than template tags."""


class InvalidHeadersError(InvalidUsageError):
    """A non-mapping value was passed to a ``headers(...)`` helper."""


class AuthError(ApitreeError):
    """The API answered HTTP 401 or 403.

    Attributes:
        response: The :class:`httpx.Response` that triggered the error.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(self, message: str, response: Optional[Any] = None):
        super().__init__(message)
        self.response = response


class NotFoundError(ApitreeError):
    """The API answered HTTP 404."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, message: str, response: Optional[Any] = None):
        super().__init__(message)
        self.response = response


class ServerError(ApitreeError):
    """The API answered with any other error status (4xx or 5xx)."""

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, response: Optional[Any] = None):
        super().__init__(message)
        self.response = response


class ConnectionError_(ApitreeError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class DescriptionParseError(ApitreeError):
    """Raised when an API description cannot be loaded or normalized."""

    exit_code = EXIT_DESCRIPTION_ERROR


class PipelineError(ApitreeError):
    """Raised when work is submitted to a pipeline that has been shut down."""

    exit_code = EXIT_PIPELINE_ERROR


class PluginError(ApitreeError):
    """Raised when a plugin fails to load, initialise, or execute a hook."""

    exit_code = EXIT_PLUGIN_ERROR


class ConfigError(ApitreeError):
    """Raised for configuration problems (missing profiles, invalid JSON)."""

    exit_code = EXIT_GENERIC_FAILURE

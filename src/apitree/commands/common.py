"""Helpers shared by the CLI commands.

Commands either name a description directly (``--source``) or rely on a
profile resolved through :func:`~apitree.config.resolve_config`. Both paths
end in :func:`load_api`, which returns the normalized description with the
profile's base URI overrides applied.
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from apitree.exceptions import ApitreeError
from apitree.exit_codes import EXIT_INVALID_USAGE
from apitree.models import ApiDescription, GlobalConfig, Profile
from apitree.output import get_output


def fail(exc: ApitreeError) -> typer.Exit:
    """Print *exc* and return the :class:`typer.Exit` carrying its exit code."""
    get_output().error(str(exc))
    return typer.Exit(code=exc.exit_code)


def parse_pairs(values: Optional[list[str]], sep: str, what: str) -> dict[str, str]:
    """Split ``key<sep>value`` command-line values into a dict.

    Raises:
        typer.Exit: A value has no separator or an empty key.

    Example::

        >>> parse_pairs(["id=42", "q=a=b"], "=", "parameter")
        {'id': '42', 'q': 'a=b'}
    """
    pairs: dict[str, str] = {}
    for value in values or []:
        key, found, rest = value.partition(sep)
        key = key.strip()
        if not found or not key:
            get_output().error(f"Invalid {what} {value!r}, expected KEY{sep}VALUE")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        pairs[key] = rest.strip() if sep == ":" else rest
    return pairs


def load_api(
    source: Optional[str] = None,
    profile_name: Optional[str] = None,
    params: Optional[dict[str, Any]] = None,
) -> tuple[ApiDescription, Optional[Profile], GlobalConfig]:
    """Load and normalize the description named by *source* or a profile.

    With *source*, the description is read directly and a profile is only
    loaded when *profile_name* is given. Without it, the active profile is
    resolved (CLI flag, environment, project config, global config) and its
    ``source`` is used.

    Args:
        source: URL, file path or ``-`` for stdin.
        profile_name: Explicit profile name.
        params: Base URI parameter values overriding the profile's.

    Returns:
        A ``(description, profile_or_None, global_config)`` tuple.

    Raises:
        typer.Exit: With the error's exit code when the configuration or the
            description cannot be loaded.
    """
    from apitree.config import load_global_config, load_profile, resolve_config
    from apitree.parser import load_description, normalize, to_raw_ast

    output = get_output()
    try:
        if source is not None:
            config = load_global_config()
            profile = load_profile(profile_name) if profile_name else None
        else:
            config, profile = resolve_config(cli_profile=profile_name)
    except ApitreeError as exc:
        raise fail(exc) from None

    if source is None:
        if profile is None:
            output.error("No description given. Pass --source or run: apitree init")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        source = profile.source

    context: dict[str, Any] = {}
    if profile is not None:
        context.update(profile.base_uri_parameters)
    context.update(params or {})

    output.debug(f"Loading description from: {source}")
    try:
        description = normalize(
            to_raw_ast(load_description(source)), base_uri_context=context
        )
    except ApitreeError as exc:
        raise fail(exc) from None

    if profile is not None and profile.base_uri:
        description = description.model_copy(update={"base_uri": profile.base_uri})
    return description, profile, config

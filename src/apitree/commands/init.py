"""Init command -- create a profile from an API description.

Implements the ``apitree init`` top-level command. It loads the description
(from a URL, local file, or stdin), checks that it normalizes and that its
base URI resolves, creates a :class:`~apitree.models.Profile`, and writes a
project-local ``apitree.json`` pinning the new profile as the default.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Optional

import typer

from apitree.output import get_output


def init_command(
    source: str = typer.Option(
        ...,
        "--source",
        "-s",
        help="API description URL or file path (use '-' for stdin).",
    ),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Profile name (derived from the description title if omitted).",
    ),
    base_uri: Optional[str] = typer.Option(
        None, "--base-uri", help="Override the resolved base URI."
    ),
    param: Optional[list[str]] = typer.Option(
        None,
        "--param",
        "-P",
        help="Base URI parameter as NAME=VALUE (repeatable).",
    ),
) -> None:
    """Initialize a profile from an API description.

    Args:
        source: URL, local file path, or ``-`` for stdin.
        name: Profile name. When omitted, the description's title is
            slugified.
        base_uri: Override for the base URI. When omitted, the base URI the
            description resolves to is used at request time.
        param: ``NAME=VALUE`` values for base URI template tags.

    Raises:
        typer.Exit: With the error's exit code if the description cannot be
            loaded or normalized.

    Example::

        apitree init --source ./api.raml
        apitree init --source https://example.com/openapi.json --name pets
        apitree init -s api.raml -P version=v2
    """
    from apitree.commands.common import fail, parse_pairs
    from apitree.config import profile_exists, save_profile
    from apitree.exceptions import ApitreeError
    from apitree.models import Profile
    from apitree.parser import load_description, normalize, to_raw_ast

    output = get_output()
    params = parse_pairs(param, "=", "parameter")

    output.info(f"Loading description from: {source}")
    try:
        description = normalize(
            to_raw_ast(load_description(source)), base_uri_context=params
        )
    except ApitreeError as exc:
        raise fail(exc) from None

    version = f" {description.version}" if description.version else ""
    output.info(f"Validated: {description.title}{version}")
    output.debug(f"Resolved base URI: {description.base_uri or '-'}")

    profile_name = name or _slugify(description.title)
    if profile_exists(profile_name):
        output.info(f'Profile "{profile_name}" already exists and will be overwritten.')

    profile = Profile(
        name=profile_name,
        source=source,
        base_uri=base_uri,
        base_uri_parameters=params,
    )
    save_profile(profile)

    project_config_path = Path("apitree.json")
    project_config_path.write_text(
        json.dumps({"default_profile": profile_name}, indent=2) + "\n"
    )

    output.success(f'Profile "{profile_name}" created.')
    output.suggest(f"Inspect the client: apitree inspect tree --profile {profile_name}")
    output.suggest(f"Send a request: apitree request get / --profile {profile_name}")


def _slugify(text: str) -> str:
    """Convert text to a URL-safe slug."""
    slug = text.lower().strip()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = slug.strip("-")
    return slug or "default"

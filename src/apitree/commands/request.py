"""Request command -- send one request through a generated client.

``apitree request METHOD PATH`` builds the client for the given description
(or the active profile) and issues the request through the root escape hatch
``client(path, params)``, so any path can be reached, declared or not.
Requests run through the same pipeline the library uses: installed plugins
see them, the :class:`~apitree.client.transport.HttpxTransport` sends them
and :func:`~apitree.client.response.format_api_response` prints the answer.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import typer

from apitree.output import get_output


def request_command(
    method: str = typer.Argument(..., help="HTTP method (get, post, ...)."),
    path: str = typer.Argument(
        ..., help="Path relative to the base URI; {name} tags come from --param."
    ),
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="API description URL or file path."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name."
    ),
    param: Optional[list[str]] = typer.Option(
        None, "--param", "-P", help="Path parameter as NAME=VALUE (repeatable)."
    ),
    query: Optional[list[str]] = typer.Option(
        None, "--query", "-Q", help="Query parameter as KEY=VALUE (repeatable)."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Header as 'Name: value' (repeatable)."
    ),
    body: Optional[str] = typer.Option(
        None, "--body", "-d", help="Request body; JSON is sent as application/json."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Print the request instead of sending it."
    ),
) -> None:
    """Send a request to the API.

    Args:
        method: HTTP method, case-insensitive.
        path: Request path; ``{name}`` tags are expanded from ``--param``.
        source: Description to build the client from. Defaults to the
            active profile's source.
        profile: Profile name override.
        param: ``NAME=VALUE`` values for the path's template tags.
        query: ``KEY=VALUE`` query parameters; repeated keys are all sent.
        header: ``Name: value`` headers, overriding configured defaults.
        body: Payload. Valid JSON is parsed and re-serialized with a JSON
            content type; anything else is sent verbatim.
        dry_run: Use the dry-run transport instead of sending traffic.

    Raises:
        typer.Exit: With the error's exit code on any failure.

    Example::

        apitree request get /users/{id} -P id=42
        apitree request post /users --body '{"name": "ada"}'
        apitree request get /search -Q q=apitree -Q limit=5 --dry-run
    """
    from apitree.client import RequestAssembler, default_pipeline
    from apitree.client.response import format_api_response
    from apitree.commands.common import fail, load_api, parse_pairs
    from apitree.exceptions import ApitreeError
    from apitree.exit_codes import EXIT_INVALID_USAGE
    from apitree.generator import build_client
    from apitree.models import HTTPMethod
    from apitree.plugins import PluginManager

    output = get_output()

    try:
        verb_name = HTTPMethod(method.lower()).value
    except ValueError:
        output.error(f"Unknown HTTP method {method!r}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    path_params = parse_pairs(param, "=", "parameter")
    query_params = _parse_query(query)
    headers = parse_pairs(header, ":", "header")

    description, active_profile, config = load_api(source, profile)

    default_headers = dict(config.default_headers)
    request_config = config.request
    if active_profile is not None:
        default_headers.update(active_profile.headers)
        request_config = active_profile.request

    manager = PluginManager()
    manager.discover(config)
    pipeline = default_pipeline(
        request_config,
        dry_run=dry_run,
        hook_runner=manager.get_hook_runner(),
    )
    manager.install(pipeline)

    try:
        client = build_client(
            description, RequestAssembler(pipeline, default_headers=default_headers)
        )
        node = client(path, path_params)
        if query_params:
            node = node.query(query_params)
        if headers:
            node = node.headers(headers)

        verb = node[verb_name]
        output.debug(f"{verb.method} {verb.url}")
        future = verb(_parse_body(body)) if body is not None else verb()
        response = future.result()
    except ApitreeError as exc:
        raise fail(exc) from None
    finally:
        pipeline.shutdown()
        manager.cleanup()

    format_api_response(response)


def _parse_query(values: Optional[list[str]]) -> dict[str, Any]:
    """Collect ``KEY=VALUE`` pairs, turning repeated keys into lists."""
    from apitree.commands.common import parse_pairs

    collected: dict[str, list[str]] = {}
    for value in values or []:
        for key, item in parse_pairs([value], "=", "query parameter").items():
            collected.setdefault(key, []).append(item)
    return {key: items[0] if len(items) == 1 else items for key, items in collected.items()}


def _parse_body(body: str) -> Any:
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return body

"""Inspect commands -- examine the call graph generated for an API.

Provides the ``apitree inspect`` sub-command group with read-only commands:
the accessor tree of the generated client, a table of every reachable
route, and the description's metadata. Templated accessors are expanded
through their ``preview`` subtree, so no argument values are needed and no
request is ever sent.
"""

from __future__ import annotations

import keyword
from collections.abc import Iterator
from typing import Any, Optional

import typer

from apitree.generator.nodes import CallGraphNode, DynamicBranch
from apitree.output import get_output


inspect_app = typer.Typer(no_args_is_help=True)


def _build(source: Optional[str], profile: Optional[str]):  # noqa: ANN202
    """Return ``(client, description)`` for the given source or profile."""
    from apitree.client import Pipeline, RequestAssembler
    from apitree.commands.common import load_api
    from apitree.generator import build_client

    description, _, _ = load_api(source, profile)
    return build_client(description, RequestAssembler(Pipeline())), description


def graph_tree(node: CallGraphNode) -> dict[str, Any]:
    """Render *node* as a nested ``{label: subtree}`` mapping.

    Verbs are leaves labelled in upper case; templated accessors are
    labelled ``name(...)`` and expanded through their preview.
    """
    tree: dict[str, Any] = {verb.upper(): {} for verb in node._verbs}
    for name, child in node._children.items():
        if isinstance(child, DynamicBranch):
            if child._static is not None:
                tree[name] = graph_tree(child._static)
            tree[f"{name}(...)"] = graph_tree(child.preview)
        else:
            tree[name] = graph_tree(child)
    return tree


def iter_routes(
    node: CallGraphNode, accessor: str = "client"
) -> Iterator[tuple[str, str, str]]:
    """Yield ``(method, url, accessor)`` for every verb reachable from *node*.

    Example::

        >>> list(iter_routes(client))
        [('GET', 'http://api.example.com/users', 'client.users.get'),
         ('GET', 'http://api.example.com/users/{id}', 'client.users.id(...).get')]
    """
    for name, verb in node._verbs.items():
        yield verb.method, verb.url, f"{accessor}.{name}"
    for name, child in node._children.items():
        step = accessor + _accessor_step(name)
        if isinstance(child, DynamicBranch):
            if child._static is not None:
                yield from iter_routes(child._static, step)
            yield from iter_routes(child.preview, f"{step}(...)")
        else:
            yield from iter_routes(child, step)


def _accessor_step(name: str) -> str:
    if name.isidentifier() and not keyword.iskeyword(name):
        return f".{name}"
    return f"[{name!r}]"


@inspect_app.command("tree")
def inspect_tree(
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="API description URL or file path."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name."
    ),
) -> None:
    """Show the accessor tree of the generated client.

    Example::

        apitree inspect tree --source api.raml
    """
    client, description = _build(source, profile)
    get_output().print_tree(description.title, graph_tree(client))


@inspect_app.command("routes")
def inspect_routes(
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="API description URL or file path."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name."
    ),
) -> None:
    """List every route with its method, URL template and accessor.

    Example::

        apitree inspect routes --profile myapi
    """
    client, description = _build(source, profile)

    rows = [[method, url, accessor] for method, url, accessor in iter_routes(client)]
    if not rows:
        get_output().info("No routes declared in this description.")
        return

    get_output().print_table(
        ["Method", "URL", "Accessor"],
        rows,
        title=f"{description.title} -- Routes ({len(rows)})",
    )


@inspect_app.command("info")
def inspect_info(
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="API description URL or file path."
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name."
    ),
) -> None:
    """Show API info (title, version, base URI, counts).

    Example::

        apitree inspect info
    """
    client, description = _build(source, profile)

    data: dict[str, Any] = {
        "title": description.title,
        "version": description.version or "-",
        "base_uri": description.base_uri or "-",
        "base_uri_parameters": list(description.base_uri_parameters),
        "resources": len(description.resources),
        "routes": sum(1 for _ in iter_routes(client)),
    }
    if description.traits:
        data["traits"] = list(description.traits)
    if description.resource_types:
        data["resource_types"] = list(description.resource_types)

    get_output().format_response(data)

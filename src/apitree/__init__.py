"""apitree -- synthesize navigable API clients from resource descriptions.

This package turns a machine-readable API description (a RAML document, the
AST produced by a RAML parser, or an OpenAPI 3.x document) into a call graph
whose shape mirrors the API's resource hierarchy. Every leaf of the graph is a
callable that validates its URI parameters, assembles a request and hands it
to a pluggable execution pipeline.

Typical usage::

    from apitree import create_client

    client = create_client("api.raml")
    future = client.users.id(42).get(lambda err, response: print(response))
    future.result()

Modules:
    models: Pydantic models shared across the entire package.
    exceptions: Exception hierarchy with exit-code mapping.
    parser: Description loading, format adapters and AST normalization.
    generator: URI templates, parameter validation and call-graph building.
    client: Request assembly, the middleware pipeline and HTTP transport.
    plugins: Entry-point based plugins that hook into the pipeline.
    config: XDG-aware configuration and profile management.
    app: Typer application and CLI entry point.
"""

from __future__ import annotations

from typing import Any, Optional

__version__ = "0.1.0"


def create_client(
    source: str | dict[str, Any],
    pipeline: Optional[Any] = None,
    *,
    base_uri: Optional[str] = None,
    base_uri_context: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> Any:
    """Load, normalize and build a call graph in one step.

    Args:
        source: A path, URL or ``-`` for stdin, or an already parsed
            description dict in any supported format.
        pipeline: The :class:`~apitree.client.pipeline.Pipeline` requests
            are submitted to. When ``None`` a pipeline with the default
            :class:`~apitree.client.transport.HttpxTransport` is created.
        base_uri: Optional override for the description's base URI.
        base_uri_context: Values for base URI template tags that take
            precedence over the description's own fields.
        headers: Headers sent with every request.

    Returns:
        The root :class:`~apitree.generator.nodes.ApiClient`.
    """
    from apitree.client import RequestAssembler, default_pipeline
    from apitree.generator import build_client
    from apitree.parser import load_description, normalize, to_raw_ast

    document = load_description(source) if isinstance(source, str) else source
    description = normalize(to_raw_ast(document), base_uri_context=base_uri_context)
    if base_uri is not None:
        description = description.model_copy(update={"base_uri": base_uri})

    assembler = RequestAssembler(pipeline or default_pipeline(), default_headers=headers)
    return build_client(description, assembler)

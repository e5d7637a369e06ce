"""Normalize a raw API description AST into an :class:`~apitree.models.ApiDescription`.

The raw AST is the shape emitted by RAML parsers (and produced from RAML or
OpenAPI documents by :mod:`apitree.parser.adapters`)::

    {
        "title": "Example",
        "baseUri": "https://api.example.com/{version}",
        "version": "v1",
        "traits": [{"paged": {...}}, {"secured": {...}}],
        "resources": [
            {
                "relativeUri": "/users",
                "methods": [{"method": "get"}],
                "resources": [
                    {"relativeUri": "/{id}", "uriParameters": {"id": {...}},
                     "methods": [{"method": "get"}]},
                ],
            },
        ],
    }

Normalization performs these steps:

* trait, resource-type and schema fragments (lists of one-key mappings)
  are merged into single mappings, later keys overriding earlier ones;
* resource lists become mappings keyed by the relative URI without its
  leading ``/`` and method lists become mappings keyed by
  :class:`~apitree.models.HTTPMethod`;
* template tags used in a segment or in the base URI but not declared get an
  implicit untyped parameter;
* the base URI is substituted against the base URI parameters, using the
  description itself as the value context; a declared ``default`` fills a
  tag the context leaves empty.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from apitree.exceptions import DescriptionParseError
from apitree.generator.uri_template import substitute, template_tags
from apitree.models import (
    ApiDescription,
    HTTPMethod,
    MethodSpec,
    ParameterSpec,
    ResourceNode,
)

logger = logging.getLogger(__name__)


def normalize(
    raw: Mapping[str, Any],
    base_uri_context: Optional[Mapping[str, Any]] = None,
) -> ApiDescription:
    """Build the canonical description from a raw AST.

    Args:
        raw: The raw description AST (see module docstring).
        base_uri_context: Values for base URI template tags that override the
            description's own fields (e.g. ``{"version": "v2"}``).

    Returns:
        A frozen :class:`~apitree.models.ApiDescription`.

    Raises:
        DescriptionParseError: The AST is not a mapping, a resource lacks a
            ``relativeUri``, a method is not an HTTP verb, or a parameter
            schema is malformed.
        ParameterError: A base URI parameter value failed validation.
    """
    if not isinstance(raw, Mapping):
        raise DescriptionParseError(
            f"API description must be a mapping (got {type(raw).__name__})"
        )

    raw_base_uri = raw.get("baseUri") or ""
    base_params = _parameters(raw.get("baseUriParameters"), "baseUriParameters")
    base_params = _with_implicit(base_params, raw_base_uri, required=False)

    context = dict(raw)
    if raw.get("version") is not None:
        context["version"] = str(raw["version"])
    if base_uri_context:
        context.update(base_uri_context)
    for name, spec in base_params.items():
        if context.get(name) is None and spec.default is not None:
            context[name] = spec.default

    resources = _flatten_resources(raw.get("resources") or [], parent="")
    logger.debug(
        "Normalized description with %d top-level resources", len(resources)
    )

    return ApiDescription(
        title=str(raw.get("title") or "API"),
        version=context.get("version"),
        base_uri=substitute(raw_base_uri, base_params, context),
        base_uri_parameters=base_params,
        traits=merge_fragments(raw.get("traits")),
        resource_types=merge_fragments(raw.get("resourceTypes")),
        schemas=merge_fragments(raw.get("schemas")),
        resources=resources,
    )


def merge_fragments(fragments: Any) -> dict[str, Any]:
    """Merge a list of partial mappings into one; later keys win.

    A mapping is returned as a plain dict copy and ``None`` as ``{}``.

    Example::

        >>> merge_fragments([{"paged": {"a": 1}}, {"secured": {}}, {"paged": {}}])
        {'paged': {}, 'secured': {}}
    """
    if not fragments:
        return {}
    if isinstance(fragments, Mapping):
        return dict(fragments)

    merged: dict[str, Any] = {}
    for fragment in fragments:
        if not isinstance(fragment, Mapping):
            raise DescriptionParseError(
                f"Expected a mapping fragment, got {type(fragment).__name__}"
            )
        merged.update(fragment)
    return merged


def _flatten_resources(resources: Any, parent: str) -> dict[str, ResourceNode]:
    """Turn a resource list into a mapping keyed by bare segment name."""
    if isinstance(resources, Mapping):
        resources = list(resources.values())

    flattened: dict[str, ResourceNode] = {}
    for resource in resources:
        node = _normalize_resource(resource, parent)
        flattened[node.relative_segment] = node
    return flattened


def _normalize_resource(resource: Any, parent: str) -> ResourceNode:
    if not isinstance(resource, Mapping):
        raise DescriptionParseError(
            f"Resource under '{parent or '/'}' must be a mapping"
        )

    relative_uri = resource.get("relativeUri")
    if not isinstance(relative_uri, str):
        raise DescriptionParseError(
            f"Resource under '{parent or '/'}' has no relativeUri"
        )

    segment = relative_uri[1:] if relative_uri.startswith("/") else relative_uri
    full_path = f"{parent}{relative_uri}"

    uri_parameters = _parameters(resource.get("uriParameters"), full_path)
    uri_parameters = _with_implicit(uri_parameters, segment, required=True)

    return ResourceNode(
        relative_segment=segment,
        display_name=resource.get("displayName"),
        description=resource.get("description"),
        uri_parameters=uri_parameters,
        methods=_methods(resource.get("methods") or [], full_path),
        children=_flatten_resources(resource.get("resources") or [], full_path),
    )


def _methods(methods: Any, path: str) -> dict[HTTPMethod, MethodSpec]:
    if isinstance(methods, Mapping):
        methods = [
            {"method": key, **(value or {})} for key, value in methods.items()
        ]

    result: dict[HTTPMethod, MethodSpec] = {}
    for entry in methods:
        verb = entry.get("method") if isinstance(entry, Mapping) else entry
        try:
            method = HTTPMethod(str(verb).lower())
        except ValueError:
            raise DescriptionParseError(
                f"Unknown HTTP method {verb!r} on resource '{path}'"
            ) from None
        data = dict(entry) if isinstance(entry, Mapping) else {}
        data["method"] = method
        try:
            result[method] = MethodSpec.model_validate(data)
        except ValidationError as exc:
            raise DescriptionParseError(
                f"Invalid {method.value.upper()} method on '{path}': {exc}"
            ) from exc
    return result


def _parameters(raw_params: Any, where: str) -> dict[str, ParameterSpec]:
    if not raw_params:
        return {}
    if not isinstance(raw_params, Mapping):
        raise DescriptionParseError(f"Parameters of '{where}' must be a mapping")

    params: dict[str, ParameterSpec] = {}
    for name, raw_spec in raw_params.items():
        # RAML allows a list of alternative schemas; the first one is used.
        if isinstance(raw_spec, list):
            raw_spec = raw_spec[0] if raw_spec else {}
        data = dict(raw_spec or {})
        data.setdefault("displayName", name)
        try:
            params[name] = ParameterSpec.model_validate(data)
        except ValidationError as exc:
            raise DescriptionParseError(
                f"Invalid parameter '{name}' in '{where}': {exc}"
            ) from exc
    return params


def _with_implicit(
    params: dict[str, ParameterSpec], text: str, required: bool
) -> dict[str, ParameterSpec]:
    """Declare an untyped parameter for each undeclared tag in *text*."""
    missing = [tag for tag in template_tags(text) if tag not in params]
    if not missing:
        return params
    result = dict(params)
    for tag in missing:
        result[tag] = ParameterSpec(displayName=tag, type="any", required=required)
    return result

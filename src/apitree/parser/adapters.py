"""Convert loaded description documents into the raw AST.

Three input shapes are recognised by :func:`to_raw_ast`:

* **Parser AST** -- the output of a RAML parser, with a list-valued
  ``resources`` key. Passed through unchanged.
* **RAML document** -- the YAML source itself, where resources are the keys
  starting with ``/`` and methods are verb-named keys of a resource.
* **OpenAPI 3.x** -- ``$ref`` pointers are resolved, paths are split into a
  segment tree and path, query and header parameters are mapped onto
  ``uriParameters``, ``queryParameters`` and ``headers``. Swagger 2.x is
  rejected.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from apitree.exceptions import DescriptionParseError
from apitree.models import HTTPMethod
from apitree.parser.resolver import resolve_refs

logger = logging.getLogger(__name__)

_VERBS = [method.value for method in HTTPMethod]
_RESOURCE_FIELDS = ("displayName", "description", "uriParameters", "type", "is")
_SCHEMA_FACETS = (
    "enum", "minLength", "maxLength", "pattern", "minimum", "maximum",
    "default", "example",
)


def to_raw_ast(document: Mapping[str, Any]) -> dict[str, Any]:
    """Detect the format of *document* and return the raw AST.

    Raises:
        DescriptionParseError: The document is Swagger 2.x, an unsupported
            OpenAPI version, or not recognisable as any supported format.
    """
    if not isinstance(document, Mapping):
        raise DescriptionParseError(
            f"Description must be a mapping (got {type(document).__name__})"
        )

    if isinstance(document.get("resources"), list):
        return dict(document)
    if "swagger" in document or "openapi" in document:
        validate_openapi_version(document)
        return openapi_to_ast(resolve_refs(dict(document)))
    if any(isinstance(key, str) and key.startswith("/") for key in document):
        return raml_to_ast(document)
    if "baseUri" in document or "title" in document:
        return dict(document)

    raise DescriptionParseError(
        "Unrecognised description format: expected a RAML document, "
        "a RAML parser AST, or an OpenAPI 3.x document"
    )


def validate_openapi_version(document: Mapping[str, Any]) -> str:
    """Return the ``openapi`` version string of a 3.x document.

    Raises:
        DescriptionParseError: For Swagger 2.x, a missing ``openapi`` field,
            or a major version other than 3.
    """
    if "swagger" in document:
        raise DescriptionParseError(
            f"Swagger {document['swagger']} is not supported. "
            "Only OpenAPI 3.0.x and 3.1.x are supported. "
            "Consider converting with https://converter.swagger.io"
        )

    version = document.get("openapi")
    if version is None:
        raise DescriptionParseError(
            "Missing 'openapi' field. Is this an OpenAPI 3.x document?"
        )
    version = str(version)
    if not version.startswith("3."):
        raise DescriptionParseError(
            f"Unsupported OpenAPI version: {version}. "
            "Only OpenAPI 3.0.x and 3.1.x are supported."
        )
    return version


# ---------------------------------------------------------------------------
# RAML documents
# ---------------------------------------------------------------------------


def raml_to_ast(document: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a RAML YAML document to the parser AST shape.

    Example::

        >>> raml_to_ast({"title": "T", "/users": {"get": None}})
        {'title': 'T', 'resources': [{'relativeUri': '/users', 'methods': [{'method': 'get'}], 'resources': []}]}
    """
    ast = {
        key: value
        for key, value in document.items()
        if not (isinstance(key, str) and key.startswith("/"))
    }
    ast["resources"] = _raml_resources(document)
    return ast


def _raml_resources(node: Mapping[str, Any]) -> list[dict[str, Any]]:
    resources: list[dict[str, Any]] = []
    for key, value in node.items():
        if not (isinstance(key, str) and key.startswith("/")):
            continue
        body = value or {}
        resource: dict[str, Any] = {"relativeUri": key}
        for field in _RESOURCE_FIELDS:
            if field in body:
                resource[field] = body[field]
        resource["methods"] = [
            {"method": verb, **(body[verb] or {})}
            for verb in body
            if isinstance(verb, str) and verb in _VERBS
        ]
        resource["resources"] = _raml_resources(body)
        resources.append(resource)
    return resources


# ---------------------------------------------------------------------------
# OpenAPI 3.x documents
# ---------------------------------------------------------------------------


def openapi_to_ast(document: Mapping[str, Any]) -> dict[str, Any]:
    """Convert a ``$ref``-resolved OpenAPI 3.x document to the AST shape.

    Every path is split on ``/`` and each segment becomes a nested resource;
    operations are attached to the resource of their last segment. Server
    variables in the first server URL are replaced by their defaults.
    """
    info = document.get("info") or {}
    ast: dict[str, Any] = {
        "title": info.get("title") or "API",
        "version": info.get("version"),
        "baseUri": _server_url(document.get("servers") or []),
        "resources": [],
    }

    index: dict[tuple[str, ...], dict[str, Any]] = {}
    for path, item in (document.get("paths") or {}).items():
        if not isinstance(item, Mapping):
            continue

        chain: list[dict[str, Any]] = []
        siblings = ast["resources"]
        key: tuple[str, ...] = ()
        for segment in (s for s in path.split("/") if s):
            key += (segment,)
            resource = index.get(key)
            if resource is None:
                resource = {
                    "relativeUri": f"/{segment}",
                    "uriParameters": {},
                    "methods": [],
                    "resources": [],
                }
                index[key] = resource
                siblings.append(resource)
            chain.append(resource)
            siblings = resource["resources"]

        if not chain:
            logger.debug("Skipping operations on the root path '%s'", path)
            continue

        shared = item.get("parameters") or []
        for verb in _VERBS:
            operation = item.get(verb)
            if not isinstance(operation, Mapping):
                continue
            chain[-1]["methods"].append(
                _operation(verb, operation, shared, chain)
            )

    return ast


def _operation(
    verb: str,
    operation: Mapping[str, Any],
    shared: list[Any],
    chain: list[dict[str, Any]],
) -> dict[str, Any]:
    # Operation-level parameters override path-level ones with the same name and location.
    merged: dict[tuple[str, str], Mapping[str, Any]] = {}
    for param in list(shared) + list(operation.get("parameters") or []):
        if isinstance(param, Mapping) and "name" in param:
            merged[(param.get("in", ""), param["name"])] = param

    method: dict[str, Any] = {
        "method": verb,
        "description": operation.get("summary") or operation.get("description"),
        "queryParameters": {},
        "headers": {},
    }
    for (location, name), param in merged.items():
        if location == "path":
            tag = "{" + name + "}"
            for resource in chain:
                if tag in resource["relativeUri"]:
                    resource["uriParameters"][name] = _parameter_spec(param, True)
        elif location == "query":
            method["queryParameters"][name] = _parameter_spec(param, False)
        elif location == "header":
            method["headers"][name] = _parameter_spec(param, False)

    request_body = operation.get("requestBody")
    if isinstance(request_body, Mapping):
        method["body"] = dict(request_body.get("content") or {})
    return method


def _parameter_spec(param: Mapping[str, Any], path_param: bool) -> dict[str, Any]:
    schema = param.get("schema") or {}
    param_type = schema.get("type", "string")
    if isinstance(param_type, list):
        param_type = next((t for t in param_type if t != "null"), "string")
    if param_type == "string" and schema.get("format") in ("date", "date-time"):
        param_type = "date"

    spec: dict[str, Any] = {
        "displayName": param["name"],
        "type": param_type,
        "required": bool(param.get("required", path_param)),
    }
    if param.get("description"):
        spec["description"] = param["description"]
    for facet in _SCHEMA_FACETS:
        if facet in schema:
            spec[facet] = schema[facet]
    return spec


def _server_url(servers: list[Any]) -> str:
    if not servers or not isinstance(servers[0], Mapping):
        return ""
    server = servers[0]
    url = str(server.get("url") or "")
    for name, variable in (server.get("variables") or {}).items():
        default = variable.get("default") if isinstance(variable, Mapping) else None
        if default is not None:
            url = url.replace("{" + name + "}", str(default))
    return url

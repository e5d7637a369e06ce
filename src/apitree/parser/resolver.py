"""Resolve ``$ref`` JSON Reference pointers in OpenAPI documents.

Only internal references (``#/...``) are supported; anything else raises
:class:`~apitree.exceptions.DescriptionParseError`. A reference that is
already being resolved further up the current branch is a cycle and is left
in place as the raw ``{"$ref": ...}`` mapping.
"""

from __future__ import annotations

import copy
from typing import Any

from apitree.exceptions import DescriptionParseError


def resolve_refs(document: dict[str, Any]) -> dict[str, Any]:
    """Return a deep copy of *document* with every internal ``$ref`` inlined.

    Example::

        resolved = resolve_refs(load_description("openapi.yaml"))
        # resolved["paths"]["/pets/{id}"]["get"]["parameters"][0] is now the
        # referenced parameter object instead of a $ref mapping.

    Raises:
        DescriptionParseError: A reference is external or points nowhere.
    """
    root = copy.deepcopy(document)
    return _walk(root, root, frozenset())


def resolve_pointer(ref: str, root: dict[str, Any]) -> Any:
    """Follow the JSON Pointer *ref* (``#/a/b/0``) inside *root*.

    RFC 6901 escapes (``~1`` for ``/``, ``~0`` for ``~``) are honoured.
    """
    if not ref.startswith("#/"):
        raise DescriptionParseError(
            f"External $ref not supported: {ref}. "
            "Only internal references (#/...) are handled."
        )

    current: Any = root
    for token in ref[2:].split("/"):
        token = token.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            raise DescriptionParseError(
                f"Cannot resolve $ref '{ref}': '{token}' not found"
            )
    return current


def _walk(node: Any, root: dict[str, Any], active: frozenset[str]) -> Any:
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            if ref in active:
                return node
            return _walk(resolve_pointer(ref, root), root, active | {ref})
        return {key: _walk(value, root, active) for key, value in node.items()}
    if isinstance(node, list):
        return [_walk(item, root, active) for item in node]
    return node

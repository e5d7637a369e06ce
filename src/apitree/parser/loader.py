"""Load API descriptions from a URL, local file, or stdin.

This module handles all I/O for fetching raw description documents and
turning them into Python dictionaries. JSON and YAML are both accepted with
automatic format detection; RAML documents are YAML and may carry a
``#%RAML`` header line and ``!include`` tags.

After loading, the dict is passed to
:func:`~apitree.parser.adapters.to_raw_ast`, which detects the format and
produces the raw AST the normalizer consumes.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from apitree.exceptions import DescriptionParseError


class _DescriptionLoader(yaml.SafeLoader):
    """Safe YAML loader that keeps RAML ``!include`` tags as plain paths."""


def _construct_include(loader: yaml.SafeLoader, node: yaml.Node) -> Any:
    return loader.construct_scalar(node)


_DescriptionLoader.add_constructor("!include", _construct_include)


def load_description(source: str) -> dict[str, Any]:
    """Load a description document from a URL, file path, or stdin (``-``).

    Args:
        source: An ``http(s)://`` URL, a file path, or ``-`` for stdin.

    Returns:
        The parsed document.

    Raises:
        DescriptionParseError: The source cannot be read or parsed, or the
            document is not a mapping.
    """
    if source == "-":
        return _load_from_stdin()
    if source.startswith(("http://", "https://")):
        return _load_from_url(source)
    return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise DescriptionParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise DescriptionParseError("No input received from stdin")

    return _parse_content(content)


def _load_from_url(url: str) -> dict[str, Any]:
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise DescriptionParseError(
            f"HTTP {exc.response.status_code} fetching description from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise DescriptionParseError(
            f"Failed to fetch description from {url}: {exc}"
        ) from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "raml" in content_type:
        hint = "yaml"

    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise DescriptionParseError(f"Description file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DescriptionParseError(
            f"Failed to read description file {path}: {exc}"
        ) from exc

    if not content.strip():
        raise DescriptionParseError(f"Description file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml", ".raml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON, then YAML.

    JSON is tried first unless *hint* is ``"yaml"``; a ``"json"`` hint
    disables the YAML fallback.
    """
    json_error: Exception | None = None

    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise DescriptionParseError(f"Invalid JSON: {exc}") from exc

    try:
        result = yaml.load(content, Loader=_DescriptionLoader)
    except yaml.YAMLError as exc:
        msg = "Failed to parse description as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise DescriptionParseError(msg) from exc

    return _require_mapping(result)


def _require_mapping(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise DescriptionParseError(
            f"Description must be a JSON/YAML object (got {kind})"
        )
    return result

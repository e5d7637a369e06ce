"""Match and substitute ``{name}`` template tags in routes and URIs.

Two expansion functions are provided:

* :func:`substitute` -- the validating substitution used for resource
  segments and the base URI. Only *declared* parameter names are matched;
  every substituted value is first checked by
  :func:`~apitree.generator.validator.validate`.
* :func:`expand` -- a permissive expansion used by the root escape hatch
  (``client("/any/{path}", {...})``) where no parameter schema exists.

:func:`template_tags` lists the tags present in a piece of text.
"""

from __future__ import annotations

import datetime
import re
from collections.abc import Mapping, Sequence
from typing import Any, Optional
from urllib.parse import quote

from apitree.generator.validator import validate
from apitree.models import ParameterSpec, ParameterType

# Any ``{tag}`` token; tags may not nest or contain braces.
TAG_RE = re.compile(r"\{([^{}]+)\}")


def template_tags(
    text: str, params: Optional[Mapping[str, ParameterSpec]] = None
) -> list[str]:
    """Return the distinct template tags in *text*, in order of appearance.

    Args:
        text: A route segment or URI.
        params: When given, only tags declared in this mapping are returned.

    Example::

        >>> template_tags("files/{owner}{repo}")
        ['owner', 'repo']
    """
    tags: list[str] = []
    for tag in TAG_RE.findall(text):
        if tag in tags:
            continue
        if params is not None and tag not in params:
            continue
        tags.append(tag)
    return tags


def substitute(
    text: str,
    params: Optional[Mapping[str, ParameterSpec]],
    context: Any,
    encode: bool = False,
) -> str:
    """Substitute declared template tags in *text* with validated values.

    The scan is a single left-to-right pass over *text*. When *context* is a
    sequence (but not a string), each match consumes the next positional
    value; otherwise each match looks up ``context[tag]``. In both cases the
    value is validated against the spec of the matched tag and an absent
    value is replaced by the empty string. Tags missing from *params* are
    never matched and stay in the output verbatim. With *encode*, rendered
    values are percent-encoded so a value never spans path segments.

    Args:
        text: The template text.
        params: Declared parameter specs keyed by tag name. ``None`` or empty
            means there is nothing to substitute.
        context: A mapping of tag values or a sequence of positional values.
        encode: Percent-encode rendered values (no safe characters).

    Returns:
        The substituted text.

    Raises:
        ParameterError: A value failed validation; see
            :func:`~apitree.generator.validator.validate`.

    Example::

        >>> spec = {"id": ParameterSpec(type="string")}
        >>> substitute("{id}", spec, {"id": "42"})
        '42'
        >>> substitute("{id}", spec, ["42"])
        '42'
    """
    if not params:
        return text

    names = sorted(params, key=len, reverse=True)
    pattern = re.compile(r"\{(" + "|".join(re.escape(n) for n in names) + r")\}")

    if isinstance(context, Sequence) and not isinstance(context, (str, bytes)):
        values = iter(context)

        def _positional(match: re.Match[str]) -> str:
            spec = params[match.group(1)]
            value = next(values, None)
            validate(value, spec)
            return _render(value, spec, encode)

        return pattern.sub(_positional, text)

    lookup: Mapping[str, Any] = context if isinstance(context, Mapping) else {}

    def _named(match: re.Match[str]) -> str:
        spec = params[match.group(1)]
        value = lookup.get(match.group(1))
        validate(value, spec)
        return _render(value, spec, encode)

    return pattern.sub(_named, text)


def _render(value: Any, spec: ParameterSpec, encode: bool) -> str:
    text = format_value(value, spec)
    return quote(text, safe="") if encode else text


def expand(template: str, context: Optional[Mapping[str, Any]] = None) -> str:
    """Expand every ``{name}`` token of *template* without validation.

    Values are rendered with :func:`format_value` and percent-encoded;
    names missing from *context* expand to the empty string.

    Example::

        >>> expand("/search/{term}", {"term": "a b"})
        '/search/a%20b'
    """
    values = context or {}

    def _replace(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        return quote(format_value(value), safe="")

    return TAG_RE.sub(_replace, template)


def format_value(value: Any, spec: Optional[ParameterSpec] = None) -> str:
    """Render a parameter value as URI text.

    ``None`` becomes ``""``, booleans ``true``/``false``, dates ISO-8601,
    and integral floats of ``integer`` parameters lose their fraction.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if (
        spec is not None
        and spec.type == ParameterType.INTEGER
        and isinstance(value, float)
        and value.is_integer()
    ):
        return str(int(value))
    return str(value)

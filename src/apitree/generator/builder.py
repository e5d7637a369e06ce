"""Build a navigable call graph from a normalized API description.

This is the core algorithm of apitree. It walks the
:class:`~apitree.models.ResourceNode` tree of an
:class:`~apitree.models.ApiDescription` and produces a graph of
:mod:`~apitree.generator.nodes` whose shape mirrors the resource hierarchy.

**Algorithm summary**

For every resource keyed by ``route`` under the current node:

1. Extract the declared template tags of ``route``.
2. *No tags* -- attach a static :class:`~apitree.generator.nodes.CallGraphNode`
   under ``route`` holding the resource's verbs and its recursively built
   children.
3. *Tags* -- the route must be optional literal text followed by one or more
   adjacent ``{tag}`` groups; other shapes are skipped. The accessor name is
   the tag itself for a lone ``{tag}``, otherwise the literal prefix (which
   is ``""`` for adjacent tags with no prefix, reached as ``node[""]``). A
   :class:`~apitree.generator.nodes.DynamicBranch` is attached that
   substitutes its positional arguments into the route and builds the
   subtree on demand.
4. Attach a verb callable per declared HTTP method through the
   :class:`~apitree.client.assembler.RequestAssembler`, plus the ``query``
   and ``headers`` helpers unless already fixed or claimed by a child.

Names colliding with an HTTP verb, ``query`` or ``headers`` are never used
for dynamic accessors; such resources are left out of the graph and logged at
debug level. Construction performs no I/O and never mutates a node once
built: every template call and helper call returns a new subtree derived
from an immutable :class:`~apitree.models.PathState`.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional

import httpx

from apitree.exceptions import InvalidHeadersError, InvalidUsageError
from apitree.generator.nodes import ApiClient, CallGraphNode, DynamicBranch, Helper
from apitree.generator.uri_template import expand, format_value, substitute, template_tags
from apitree.models import ApiDescription, HTTPMethod, PathState, ResourceNode

if TYPE_CHECKING:
    from apitree.client.assembler import RequestAssembler

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Naming rules
# ---------------------------------------------------------------------------

VERB_NAMES: frozenset[str] = frozenset(method.value for method in HTTPMethod)
HELPER_NAMES: tuple[str, ...] = ("query", "headers")
RESERVED_NAMES: frozenset[str] = VERB_NAMES | frozenset(HELPER_NAMES)

# Literal prefix, then one or more adjacent tags closing the route.
ROUTE_SHAPE_RE = re.compile(r"^[^{}]*(?:\{[^{}]+\})+$")


def route_name(route: str, tags: Sequence[str]) -> str:
    """Return the accessor name of a templated route.

    Example::

        >>> route_name("{id}", ["id"])
        'id'
        >>> route_name("user-{id}", ["id"])
        'user-'
    """
    if len(tags) == 1 and route == "{" + tags[0] + "}":
        return tags[0]
    return route[: route.index("{")]


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class CallGraphBuilder:
    """Recursively turns resource mappings into call-graph nodes.

    Args:
        assembler: Produces the verb callables attached to every node.
    """

    def __init__(self, assembler: RequestAssembler) -> None:
        self._assembler = assembler

    def build(
        self,
        state: PathState,
        resources: Mapping[str, ResourceNode],
        methods: Iterable[HTTPMethod] = (),
    ) -> CallGraphNode:
        """Build the node at *state* for *resources* and *methods*.

        Args:
            state: Path state of the node being built.
            resources: Child resources keyed by route.
            methods: HTTP methods declared at this position.

        Returns:
            A new :class:`~apitree.generator.nodes.CallGraphNode`.
        """
        children: dict[str, Any] = {}
        for route, resource in resources.items():
            tags = template_tags(route, resource.uri_parameters)
            if tags:
                self._attach_dynamic(children, state, route, resource, tags)
            else:
                self._attach_static(children, state, route, resource)

        return CallGraphNode(
            state,
            children,
            self._verbs(state, methods),
            self._helpers(state, methods, claimed=children),
        )

    def open_path(
        self,
        state: PathState,
        path: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> CallGraphNode:
        """Return a node with every HTTP verb for an arbitrary *path*."""
        segment = expand(path, context).lstrip("/")
        child_state = state.with_segment(segment) if segment else state
        return self._helper_node(child_state, list(HTTPMethod), claimed=())

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def _attach_static(
        self,
        children: dict[str, Any],
        state: PathState,
        route: str,
        resource: ResourceNode,
    ) -> None:
        if route in VERB_NAMES:
            logger.debug("Skipping static resource '%s': shadows an HTTP verb", route)
            return

        node = self.build(state.with_segment(route), resource.children, resource.methods)
        existing = children.get(route)
        if isinstance(existing, DynamicBranch):
            children[route] = existing.with_static(node)
        else:
            children[route] = node

    def _attach_dynamic(
        self,
        children: dict[str, Any],
        state: PathState,
        route: str,
        resource: ResourceNode,
        tags: list[str],
    ) -> None:
        if not ROUTE_SHAPE_RE.match(route):
            logger.debug("Skipping resource '%s': unsupported route shape", route)
            return

        name = route_name(route, tags)
        if name in RESERVED_NAMES:
            logger.debug(
                "Skipping resource '%s': accessor name %r is reserved", route, name
            )
            return

        existing = children.get(name)
        if isinstance(existing, DynamicBranch):
            static = existing._static
        else:
            static = existing

        children[name] = DynamicBranch(
            name,
            route,
            len(tags),
            construct=functools.partial(self._construct, state, route, resource),
            preview=functools.partial(
                self.build, state.with_segment(route), resource.children, resource.methods
            ),
            static=static,
        )

    def _construct(
        self,
        state: PathState,
        route: str,
        resource: ResourceNode,
        args: tuple[Any, ...],
    ) -> CallGraphNode:
        segment = substitute(route, resource.uri_parameters, list(args), encode=True)
        child_state = state.with_segment(route).with_last(segment)
        return self.build(child_state, resource.children, resource.methods)

    # ------------------------------------------------------------------
    # Verbs and helpers
    # ------------------------------------------------------------------

    def _verbs(self, state: PathState, methods: Iterable[HTTPMethod]) -> dict[str, Any]:
        verbs: dict[str, Any] = {}
        for method in methods:
            method = HTTPMethod(method)
            verbs[method.value] = self._assembler.verb(state, method)
        return verbs

    def _helpers(
        self,
        state: PathState,
        methods: Iterable[HTTPMethod],
        claimed: Iterable[str],
    ) -> dict[str, Helper]:
        methods = list(methods)
        claimed = set(claimed)
        helpers: dict[str, Helper] = {}

        if "query" not in state.fixed and "query" not in claimed:
            helpers["query"] = Helper(
                "query",
                lambda value: self._helper_node(
                    state.with_query(encode_query(value)), methods, claimed
                ),
                lambda: self._helper_node(state.with_query(None), methods, claimed),
            )

        if "headers" not in state.fixed and "headers" not in claimed:
            helpers["headers"] = Helper(
                "headers",
                lambda value: self._helper_node(
                    state.with_headers(encode_headers(value)), methods, claimed
                ),
                lambda: self._helper_node(state.with_headers({}), methods, claimed),
            )

        return helpers

    def _helper_node(
        self,
        state: PathState,
        methods: Iterable[HTTPMethod],
        claimed: Iterable[str],
    ) -> CallGraphNode:
        methods = list(methods)
        return CallGraphNode(
            state,
            verbs=self._verbs(state, methods),
            helpers=self._helpers(state, methods, claimed),
        )


# ---------------------------------------------------------------------------
# Helper value encoding
# ---------------------------------------------------------------------------


def encode_query(value: Any) -> Optional[str]:
    """Serialize a ``query(...)`` argument.

    Strings are used verbatim (a leading ``?`` is dropped); mappings are
    url-encoded, sequence values repeating their key.

    Example::

        >>> encode_query({"tag": ["a", "b"], "limit": 10})
        'tag=a&tag=b&limit=10'
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value[1:] if value.startswith("?") else value
    if isinstance(value, Mapping):
        pairs: list[tuple[str, str]] = []
        for key, item in value.items():
            if isinstance(item, (list, tuple)):
                pairs.extend((key, format_value(v)) for v in item)
            elif item is not None:
                pairs.append((key, format_value(item)))
        return str(httpx.QueryParams(pairs))
    raise InvalidUsageError(
        f"Query must be a string or a mapping, got {type(value).__name__}"
    )


def encode_headers(value: Any) -> dict[str, str]:
    """Validate a ``headers(...)`` argument and render its values as text."""
    if not isinstance(value, Mapping):
        raise InvalidHeadersError(
            f"Headers must be a mapping, got {type(value).__name__}"
        )
    return {str(key): format_value(item) for key, item in value.items()}


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def build_client(description: ApiDescription, assembler: RequestAssembler) -> ApiClient:
    """Build the root of the call graph for *description*.

    Args:
        description: A normalized :class:`~apitree.models.ApiDescription`.
        assembler: The :class:`~apitree.client.assembler.RequestAssembler`
            every verb callable submits its request through.

    Returns:
        The :class:`~apitree.generator.nodes.ApiClient` root node.

    Example::

        client = build_client(normalize(raw), RequestAssembler(pipeline))
        client.users.get(lambda err, response: print(response.status_code))
    """
    builder = CallGraphBuilder(assembler)
    state = PathState(base_uri=description.base_uri)
    root = builder.build(state, description.resources)

    return ApiClient(
        state,
        root._children,
        root._verbs,
        root._helpers,
        open_path=functools.partial(builder.open_path, state),
    )

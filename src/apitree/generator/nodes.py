"""Call-graph node types.

The call graph is made of three kinds of values:

* :class:`CallGraphNode` -- a resource position. It exposes verb callables
  (``node.get``), child accessors (``node.users``) and the ``query`` /
  ``headers`` helpers through explicit lookup tables.
* :class:`DynamicBranch` -- a templated child accessor. Calling it with the
  template arguments returns a freshly built :class:`CallGraphNode`; when a
  static resource shares its name, the static subtree is reachable through
  the branch's attributes.
* :class:`Helper` -- a ``query(...)`` / ``headers(...)`` helper.

:class:`ApiClient` is the root node; calling it issues requests against an
arbitrary path.

Description-driven names may collide with attribute names, so every piece of
introspection API on a node is underscore-prefixed (``_state``,
``_children``, ``_verbs``, ``_helpers``), the same convention
:func:`collections.namedtuple` uses for ``_fields``. The one exception is
``preview`` on :class:`DynamicBranch`, :class:`Helper` and
:class:`ApiClient`; a resource literally named ``preview`` is still reachable
with item access (``branch["preview"]``).
"""

from __future__ import annotations

import functools
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any, Callable, Optional

from apitree.exceptions import InsufficientArgumentsError
from apitree.models import PathState


class CallGraphNode:
    """One position in the call graph.

    Lookup order is children, then verbs, then helpers. Values are reachable
    by attribute (``node.users``) and by item (``node["user-"]``) so names
    that are not Python identifiers remain accessible.

    Args:
        state: The path state this node was built from.
        children: Child accessors keyed by name.
        verbs: Verb callables keyed by lower-case HTTP method.
        helpers: ``query`` / ``headers`` helpers keyed by name.
    """

    def __init__(
        self,
        state: PathState,
        children: Optional[Mapping[str, Any]] = None,
        verbs: Optional[Mapping[str, Any]] = None,
        helpers: Optional[Mapping[str, Helper]] = None,
    ) -> None:
        self._state = state
        self._children = MappingProxyType(dict(children or {}))
        self._verbs = MappingProxyType(dict(verbs or {}))
        self._helpers = MappingProxyType(dict(helpers or {}))

    def _lookup(self, name: str) -> Any:
        for table in (self._children, self._verbs, self._helpers):
            if name in table:
                return table[name]
        raise KeyError(name)

    def __getitem__(self, name: str) -> Any:
        return self._lookup(name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._lookup(name)
        except KeyError:
            raise AttributeError(
                f"'{self._path()}' has no resource, method or helper named {name!r}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return any(name in table for table in (self._children, self._verbs, self._helpers))

    def __iter__(self) -> Iterator[str]:
        yield from self._children
        yield from self._verbs
        yield from self._helpers

    def __dir__(self) -> list[str]:
        names = set(super().__dir__())
        names.update(name for name in self if name.isidentifier())
        return sorted(names)

    def __repr__(self) -> str:
        parts = [f"path={self._path()!r}"]
        if self._children:
            parts.append(f"children={list(self._children)}")
        if self._verbs:
            parts.append(f"verbs={list(self._verbs)}")
        return f"<{type(self).__name__} {' '.join(parts)}>"

    def _path(self) -> str:
        return "/" + "/".join(self._state.segments)


class DynamicBranch:
    """A templated child accessor, optionally merged with a static subtree.

    Calling the branch requires at least ``arity`` positional arguments; the
    arguments are substituted into the route by ``construct`` and a new
    subtree is returned. Attribute and item access fall through to the
    static node, if one shares this name.

    Args:
        name: The accessor name (the lone tag, or the literal prefix).
        route: The raw templated route, e.g. ``"{id}"`` or ``"user-{id}"``.
        arity: Number of template tags in ``route``.
        construct: Builds the subtree from the positional arguments.
        preview: Builds the subtree for the unresolved template.
        static: The static subtree registered under the same name.
    """

    def __init__(
        self,
        name: str,
        route: str,
        arity: int,
        construct: Callable[[tuple[Any, ...]], CallGraphNode],
        preview: Callable[[], CallGraphNode],
        static: Optional[CallGraphNode] = None,
    ) -> None:
        self._name = name
        self._route = route
        self._arity = arity
        self._construct = construct
        self._preview = preview
        self._static = static

    def __call__(self, *args: Any) -> CallGraphNode:
        if len(args) < self._arity:
            raise InsufficientArgumentsError(
                f"Insufficient parameters given for '{self._route}'. "
                f"Expected at least {self._arity} arguments, got {len(args)}."
            )
        return self._construct(args)

    @functools.cached_property
    def preview(self) -> CallGraphNode:
        """The subtree built with the raw template segment."""
        return self._preview()

    def with_static(self, static: Optional[CallGraphNode]) -> DynamicBranch:
        """Return a copy of this branch carrying *static* as its subtree."""
        return DynamicBranch(
            self._name, self._route, self._arity,
            self._construct, self._preview, static,
        )

    def __getitem__(self, name: str) -> Any:
        if self._static is None:
            raise KeyError(name)
        return self._static[name]

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or self._static is None:
            raise AttributeError(name)
        return getattr(self._static, name)

    def __contains__(self, name: object) -> bool:
        return self._static is not None and name in self._static

    def __iter__(self) -> Iterator[str]:
        if self._static is not None:
            yield from self._static

    def __dir__(self) -> list[str]:
        names = set(super().__dir__())
        names.update(name for name in self if name.isidentifier())
        return sorted(names)

    def __repr__(self) -> str:
        merged = " +static" if self._static is not None else ""
        return f"<DynamicBranch {self._name}({self._route}){merged}>"


class Helper:
    """A ``query(...)`` or ``headers(...)`` helper bound to one path state."""

    def __init__(
        self,
        name: str,
        apply: Callable[[Any], CallGraphNode],
        preview: Callable[[], CallGraphNode],
    ) -> None:
        self._name = name
        self._apply = apply
        self._preview = preview

    def __call__(self, value: Any) -> CallGraphNode:
        return self._apply(value)

    @functools.cached_property
    def preview(self) -> CallGraphNode:
        return self._preview()

    def __repr__(self) -> str:
        return f"<Helper {self._name}(...)>"


class ApiClient(CallGraphNode):
    """The root of a generated call graph.

    Besides the declared resources, the root is callable: ``client(path,
    context)`` expands the ``{name}`` tokens of *path* from *context* and
    returns a node exposing every HTTP verb for that path, an escape hatch
    for routes the description does not declare.

    Example::

        client = build_client(description, assembler)
        client.users.id(42).get(callback)
        client("/search/{term}", {"term": "x"}).get(callback)
    """

    def __init__(
        self,
        state: PathState,
        children: Optional[Mapping[str, Any]] = None,
        verbs: Optional[Mapping[str, Any]] = None,
        helpers: Optional[Mapping[str, Helper]] = None,
        *,
        open_path: Callable[[str, Optional[Mapping[str, Any]]], CallGraphNode],
    ) -> None:
        super().__init__(state, children, verbs, helpers)
        self._open_path = open_path

    def __call__(
        self, path: str, context: Optional[Mapping[str, Any]] = None
    ) -> CallGraphNode:
        return self._open_path(path, context)

    @functools.cached_property
    def preview(self) -> CallGraphNode:
        """The node ``client("")`` returns: every verb on the base URI."""
        return self._open_path("", None)

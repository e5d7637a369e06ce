"""Canonical models shared across all apitree modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`PluginsConfig`,
    :class:`GlobalConfig`, and :class:`Profile`.

**Description models** -- produced by the normalizer and consumed by the
call-graph builder:
    :class:`HTTPMethod`, :class:`ParameterType`, :class:`ParameterSpec`,
    :class:`MethodSpec`, :class:`ResourceNode`, and :class:`ApiDescription`.
    Resource nodes and descriptions are frozen once built.

**Runtime state** -- :class:`PathState`, the immutable snapshot of a position
in the call graph (resolved path segments, query string, headers).

All pydantic models use Pydantic v2. Description models accept the camelCase
field names used on the wire (``displayName``, ``minLength``,
``uriParameters`` ...) as well as their snake_case attribute names, and keep
unknown keys in ``model_extra``.
"""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Config ---


class RequestConfig(BaseModel):
    """Default HTTP settings applied by the transport to every request.

    ``timeout`` defaults to ``None``: the request assembler never imposes a
    wait budget, so the transport waits indefinitely unless configured.
    """

    timeout: Optional[float] = Field(
        default=None, description="Request timeout in seconds (None = no limit)"
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(
        default=3, description="Max retry attempts for idempotent requests"
    )


class PluginsConfig(BaseModel):
    """Explicit plugin allow/deny lists stored in :class:`GlobalConfig`."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/apitree/config.json``.

    Loaded by :func:`~apitree.config.load_global_config`. See
    :func:`~apitree.config.resolve_config` for the full precedence chain.
    """

    default_profile: Optional[str] = None
    auto_select_single_profile: bool = True
    request: RequestConfig = Field(default_factory=RequestConfig)
    default_headers: dict[str, str] = Field(default_factory=dict)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)


class Profile(BaseModel):
    """Per-API profile stored as JSON under the ``profiles/`` config directory.

    Each profile points to a single API description (local file or URL) and
    bundles the base URI overrides, default headers and request settings
    needed to talk to that API. Profiles are created with ``apitree init``.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    source: str = Field(description="URL or file path of the API description")
    base_uri: Optional[str] = Field(
        default=None, description="Override the description's resolved base URI"
    )
    base_uri_parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Values for base URI template tags (e.g. version)",
    )
    headers: dict[str, str] = Field(default_factory=dict)
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Description models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods a resource may declare.

    Every member is also a reserved accessor name in the call graph.
    """

    GET = "get"
    HEAD = "head"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    OPTIONS = "options"
    TRACE = "trace"


class ParameterType(str, enum.Enum):
    """Parameter types understood by :func:`~apitree.generator.validator.validate`."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class ParameterSpec(BaseModel):
    """Declared schema of a single URI parameter.

    Facets only constrain values of their matching ``type``: ``enum``,
    ``min_length``, ``max_length`` and ``pattern`` apply to strings,
    ``minimum`` and ``maximum`` to integers and numbers. A facet left as
    ``None`` imposes no constraint. Types outside :class:`ParameterType`
    (e.g. RAML's ``file``) are accepted and never type-checked.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    display_name: Optional[str] = Field(default=None, alias="displayName")
    type: str = ParameterType.STRING.value
    required: bool = False
    description: Optional[str] = None
    default: Any = None
    example: Any = None
    enum: Optional[list[Any]] = None
    min_length: Optional[int] = Field(default=None, alias="minLength")
    max_length: Optional[int] = Field(default=None, alias="maxLength")
    pattern: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None


class MethodSpec(BaseModel):
    """One HTTP method declared on a resource."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    method: HTTPMethod
    description: Optional[str] = None
    headers: dict[str, Any] = Field(default_factory=dict)
    query_parameters: dict[str, Any] = Field(
        default_factory=dict, alias="queryParameters"
    )
    body: Optional[dict[str, Any]] = None


class ResourceNode(BaseModel):
    """A normalized resource: one path segment with its methods and children.

    ``relative_segment`` never carries a leading ``/``; it is also the key of
    this node in its parent's ``children`` mapping.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    relative_segment: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    description: Optional[str] = None
    uri_parameters: dict[str, ParameterSpec] = Field(
        default_factory=dict, alias="uriParameters"
    )
    methods: dict[HTTPMethod, MethodSpec] = Field(default_factory=dict)
    children: dict[str, ResourceNode] = Field(default_factory=dict)


class ApiDescription(BaseModel):
    """Canonical, normalized API description.

    Produced by :func:`~apitree.parser.normalizer.normalize` and consumed by
    :func:`~apitree.generator.builder.build_client`. ``base_uri`` has already
    been run through the URI template engine.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    title: str = "API"
    version: Optional[str] = None
    base_uri: str = ""
    base_uri_parameters: dict[str, ParameterSpec] = Field(default_factory=dict)
    traits: dict[str, Any] = Field(default_factory=dict)
    resource_types: dict[str, Any] = Field(default_factory=dict)
    schemas: dict[str, Any] = Field(default_factory=dict)
    resources: dict[str, ResourceNode] = Field(default_factory=dict)


# --- Runtime state ---


@dataclasses.dataclass(frozen=True)
class PathState:
    """Immutable snapshot of a position in the call graph.

    Every derivation returns a new instance, so call-graph nodes built from
    one state never observe changes made on behalf of another branch.

    Attributes:
        base_uri: The resolved base URI requests are issued against.
        segments: Resolved path segments, in order.
        query: The captured query string, if any.
        headers: Read-only request headers, if any.
        fixed: Names of the helpers (``"query"``, ``"headers"``) already
            applied to this state; they are not offered again.
    """

    base_uri: str
    segments: tuple[str, ...] = ()
    query: Optional[str] = None
    headers: Optional[Mapping[str, str]] = None
    fixed: frozenset[str] = frozenset()

    def with_segment(self, segment: str) -> PathState:
        return dataclasses.replace(self, segments=self.segments + (segment,))

    def with_last(self, segment: str) -> PathState:
        """Replace the last segment (used when a template is resolved)."""
        return dataclasses.replace(self, segments=self.segments[:-1] + (segment,))

    def with_query(self, query: Optional[str]) -> PathState:
        return dataclasses.replace(
            self, query=query, fixed=self.fixed | {"query"}
        )

    def with_headers(self, headers: Mapping[str, str]) -> PathState:
        return dataclasses.replace(
            self,
            headers=MappingProxyType(dict(headers)),
            fixed=self.fixed | {"headers"},
        )

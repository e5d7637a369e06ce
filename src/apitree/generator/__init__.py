"""Call-graph generator -- build a navigable client from a normalized description.

This sub-package is responsible for the second half of the apitree
pipeline: taking an :class:`~apitree.models.ApiDescription` (produced by the
parser) and constructing a graph of callables whose attributes mirror the
API's resource hierarchy.

Typical usage::

    from apitree.client import RequestAssembler, default_pipeline
    from apitree.generator import build_client

    client = build_client(description, RequestAssembler(default_pipeline()))
    client.users.id(42).get(callback)

Sub-modules:

* :mod:`~apitree.generator.validator` -- Check URI parameter values
  against their declared type and facets.
* :mod:`~apitree.generator.uri_template` -- Find and substitute ``{tag}``
  tokens in routes and URIs.
* :mod:`~apitree.generator.nodes` -- The node types the graph is made of.
* :mod:`~apitree.generator.builder` -- The core algorithm that decides,
  per resource, between static properties and templated accessors.
"""

from apitree.generator.builder import CallGraphBuilder, build_client
from apitree.generator.nodes import ApiClient, CallGraphNode, DynamicBranch, Helper
from apitree.generator.uri_template import expand, substitute, template_tags
from apitree.generator.validator import validate

__all__ = [
    "ApiClient",
    "CallGraphBuilder",
    "CallGraphNode",
    "DynamicBranch",
    "Helper",
    "build_client",
    "expand",
    "substitute",
    "template_tags",
    "validate",
]

"""Description parser -- load, adapt and normalize API descriptions.

This sub-package is responsible for the first half of the apitree pipeline:
turning a RAML document, a RAML parser AST or an OpenAPI 3.x document (JSON
or YAML, local file, remote URL or stdin) into an
:class:`~apitree.models.ApiDescription` the generator can consume.

Typical usage::

    from apitree.parser import load_description, normalize, to_raw_ast

    document = load_description("api.raml")
    description = normalize(to_raw_ast(document))

Sub-modules:

* :mod:`~apitree.parser.loader` -- I/O layer (URL, file, stdin) plus
  JSON/YAML format detection.
* :mod:`~apitree.parser.resolver` -- ``$ref`` resolution with cycle
  detection.
* :mod:`~apitree.parser.adapters` -- Format detection and conversion to the
  raw AST.
* :mod:`~apitree.parser.normalizer` -- Fragment merging, resource and method
  flattening, and base URI resolution.
"""

from apitree.parser.adapters import to_raw_ast, validate_openapi_version
from apitree.parser.loader import load_description
from apitree.parser.normalizer import normalize
from apitree.parser.resolver import resolve_refs

__all__ = [
    "load_description",
    "normalize",
    "resolve_refs",
    "to_raw_ast",
    "validate_openapi_version",
]

"""Turn call-graph positions into request descriptors.

The :class:`RequestAssembler` is shared by every node of one call graph. For
each declared HTTP method the builder asks it for a :class:`Verb`: a callable
that, when invoked, resolves the URL of its path state, serializes the
payload, and submits a :class:`~apitree.client.pipeline.RequestDescriptor`
to the pipeline on the ``outgoing-request`` event.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from concurrent.futures import Future
from typing import Any, Optional

from apitree.client.pipeline import (
    OUTGOING_REQUEST,
    Callback,
    Pipeline,
    RequestDescriptor,
)
from apitree.models import HTTPMethod, PathState

# Methods that carry no body; their first argument may be the callback.
BODYLESS_METHODS = frozenset({HTTPMethod.GET, HTTPMethod.HEAD})


class RequestAssembler:
    """Builds and submits requests for a call graph.

    Args:
        pipeline: The pipeline descriptors are submitted to.
        default_headers: Headers sent with every request; headers fixed on a
            path state take precedence.
    """

    def __init__(
        self,
        pipeline: Pipeline,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._pipeline = pipeline
        self._default_headers = dict(default_headers or {})

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def resolve_url(self, state: PathState) -> str:
        """Join the segments of *state* onto its base URI.

        Example::

            >>> RequestAssembler(Pipeline()).resolve_url(
            ...     PathState("http://api.example.com", ("users", "42"), query="a=1"))
            'http://api.example.com/users/42?a=1'
        """
        path = "/".join(state.segments).lstrip("/")
        url = state.base_uri.rstrip("/") + "/" + path
        if state.query:
            url = f"{url}?{state.query}"
        return url

    def verb(self, state: PathState, method: HTTPMethod) -> Verb:
        return Verb(self, state, HTTPMethod(method))

    def descriptor(
        self, state: PathState, method: HTTPMethod, data: Any = None
    ) -> RequestDescriptor:
        """Build the request for *method* at *state* with payload *data*.

        ``str`` and ``bytes`` payloads are sent verbatim; any other value is
        JSON-serialized and gets ``Content-Type: application/json`` unless a
        content type is already set.
        """
        headers = dict(self._default_headers)
        headers.update(state.headers or {})

        body: Optional[str | bytes] = None
        if data is not None:
            if isinstance(data, (str, bytes)):
                body = data
            else:
                body = json.dumps(data)
                if not any(key.lower() == "content-type" for key in headers):
                    headers["Content-Type"] = "application/json"

        return RequestDescriptor(
            url=self.resolve_url(state),
            method=HTTPMethod(method).value.upper(),
            headers=headers,
            body=body,
        )

    def submit(
        self, descriptor: RequestDescriptor, callback: Optional[Callback] = None
    ) -> Future:
        return self._pipeline.submit(OUTGOING_REQUEST, descriptor, callback)


class Verb:
    """A request-issuing callable bound to a path state and HTTP method.

    Call it as ``verb(data=None, callback=None)``. For ``get`` and ``head``
    a callable first argument is taken as the callback and any payload is
    ignored. The call returns the pipeline's
    :class:`~concurrent.futures.Future`; *callback*, if given, is called
    exactly once with ``(error, response)``.
    """

    def __init__(
        self, assembler: RequestAssembler, state: PathState, method: HTTPMethod
    ) -> None:
        self._assembler = assembler
        self._state = state
        self._method = method

    @property
    def method(self) -> str:
        return self._method.value.upper()

    @property
    def url(self) -> str:
        return self._assembler.resolve_url(self._state)

    def __call__(self, data: Any = None, callback: Optional[Callback] = None) -> Future:
        if self._method in BODYLESS_METHODS:
            if callback is None and callable(data):
                callback = data
            data = None
        descriptor = self._assembler.descriptor(self._state, self._method, data)
        return self._assembler.submit(descriptor, callback)

    def __repr__(self) -> str:
        return f"<Verb {self.method} {self.url}>"

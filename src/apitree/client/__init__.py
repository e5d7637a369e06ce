"""Request assembly and execution for apitree.

Verb callables of the call graph hand their requests to a
:class:`RequestAssembler`, which builds a :class:`RequestDescriptor` and
submits it to a :class:`Pipeline` on the ``outgoing-request`` event. The
pipeline runs any registered middleware (plugins, logging, header injection)
and finally its core layer, by default an :class:`HttpxTransport`.

Example::

    from apitree.client import RequestAssembler, default_pipeline

    assembler = RequestAssembler(default_pipeline(dry_run=True))
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import httpx

from apitree.client.assembler import RequestAssembler, Verb
from apitree.client.pipeline import (
    OUTGOING_REQUEST,
    LayerKind,
    Pipeline,
    RequestDescriptor,
)
from apitree.client.transport import HttpxTransport, dry_run_transport
from apitree.models import RequestConfig

if TYPE_CHECKING:
    from apitree.plugins.hooks import HookRunner


def default_pipeline(
    config: Optional[RequestConfig] = None,
    *,
    dry_run: bool = False,
    hook_runner: Optional[HookRunner] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Pipeline:
    """Create a pipeline whose ``outgoing-request`` core layer sends requests.

    Args:
        config: Request settings for the :class:`HttpxTransport`.
        dry_run: Use :func:`dry_run_transport` instead of sending traffic.
        hook_runner: Plugin hooks notified of transport failures.
        transport: Optional low-level httpx transport (tests).
    """
    pipeline = Pipeline()
    if dry_run:
        pipeline.core(OUTGOING_REQUEST, dry_run_transport)
    else:
        pipeline.core(
            OUTGOING_REQUEST,
            HttpxTransport(config, hook_runner=hook_runner, transport=transport),
        )
    return pipeline


__all__ = [
    "OUTGOING_REQUEST",
    "HttpxTransport",
    "LayerKind",
    "Pipeline",
    "RequestAssembler",
    "RequestDescriptor",
    "Verb",
    "default_pipeline",
    "dry_run_transport",
]

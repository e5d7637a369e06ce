"""Event-based middleware pipeline that executes outgoing requests.

A :class:`Pipeline` keeps, per event name, an ordered stack of middleware
layers plus at most one *core* layer that always runs last. Running an event
walks the stack:

* a :attr:`LayerKind.PLAIN` layer is called as ``fn(data, next_, done)`` and
  only while no error is in flight;
* a :attr:`LayerKind.ERROR` layer is called as ``fn(error, data, next_,
  done)`` and only while an error is in flight;
* ``next_(error=None)`` moves to the following layer, ``done(error=None,
  result=None)`` short-circuits the stack. ``done`` is idempotent;
* an exception raised by a layer is handed to ``next_``;
* when the stack is exhausted, ``done`` is called with the pending error.

The request assembler submits every :class:`RequestDescriptor` on the
:data:`OUTGOING_REQUEST` event; the HTTP transport registers itself as the
core layer of that event (see :mod:`apitree.client.transport`).
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from apitree.exceptions import PipelineError

logger = logging.getLogger(__name__)

OUTGOING_REQUEST = "outgoing-request"
"""Event name the request assembler submits descriptors on."""

Done = Callable[..., None]
Next = Callable[..., None]
Callback = Callable[[Optional[BaseException], Any], None]


@dataclasses.dataclass
class RequestDescriptor:
    """A request ready to be dispatched.

    Layers of the :data:`OUTGOING_REQUEST` event may mutate any field before
    the transport sends it.

    Attributes:
        url: The fully resolved URL, query string included.
        method: Upper-case HTTP method.
        headers: Request headers.
        body: The serialized body, or ``None``.
        timeout: Wait budget in seconds; ``None`` leaves the decision to the
            transport.
        handle: The low-level request object a layer may surface.
    """

    url: str
    method: str
    headers: dict[str, str] = dataclasses.field(default_factory=dict)
    body: Optional[str | bytes] = None
    timeout: Optional[float] = None
    handle: Any = None


class LayerKind(enum.Enum):
    """Whether a layer handles the normal flow or in-flight errors."""

    PLAIN = "plain"
    ERROR = "error"


@dataclasses.dataclass(frozen=True)
class Middleware:
    fn: Callable[..., Any]
    kind: LayerKind = LayerKind.PLAIN


class Pipeline:
    """Namespaced middleware stacks with a thread-pool backed ``submit``.

    Args:
        max_workers: Size of the worker pool used by :meth:`submit`.

    Example::

        pipeline = Pipeline()
        pipeline.use(OUTGOING_REQUEST, add_user_agent)
        pipeline.core(OUTGOING_REQUEST, HttpxTransport(RequestConfig()))
        future = pipeline.submit(OUTGOING_REQUEST, descriptor, callback)
    """

    def __init__(self, max_workers: Optional[int] = None) -> None:
        self._stacks: dict[str, list[Middleware]] = {}
        self._core: dict[str, Middleware] = {}
        self._lock = threading.Lock()
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def use(
        self, event: str, fn: Callable[..., Any], kind: LayerKind = LayerKind.PLAIN
    ) -> Pipeline:
        """Append *fn* to the stack of *event*."""
        with self._lock:
            self._stacks.setdefault(event, []).append(Middleware(fn, kind))
        return self

    def use_error(self, event: str, fn: Callable[..., Any]) -> Pipeline:
        """Append an error-aware layer to the stack of *event*."""
        return self.use(event, fn, LayerKind.ERROR)

    def core(self, event: str, fn: Callable[..., Any]) -> Pipeline:
        """Set the single terminal layer of *event*, replacing any previous one."""
        with self._lock:
            self._core[event] = Middleware(fn)
        return self

    def disuse(self, event: str, fn: Optional[Callable[..., Any]] = None) -> Pipeline:
        """Remove *fn* from *event*, or every stacked layer when *fn* is ``None``.

        The core layer is only removed when it is *fn* itself.
        """
        with self._lock:
            if fn is None:
                self._stacks.pop(event, None)
                return self
            stack = [layer for layer in self._stacks.get(event, []) if layer.fn != fn]
            if stack:
                self._stacks[event] = stack
            else:
                self._stacks.pop(event, None)
            core = self._core.get(event)
            if core is not None and core.fn == fn:
                del self._core[event]
        return self

    def layers(self, event: str) -> list[Middleware]:
        """Return a snapshot of the layers *event* runs through, core last."""
        with self._lock:
            layers = list(self._stacks.get(event, []))
            if event in self._core:
                layers.append(self._core[event])
        return layers

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self, event: str, data: Any, done: Optional[Done] = None) -> None:
        """Run *data* through the layers of *event* on the calling thread.

        *done* is invoked exactly once as ``done(error, result)``; when a
        layer finishes without a result, *data* itself is the result.
        """
        layers = self.layers(event)
        index = 0
        sent = False
        sent_lock = threading.Lock()

        def finish(err: Optional[BaseException] = None, result: Any = None) -> None:
            nonlocal sent
            with sent_lock:
                if sent:
                    return
                sent = True
            if err is not None:
                logger.debug("Event '%s' finished with error: %s", event, err)
            if done is not None:
                done(err, data if result is None and err is None else result)

        def next_(err: Optional[BaseException] = None) -> None:
            nonlocal index
            while not sent and index < len(layers):
                layer = layers[index]
                index += 1
                if (err is None) != (layer.kind is LayerKind.PLAIN):
                    continue
                try:
                    if layer.kind is LayerKind.ERROR:
                        layer.fn(err, data, next_, finish)
                    else:
                        layer.fn(data, next_, finish)
                except Exception as exc:
                    logger.debug("Layer %r of '%s' raised: %s", layer.fn, event, exc)
                    next_(exc)
                return
            finish(err)

        next_()

    def submit(
        self, event: str, data: Any, callback: Optional[Callback] = None
    ) -> Future:
        """Run *event* on the worker pool and return its future.

        *callback* is registered before the work is scheduled, so it is called
        exactly once as ``callback(error, result)``, including with a
        :class:`~concurrent.futures.CancelledError` when the future is
        cancelled before it starts.

        Raises:
            PipelineError: The pipeline has been shut down.
        """
        future: Future = Future()
        if callback is not None:
            future.add_done_callback(lambda f: _notify(callback, f))

        def _work() -> None:
            if not future.set_running_or_notify_cancel():
                return

            def _done(err: Optional[BaseException] = None, result: Any = None) -> None:
                if err is not None:
                    future.set_exception(err)
                else:
                    future.set_result(result)

            self.run(event, data, _done)

        self._get_executor().submit(_work)
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and release the worker pool.

        Core layers exposing a ``close()`` method (such as
        :class:`~apitree.client.transport.HttpxTransport`) are closed once
        pending work has finished.
        """
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
            cores = list(self._core.values())
        if executor is not None:
            executor.shutdown(wait=wait)
        for layer in cores:
            close = getattr(layer.fn, "close", None)
            if callable(close):
                close()

    def __enter__(self) -> Pipeline:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._closed:
                raise PipelineError("Pipeline has been shut down")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="apitree"
                )
            return self._executor


def _notify(callback: Callback, future: Future) -> None:
    if future.cancelled():
        callback(CancelledError(), None)
        return
    error = future.exception()
    callback(error, None if error is not None else future.result())

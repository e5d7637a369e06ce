"""Terminal pipeline layers that dispatch requests.

:class:`HttpxTransport` is the default core layer of the ``outgoing-request``
event. It wraps :class:`httpx.Client` and layers on:

- **Retry with backoff** -- idempotent requests are retried on 5xx and
  network errors with exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- 401/403 become :class:`~apitree.exceptions.AuthError`,
  404 :class:`~apitree.exceptions.NotFoundError`, any other status >= 400
  :class:`~apitree.exceptions.ServerError`; each carries the response.
- **Plugin hooks** -- failures are reported to the plugins' ``on_error``
  hooks via :class:`~apitree.plugins.hooks.HookRunner`.

Failures are never raised to the caller: every outcome is reported through
the pipeline's ``done(error, response)``.

:func:`dry_run_transport` prints the request to stderr and answers with a
synthetic 200 response without sending traffic.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Optional

import httpx

from apitree.client.pipeline import Done, Next, RequestDescriptor
from apitree.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from apitree.models import RequestConfig
from apitree.output import get_output

if TYPE_CHECKING:
    from apitree.plugins.hooks import HookRunner

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS", "TRACE"})


class HttpxTransport:
    """Pipeline core layer backed by :class:`httpx.Client`.

    Args:
        config: Timeout, SSL verification and retry settings. ``timeout=None``
            waits indefinitely.
        hook_runner: Optional plugin hook runner notified of every failure.
        transport: Optional :class:`httpx.BaseTransport`, e.g.
            :class:`httpx.MockTransport` in tests.
        backoff: Base delay in seconds of the exponential backoff.

    Example::

        pipeline.core(OUTGOING_REQUEST, HttpxTransport(RequestConfig(max_retries=1)))
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        hook_runner: Optional[HookRunner] = None,
        transport: Optional[httpx.BaseTransport] = None,
        backoff: float = 1.0,
    ) -> None:
        self._config = config or RequestConfig()
        self._hook_runner = hook_runner
        self._backoff = backoff
        self._client = httpx.Client(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    def __call__(self, request: RequestDescriptor, next_: Next, done: Done) -> None:
        try:
            response = self._execute_with_retry(request)
        except ConnectionError_ as exc:
            self._report(exc)
            done(exc)
            return

        error = self._map_response_error(response)
        if error is not None:
            self._report(error)
            done(error)
            return
        done(None, response)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _execute_with_retry(self, request: RequestDescriptor) -> httpx.Response:
        """Send *request*, retrying idempotent methods on 5xx and network errors."""
        max_retries = self._config.max_retries
        if request.method.upper() not in IDEMPOTENT_METHODS:
            max_retries = 0

        kwargs: dict[str, Any] = {}
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout

        for attempt in range(max_retries + 1):
            http_request = self._client.build_request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
                **kwargs,
            )
            request.handle = http_request
            try:
                response = self._client.send(http_request)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = self._backoff * 2 ** attempt
                    logger.debug(
                        "Connection error: %s, retrying in %ss (attempt %d/%d)",
                        exc, delay, attempt + 1, max_retries,
                    )
                    time.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {attempt + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = self._backoff * 2 ** attempt
                logger.debug(
                    "Server error %d, retrying in %ss (attempt %d/%d)",
                    response.status_code, delay, attempt + 1, max_retries,
                )
                response.close()
                time.sleep(delay)
                continue

            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    def _map_response_error(self, response: httpx.Response) -> Optional[Exception]:
        """Return a typed exception for an error status, or ``None``."""
        status = response.status_code
        if status < 400:
            return None

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status in (401, 403):
            return AuthError(full_msg, response=response)
        if status == 404:
            return NotFoundError(full_msg, response=response)
        return ServerError(full_msg, response=response)

    def _report(self, error: Exception) -> None:
        if self._hook_runner is not None:
            self._hook_runner.run_error(error)


def dry_run_transport(request: RequestDescriptor, next_: Next, done: Done) -> None:
    """Print *request* to stderr and answer with a synthetic 200 response."""
    output = get_output()
    output.info(f"[dry-run] {request.method} {request.url}")

    for key, value in request.headers.items():
        output.info(f"  Header: {key}: {value}")

    if request.body is not None:
        body = request.body.decode(errors="replace") if isinstance(request.body, bytes) else request.body
        output.info(f"  Body: {body}")

    done(
        None,
        httpx.Response(
            status_code=200,
            headers={"content-type": "application/json"},
            json={"dry_run": True, "message": "Request was not sent"},
            request=httpx.Request(method=request.method, url=request.url),
        ),
    )

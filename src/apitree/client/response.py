"""Bridge from :class:`httpx.Response` to the output system.

After a request completes, :func:`format_api_response` prints the status
line to stderr and routes the body through
:meth:`~apitree.output.OutputManager.format_response` on stdout.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from apitree.output import get_output


def format_api_response(response: httpx.Response) -> None:
    """Print the status line (stderr) and the decoded body (stdout)."""
    output = get_output()
    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}".rstrip())

    data = extract_response_data(response)
    if data is not None:
        output.format_response(data)


def extract_response_data(response: httpx.Response) -> Any:
    """Decode a response body: JSON when possible, otherwise text.

    Returns ``None`` for an empty body.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text

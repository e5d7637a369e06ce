"""Shared test fixtures for apitree.

Provides reusable fixtures for loading description fixtures, building call
graphs against a recording pipeline, creating isolated config environments,
managing output state, and running CLI commands. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from apitree.client import OUTGOING_REQUEST, Pipeline, RequestAssembler, RequestDescriptor
from apitree.generator import ApiClient, build_client
from apitree.models import ApiDescription
from apitree.output import OutputFormat, OutputManager, reset_output, set_output
from apitree.parser import normalize


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Raw description fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def example_ast() -> dict[str, Any]:
    """Load the example RAML parser AST."""
    with open(FIXTURES_DIR / "example_ast.json") as f:
        return json.load(f)


@pytest.fixture
def example_raml_path() -> Path:
    """Path of the example RAML document."""
    return FIXTURES_DIR / "example.raml"


@pytest.fixture
def petstore_raw() -> dict[str, Any]:
    """Load the raw petstore OpenAPI 3.0 document."""
    with open(FIXTURES_DIR / "petstore_openapi.json") as f:
        return json.load(f)


@pytest.fixture
def example_description(example_ast: dict[str, Any]) -> ApiDescription:
    """The normalized example description."""
    return normalize(copy.deepcopy(example_ast))


# ---------------------------------------------------------------------------
# Pipeline and client fixtures
# ---------------------------------------------------------------------------


class RecordingCore:
    """Core layer that records every descriptor and answers ``200 OK``.

    The JSON body echoes the method and URL of the request.
    """

    def __init__(self) -> None:
        self.requests: list[RequestDescriptor] = []

    def __call__(self, request: RequestDescriptor, next_: Any, done: Any) -> None:
        self.requests.append(request)
        done(
            None,
            httpx.Response(
                200,
                json={"method": request.method, "url": request.url},
                request=httpx.Request(request.method, request.url),
            ),
        )

    @property
    def last(self) -> RequestDescriptor:
        return self.requests[-1]


@pytest.fixture
def recorder() -> RecordingCore:
    return RecordingCore()


@pytest.fixture
def pipeline(recorder: RecordingCore) -> Pipeline:
    """A pipeline whose core layer is the :class:`RecordingCore`."""
    pipeline = Pipeline(max_workers=2)
    pipeline.core(OUTGOING_REQUEST, recorder)
    yield pipeline
    pipeline.shutdown()


@pytest.fixture
def assembler(pipeline: Pipeline) -> RequestAssembler:
    return RequestAssembler(pipeline)


@pytest.fixture
def client(example_description: ApiDescription, assembler: RequestAssembler) -> ApiClient:
    """Call graph of the example description on the recording pipeline."""
    return build_client(example_description, assembler)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config. Clears the APITREE_*
    environment variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("apitree.config._is_xdg_platform", lambda: True)

    for var in ["APITREE_PROFILE", "APITREE_BASE_URI"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def json_output() -> OutputManager:
    """Install a JSON-format OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.JSON)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

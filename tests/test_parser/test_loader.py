"""Tests for apitree.parser.loader."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from apitree.exceptions import DescriptionParseError
from apitree.parser.loader import (
    _load_from_file,
    _load_from_stdin,
    _load_from_url,
    _parse_content,
    load_description,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


# ---------------------------------------------------------------------------
# load_description dispatch
# ---------------------------------------------------------------------------


class TestLoadDescription:
    """Test load_description routes to the correct loader."""

    def test_loads_from_file_json(self) -> None:
        result = load_description(str(FIXTURES_DIR / "example_ast.json"))
        assert result["title"] == "Example API"
        assert isinstance(result["resources"], list)

    def test_loads_raml_file(self) -> None:
        result = load_description(str(FIXTURES_DIR / "example.raml"))
        assert result["title"] == "Example API"
        assert "/users" in result

    def test_raml_include_kept_as_path(self) -> None:
        result = load_description(str(FIXTURES_DIR / "example.raml"))
        body = result["/users"]["post"]["body"]["application/json"]
        assert body["schema"] == "schemas/user.json"

    def test_loads_from_stdin(self) -> None:
        content = json.dumps({"title": "stdin test", "resources": []})
        with patch("apitree.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(content)
            result = load_description("-")
        assert result["title"] == "stdin test"

    def test_loads_from_url(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            json={"title": "URL test", "resources": []},
            request=httpx.Request("GET", "https://example.com/api.json"),
        )
        with patch("apitree.parser.loader.httpx.get", return_value=mock_response):
            result = load_description("https://example.com/api.json")
        assert result["title"] == "URL test"


# ---------------------------------------------------------------------------
# _load_from_file
# ---------------------------------------------------------------------------


class TestLoadFromFile:
    """Test loading descriptions from local files."""

    def test_load_yaml_file(self, tmp_path: Path) -> None:
        content = textwrap.dedent("""\
            title: YAML
            baseUri: http://localhost
            /hello:
              get:
        """)
        yaml_file = tmp_path / "api.yaml"
        yaml_file.write_text(content, encoding="utf-8")
        result = _load_from_file(str(yaml_file))
        assert result["/hello"] == {"get": None}

    def test_file_not_found_raises(self) -> None:
        with pytest.raises(DescriptionParseError, match="not found"):
            _load_from_file("/nonexistent/path/to/api.raml")

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty.raml"
        empty.write_text("", encoding="utf-8")
        with pytest.raises(DescriptionParseError, match="empty"):
            _load_from_file(str(empty))

    def test_invalid_json_file_raises(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.json"
        bad.write_text("{invalid json", encoding="utf-8")
        with pytest.raises(DescriptionParseError, match="Invalid JSON"):
            _load_from_file(str(bad))

    def test_non_object_raises(self, tmp_path: Path) -> None:
        array_file = tmp_path / "array.json"
        array_file.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(DescriptionParseError, match="must be a JSON/YAML object"):
            _load_from_file(str(array_file))


# ---------------------------------------------------------------------------
# _load_from_stdin
# ---------------------------------------------------------------------------


class TestLoadFromStdin:
    """Test loading descriptions from stdin."""

    def test_reads_yaml_from_stdin(self) -> None:
        content = textwrap.dedent("""\
            #%RAML 0.8
            title: YAML stdin
        """)
        with patch("apitree.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO(content)
            result = _load_from_stdin()
        assert result["title"] == "YAML stdin"

    def test_empty_stdin_raises(self) -> None:
        with patch("apitree.parser.loader.sys") as mock_sys:
            mock_sys.stdin = io.StringIO("   \n\t\n  ")
            with pytest.raises(DescriptionParseError, match="No input"):
                _load_from_stdin()


# ---------------------------------------------------------------------------
# _load_from_url
# ---------------------------------------------------------------------------


class TestLoadFromUrl:
    """Test loading descriptions from URLs."""

    def test_loads_yaml_by_content_type(self) -> None:
        mock_response = httpx.Response(
            status_code=200,
            text="title: Remote RAML\n/things:\n  get:\n",
            headers={"content-type": "application/raml+yaml"},
            request=httpx.Request("GET", "https://example.com/api.raml"),
        )
        with patch("apitree.parser.loader.httpx.get", return_value=mock_response):
            result = _load_from_url("https://example.com/api.raml")
        assert result["title"] == "Remote RAML"

    def test_http_error_raises(self) -> None:
        mock_response = httpx.Response(
            status_code=404,
            request=httpx.Request("GET", "https://example.com/missing.raml"),
        )
        with patch("apitree.parser.loader.httpx.get", return_value=mock_response):
            with pytest.raises(DescriptionParseError, match="HTTP 404"):
                _load_from_url("https://example.com/missing.raml")

    def test_network_error_raises(self) -> None:
        with patch(
            "apitree.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(DescriptionParseError, match="Failed to fetch"):
                _load_from_url("https://example.com/api.raml")


# ---------------------------------------------------------------------------
# _parse_content
# ---------------------------------------------------------------------------


class TestParseContent:
    """Test JSON-first parsing with YAML fallback."""

    def test_json_without_hint(self) -> None:
        assert _parse_content('{"title": "J"}') == {"title": "J"}

    def test_yaml_fallback(self) -> None:
        assert _parse_content("title: Y\n") == {"title": "Y"}

    def test_json_hint_disables_yaml_fallback(self) -> None:
        with pytest.raises(DescriptionParseError, match="Invalid JSON"):
            _parse_content("title: Y\n", hint="json")

    def test_unparseable_raises_with_both_errors(self) -> None:
        with pytest.raises(DescriptionParseError, match="JSON or YAML"):
            _parse_content("key: [unclosed")

    def test_empty_document_raises(self) -> None:
        with pytest.raises(DescriptionParseError, match="empty document"):
            _parse_content("# only a comment\n", hint="yaml")

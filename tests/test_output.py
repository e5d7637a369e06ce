"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- format_response, print_table and print_tree in every format
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from apitree.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("apitree.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("apitree.output._is_tty", lambda: True)
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("TERM", raising=False)


TREE = {"users": {"GET": {}, "id(...)": {"DELETE": {}}}, "status": {}}


# ------------------------------------------------------------------ #
# OutputFormat resolution
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty):
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_resolves_to_plain_when_tty_but_no_color(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


# ------------------------------------------------------------------ #
# Color disabling
# ------------------------------------------------------------------ #


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# stdout / stderr discipline
# ------------------------------------------------------------------ #


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(no_color=True).print_data("payload")
        captured = capfd.readouterr()
        assert captured.out == "payload\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_go_to_stderr(self, capfd, non_tty, method):
        getattr(OutputManager(no_color=True), method)("note")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "note" in captured.err

    def test_error_and_warning_prefixes(self, capfd, non_tty):
        mgr = OutputManager(no_color=True)
        mgr.error("bad")
        mgr.warning("careful")
        err = capfd.readouterr().err
        assert "Error: bad" in err
        assert "Warning: careful" in err

    def test_brackets_are_not_markup(self, capfd, non_tty):
        mgr = OutputManager()
        mgr.info("[dry-run] GET /users")
        mgr.error("expected ['a']")
        err = capfd.readouterr().err
        assert "[dry-run] GET /users" in err
        assert "expected ['a']" in err

    def test_suggest_has_arrow(self, capfd, non_tty):
        OutputManager(no_color=True).suggest("Next: apitree inspect tree")
        assert "→ Next: apitree inspect tree" in capfd.readouterr().err


# ------------------------------------------------------------------ #
# Quiet / verbose
# ------------------------------------------------------------------ #


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_success_suggest(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.info("i")
        mgr.success("s")
        mgr.suggest("g")
        assert capfd.readouterr().err == ""

    def test_quiet_keeps_errors_and_data(self, capfd, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.error("e")
        mgr.print_data("d")
        captured = capfd.readouterr()
        assert "Error: e" in captured.err
        assert captured.out == "d\n"

    def test_debug_only_with_verbose(self, capfd, non_tty):
        OutputManager(no_color=True).debug("hidden")
        assert capfd.readouterr().err == ""
        mgr = OutputManager(no_color=True, verbose=True)
        mgr.debug("shown")
        assert "[debug] shown" in capfd.readouterr().err
        assert mgr.is_verbose is True


# ------------------------------------------------------------------ #
# format_response
# ------------------------------------------------------------------ #


class TestFormatResponse:
    def test_json_dict(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"a": 1, "b": [1, 2]})
        out = capfd.readouterr().out
        assert json.loads(out) == {"a": 1, "b": [1, 2]}
        assert "\n  " in out

    def test_json_string_that_is_json(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response('{"a": 1}')
        assert json.loads(capfd.readouterr().out) == {"a": 1}

    def test_json_plain_string(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response("hello")
        assert json.loads(capfd.readouterr().out) == "hello"

    def test_plain_dict_as_key_value(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response({"id": 1, "name": "Ada"})
        assert capfd.readouterr().out == "id\t1\nname\tAda\n"

    def test_plain_list_of_dicts_as_rows(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response([{"a": 1, "b": 2}, 3])
        assert capfd.readouterr().out == "1\t2\n3\n"

    def test_rich_produces_output(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).format_response({"k": "v"})
        assert '"k"' in capfd.readouterr().out

    def test_unicode_data(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"name": "Zoë"})
        assert "Zoë" in capfd.readouterr().out


# ------------------------------------------------------------------ #
# Tables and trees
# ------------------------------------------------------------------ #


class TestPrintTable:
    def test_table_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(["Method", "URL"], [["GET", "/a"]])
        assert json.loads(capfd.readouterr().out) == [{"Method": "GET", "URL": "/a"}]

    def test_table_plain_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(
            ["Method", "URL"], [["GET", "/a"]], title="Routes"
        )
        assert capfd.readouterr().out == "Method\tURL\nGET\t/a\n"

    def test_table_rich_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_table(
            ["Method"], [["DELETE"]]
        )
        out = capfd.readouterr().out
        assert "Method" in out
        assert "DELETE" in out


class TestPrintTree:
    def test_tree_json_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON).print_tree("Example API", TREE)
        assert json.loads(capfd.readouterr().out) == {"Example API": TREE}

    def test_tree_plain_mode_indents(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_tree("Example API", TREE)
        lines = capfd.readouterr().out.splitlines()
        assert lines == [
            "Example API",
            "  users",
            "    GET",
            "    id(...)",
            "      DELETE",
            "  status",
        ]

    def test_tree_rich_mode(self, capfd, non_tty):
        OutputManager(format=OutputFormat.RICH, no_color=True).print_tree("Example API", TREE)
        out = capfd.readouterr().out
        assert "Example API" in out
        assert "id(...)" in out


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self, non_tty):
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_and_reset(self, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert get_output() is not mgr

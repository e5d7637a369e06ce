"""Console output with strict stdout/stderr discipline.

* **stdout** -- data only: API responses, call-graph trees, route tables.
* **stderr** -- diagnostics: status lines, warnings, errors, debug output.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb`` and the
  ``--no-color`` flag.

:class:`OutputManager` holds the format preferences and the two Rich
consoles. It is created in :func:`~apitree.app.main_callback` and installed
with :func:`set_output`; library code reaches it through :func:`get_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree


class OutputFormat(str, Enum):
    """Supported output formats.

    ``AUTO`` resolves to ``RICH`` on an interactive TTY with colour enabled
    and to ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes every piece of CLI output to the right stream and format.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Show debug messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Print a response payload (dict, list or text) in the active format."""
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps(_maybe_json(data)))
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        else:
            parsed = _maybe_json(data)
            if isinstance(parsed, (dict, list)):
                self._stdout.print(
                    Syntax(_dumps(parsed), "json", theme="monokai", word_wrap=True)
                )
            else:
                self._stdout.print(str(data))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data.

        Rich mode renders a :class:`~rich.table.Table`, JSON mode an array of
        objects keyed by header, plain mode tab-separated lines.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps([dict(zip(headers, row)) for row in rows]))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    def print_tree(self, label: str, tree: dict[str, Any]) -> None:
        """Print a nested ``{label: subtree}`` mapping.

        Rich mode renders a :class:`~rich.tree.Tree`, JSON mode the mapping
        itself, plain mode two-space indented lines.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_dumps({label: tree}))
        elif self._format == OutputFormat.PLAIN:
            self.print_data(label)
            for line in _indented(tree, depth=1):
                self.print_data(line)
        else:
            root = Tree(f"[bold]{label}[/bold]")
            _fill_tree(root, tree)
            self._stdout.print(root)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Informational message. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(escape(message))

    def success(self, message: str) -> None:
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        """Warning message. Never suppressed."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Error message. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            formatted = f"→ {message}"
            if self._no_color:
                print(formatted, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]{escape(formatted)}[/dim]")

    def debug(self, message: str) -> None:
        """Debug message. Only shown with ``--verbose``."""
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]\\[debug] {escape(message)}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(str(data))


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _dumps(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _maybe_json(data: Any) -> Any:
    if isinstance(data, str):
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return data
    return data


def _indented(tree: dict[str, Any], depth: int) -> list[str]:
    lines: list[str] = []
    for label, subtree in tree.items():
        lines.append("  " * depth + label)
        if subtree:
            lines.extend(_indented(subtree, depth + 1))
    return lines


def _fill_tree(node: Tree, tree: dict[str, Any]) -> None:
    for label, subtree in tree.items():
        branch = node.add(label)
        if subtree:
            _fill_tree(branch, subtree)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global :class:`OutputManager`; used between tests."""
    global _output
    _output = None

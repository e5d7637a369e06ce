"""Typer application and CLI entry point for apitree.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``init``, ``inspect``, ``request``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~apitree.exceptions.ApitreeError` escaping a command exits with the
error's code; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`apitree.config`: Profile and global configuration resolution.
    :mod:`apitree.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from apitree import __version__
from apitree.commands.init import init_command
from apitree.commands.inspect import inspect_app
from apitree.commands.request import request_command
from apitree.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="apitree",
    help="Navigate and call APIs described by RAML or OpenAPI documents.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("init")(init_command)
app.command("request")(request_command)
app.add_typer(inspect_app, name="inspect", help="Inspect the generated client.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"apitree {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~apitree.output.OutputManager` from the
    CLI flags and, with ``--verbose``, routes the ``apitree`` loggers to
    stderr at debug level.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
    """
    from apitree.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    )

    if verbose:
        logging.basicConfig(format="[%(name)s] %(levelname)s: %(message)s")
        logging.getLogger("apitree").setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under ``<data_dir>/logs`` and return its path."""
    from apitree.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``apitree`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from apitree.exceptions import ApitreeError
        from apitree.output import get_output

        if isinstance(exc, ApitreeError):
            get_output().error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        get_output().error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)

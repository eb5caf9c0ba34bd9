"""Typer application and entry point for the ``recall`` maintenance command.

Registers the ``cache`` and ``config`` sub-command groups. The :func:`main`
function is the console-script entry point declared in ``pyproject.toml``.
:class:`~recall.exceptions.RecallError` subclasses exit with their
``exit_code``; any other exception writes a crash log under
``~/.recall_config/logs`` and exits with :data:`EXIT_GENERIC_FAILURE`.
"""

from __future__ import annotations

import logging
import sys
import traceback
from datetime import datetime

import typer

from recall import __version__
from recall.commands.cache import cache_app
from recall.commands.config import config_app
from recall.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="recall",
    help="Manage the recall persistent cache and configuration files.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(cache_app, name="cache", help="Persistent cache management.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"recall {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~recall.output.OutputManager` and, with
    ``--verbose``, routes ``recall`` debug logging to stderr.
    """
    from recall.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))

    if verbose:
        logging.basicConfig(stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
        logging.getLogger("recall").setLevel(logging.DEBUG)


def _write_crash_log() -> str:
    """Write the current traceback to disk and return the log file path."""
    from recall.config import get_app_dir

    logs_dir = get_app_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``recall`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from recall.exceptions import RecallError
        from recall.output import error

        if isinstance(exc, RecallError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)

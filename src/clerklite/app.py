"""Typer application and CLI entry point for clerklite.

Wires the root application, its global options, and the built-in
sub-commands (``init``, ``auth``, ``orgs``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler, registers commands, and
invokes the Typer app. A :class:`~clerklite.exceptions.ClerkliteError` that
escapes a command exits with its ``exit_code``; anything else is written to a
crash log under the data directory.

See Also:
    :mod:`clerklite.config`: Profile and global configuration resolution.
    :mod:`clerklite.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from clerklite import __version__
from clerklite.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="clerklite",
    help="Sign in to a Clerk instance and manage sessions from the terminal.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"clerklite {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Attach a stderr handler to the package logger when ``--verbose`` is on."""
    package_logger = logging.getLogger("clerklite")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_clerklite_cli", False):
            package_logger.removeHandler(handler)
    if not verbose:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    handler._clerklite_cli = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)


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
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
    ),
    domain: Optional[str] = typer.Option(
        None, "--domain", help="Frontend API domain (overrides the profile)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output, including request tracing."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~clerklite.output.OutputManager` and stores
    the ``profile`` and ``domain`` overrides in ``ctx.obj`` for the
    sub-commands.
    """
    from clerklite.output import OutputFormat, OutputManager, set_output

    from clerklite.config import load_global_config
    from clerklite.exceptions import ConfigError

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        try:
            fmt = OutputFormat(load_global_config().output.format)
        except (ConfigError, ValueError):
            pass

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["domain"] = domain
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback to ``<data_dir>/logs`` and return the path."""
    from clerklite.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now().strftime('%Y%m%d-%H%M%S')}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def register_commands() -> None:
    """Attach the built-in sub-commands to :data:`app`. Safe to call repeatedly."""
    if getattr(app, "_clerklite_registered", False):
        return
    from clerklite.commands.auth import auth_app
    from clerklite.commands.config import config_app
    from clerklite.commands.init import init_command
    from clerklite.commands.orgs import orgs_app

    app.command("init")(init_command)
    app.add_typer(auth_app, name="auth", help="Sign in, sign out, and inspect the session.")
    app.add_typer(orgs_app, name="orgs", help="List, create, and switch organizations.")
    app.add_typer(config_app, name="config", help="Configuration management.")
    app._clerklite_registered = True  # type: ignore[attr-defined]


def main() -> None:
    """CLI entry point invoked by the ``clerklite`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from clerklite.exceptions import ClerkliteError
        from clerklite.output import error

        if isinstance(exc, ClerkliteError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)

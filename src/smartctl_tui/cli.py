import asyncio
from typing import List, Optional

import typer

from . import __version__
from .config import Settings
from .dash.app import run_dash
from .errors import ConfigError, StartupError
from .logs import configure_logging
from .manager import make_manager


app = typer.Typer(
    name="smartctl-tui",
    add_completion=False,
    help=(
        "Interactive terminal dashboard for systemd services.\n\n"
        "Keys: up/k down/j move, s start, x stop, e enable, d disable, r restart,\n"
        "/ search, f running only, c clear filter, ctrl+r refresh, q quit.\n\n"
        "Configuration comes from SMARTCTL_* environment variables "
        "(SMARTCTL_BACKEND=systemctl|dbus, SMARTCTL_SCOPE=system|user, "
        "SMARTCTL_SYSTEMCTL, SMARTCTL_TIMEOUT, SMARTCTL_LOG_FILE, SMARTCTL_LOG_LEVEL)."
    ),
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: Optional[bool]) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.command()
def dash(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Open the service dashboard full-screen."""
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=2)

    configure_logging(settings)
    manager = make_manager(settings)
    try:
        asyncio.run(manager.check())
    except StartupError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)

    run_dash(manager)


def main(argv: List[str] | None = None):
    if argv is None:
        return app()
    return app(args=argv)

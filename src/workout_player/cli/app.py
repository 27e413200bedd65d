"""Shared Typer app object, shared option types, logging setup and store utility."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from ..io.session_store import SessionStore, get_default_data_dir
from ..io.settings import Settings, load_settings
from . import views

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-d", help="Directory for sessions, pending queue and cached plan"),
]

# Shared --user-id option type
UserIdOption = Annotated[
    Optional[str],
    typer.Option("--user-id", "-u", help="User id (default: settings / WORKOUT_PLAYER_USER_ID)"),
]

app = typer.Typer(
    name="workout-player",
    help="Play AI-generated home-training sessions: work/rest timer, series tracking and logging.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """
    Home-training workout player.
    """
    configure_logging(verbose)


def configure_logging(verbose: bool) -> None:
    """Route package logging through Rich; DEBUG when verbose, else WARNING."""
    logger = logging.getLogger("workout_player")
    logger.handlers.clear()
    handler = RichHandler(console=views.console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def get_settings() -> Settings:
    return load_settings()


def get_store(data_dir: Path | None, settings: Settings | None = None) -> SessionStore:
    """Get the session store from an explicit path, the settings, or the default location."""
    if data_dir is None and settings is not None:
        data_dir = settings.data_dir
    if data_dir is None:
        data_dir = get_default_data_dir()
    return SessionStore(data_dir)

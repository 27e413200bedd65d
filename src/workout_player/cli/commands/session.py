"""Session command: run, plus the interactive player loop."""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer

from ...core.models import SaveState, SessionSummary
from ...core.player import PlanError, SessionPlayer
from ...core.submission import SessionSink, SummarySubmitter
from ...core.timer import SessionTimer
from ...io.api_client import HomeTrainingClient
from ...io.session_store import SessionStore
from ...io.settings import Settings
from .. import views
from ..app import DataDirOption, UserIdOption, app, get_settings, get_store
from .plans import load_plan_or_exit

LOCAL_USER_ID = "local"


class _StatusPrinter:
    """Player listener that prints a status line when the position or phase changes."""

    def __init__(self):
        self._last: tuple | None = None

    def __call__(self, player: SessionPlayer) -> None:
        key = (player.current_index, player.current_series, player.phase, player.running)
        countdown = player.phase in ("work", "rest") and player.running
        if key != self._last or (countdown and player.seconds_left <= 3):
            views.print_status(player)
        self._last = key


def apply_command(player: SessionPlayer, raw: str) -> None:
    """
    Apply one prompt command to the player.

    Enter confirms a repetition series or starts/resumes a timed exercise;
    s=skip, r=restart, f=finish now, j N=jump to exercise N (1-based).
    """
    text = raw.strip().lower()
    ex = player.current_exercise
    if ex is None:
        return

    if text == "":
        if not ex.is_timed and player.phase in ("idle", "rest"):
            player.mark_done()
        else:
            player.resume()
    elif text == "s":
        player.skip()
    elif text == "r":
        player.restart_exercise()
    elif text == "f":
        player.finish_now()
    elif text.startswith("j"):
        arg = text[1:].strip()
        try:
            player.jump_to(int(arg) - 1)
        except ValueError:
            views.print_error(f"Expected an exercise number after 'j', got {arg!r}")
        except IndexError as e:
            views.print_error(str(e))
    else:
        views.print_error(f"Unknown command: {raw.strip()!r}")


async def run_countdown(player: SessionPlayer, tick_seconds: float) -> None:
    """Tick the active interval until the player pauses, waits for input or finishes."""
    async with SessionTimer(player, interval=tick_seconds) as timer:
        await timer.wait_stopped()


def play(player: SessionPlayer, tick_seconds: float) -> None:
    """
    Drive a session until it is done.

    Countdowns run on a SessionTimer inside their own event loop; Ctrl+C
    there pauses the interval.  Whenever nothing is ticking (a repetition
    series waiting for confirmation, or a paused interval) the user is
    prompted, and Ctrl+C or end of input at the prompt finishes early.
    """
    while not player.is_done:
        if player.timer_active:
            try:
                asyncio.run(run_countdown(player, tick_seconds))
            except KeyboardInterrupt:
                player.pause()
                views.console.print()
                views.print_warning("Paused. Enter resumes, f finishes the session.")
            continue

        views.print_prompt_help(player)
        try:
            raw = views.console.input("> ")
        except (KeyboardInterrupt, EOFError):
            views.console.print()
            if player.finish_now():
                views.print_warning("Session finished early; it will be saved as partial.")
            break
        apply_command(player, raw)


async def submit_summary(
    summary: SessionSummary,
    sink: SessionSink,
    allow_retry: bool = True,
) -> SaveState:
    """
    Submit a summary once, offering an immediate retry on failure.

    Returns:
        Final SaveState
    """
    submitter = SummarySubmitter(sink, on_change=views.print_save_state)
    await submitter.submit(summary)
    while allow_retry and submitter.save_state.status == "error":
        if not views.confirm_action("Retry saving now?"):
            break
        await submitter.retry()
    return submitter.save_state


async def _submit_to_api(summary: SessionSummary, settings: Settings, allow_retry: bool) -> SaveState:
    async with HomeTrainingClient(settings.api_url, timeout=settings.api_timeout_seconds) as client:
        return await submit_summary(summary, client, allow_retry)


def save_session(
    summary: SessionSummary,
    store: SessionStore,
    settings: Settings,
    offline: bool,
    allow_retry: bool = True,
) -> SaveState:
    """Send a finished session to its sink; queue it locally if that fails."""
    if offline:
        state = asyncio.run(submit_summary(summary, store, allow_retry=False))
    else:
        state = asyncio.run(_submit_to_api(summary, settings, allow_retry))

    if state.status == "error" and not offline:
        store.add_pending(summary)
        views.print_info("Session queued locally. Run 'workout-player retry' to resubmit.")
    return state


@app.command("run")
def run(
    plan_file: Annotated[
        Optional[Path],
        typer.Option("--plan-file", "-f", help="Plan JSON file (default: last fetched plan)"),
    ] = None,
    user_id: UserIdOption = None,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Log the session to the local store instead of the API"),
    ] = False,
    auto_start: Annotated[
        bool,
        typer.Option("--auto-start/--no-auto-start", help="Start the first interval immediately"),
    ] = False,
    tick_seconds: Annotated[
        Optional[float],
        typer.Option("--tick-seconds", hidden=True, help="Seconds per countdown step"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Play a workout session in the terminal.

    Timed exercises count down work and rest intervals; repetition
    exercises wait for Enter after each series.  Ctrl+C pauses a running
    countdown (Enter resumes it); at the prompt Ctrl+C or f finishes the
    session early.  When the last series is done (or you finish early) the
    session summary is saved once.
    """
    settings = get_settings()
    store = get_store(data_dir, settings)

    uid = user_id or settings.user_id
    if not offline and not uid:
        views.print_error("No user id. Pass --user-id, set WORKOUT_PLAYER_USER_ID, or use --offline.")
        raise typer.Exit(1)

    plan = load_plan_or_exit(plan_file, data_dir)
    try:
        player = SessionPlayer(plan, auto_start=auto_start)
    except PlanError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_plan(plan)
    player.subscribe(_StatusPrinter())
    views.print_status(player)

    play(player, tick_seconds if tick_seconds is not None else settings.tick_seconds)

    summary = player.summary(uid or LOCAL_USER_ID)
    views.print_plan(plan, player)
    views.print_summary(summary)

    state = save_session(summary, store, settings, offline)
    if state.status == "error":
        raise typer.Exit(1)

"""
CLI view formatters using Rich for pretty console output.

Handles plan tables, the live player status line and session history.
"""

from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.models import Exercise, SaveState, SessionSummary, TrainingPlan
from ..core.player import SessionPlayer

console = Console()

_PHASE_LABEL: dict[str, str] = {
    "idle": "Ready",
    "work": "Work",
    "rest": "Rest",
    "done": "Done",
}
_PHASE_STYLE: dict[str, str] = {
    "idle": "cyan",
    "work": "bold yellow",
    "rest": "green",
    "done": "bold green",
}


def _fmt_prescription(ex: Exercise) -> str:
    """Compact prescription: '3 × 40s / 20s' or '3 × 10-12 reps / 45s'."""
    if ex.is_timed:
        body = f"{ex.work_seconds}s"
    else:
        body = f"{ex.repeticiones or '—'} reps"
    rest = f" / {ex.descanso_seg}s" if ex.descanso_seg else ""
    return f"{ex.series} × {body}{rest}"


def _fmt_ms(epoch_ms: int | None) -> str:
    if epoch_ms is None:
        return "—"
    return datetime.fromtimestamp(epoch_ms / 1000).strftime("%Y-%m-%d %H:%M")


def _fmt_duration(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def format_plan_table(plan: TrainingPlan, player: SessionPlayer | None = None) -> Table:
    """
    Build the exercise table for a plan.

    When a player is given, a progress column shows completed series and
    the active exercise is marked with '>'.
    """
    table = Table(title=escape(plan.titulo), caption=escape(plan.subtitulo), show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Exercise")
    table.add_column("Type", justify="center")
    table.add_column("Prescription")
    if player is not None:
        table.add_column("Done", justify="right")
    table.add_column("Notes", style="dim")

    for i, ex in enumerate(plan.ejercicios):
        marker = str(i + 1)
        if player is not None and i == player.current_index and not player.is_done:
            marker = f"> {i + 1}"
        row = [marker, escape(ex.nombre), "time" if ex.is_timed else "reps", _fmt_prescription(ex)]
        if player is not None:
            row.append(f"{player.series_completed[i]}/{ex.series}")
        row.append(escape(ex.notas))
        table.add_row(*row)

    return table


def print_plan(plan: TrainingPlan, player: SessionPlayer | None = None) -> None:
    """Print plan metadata and its exercise table."""
    console.print()
    console.print(format_plan_table(plan, player))
    console.print(
        f"[dim]Date: {plan.fecha}   Equipment: {plan.equipamiento}   "
        f"Type: {plan.tipo_entrenamiento}   Estimated: {plan.duracion_estimada_min} min[/dim]"
    )


def format_status_line(player: SessionPlayer) -> str:
    """One-line player status: exercise, series, phase and countdown."""
    if player.is_done:
        return f"[bold green]Workout complete[/bold green]  ({player.progress_percent()}%)"

    ex = player.current_exercise
    assert ex is not None
    style = _PHASE_STYLE[player.phase]
    label = _PHASE_LABEL[player.phase]
    total = player.plan.total_exercises

    if player.phase in ("work", "rest"):
        clock = f" {player.seconds_left}s"
    elif not ex.is_timed:
        clock = f" {ex.repeticiones or '—'} reps"
    else:
        clock = ""
    paused = "" if player.running else " [dim](paused)[/dim]"

    return (
        f"[{player.current_index + 1}/{total}] [bold]{escape(ex.nombre)}[/bold] "
        f"series {player.current_series}/{ex.series}  "
        f"[{style}]{label}{clock}[/{style}]{paused}  "
        f"[dim]{player.progress_percent()}%[/dim]"
    )


def print_status(player: SessionPlayer) -> None:
    console.print(format_status_line(player))


def print_prompt_help(player: SessionPlayer) -> None:
    """Explain the keys accepted at the player prompt."""
    ex = player.current_exercise
    if ex is None:
        return
    enter = "mark series done" if not ex.is_timed else "start / resume"
    console.print(
        f"[dim]  Enter={enter}  s=skip  r=restart  j N=jump to exercise N  f=finish now"
        f"  (Ctrl+C pauses a countdown; at this prompt it finishes now)[/dim]"
    )


def print_summary(summary: SessionSummary) -> None:
    """Print the metrics of a finished session."""
    m = summary.metrics
    status_style = "green" if m.status == "completed" else "yellow"
    console.print()
    console.print(f"[bold]{escape(summary.plan.titulo)}[/bold]  [{status_style}]{m.status}[/{status_style}]")
    console.print(
        f"  Exercises completed: {m.completados}/{m.total_ejercicios}   "
        f"Active time: {_fmt_duration(m.duracion_real_seg)}   "
        f"Estimated: {m.duracion_estimada_min} min"
    )
    series = ", ".join(
        f"{done}/{ex.series}" for done, ex in zip(summary.series_completed, summary.plan.ejercicios)
    )
    console.print(f"  [dim]Series: {series}[/dim]")


def print_save_state(state: SaveState) -> None:
    if state.status == "saving":
        console.print("[yellow]Saving session…[/yellow]")
    elif state.status == "saved":
        print_success(state.message or "Session saved")
    elif state.status == "error":
        print_error(state.message or "Could not save the session.")


def format_history_table(summaries: list[SessionSummary], title: str = "Session History") -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Finished")
    table.add_column("Workout")
    table.add_column("Status", justify="center")
    table.add_column("Exercises", justify="right")
    table.add_column("Active", justify="right")

    for i, s in enumerate(summaries, 1):
        m = s.metrics
        status = "[green]✓[/green]" if m.status == "completed" else "[yellow]partial[/yellow]"
        table.add_row(
            str(i),
            _fmt_ms(s.finished_at),
            s.plan.titulo,
            status,
            f"{m.completados}/{m.total_ejercicios}",
            _fmt_duration(m.duracion_real_seg),
        )
    return table


def print_history(summaries: list[SessionSummary], title: str = "Session History") -> None:
    """
    Print logged sessions to console.

    Args:
        summaries: Summaries to display
        title: Table title
    """
    if not summaries:
        console.print("[yellow]No sessions recorded yet.[/yellow]")
        return
    console.print(format_history_table(summaries, title))


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """Ask a yes/no question; default is no."""
    response = console.input(f"{message} \\[y/N]: ")
    return response.strip().lower() in ("y", "yes")

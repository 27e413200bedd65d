"""Plan commands: fetch, show-plan."""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional

import typer

from ...core.config import EQUIPMENT_LEVELS, TRAINING_TYPES
from ...core.models import TrainingPlan
from ...io.api_client import ApiError, HomeTrainingClient
from ...io.serializers import ValidationError, training_plan_to_dict
from ...io.session_store import load_plan_file
from .. import views
from ..app import DataDirOption, UserIdOption, app, get_settings, get_store


async def _generate(
    api_url: str, timeout: float, user_id: str, equipamiento: str, tipo: str
) -> TrainingPlan:
    async with HomeTrainingClient(api_url, timeout=timeout) as client:
        return await client.generate_today(user_id, equipamiento, tipo)


@app.command("fetch")
def fetch(
    user_id: UserIdOption = None,
    equipment: Annotated[
        Optional[str],
        typer.Option("--equipment", "-e", help="Equipment level: minimo | basico | avanzado"),
    ] = None,
    training_type: Annotated[
        Optional[str],
        typer.Option("--type", "-t", help="Training type: funcional | hiit | fuerza"),
    ] = None,
    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Also write the plan JSON to this file"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Generate today's plan through the home-training API and cache it.
    """
    settings = get_settings()
    store = get_store(data_dir, settings)

    uid = user_id or settings.user_id
    if not uid:
        views.print_error("No user id. Pass --user-id or set WORKOUT_PLAYER_USER_ID.")
        raise typer.Exit(1)

    equip = (equipment or settings.equipamiento).lower()
    kind = (training_type or settings.tipo).lower()
    if equip not in EQUIPMENT_LEVELS:
        views.print_error(f"Unknown equipment level: {equip}. Use one of {', '.join(EQUIPMENT_LEVELS)}")
        raise typer.Exit(1)
    if kind not in TRAINING_TYPES:
        views.print_error(f"Unknown training type: {kind}. Use one of {', '.join(TRAINING_TYPES)}")
        raise typer.Exit(1)

    with views.console.status("Checking your profile and generating today's workout…"):
        try:
            plan = asyncio.run(
                _generate(settings.api_url, settings.api_timeout_seconds, uid, equip, kind)
            )
        except ApiError as e:
            views.print_error(str(e))
            raise typer.Exit(1)

    if not plan.ejercicios:
        views.print_error("The generated plan has no exercises.")
        raise typer.Exit(1)

    store.save_plan(plan)
    if out is not None:
        out.write_text(
            json.dumps(training_plan_to_dict(plan), indent=2, ensure_ascii=False), encoding="utf-8"
        )

    views.print_plan(plan)
    views.print_success(f"Plan cached in {store.plan_path}")


@app.command("show-plan")
def show_plan(
    plan_file: Annotated[
        Optional[Path],
        typer.Option("--plan-file", "-f", help="Plan JSON file (default: last fetched plan)"),
    ] = None,
    data_dir: DataDirOption = None,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Show a plan's exercises.
    """
    plan = load_plan_or_exit(plan_file, data_dir)

    if json_out:
        print(json.dumps(training_plan_to_dict(plan), indent=2, ensure_ascii=False))
        return

    views.print_plan(plan)


def load_plan_or_exit(plan_file: Path | None, data_dir: Path | None) -> TrainingPlan:
    """Load a plan from a file or the cache; print an error and exit on failure."""
    try:
        if plan_file is not None:
            return load_plan_file(plan_file)
        plan = get_store(data_dir, get_settings()).load_plan()
    except (FileNotFoundError, ValidationError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if plan is None:
        views.print_error("No cached plan found.")
        views.print_info("Run 'fetch' first or pass --plan-file.")
        raise typer.Exit(1)
    return plan

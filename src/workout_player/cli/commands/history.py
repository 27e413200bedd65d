"""History commands: history, retry."""

import asyncio
import json
from typing import Annotated

import typer

from ...core.models import SessionSummary
from ...core.submission import SummarySubmitter
from ...io.api_client import HomeTrainingClient
from ...io.serializers import ValidationError, summary_to_dict
from ...io.settings import Settings
from .. import views
from ..app import DataDirOption, app, get_settings, get_store


@app.command("history")
def history(
    data_dir: DataDirOption = None,
    pending: Annotated[
        bool,
        typer.Option("--pending", help="Show summaries waiting to be resubmitted"),
    ] = False,
    json_out: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output as JSON for machine processing"),
    ] = False,
) -> None:
    """
    Show sessions logged locally (or the pending retry queue).
    """
    store = get_store(data_dir, get_settings())
    try:
        summaries = store.load_pending() if pending else store.load_summaries()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps([summary_to_dict(s) for s in summaries], indent=2, ensure_ascii=False))
        return

    views.print_history(summaries, title="Pending Sessions" if pending else "Session History")


async def _resubmit(summaries: list[SessionSummary], settings: Settings) -> list[SessionSummary]:
    """Submit each summary once; return those that still failed."""
    failed: list[SessionSummary] = []
    async with HomeTrainingClient(settings.api_url, timeout=settings.api_timeout_seconds) as client:
        for summary in summaries:
            submitter = SummarySubmitter(client)
            if not await submitter.submit(summary):
                views.print_error(f"{summary.plan.titulo}: {submitter.save_state.message}")
                failed.append(summary)
    return failed


@app.command("retry")
def retry(data_dir: DataDirOption = None) -> None:
    """
    Resubmit sessions whose earlier submission failed.
    """
    settings = get_settings()
    store = get_store(data_dir, settings)
    try:
        pending = store.load_pending()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if not pending:
        views.print_info("No pending sessions.")
        return

    failed = asyncio.run(_resubmit(pending, settings))
    store.replace_pending(failed)

    sent = len(pending) - len(failed)
    if sent:
        views.print_success(f"Resubmitted {sent} session(s).")
    if failed:
        views.print_warning(f"{len(failed)} session(s) still pending.")
        raise typer.Exit(1)

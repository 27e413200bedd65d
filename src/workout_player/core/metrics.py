"""
Pure metric computation functions.

Completion accounting and elapsed-time arithmetic shared by the player
and the CLI views.
"""

import math
from typing import Sequence

from .models import Exercise


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return math.floor(value + 0.5)


def count_fully_completed(exercises: Sequence[Exercise], series_completed: Sequence[int]) -> int:
    """
    Count exercises whose completed series reached their series count.

    Args:
        exercises: Plan exercises
        series_completed: Completed series per exercise (same order)

    Returns:
        Number of fully completed exercises
    """
    total = 0
    for i, ex in enumerate(exercises):
        done = series_completed[i] if i < len(series_completed) else 0
        if done >= ex.series:
            total += 1
    return total


def progress_percent(completed: int, total: int, is_done: bool = False) -> int:
    """
    Overall session progress in percent.

    Reaching ``done`` forces 100 even when exercises were skipped.

    Args:
        completed: Fully completed exercises
        total: Exercises in the plan
        is_done: Whether the session reached its terminal phase

    Returns:
        Integer percentage in [0, 100]
    """
    if total <= 0:
        return 0
    shown = total if is_done else completed
    return min(100, round_half_up(shown / total * 100))


def active_duration_seconds(
    now_ms: int,
    started_at_ms: int | None,
    paused_accum_ms: int,
    paused_at_ms: int | None,
) -> int:
    """
    Elapsed active session time, excluding every paused interval.

    active = (now - start - accumulated_pause - current_pause) / 1000,
    floored at zero and rounded.

    Args:
        now_ms: Current epoch ms
        started_at_ms: Session start, None if never started
        paused_accum_ms: Sum of finished pause intervals
        paused_at_ms: Start of the ongoing pause, None when running

    Returns:
        Whole seconds of active time
    """
    if started_at_ms is None:
        return 0
    pause_extra = now_ms - paused_at_ms if paused_at_ms is not None else 0
    ms = now_ms - started_at_ms - paused_accum_ms - pause_extra
    return round_half_up(max(0, ms) / 1000)

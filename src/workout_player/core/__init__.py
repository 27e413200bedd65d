"""
Pure domain layer: plan models, the session player state machine,
its tick timer and the one-shot summary submitter.
"""

from .models import Exercise, SessionState, SessionSummary, TrainingPlan
from .player import PlanError, SessionPlayer
from .submission import SessionLogError, SummarySubmitter
from .timer import SessionTimer

__all__ = [
    "Exercise",
    "PlanError",
    "SessionLogError",
    "SessionPlayer",
    "SessionState",
    "SessionSummary",
    "SessionTimer",
    "SummarySubmitter",
    "TrainingPlan",
]

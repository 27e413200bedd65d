"""
Data models for workout-player.

Plans are fetched once per session and never mutated; SessionState is the
mutable state owned by the SessionPlayer; SessionSummary is the record
handed to the logging collaborator when a session ends.

Field names of the plan keep the wire vocabulary of the home-training API
(nombre, series, descanso_seg, ...) so that documents round-trip unchanged.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from .config import DEFAULT_WORK_SECONDS

ExerciseKind = Literal["time", "reps"]  # duration kind / repetition kind
Phase = Literal["idle", "work", "rest", "done"]
SaveStatus = Literal["idle", "saving", "saved", "error"]
SessionStatus = Literal["completed", "partial"]


@dataclass(frozen=True)
class Exercise:
    """
    One entry of a training plan.

    ``duracion_seg`` is only meaningful for "time" exercises and
    ``repeticiones`` (a free-form count or range such as "10-12") only for
    "reps" exercises.
    """

    nombre: str
    tipo: ExerciseKind
    series: int
    repeticiones: str | None = None
    duracion_seg: int | None = None
    descanso_seg: int = 0
    notas: str = ""

    def __post_init__(self) -> None:
        """Validate exercise data."""
        if self.tipo not in ("time", "reps"):
            raise ValueError(f"Invalid tipo: {self.tipo!r}. Must be 'time' or 'reps'")
        if self.series <= 0:
            raise ValueError("series must be positive")
        if self.duracion_seg is not None and self.duracion_seg <= 0:
            raise ValueError("duracion_seg must be positive when present")
        if self.descanso_seg < 0:
            raise ValueError("descanso_seg must be non-negative")

    @property
    def is_timed(self) -> bool:
        return self.tipo == "time"

    @property
    def work_seconds(self) -> int:
        """Length of one work interval (timed exercises only)."""
        return self.duracion_seg or DEFAULT_WORK_SECONDS


@dataclass(frozen=True)
class TrainingPlan:
    """
    An ordered workout for one session.

    ``extra`` keeps any keys of the fetched document the player does not
    interpret, so the plan can be echoed back to the logging endpoint as-is.
    """

    titulo: str
    subtitulo: str
    fecha: str  # ISO format: YYYY-MM-DD
    equipamiento: str
    tipo_entrenamiento: str
    duracion_estimada_min: int | float
    ejercicios: tuple[Exercise, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def total_exercises(self) -> int:
        return len(self.ejercicios)


@dataclass
class SaveState:
    """Progress of the summary submission."""

    status: SaveStatus = "idle"
    message: str = ""


@dataclass
class SessionState:
    """
    Mutable progress of one workout session.

    Timestamps are epoch milliseconds.  ``current_series`` is 1-based and
    only used for display; the authoritative progress is
    ``series_completed``.
    """

    current_index: int = 0
    current_series: int = 1
    phase: Phase = "idle"
    seconds_left: int = 0
    running: bool = False
    series_completed: list[int] = field(default_factory=list)
    started_at_ms: int | None = None
    paused_accum_ms: int = 0
    paused_at_ms: int | None = None
    finish_status: SessionStatus | None = None


@dataclass(frozen=True)
class SessionMetrics:
    """Aggregate numbers reported with a finished session."""

    duracion_estimada_min: int | float
    duracion_real_seg: int
    total_ejercicios: int
    completados: int
    status: SessionStatus


@dataclass(frozen=True)
class SessionSummary:
    """
    Record of a completed or abandoned session.

    Produced once when the player reaches ``done`` and retained by the
    submitter until the logging collaborator accepts it.
    """

    user_id: str
    plan: TrainingPlan
    metrics: SessionMetrics
    series_completed: tuple[int, ...]
    started_at: int | None  # epoch ms, None if the session never ran
    finished_at: int  # epoch ms

"""
JSON serialization for plans and session summaries.

Handles conversion between the dataclasses and the wire documents of the
home-training API.  Fetched plans are sanitized on the way in: the plan
generator is a language model and routinely omits or garbles fields.
"""

import json
import math
from datetime import date
from typing import Any

from ..core.config import (
    DEFAULT_EXERCISE_NAME,
    DEFAULT_PLAN_MINUTES,
    DEFAULT_REST_SECONDS,
    DEFAULT_SERIES,
    DEFAULT_SUBTITLE,
)
from ..core.models import Exercise, SessionMetrics, SessionSummary, TrainingPlan

_PLAN_KEYS = (
    "titulo",
    "subtitulo",
    "fecha",
    "equipamiento",
    "tipoEntrenamiento",
    "duracion_estimada_min",
    "ejercicios",
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def _as_number(value: Any) -> float | None:
    """Coerce a JSON scalar to a finite float; None for anything else (NaN, Infinity included)."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Args:
        value: Value to validate
        name: Name for error message

    Returns:
        The value if valid

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def dict_to_exercise(data: dict[str, Any]) -> Exercise:
    """
    Convert a fetched exercise entry to an Exercise, filling gaps.

    - tipo other than "time"/"reps" is inferred: "time" if a positive
      duracion_seg is present, otherwise "reps"
    - series falls back to 3 when missing or not positive
    - duracion_seg becomes None unless positive
    - descanso_seg falls back to 45 when missing, non-numeric or negative

    Args:
        data: Dict representation (one element of "ejercicios")

    Returns:
        Exercise instance

    Raises:
        ValidationError: If data is not a dict
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid exercise entry: {data!r}")

    duration = _as_number(data.get("duracion_seg"))
    duracion_seg = int(duration) if duration is not None and duration >= 1 else None

    tipo = data.get("tipo")
    if tipo not in ("time", "reps"):
        tipo = "time" if duracion_seg else "reps"

    series = _as_number(data.get("series"))
    rest = _as_number(data.get("descanso_seg"))
    reps = data.get("repeticiones")

    return Exercise(
        nombre=str(data.get("nombre") or DEFAULT_EXERCISE_NAME),
        tipo=tipo,
        series=int(series) if series is not None and series >= 1 else DEFAULT_SERIES,
        repeticiones=str(reps) if reps is not None else None,
        duracion_seg=duracion_seg,
        descanso_seg=int(rest) if rest is not None and rest >= 0 else DEFAULT_REST_SECONDS,
        notas=str(data.get("notas") or ""),
    )


def exercise_to_dict(exercise: Exercise) -> dict[str, Any]:
    """Convert an Exercise to its wire dict."""
    return {
        "nombre": exercise.nombre,
        "tipo": exercise.tipo,
        "series": exercise.series,
        "repeticiones": exercise.repeticiones,
        "duracion_seg": exercise.duracion_seg,
        "descanso_seg": exercise.descanso_seg,
        "notas": exercise.notas,
    }


def dict_to_training_plan(
    data: dict[str, Any] | None,
    tipo: str = "hiit",
    equipamiento: str = "minimo",
) -> TrainingPlan:
    """
    Convert a fetched plan document to a TrainingPlan.

    Missing header fields are filled from the request (tipo, equipamiento)
    and from defaults.  A missing or malformed "ejercicios" list yields a
    plan without exercises; the player refuses to start such a plan.

    Args:
        data: The "data" object of the generate-today response
        tipo: Training type the plan was requested for
        equipamiento: Equipment level the plan was requested for

    Returns:
        TrainingPlan instance

    Raises:
        ValidationError: If data is neither a dict nor None
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError(f"Invalid plan document: expected an object, got {type(data).__name__}")

    raw_exercises = data.get("ejercicios")
    if not isinstance(raw_exercises, list):
        raw_exercises = []

    minutes = _as_number(data.get("duracion_estimada_min"))
    if not minutes:
        minutes = DEFAULT_PLAN_MINUTES

    return TrainingPlan(
        titulo=str(data.get("titulo") or f"{tipo.upper()} en Casa"),
        subtitulo=str(data.get("subtitulo") or DEFAULT_SUBTITLE),
        fecha=str(data.get("fecha") or date.today().isoformat()),
        equipamiento=str(data.get("equipamiento") or equipamiento),
        tipo_entrenamiento=str(data.get("tipoEntrenamiento") or tipo),
        duracion_estimada_min=int(minutes) if float(minutes).is_integer() else minutes,
        ejercicios=tuple(dict_to_exercise(e) for e in raw_exercises),
        extra={k: v for k, v in data.items() if k not in _PLAN_KEYS},
    )


def training_plan_to_dict(plan: TrainingPlan) -> dict[str, Any]:
    """
    Convert a TrainingPlan back to its wire document.

    Unknown keys captured at load time are emitted unchanged.
    """
    d: dict[str, Any] = dict(plan.extra)
    d.update(
        {
            "titulo": plan.titulo,
            "subtitulo": plan.subtitulo,
            "fecha": plan.fecha,
            "equipamiento": plan.equipamiento,
            "tipoEntrenamiento": plan.tipo_entrenamiento,
            "duracion_estimada_min": plan.duracion_estimada_min,
            "ejercicios": [exercise_to_dict(e) for e in plan.ejercicios],
        }
    )
    return d


def summary_to_dict(summary: SessionSummary) -> dict[str, Any]:
    """
    Convert a SessionSummary to the log-session request body.

    Args:
        summary: Summary to convert

    Returns:
        Dict with userId, plan, metrics, seriesCompleted, startedAt, finishedAt
    """
    m = summary.metrics
    return {
        "userId": summary.user_id,
        "plan": training_plan_to_dict(summary.plan),
        "metrics": {
            "duracion_estimada_min": m.duracion_estimada_min,
            "duracion_real_seg": m.duracion_real_seg,
            "total_ejercicios": m.total_ejercicios,
            "completados": m.completados,
            "status": m.status,
        },
        "seriesCompleted": list(summary.series_completed),
        "startedAt": summary.started_at,
        "finishedAt": summary.finished_at,
    }


def dict_to_summary(data: dict[str, Any]) -> SessionSummary:
    """
    Convert a stored log-session body back to a SessionSummary.

    Args:
        data: Dict representation

    Returns:
        SessionSummary instance

    Raises:
        ValidationError: If required fields are missing or invalid
    """
    try:
        metrics = data["metrics"]
        status = metrics["status"]
        if status not in ("completed", "partial"):
            raise ValidationError(f"Invalid status: {status!r}")
        duration = int(validate_non_negative(metrics["duracion_real_seg"], "duracion_real_seg"))
        series_completed = tuple(
            int(validate_non_negative(n, "seriesCompleted")) for n in data["seriesCompleted"]
        )
        plan_data = data["plan"]
        started_at = data.get("startedAt")
        return SessionSummary(
            user_id=str(data["userId"]),
            plan=dict_to_training_plan(
                plan_data,
                tipo=str(plan_data.get("tipoEntrenamiento") or "hiit"),
                equipamiento=str(plan_data.get("equipamiento") or "minimo"),
            ),
            metrics=SessionMetrics(
                duracion_estimada_min=metrics["duracion_estimada_min"],
                duracion_real_seg=duration,
                total_ejercicios=int(metrics["total_ejercicios"]),
                completados=int(metrics["completados"]),
                status=status,
            ),
            series_completed=series_completed,
            started_at=int(started_at) if started_at is not None else None,
            finished_at=int(data["finishedAt"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"Invalid session summary: {e!r}") from e


def summary_to_json_line(summary: SessionSummary) -> str:
    """
    Serialize a summary to a single JSON line.

    Args:
        summary: SessionSummary to serialize

    Returns:
        JSON string (single line, no trailing newline)
    """
    return json.dumps(summary_to_dict(summary), separators=(",", ":"), ensure_ascii=False)


def json_line_to_summary(line: str) -> SessionSummary:
    """
    Deserialize a JSON line to a SessionSummary.

    Raises:
        ValidationError: If JSON is invalid or data validation fails
    """
    try:
        data = json.loads(line.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e

    return dict_to_summary(data)

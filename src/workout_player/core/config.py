"""
Configuration constants for the workout player.

Defaults used when sanitizing fetched plans, timer parameters and the
locations of the home-training API and local data directory.
"""

from typing import Final

# =============================================================================
# PLAN SANITIZATION DEFAULTS
# =============================================================================

DEFAULT_SERIES: Final[int] = 3  # Series count when the plan omits a valid one
DEFAULT_REST_SECONDS: Final[int] = 45  # Rest when descanso_seg is missing/negative
DEFAULT_WORK_SECONDS: Final[int] = 30  # Work interval for "time" exercises without duracion_seg
DEFAULT_PLAN_MINUTES: Final[int] = 30  # duracion_estimada_min fallback
DEFAULT_EXERCISE_NAME: Final[str] = "Ejercicio"
DEFAULT_SUBTITLE: Final[str] = "Entrenamiento personalizado adaptado a tu equipamiento"
DEFAULT_EQUIPMENT: Final[str] = "minimo"
DEFAULT_TRAINING_TYPE: Final[str] = "hiit"

EQUIPMENT_LEVELS: Final[tuple[str, ...]] = ("minimo", "basico", "avanzado")
TRAINING_TYPES: Final[tuple[str, ...]] = ("funcional", "hiit", "fuerza")

# =============================================================================
# TIMER
# =============================================================================

TICK_SECONDS: Final[float] = 1.0  # One countdown step per second

# =============================================================================
# API / STORAGE
# =============================================================================

DEFAULT_API_URL: Final[str] = "http://localhost:3001/api"
API_TIMEOUT_SECONDS: Final[float] = 30.0
GENERATE_TODAY_PATH: Final[str] = "/ia/home-training/generate-today"
LOG_SESSION_PATH: Final[str] = "/ia/home-training/log-session"

DATA_DIR_NAME: Final[str] = ".workout-player"

"""
YAML → typed settings loader.

Load order (later overrides earlier):
1. Built-in defaults from core.config
2. User file at ~/.workout-player/config.yaml
3. Environment: WORKOUT_PLAYER_API_URL, WORKOUT_PLAYER_USER_ID

Example config.yaml:

    api:
      url: https://fitness.example.com/api
      timeout_seconds: 20
    user_id: "42"
    defaults:
      equipamiento: basico
      tipo: fuerza

A user file that cannot be parsed is reported and ignored.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..core.config import (
    API_TIMEOUT_SECONDS,
    DATA_DIR_NAME,
    DEFAULT_API_URL,
    DEFAULT_EQUIPMENT,
    DEFAULT_TRAINING_TYPE,
    TICK_SECONDS,
)

logger = logging.getLogger(__name__)

ENV_API_URL = "WORKOUT_PLAYER_API_URL"
ENV_USER_ID = "WORKOUT_PLAYER_USER_ID"


@dataclass
class Settings:
    """Resolved runtime settings."""

    api_url: str = DEFAULT_API_URL
    api_timeout_seconds: float = API_TIMEOUT_SECONDS
    user_id: str | None = None
    equipamiento: str = DEFAULT_EQUIPMENT
    tipo: str = DEFAULT_TRAINING_TYPE
    tick_seconds: float = TICK_SECONDS
    data_dir: Path | None = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML mapping; return {} when unreadable or not a mapping."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring settings file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _normalize_api_url(url: str) -> str:
    """Strip trailing slashes and make sure the base ends in /api."""
    url = url.rstrip("/")
    return url if url.endswith("/api") else f"{url}/api"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_user_yaml_path(home: Path | None = None) -> Path | None:
    """Return ~/.workout-player/config.yaml if it exists, else None."""
    base = home if home is not None else Path(os.environ.get("HOME", "~")).expanduser()
    p = base / DATA_DIR_NAME / "config.yaml"
    return p if p.exists() else None


def load_settings(
    config_path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """
    Resolve settings from defaults, YAML and environment.

    Args:
        config_path: Explicit YAML file (default: the user file if present)
        environ: Environment mapping (default: os.environ)

    Returns:
        Settings instance
    """
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {}

    path = config_path if config_path is not None else get_user_yaml_path()
    if path is not None and path.exists():
        raw = _load_yaml_file(path)

    api = raw.get("api") if isinstance(raw.get("api"), dict) else {}
    defaults = raw.get("defaults") if isinstance(raw.get("defaults"), dict) else {}
    settings = Settings()

    if api.get("url"):
        settings.api_url = _normalize_api_url(str(api["url"]))
    if api.get("timeout_seconds") is not None:
        settings.api_timeout_seconds = float(api["timeout_seconds"])
    if raw.get("user_id") is not None:
        settings.user_id = str(raw["user_id"])
    if defaults.get("equipamiento"):
        settings.equipamiento = str(defaults["equipamiento"]).lower()
    if defaults.get("tipo"):
        settings.tipo = str(defaults["tipo"]).lower()
    if raw.get("tick_seconds") is not None:
        settings.tick_seconds = float(raw["tick_seconds"])
    if raw.get("data_dir"):
        settings.data_dir = Path(str(raw["data_dir"])).expanduser()

    if env.get(ENV_API_URL):
        settings.api_url = _normalize_api_url(env[ENV_API_URL])
    if env.get(ENV_USER_ID):
        settings.user_id = env[ENV_USER_ID]

    return settings

"""
Async HTTP client for the home-training API.

Two endpoints are used:
- POST {base}/ia/home-training/generate-today  → today's plan
- POST {base}/ia/home-training/log-session     → record a finished session
"""

import logging
from typing import Any

import httpx

from ..core.config import API_TIMEOUT_SECONDS, GENERATE_TODAY_PATH, LOG_SESSION_PATH
from ..core.models import SessionSummary, TrainingPlan
from ..core.submission import SessionLogError
from .serializers import ValidationError, dict_to_training_plan, summary_to_dict

logger = logging.getLogger(__name__)


class ApiError(SessionLogError):
    """Raised when the API rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class HomeTrainingClient:
    """
    Thin wrapper over ``httpx.AsyncClient``.

    Pass ``transport`` to route requests elsewhere (tests use
    ``httpx.MockTransport``).  Use as an async context manager or call
    ``aclose()``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "HomeTrainingClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate_today(self, user_id: str, equipamiento: str, tipo: str) -> TrainingPlan:
        """
        Ask the API for today's plan.

        Args:
            user_id: Authenticated user id
            equipamiento: "minimo" | "basico" | "avanzado"
            tipo: "funcional" | "hiit" | "fuerza"

        Returns:
            Sanitized TrainingPlan (may have no exercises)

        Raises:
            ApiError: On missing user, HTTP failure or malformed response
        """
        if not user_id:
            raise ApiError("No authenticated user id; cannot generate a plan.")

        equip = str(equipamiento or "").lower()
        kind = str(tipo or "").lower()
        body = await self._post(
            GENERATE_TODAY_PATH,
            {"userId": user_id, "equipamiento": equip, "tipoEntrenamiento": kind},
            default_error="Error generating today's training.",
        )
        try:
            return dict_to_training_plan(body.get("data"), tipo=kind, equipamiento=equip)
        except ValidationError as e:
            raise ApiError(str(e)) from e

    async def log_session(self, summary: SessionSummary) -> None:
        """
        Record a finished session.

        Raises:
            ApiError: On missing user or HTTP failure
        """
        if not summary.user_id:
            raise ApiError("No user or plan available. Session not saved.")
        await self._post(
            LOG_SESSION_PATH,
            summary_to_dict(summary),
            default_error="Could not save the session.",
        )
        logger.info("Session logged for user %s", summary.user_id)

    async def _post(self, path: str, payload: dict[str, Any], default_error: str) -> dict[str, Any]:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise ApiError(f"{default_error} ({e})") from e

        body = _json_or_empty(response)
        if response.is_error:
            message = body.get("error") or default_error
            logger.warning("POST %s failed with %d: %s", path, response.status_code, message)
            raise ApiError(str(message), status_code=response.status_code)
        return body


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body; anything else becomes {}."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}

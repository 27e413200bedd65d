"""
One-shot submission of a session summary.

The player produces a summary when it reaches ``done``; the submitter
forwards it to a logging sink (the home-training API or the local store)
at most once successfully.  Any failure raised by the sink puts the
submitter in the error state and keeps the summary so it can be retried;
an attempt in flight or already accepted turns any further ``submit``
into a no-op.
"""

import logging
from typing import Callable, Protocol

from .models import SaveState, SaveStatus, SessionSummary

logger = logging.getLogger(__name__)


class SessionLogError(Exception):
    """Raised by a logging sink when a summary could not be recorded."""

    pass


class SessionSink(Protocol):
    async def log_session(self, summary: SessionSummary) -> None: ...


StateCallback = Callable[[SaveState], None]


class SummarySubmitter:
    """Idempotency guard in front of a SessionSink."""

    def __init__(self, sink: SessionSink, on_change: StateCallback | None = None):
        self.sink = sink
        self.on_change = on_change
        self.save_state = SaveState()
        self.summary: SessionSummary | None = None
        self.attempts = 0

    @property
    def latched(self) -> bool:
        """True while a submission is in flight or after one succeeded."""
        return self.save_state.status in ("saving", "saved")

    async def submit(self, summary: SessionSummary) -> bool:
        """
        Send a summary unless one is already in flight or accepted.

        Args:
            summary: Record of the finished session

        Returns:
            True if the sink accepted the summary on this call
        """
        if self.latched:
            logger.debug("Submission skipped: already %s", self.save_state.status)
            return False

        self.summary = summary
        self._set_state("saving", "")
        self.attempts += 1
        try:
            await self.sink.log_session(summary)
        except Exception as e:
            logger.warning("Session summary not saved: %s", e)
            self._set_state("error", str(e) or "Could not save the session.")
            return False

        self._set_state("saved", "Session saved")
        return True

    async def retry(self) -> bool:
        """
        Resubmit the retained summary after a failed attempt.

        Returns:
            True if the retry succeeded, False if there was nothing to retry
            or the sink failed again
        """
        if self.summary is None or self.save_state.status != "error":
            return False
        return await self.submit(self.summary)

    def _set_state(self, status: SaveStatus, message: str) -> None:
        self.save_state = SaveState(status=status, message=message)
        if self.on_change is not None:
            self.on_change(self.save_state)

"""
JSONL-based local storage for session summaries.

Handles the files kept in the data directory (default ~/.workout-player):
- sessions.jsonl  summaries logged locally (offline mode)
- pending.jsonl   summaries whose submission failed, waiting for retry
- plan.json       the last fetched plan
"""

import json
import logging
from pathlib import Path

from ..core.config import DATA_DIR_NAME
from ..core.models import SessionSummary, TrainingPlan
from ..core.submission import SessionLogError
from .serializers import (
    ValidationError,
    dict_to_training_plan,
    json_line_to_summary,
    summary_to_json_line,
    training_plan_to_dict,
)

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Manages locally stored summaries and the cached plan.

    Each JSONL file holds one summary per line.  ``log_session`` makes the
    store usable as a logging sink for the SummarySubmitter.
    """

    def __init__(self, data_dir: str | Path):
        """
        Initialize the store.

        Args:
            data_dir: Directory holding the store files
        """
        self.data_dir = Path(data_dir)
        self.sessions_path = self.data_dir / "sessions.jsonl"
        self.pending_path = self.data_dir / "pending.jsonl"
        self.plan_path = self.data_dir / "plan.json"

    def init(self) -> None:
        """Create the data directory if needed."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Logged sessions
    # ------------------------------------------------------------------

    async def log_session(self, summary: SessionSummary) -> None:
        """
        Append a summary to sessions.jsonl.

        Raises:
            SessionLogError: If the file cannot be written
        """
        try:
            self.append_summary(summary)
        except OSError as e:
            raise SessionLogError(f"Could not write {self.sessions_path}: {e}") from e

    def append_summary(self, summary: SessionSummary) -> None:
        self._append_line(self.sessions_path, summary_to_json_line(summary))

    def load_summaries(self) -> list[SessionSummary]:
        """
        Load all locally logged summaries, oldest first.

        Raises:
            ValidationError: If a line cannot be parsed
        """
        return self._read_lines(self.sessions_path)

    # ------------------------------------------------------------------
    # Pending (failed) submissions
    # ------------------------------------------------------------------

    def add_pending(self, summary: SessionSummary) -> None:
        """Queue a summary whose submission failed."""
        self._append_line(self.pending_path, summary_to_json_line(summary))
        logger.info("Queued session summary for retry in %s", self.pending_path)

    def load_pending(self) -> list[SessionSummary]:
        return self._read_lines(self.pending_path)

    def remove_pending(self, index: int) -> None:
        """
        Drop the pending summary at the given 0-based index.

        Raises:
            IndexError: If index is out of range
        """
        pending = self.load_pending()
        if index < 0 or index >= len(pending):
            raise IndexError(f"Pending index {index} out of range (0-{len(pending) - 1})")
        del pending[index]
        self._write_lines(self.pending_path, pending)

    def replace_pending(self, summaries: list[SessionSummary]) -> None:
        """Rewrite the pending queue with the given summaries."""
        self._write_lines(self.pending_path, summaries)

    # ------------------------------------------------------------------
    # Plan cache
    # ------------------------------------------------------------------

    def save_plan(self, plan: TrainingPlan) -> None:
        self.init()
        with open(self.plan_path, "w", encoding="utf-8") as f:
            json.dump(training_plan_to_dict(plan), f, indent=2, ensure_ascii=False)

    def load_plan(self) -> TrainingPlan | None:
        """
        Load the cached plan.

        Returns:
            TrainingPlan, or None if nothing is cached
        """
        if not self.plan_path.exists():
            return None
        return load_plan_file(self.plan_path)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append_line(self, path: Path, line: str) -> None:
        self.init()
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def _write_lines(self, path: Path, summaries: list[SessionSummary]) -> None:
        self.init()
        with open(path, "w", encoding="utf-8") as f:
            for summary in summaries:
                f.write(summary_to_json_line(summary) + "\n")

    def _read_lines(self, path: Path) -> list[SessionSummary]:
        if not path.exists():
            return []

        summaries: list[SessionSummary] = []
        with open(path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    summaries.append(json_line_to_summary(line))
                except ValidationError as e:
                    raise ValidationError(f"Error parsing line {line_num} in {path}: {e}") from e
        return summaries


def load_plan_file(path: str | Path) -> TrainingPlan:
    """
    Read a plan document from a JSON file.

    Accepts either the bare plan or an API response wrapping it in "data".

    Raises:
        ValidationError: If the file is not valid JSON
        FileNotFoundError: If the file does not exist
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    return dict_to_training_plan(data)


def get_default_data_dir() -> Path:
    """Default data directory: ~/.workout-player"""
    return Path.home() / DATA_DIR_NAME

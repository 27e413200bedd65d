"""
Session player: the state machine that drives one workout.

The player walks a TrainingPlan exercise by exercise.  Timed exercises
alternate ``work`` and ``rest`` countdowns advanced by ``tick()``;
repetition exercises wait in ``idle`` until the user confirms a series with
``mark_done()``.  ``done`` is terminal.

    idle --run (time)--> work --0s--> rest --0s--> work ... --> done
    idle --mark_done (reps)--> rest --0s--> idle ... --> done

The player has no notion of wall-clock scheduling: a SessionTimer (or a
test) calls ``tick()`` once per second while ``timer_active`` is true.  Time
is only read from the injected clock for elapsed-duration bookkeeping.
"""

import logging
from typing import Callable

from .clock import Clock, SystemClock
from .metrics import active_duration_seconds, count_fully_completed, progress_percent
from .models import Exercise, SessionMetrics, SessionState, SessionStatus, SessionSummary, TrainingPlan

logger = logging.getLogger(__name__)

Listener = Callable[["SessionPlayer"], None]


class PlanError(Exception):
    """Raised when a plan cannot be played (missing or without exercises)."""

    pass


class SessionPlayer:
    """
    Finite-state machine over the phases idle / work / rest / done.

    All transitions are synchronous.  Listeners registered with
    ``subscribe`` are called after every operation that changed state.
    """

    def __init__(
        self,
        plan: TrainingPlan | None,
        clock: Clock | None = None,
        auto_start: bool = False,
    ):
        """
        Create a player for a plan.

        Args:
            plan: Plan to play
            clock: Millisecond clock for duration accounting (default: system)
            auto_start: Start running immediately

        Raises:
            PlanError: If the plan is missing or has no exercises
        """
        self._clock: Clock = clock or SystemClock()
        self._listeners: list[Listener] = []
        self.load(plan, auto_start=auto_start)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, plan: TrainingPlan | None, auto_start: bool = False) -> None:
        """Replace the plan and reset all session state."""
        if plan is None or not plan.ejercicios:
            raise PlanError("Plan has no exercises; nothing to play.")

        self.plan = plan
        self.state = SessionState(series_completed=[0] * plan.total_exercises)
        logger.debug("Loaded plan %r with %d exercises", plan.titulo, plan.total_exercises)

        if auto_start:
            self.state.running = True
            self._account_running(True)
            self._kick()
        self._notify()

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def phase(self) -> str:
        return self.state.phase

    @property
    def running(self) -> bool:
        return self.state.running

    @property
    def seconds_left(self) -> int:
        return self.state.seconds_left

    @property
    def current_index(self) -> int:
        return self.state.current_index

    @property
    def current_series(self) -> int:
        return self.state.current_series

    @property
    def series_completed(self) -> tuple[int, ...]:
        return tuple(self.state.series_completed)

    @property
    def is_done(self) -> bool:
        return self.state.phase == "done"

    @property
    def current_exercise(self) -> Exercise | None:
        """Active exercise, or None once the session is done."""
        if self.is_done:
            return None
        return self.plan.ejercicios[self.state.current_index]

    @property
    def timer_active(self) -> bool:
        """True while a one-second tick source should be running."""
        return self.state.running and self.state.phase in ("work", "rest")

    @property
    def fully_completed(self) -> int:
        return count_fully_completed(self.plan.ejercicios, self.state.series_completed)

    def progress_percent(self) -> int:
        return progress_percent(self.fully_completed, self.plan.total_exercises, self.is_done)

    def elapsed_seconds(self) -> int:
        """Active session seconds, excluding pauses."""
        s = self.state
        return active_duration_seconds(
            self._clock.now_ms(), s.started_at_ms, s.paused_accum_ms, s.paused_at_ms
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Advance the active countdown by one second."""
        if not self.timer_active:
            return

        s = self.state
        if s.seconds_left > 1:
            s.seconds_left -= 1
        elif s.phase == "work":
            self._end_work_interval()
        else:
            self._advance()
        self._notify()

    def toggle_run(self) -> None:
        """Flip between running and paused."""
        self._set_running(not self.state.running)

    def pause(self) -> None:
        if self.state.running:
            self._set_running(False)

    def resume(self) -> None:
        if not self.state.running:
            self._set_running(True)

    def mark_done(self) -> bool:
        """
        Confirm one series of the current repetition exercise.

        Returns:
            False (and changes nothing) unless the active exercise is "reps"
        """
        ex = self.current_exercise
        if ex is None or ex.tipo != "reps":
            return False

        s = self.state
        self._ensure_started()
        done = self._credit_series()

        if done < ex.series:
            s.current_series = done + 1
            if ex.descanso_seg > 0:
                s.phase = "rest"
                s.seconds_left = ex.descanso_seg
                s.running = True
                self._account_running(True)
            else:
                s.phase = "idle"
                s.seconds_left = 0
        else:
            self._next_exercise()

        self._notify()
        return True

    def skip(self) -> None:
        """Move to the next exercise without crediting the current series."""
        if self.is_done:
            return
        logger.debug("Skipping exercise %d", self.state.current_index)
        self._next_exercise()
        self._notify()

    def restart_exercise(self) -> None:
        """Reset the current interval and pause; completed series are kept."""
        ex = self.current_exercise
        if ex is None:
            return
        self._enter_initial_phase(ex)
        self.state.running = False
        self._account_running(False)
        self._notify()

    def jump_to(self, index: int) -> None:
        """
        Make another exercise the active one and pause.

        Raises:
            IndexError: If index is outside the plan
        """
        if self.is_done:
            return
        if index < 0 or index >= self.plan.total_exercises:
            raise IndexError(
                f"Exercise index {index} out of range (0-{self.plan.total_exercises - 1})"
            )

        s = self.state
        ex = self.plan.ejercicios[index]
        s.current_index = index
        s.current_series = min(s.series_completed[index] + 1, ex.series)
        self._enter_initial_phase(ex)
        s.running = False
        self._account_running(False)
        self._notify()

    def finish_now(self) -> bool:
        """
        End the session early; the summary is flagged as partial.

        Returns:
            False if the session was already done
        """
        if self.is_done:
            return False
        self._finish("partial")
        self._notify()
        return True

    def summary(self, user_id: str) -> SessionSummary:
        """
        Build the record of the finished session.

        Raises:
            RuntimeError: If the session is not done yet
        """
        if not self.is_done:
            raise RuntimeError("Session is still in progress; no summary available.")

        s = self.state
        metrics = SessionMetrics(
            duracion_estimada_min=self.plan.duracion_estimada_min,
            duracion_real_seg=self.elapsed_seconds(),
            total_ejercicios=self.plan.total_exercises,
            completados=self.fully_completed,
            status=s.finish_status or "completed",
        )
        return SessionSummary(
            user_id=user_id,
            plan=self.plan,
            metrics=metrics,
            series_completed=tuple(s.series_completed),
            started_at=s.started_at_ms,
            finished_at=self._clock.now_ms(),
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _set_running(self, running: bool) -> None:
        if self.is_done:
            return
        self.state.running = running
        self._account_running(running)
        if running:
            self._kick()
        self._notify()

    def _kick(self) -> None:
        """Start the first work interval of a timed exercise waiting in idle."""
        s = self.state
        ex = self.current_exercise
        if s.running and s.phase == "idle" and ex is not None and ex.is_timed:
            s.phase = "work"
            s.seconds_left = ex.work_seconds

    def _end_work_interval(self) -> None:
        ex = self.plan.ejercicios[self.state.current_index]
        done = self._credit_series()
        # No rest once the exercise's last series is in
        if done < ex.series and ex.descanso_seg > 0:
            self.state.phase = "rest"
            self.state.seconds_left = ex.descanso_seg
        else:
            self._advance()

    def _advance(self) -> None:
        """Start the next series of the current exercise, or move on."""
        s = self.state
        ex = self.plan.ejercicios[s.current_index]
        done = s.series_completed[s.current_index]
        if done < ex.series:
            s.current_series = done + 1
            self._enter_initial_phase(ex)
        else:
            self._next_exercise()

    def _next_exercise(self) -> None:
        s = self.state
        nxt = s.current_index + 1
        if nxt < self.plan.total_exercises:
            ex = self.plan.ejercicios[nxt]
            s.current_index = nxt
            s.current_series = min(s.series_completed[nxt] + 1, ex.series)
            self._enter_initial_phase(ex)
            logger.debug("Exercise %d: %s", nxt, ex.nombre)
        else:
            self._finish("completed")

    def _enter_initial_phase(self, ex: Exercise) -> None:
        if ex.is_timed:
            self.state.phase = "work"
            self.state.seconds_left = ex.work_seconds
        else:
            self.state.phase = "idle"
            self.state.seconds_left = 0

    def _finish(self, status: SessionStatus) -> None:
        s = self.state
        s.running = False
        self._account_running(False)
        s.phase = "done"
        s.seconds_left = 0
        s.current_index = self.plan.total_exercises
        if s.finish_status is None:
            s.finish_status = status
        logger.debug("Session done (%s) after %ds", status, self.elapsed_seconds())

    def _credit_series(self) -> int:
        """Count one series for the current exercise, clamped to its total."""
        s = self.state
        i = s.current_index
        s.series_completed[i] = min(s.series_completed[i] + 1, self.plan.ejercicios[i].series)
        return s.series_completed[i]

    # ------------------------------------------------------------------
    # Duration accounting
    # ------------------------------------------------------------------

    def _ensure_started(self) -> None:
        if self.state.started_at_ms is None:
            self.state.started_at_ms = self._clock.now_ms()

    def _account_running(self, running: bool) -> None:
        """Fold pause intervals into the accumulator on resume; mark pause start on pause."""
        s = self.state
        now = self._clock.now_ms()
        if running:
            self._ensure_started()
            if s.paused_at_ms is not None:
                s.paused_accum_ms += now - s.paused_at_ms
                s.paused_at_ms = None
        elif s.started_at_ms is not None and s.paused_at_ms is None:
            s.paused_at_ms = now

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

"""
Tests for the asyncio tick source and the one-shot summary submitter.

The timer is driven with an instant sleep so a whole session plays out in
a few event-loop iterations.
"""

import asyncio

import pytest

from workout_player.core.clock import ManualClock
from workout_player.core.models import Exercise, SessionSummary, TrainingPlan
from workout_player.core.player import SessionPlayer
from workout_player.core.submission import SessionLogError, SummarySubmitter
from workout_player.core.timer import SessionTimer


# ===========================================================================
# Helpers
# ===========================================================================

def _plan(*exercises: Exercise) -> TrainingPlan:
    return TrainingPlan(
        titulo="Fuerza en Casa",
        subtitulo="",
        fecha="2026-10-19",
        equipamiento="basico",
        tipo_entrenamiento="fuerza",
        duracion_estimada_min=25,
        ejercicios=tuple(exercises),
    )


def _timed(series: int = 2, work: int = 3, rest: int = 2) -> Exercise:
    return Exercise(nombre="Mountain climbers", tipo="time", series=series, duracion_seg=work, descanso_seg=rest)


async def _instant(_seconds: float) -> None:
    await asyncio.sleep(0)


def _finished_summary(user_id: str = "u1") -> SessionSummary:
    player = SessionPlayer(_plan(_timed()), clock=ManualClock())
    player.finish_now()
    return player.summary(user_id)


class _Sink:
    """Logging sink that fails a configurable number of times."""

    def __init__(self, failures: int = 0):
        self.calls: list[SessionSummary] = []
        self.failures = failures

    async def log_session(self, summary: SessionSummary) -> None:
        self.calls.append(summary)
        if self.failures > 0:
            self.failures -= 1
            raise SessionLogError("backend down")


class _GatedSink:
    """Logging sink that blocks until the gate opens."""

    def __init__(self, gate: asyncio.Event):
        self.gate = gate
        self.calls = 0

    async def log_session(self, summary: SessionSummary) -> None:
        self.calls += 1
        await self.gate.wait()


# ===========================================================================
# SessionTimer
# ===========================================================================

class TestSessionTimer:
    def test_plays_timed_session_to_done(self):
        player = SessionPlayer(_plan(_timed(series=2, work=3, rest=2)), clock=ManualClock())

        async def scenario():
            async with SessionTimer(player, sleep=_instant) as timer:
                player.resume()
                assert timer.ticking
                await timer.wait_stopped()
                assert not timer.ticking

        asyncio.run(scenario())
        assert player.phase == "done"
        assert player.series_completed == (2,)

    def test_one_tick_per_sleep(self):
        player = SessionPlayer(_plan(_timed(series=2, work=3, rest=2)), clock=ManualClock())
        sleeps: list[float] = []

        async def counting_sleep(seconds: float) -> None:
            sleeps.append(seconds)
            await asyncio.sleep(0)

        async def scenario():
            async with SessionTimer(player, interval=1.0, sleep=counting_sleep) as timer:
                player.resume()
                await timer.wait_stopped()

        asyncio.run(scenario())
        assert len(sleeps) == 8  # 3 work + 2 rest + 3 work
        assert set(sleeps) == {1.0}

    def test_pause_cancels_tick_source(self):
        player = SessionPlayer(_plan(_timed(series=1, work=10, rest=0)), clock=ManualClock())
        sleeps = 0

        async def pausing_sleep(_seconds: float) -> None:
            nonlocal sleeps
            sleeps += 1
            if sleeps == 3:
                player.pause()
            await asyncio.sleep(0)

        async def scenario():
            async with SessionTimer(player, sleep=pausing_sleep) as timer:
                player.resume()
                await timer.wait_stopped()
                assert not timer.ticking

        asyncio.run(scenario())
        assert player.running is False
        assert player.phase == "work"
        assert player.seconds_left == 8

    def test_repetition_idle_does_not_tick(self):
        ex = Exercise(nombre="Squats", tipo="reps", series=3, repeticiones="15", descanso_seg=0)
        player = SessionPlayer(_plan(ex), clock=ManualClock())

        async def scenario():
            async with SessionTimer(player, sleep=_instant) as timer:
                player.resume()
                assert player.running
                assert not timer.ticking

        asyncio.run(scenario())

    def test_close_releases_task_and_subscription(self):
        player = SessionPlayer(_plan(_timed(series=1, work=10, rest=0)), clock=ManualClock())

        async def scenario():
            timer = SessionTimer(player, interval=60.0)
            async with timer:
                player.resume()
                assert timer.ticking
            return timer

        timer = asyncio.run(scenario())
        assert not timer.ticking
        assert player.seconds_left == 10

        # Detached: further player changes must not start a new tick source
        player.pause()
        player.resume()
        assert not timer.ticking

    def test_listener_error_surfaces(self):
        player = SessionPlayer(_plan(_timed(series=1, work=2, rest=0)), clock=ManualClock())

        def broken(p):
            if p.seconds_left == 1:
                raise ValueError("listener failed")

        async def scenario():
            async with SessionTimer(player, sleep=_instant) as timer:
                player.resume()
                player.subscribe(broken)
                await timer.wait_stopped()

        with pytest.raises(ValueError):
            asyncio.run(scenario())


# ===========================================================================
# SummarySubmitter
# ===========================================================================

class TestSummarySubmitter:
    def test_success_latches(self):
        sink = _Sink()
        submitter = SummarySubmitter(sink)
        summary = _finished_summary()

        assert asyncio.run(submitter.submit(summary)) is True
        assert submitter.save_state.status == "saved"
        assert asyncio.run(submitter.submit(summary)) is False
        assert len(sink.calls) == 1

    def test_failure_keeps_summary_for_retry(self):
        sink = _Sink(failures=1)
        submitter = SummarySubmitter(sink)
        summary = _finished_summary()

        assert asyncio.run(submitter.submit(summary)) is False
        assert submitter.save_state.status == "error"
        assert submitter.save_state.message == "backend down"
        assert submitter.summary is summary

        assert asyncio.run(submitter.retry()) is True
        assert submitter.save_state.status == "saved"
        assert sink.calls == [summary, summary]
        assert submitter.attempts == 2

    def test_retry_without_failure_is_noop(self):
        sink = _Sink()
        submitter = SummarySubmitter(sink)
        assert asyncio.run(submitter.retry()) is False
        asyncio.run(submitter.submit(_finished_summary()))
        assert asyncio.run(submitter.retry()) is False
        assert len(sink.calls) == 1

    def test_no_duplicate_while_in_flight(self):
        summary = _finished_summary()

        async def scenario():
            gate = asyncio.Event()
            sink = _GatedSink(gate)
            submitter = SummarySubmitter(sink)
            first = asyncio.create_task(submitter.submit(summary))
            await asyncio.sleep(0)
            assert submitter.save_state.status == "saving"
            second = await submitter.submit(summary)
            gate.set()
            return await first, second, sink.calls

        first, second, calls = asyncio.run(scenario())
        assert first is True
        assert second is False
        assert calls == 1

    def test_state_changes_reported(self):
        seen = []
        submitter = SummarySubmitter(_Sink(failures=1), on_change=lambda s: seen.append(s.status))
        asyncio.run(submitter.submit(_finished_summary()))
        asyncio.run(submitter.retry())
        assert seen == ["saving", "error", "saving", "saved"]

    def test_unexpected_sink_failure_allows_retry(self):
        class _BrokenOnce:
            def __init__(self):
                self.calls = 0

            async def log_session(self, summary):
                self.calls += 1
                if self.calls == 1:
                    raise RuntimeError("disk full")

        sink = _BrokenOnce()
        submitter = SummarySubmitter(sink)
        summary = _finished_summary()

        assert asyncio.run(submitter.submit(summary)) is False
        assert submitter.save_state.status == "error"
        assert submitter.save_state.message == "disk full"
        assert not submitter.latched
        assert submitter.summary is summary

        assert asyncio.run(submitter.retry()) is True
        assert submitter.save_state.status == "saved"
        assert sink.calls == 2

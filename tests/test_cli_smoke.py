"""
Minimal smoke tests for the workout-player CLI.

Tests basic functionality:
- App runs without errors
- Plans can be shown from a file or the cache
- A session can be played offline and is logged locally
- Failed submissions are queued and resubmitted
"""

import json
import tempfile
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from workout_player.cli import views
from workout_player.cli.commands import history as history_cmd
from workout_player.cli.commands import session as session_cmd
from workout_player.cli.main import app
from workout_player.core.clock import ManualClock
from workout_player.core.models import Exercise, TrainingPlan
from workout_player.core.player import SessionPlayer
from workout_player.io.api_client import HomeTrainingClient
from workout_player.io.session_store import SessionStore
from workout_player.io.settings import Settings


runner = CliRunner()


REPS_PLAN = {
    "titulo": "Fuerza Express",
    "subtitulo": "Una serie",
    "fecha": "2026-10-19",
    "equipamiento": "minimo",
    "tipoEntrenamiento": "fuerza",
    "duracion_estimada_min": 5,
    "ejercicios": [
        {"nombre": "Sentadillas", "tipo": "reps", "series": 1, "repeticiones": "15",
         "duracion_seg": None, "descanso_seg": 0, "notas": ""},
    ],
}


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep the user's config file and environment out of the tests."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("WORKOUT_PLAYER_API_URL", raising=False)
    monkeypatch.delenv("WORKOUT_PLAYER_USER_ID", raising=False)


@pytest.fixture
def temp_data_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def plan_file(temp_data_dir):
    path = temp_data_dir / "plan-in.json"
    path.write_text(json.dumps(REPS_PLAN))
    return path


def _finished_summary():
    plan = TrainingPlan(
        titulo="Fuerza Express",
        subtitulo="",
        fecha="2026-10-19",
        equipamiento="minimo",
        tipo_entrenamiento="fuerza",
        duracion_estimada_min=5,
        ejercicios=(Exercise(nombre="Sentadillas", tipo="reps", series=1, repeticiones="15", descanso_seg=0),),
    )
    player = SessionPlayer(plan, clock=ManualClock(start_ms=1_000))
    player.mark_done()
    return player.summary("42")


def _mock_client_factory(status_code: int):
    """Build a HomeTrainingClient replacement answering every POST with status_code."""

    def handler(request):
        if status_code >= 400:
            return httpx.Response(status_code, json={"success": False, "error": "backend down"})
        return httpx.Response(status_code, json={"success": True})

    def factory(base_url, timeout=30.0):
        return HomeTrainingClient(base_url, timeout=timeout, transport=httpx.MockTransport(handler))

    return factory


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        """Test that app runs and lists its commands."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("fetch", "show-plan", "run", "history", "retry"):
            assert command in result.output

    def test_show_plan_from_file(self, plan_file):
        result = runner.invoke(app, ["show-plan", "--plan-file", str(plan_file)])
        assert result.exit_code == 0
        assert "Sentadillas" in result.output

    def test_show_plan_json(self, plan_file):
        result = runner.invoke(app, ["show-plan", "--plan-file", str(plan_file), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["ejercicios"][0]["nombre"] == "Sentadillas"

    def test_show_plan_without_cache_fails(self, temp_data_dir):
        result = runner.invoke(app, ["show-plan", "--data-dir", str(temp_data_dir)])
        assert result.exit_code == 1
        assert "No cached plan found" in result.output

    def test_history_empty(self, temp_data_dir):
        result = runner.invoke(app, ["history", "--data-dir", str(temp_data_dir)])
        assert result.exit_code == 0
        assert "No sessions recorded yet" in result.output

    def test_retry_nothing_pending(self, temp_data_dir):
        result = runner.invoke(app, ["retry", "--data-dir", str(temp_data_dir)])
        assert result.exit_code == 0
        assert "No pending sessions" in result.output

    def test_fetch_requires_user(self, temp_data_dir):
        result = runner.invoke(app, ["fetch", "--data-dir", str(temp_data_dir)])
        assert result.exit_code == 1

    def test_fetch_rejects_unknown_equipment(self, temp_data_dir):
        result = runner.invoke(
            app, ["fetch", "-u", "42", "-e", "gimnasio", "--data-dir", str(temp_data_dir)]
        )
        assert result.exit_code == 1
        assert "Unknown equipment level" in result.output


class TestRunCommand:
    def test_offline_session_is_logged(self, plan_file, temp_data_dir):
        result = runner.invoke(
            app,
            ["run", "--offline", "--plan-file", str(plan_file), "--data-dir", str(temp_data_dir)],
            input="\n",
        )
        assert result.exit_code == 0, result.output

        logged = SessionStore(temp_data_dir).load_summaries()
        assert len(logged) == 1
        assert logged[0].user_id == "local"
        assert logged[0].metrics.status == "completed"
        assert logged[0].series_completed == (1,)

        result = runner.invoke(app, ["history", "--data-dir", str(temp_data_dir), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)[0]["metrics"]["completados"] == 1

    def test_finish_early_is_partial(self, temp_data_dir):
        doc = dict(REPS_PLAN)
        doc["ejercicios"] = [dict(REPS_PLAN["ejercicios"][0], series=3)]
        path = temp_data_dir / "three.json"
        path.write_text(json.dumps(doc))

        result = runner.invoke(
            app,
            ["run", "--offline", "--plan-file", str(path), "--data-dir", str(temp_data_dir)],
            input="\nf\n",
        )
        assert result.exit_code == 0, result.output

        logged = SessionStore(temp_data_dir).load_summaries()
        assert logged[0].metrics.status == "partial"
        assert logged[0].series_completed == (1,)

    def test_plan_without_exercises_fails(self, temp_data_dir):
        path = temp_data_dir / "empty.json"
        path.write_text(json.dumps({"titulo": "Nada", "ejercicios": []}))
        result = runner.invoke(
            app, ["run", "--offline", "--plan-file", str(path), "--data-dir", str(temp_data_dir)]
        )
        assert result.exit_code == 1
        assert "no exercises" in result.output

    def test_online_run_requires_user(self, plan_file, temp_data_dir):
        result = runner.invoke(
            app, ["run", "--plan-file", str(plan_file), "--data-dir", str(temp_data_dir)]
        )
        assert result.exit_code == 1
        assert "No user id" in result.output


class TestSubmissionQueue:
    def test_failed_submission_is_queued(self, temp_data_dir, monkeypatch):
        monkeypatch.setattr(session_cmd, "HomeTrainingClient", _mock_client_factory(500))
        store = SessionStore(temp_data_dir)

        state = session_cmd.save_session(
            _finished_summary(), store, Settings(), offline=False, allow_retry=False
        )

        assert state.status == "error"
        assert state.message == "backend down"
        assert len(store.load_pending()) == 1
        assert store.load_summaries() == []

    def test_unexpected_client_failure_is_queued(self, temp_data_dir, monkeypatch):
        def handler(request):
            raise RuntimeError("encoder exploded")

        def factory(base_url, timeout=30.0):
            return HomeTrainingClient(base_url, timeout=timeout, transport=httpx.MockTransport(handler))

        monkeypatch.setattr(session_cmd, "HomeTrainingClient", factory)
        store = SessionStore(temp_data_dir)

        state = session_cmd.save_session(
            _finished_summary(), store, Settings(), offline=False, allow_retry=False
        )

        assert state.status == "error"
        assert state.message == "encoder exploded"
        assert len(store.load_pending()) == 1

    def test_successful_submission_not_queued(self, temp_data_dir, monkeypatch):
        monkeypatch.setattr(session_cmd, "HomeTrainingClient", _mock_client_factory(200))
        store = SessionStore(temp_data_dir)

        state = session_cmd.save_session(
            _finished_summary(), store, Settings(), offline=False, allow_retry=False
        )

        assert state.status == "saved"
        assert store.load_pending() == []

    def test_retry_drains_queue(self, temp_data_dir, monkeypatch):
        monkeypatch.setattr(history_cmd, "HomeTrainingClient", _mock_client_factory(200))
        store = SessionStore(temp_data_dir)
        store.add_pending(_finished_summary())
        store.add_pending(_finished_summary())

        result = runner.invoke(app, ["retry", "--data-dir", str(temp_data_dir)])

        assert result.exit_code == 0, result.output
        assert "Resubmitted 2 session(s)" in result.output
        assert store.load_pending() == []

    def test_retry_keeps_failures(self, temp_data_dir, monkeypatch):
        monkeypatch.setattr(history_cmd, "HomeTrainingClient", _mock_client_factory(503))
        store = SessionStore(temp_data_dir)
        store.add_pending(_finished_summary())

        result = runner.invoke(app, ["retry", "--data-dir", str(temp_data_dir)])

        assert result.exit_code == 1
        assert len(store.load_pending()) == 1


class TestApplyCommand:
    def _player(self) -> SessionPlayer:
        plan = TrainingPlan(
            titulo="Mixto",
            subtitulo="",
            fecha="2026-10-19",
            equipamiento="basico",
            tipo_entrenamiento="funcional",
            duracion_estimada_min=10,
            ejercicios=(
                Exercise(nombre="Plancha", tipo="time", series=2, duracion_seg=20, descanso_seg=10),
                Exercise(nombre="Zancadas", tipo="reps", series=2, repeticiones="12", descanso_seg=0),
            ),
        )
        return SessionPlayer(plan, clock=ManualClock())

    def test_enter_starts_timed_exercise(self):
        player = self._player()
        session_cmd.apply_command(player, "")
        assert player.running
        assert player.phase == "work"
        assert player.seconds_left == 20

    def test_enter_confirms_repetition_series(self):
        player = self._player()
        session_cmd.apply_command(player, "s")
        assert player.current_index == 1
        session_cmd.apply_command(player, "")
        assert player.series_completed == (0, 1)
        assert player.current_series == 2

    def test_jump_is_one_based(self):
        player = self._player()
        session_cmd.apply_command(player, "j 2")
        assert player.current_index == 1
        assert player.phase == "idle"

    def test_invalid_commands_leave_player_unchanged(self):
        player = self._player()
        for raw in ("j 9", "j x", "zz"):
            session_cmd.apply_command(player, raw)
        assert player.current_index == 0
        assert player.phase == "idle"
        assert not player.running

    def test_finish(self):
        player = self._player()
        session_cmd.apply_command(player, "F")
        assert player.is_done
        assert player.summary("u").metrics.status == "partial"


class TestPlayLoop:
    def _timed_player(self) -> SessionPlayer:
        plan = TrainingPlan(
            titulo="HIIT",
            subtitulo="",
            fecha="2026-10-19",
            equipamiento="minimo",
            tipo_entrenamiento="hiit",
            duracion_estimada_min=5,
            ejercicios=(Exercise(nombre="Burpees", tipo="time", series=1, duracion_seg=30, descanso_seg=0),),
        )
        return SessionPlayer(plan, clock=ManualClock(), auto_start=True)

    def test_interrupt_during_countdown_pauses(self, monkeypatch):
        player = self._timed_player()
        seen = []

        async def interrupted(p, tick_seconds):
            raise KeyboardInterrupt

        def answer(prompt=""):
            seen.append((player.phase, player.running, player.seconds_left))
            return "f"

        monkeypatch.setattr(session_cmd, "run_countdown", interrupted)
        monkeypatch.setattr(views.console, "input", answer)

        session_cmd.play(player, tick_seconds=1.0)

        assert seen == [("work", False, 30)]
        assert player.is_done
        assert player.summary("u").metrics.status == "partial"

    def test_enter_resumes_after_pause(self, monkeypatch):
        player = self._timed_player()
        calls = []

        async def countdown(p, tick_seconds):
            calls.append(p.seconds_left)
            if len(calls) == 1:
                raise KeyboardInterrupt
            while not p.is_done:
                p.tick()

        monkeypatch.setattr(session_cmd, "run_countdown", countdown)
        monkeypatch.setattr(views.console, "input", lambda prompt="": "")

        session_cmd.play(player, tick_seconds=1.0)

        assert calls == [30, 30]
        assert player.summary("u").metrics.status == "completed"

    def test_interrupt_at_prompt_finishes(self, monkeypatch):
        player = self._timed_player()
        player.pause()

        def interrupt(prompt=""):
            raise KeyboardInterrupt

        monkeypatch.setattr(views.console, "input", interrupt)

        session_cmd.play(player, tick_seconds=1.0)

        assert player.is_done
        assert player.summary("u").metrics.status == "partial"

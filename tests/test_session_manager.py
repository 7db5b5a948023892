"""Tests for the session persistence bridge and conflict handling."""
import asyncio
import json

import pytest

from workout_tracker_api.models import WorkoutExercise
from workout_tracker_api.services.flows import FlowStatus
from workout_tracker_api.services import session_manager as session_manager_module
from workout_tracker_api.services.session_manager import (
    ConflictResolution,
    WorkoutConflict,
    WorkoutSessionManager,
)


@pytest.fixture
def exercises(bench, squats):
    return [WorkoutExercise.with_default_sets(bench), WorkoutExercise.with_default_sets(squats)]


class TestSessionLifecycle:
    """Start, pause, resume and clear."""

    def test_no_session_defaults(self, session_manager):
        assert not session_manager.has_active_workout()
        assert session_manager.get_workout_state() is None
        assert session_manager.routine_name == "Workout"
        assert session_manager.current_exercise_name == "Ready to start"
        assert session_manager.duration_string() == "0s"

    def test_start_workout(self, session_manager, exercises, clock):
        state = session_manager.start_workout("push-day", "Push Day", exercises)
        assert state.start_time == clock.now
        assert state.is_active
        assert session_manager.has_active_workout()
        assert session_manager.is_workout_active()
        assert session_manager.routine_name == "Push Day"
        assert session_manager.current_exercise_name == "Barbell Bench Press"

    def test_elapsed_excludes_paused_time(self, session_manager, exercises, clock):
        session_manager.start_workout("push-day", "Push Day", exercises)
        clock.advance(60)
        session_manager.pause_workout()
        clock.advance(30)
        assert session_manager.elapsed_seconds() == 60
        assert session_manager.workout_duration.value == "1m 0s"

        session_manager.resume_workout()
        clock.advance(10)
        assert session_manager.elapsed_seconds() == 70
        assert session_manager.duration_string() == "1m 10s"

    def test_pause_is_idempotent(self, session_manager, exercises, clock):
        session_manager.start_workout(None, "Quick Workout", exercises)
        session_manager.pause_workout()
        paused_at = session_manager.get_workout_state().paused_at
        clock.advance(5)
        session_manager.pause_workout()
        assert session_manager.get_workout_state().paused_at == paused_at
        assert not session_manager.is_workout_active()

    def test_update_session_keeps_timing(self, session_manager, exercises, clock):
        session_manager.start_workout("push-day", "Push Day", exercises)
        started = session_manager.get_workout_state().start_time
        clock.advance(20)
        session_manager.pause_workout()
        session_manager.update_session("push-day", "Push Day", exercises[:1])

        state = session_manager.get_workout_state()
        assert state.start_time == started
        assert state.is_paused
        assert len(state.exercises) == 1

    def test_progress_bookkeeping(self, session_manager, exercises):
        session_manager.start_workout("push-day", "Push Day", exercises)
        session_manager.update_current_exercise("Squats")
        session_manager.add_completed_set()
        session_manager.add_completed_set()
        state = session_manager.get_workout_state()
        assert state.current_exercise == "Squats"
        assert state.completed_sets == 2

    def test_mutations_without_session_are_noops(self, session_manager, exercises):
        session_manager.update_session("x", "X", exercises)
        session_manager.pause_workout()
        session_manager.resume_workout()
        session_manager.add_completed_set()
        assert session_manager.get_workout_state() is None

    @pytest.mark.parametrize("method", ["finish_workout", "discard_workout", "clear_session"])
    def test_clearing(self, session_manager, exercises, method):
        session_manager.start_workout("push-day", "Push Day", exercises)
        getattr(session_manager, method)()
        assert not session_manager.has_active_workout()
        assert session_manager.workout_duration.value == "0s"

    def test_subscribers_see_published_state(self, session_manager, exercises):
        seen = []
        session_manager.workout_state.subscribe(seen.append)
        session_manager.start_workout("push-day", "Push Day", exercises)
        session_manager.discard_workout()
        assert seen[0].routine_name == "Push Day"
        assert seen[-1] is None


class TestConflicts:
    """Conflict detection and resolution."""

    def test_no_conflict_without_session(self, session_manager):
        assert session_manager.check_conflict("leg-day", "Leg Day") is None

    def test_same_routine_is_not_a_conflict(self, session_manager, exercises):
        session_manager.start_workout("push-day", "Push Day", exercises)
        assert session_manager.check_conflict("push-day", "Push Day") is None

    def test_different_routine_conflicts(self, session_manager, exercises):
        session_manager.start_workout("push-day", "Push Day", exercises)
        conflict = session_manager.check_conflict("leg-day", "Leg Day")
        assert conflict == WorkoutConflict("push-day", "Push Day", "leg-day", "Leg Day")

    def test_quick_workout_always_conflicts(self, session_manager, exercises):
        session_manager.start_workout(None, "Quick Workout", exercises)
        assert session_manager.check_conflict(None, "Quick Workout") is not None

    def test_cancel_keeps_session(self, session_manager, exercises):
        session_manager.start_workout("push-day", "Push Day", exercises)
        session_manager.request_start("leg-day", "Leg Day")
        assert session_manager.conflict_flow.is_staged

        assert session_manager.resolve_conflict(ConflictResolution.CANCEL) is None
        assert session_manager.conflict_flow.status == FlowStatus.CANCELLED
        assert session_manager.routine_name == "Push Day"

    def test_resume_unpauses(self, session_manager, exercises):
        session_manager.start_workout("push-day", "Push Day", exercises)
        session_manager.pause_workout()
        session_manager.request_start("leg-day", "Leg Day")

        assert session_manager.resolve_conflict(ConflictResolution.RESUME) is None
        assert session_manager.is_workout_active()
        assert session_manager.routine_name == "Push Day"

    def test_discard_and_start_returns_request(self, session_manager, exercises):
        session_manager.start_workout("push-day", "Push Day", exercises)
        session_manager.request_start("leg-day", "Leg Day")

        conflict = session_manager.resolve_conflict(ConflictResolution.DISCARD_AND_START)
        assert conflict.requested_routine_id == "leg-day"
        assert not session_manager.has_active_workout()

    def test_resolve_without_staged_conflict(self, session_manager):
        assert session_manager.resolve_conflict(ConflictResolution.DISCARD_AND_START) is None


class TestPersistence:
    """JSON persistence and restore."""

    def test_restore_from_file(self, tmp_path, exercises, clock):
        path = tmp_path / "session.json"
        first = WorkoutSessionManager(state_path=path, clock=clock)
        first.start_workout("push-day", "Push Day", exercises)
        clock.advance(120)
        first.pause_workout()
        assert path.exists()

        clock.advance(600)
        restored = WorkoutSessionManager(state_path=path, clock=clock)
        state = restored.get_workout_state()
        assert state.routine_id == "push-day"
        assert len(state.exercises) == 2
        assert state.is_paused
        assert restored.elapsed_seconds() == 120
        assert restored.workout_duration.value == "2m 0s"

    def test_clear_deletes_file(self, tmp_path, exercises, clock):
        path = tmp_path / "session.json"
        manager = WorkoutSessionManager(state_path=path, clock=clock)
        manager.start_workout("push-day", "Push Day", exercises)
        manager.finish_workout()
        assert not path.exists()

    def test_corrupt_file_is_discarded(self, tmp_path, clock):
        path = tmp_path / "session.json"
        path.write_text("{not json")
        manager = WorkoutSessionManager(state_path=path, clock=clock)
        assert not manager.has_active_workout()
        assert not path.exists()

    def test_missing_keys_are_discarded(self, tmp_path, clock):
        path = tmp_path / "session.json"
        path.write_text(json.dumps({"start_time": None}))
        manager = WorkoutSessionManager(state_path=path, clock=clock)
        assert not manager.has_active_workout()


class TestDurationTicker:
    """The duration cell ticks while a loop is running and stops when the workout does."""

    @pytest.fixture(autouse=True)
    def fast_ticks(self, monkeypatch):
        monkeypatch.setattr(session_manager_module, "TICK_SECONDS", 0.01)

    @pytest.mark.asyncio
    async def test_ticks_while_active(self, session_manager, exercises, clock):
        session_manager.start_workout("push-day", "Push Day", exercises)
        assert session_manager._ticker is not None

        clock.advance(5)
        await asyncio.sleep(0.05)
        assert session_manager.workout_duration.value == "5s"
        session_manager.discard_workout()

    @pytest.mark.asyncio
    async def test_pause_stops_ticker(self, session_manager, exercises, clock):
        session_manager.start_workout("push-day", "Push Day", exercises)
        clock.advance(30)
        session_manager.pause_workout()
        assert session_manager._ticker is None
        assert session_manager.workout_duration.value == "30s"

        clock.advance(120)
        await asyncio.sleep(0.05)
        assert session_manager.workout_duration.value == "30s"

        session_manager.resume_workout()
        assert session_manager._ticker is not None
        clock.advance(10)
        await asyncio.sleep(0.05)
        assert session_manager.workout_duration.value == "40s"
        session_manager.finish_workout()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("end", ["finish_workout", "discard_workout"])
    async def test_ending_stops_ticker(self, session_manager, exercises, clock, end):
        session_manager.start_workout("push-day", "Push Day", exercises)
        clock.advance(3)
        await asyncio.sleep(0.05)
        assert session_manager.workout_duration.value == "3s"

        getattr(session_manager, end)()
        assert session_manager._ticker is None
        clock.advance(60)
        await asyncio.sleep(0.05)
        assert session_manager.workout_duration.value == "3s"

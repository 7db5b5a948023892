"""
Session persistence bridge.

Holds the single in-progress workout for the running process so that it
survives the client navigating away, and detects when starting another
workout would collide with it.

Features:
- Elapsed duration excluding paused intervals ("1h 2m 3s" / "2m 3s" / "3s")
- One-second duration ticker while active (only when an event loop is running)
- Optional JSON persistence of the snapshot and timing state
- Restore on construction; a corrupt state file is discarded
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from workout_tracker_api.models import WorkoutExercise, WorkoutSessionState
from workout_tracker_api.services.flows import StagedFlow
from workout_tracker_api.services.observable import Observable
from workout_tracker_api.utils import format_duration

logger = logging.getLogger(__name__)

DEFAULT_ROUTINE_NAME = "Workout"
NO_EXERCISE_LABEL = "Ready to start"
TICK_SECONDS = 1.0


class ConflictResolution(str, Enum):
    RESUME = "resume"
    DISCARD_AND_START = "discard_and_start"
    CANCEL = "cancel"


@dataclass(frozen=True)
class WorkoutConflict:
    """A start request that collides with the active session."""
    active_routine_id: Optional[str]
    active_name: str
    requested_routine_id: Optional[str]
    requested_name: str


class WorkoutSessionManager:
    """Holds zero or one active workout snapshot.

    Construct one per application run and pass it to whatever needs the
    active session. Tests construct a fresh instance per case.
    """

    def __init__(
        self,
        state_path: Optional[Union[str, Path]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.state_path = Path(state_path) if state_path else None
        self.clock = clock

        self.workout_state: Observable[Optional[WorkoutSessionState]] = Observable(None)
        self.workout_duration: Observable[str] = Observable("0s")
        self.conflict_flow: StagedFlow[WorkoutConflict] = StagedFlow("workout-conflict")

        self._is_active = False
        self._start_time: Optional[datetime] = None
        self._total_paused = 0.0
        self._last_pause_time: Optional[datetime] = None
        self._ticker: Optional[asyncio.Task] = None

        self._restore_session()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_workout(
        self,
        routine_id: Optional[str],
        routine_name: str,
        exercises: List[WorkoutExercise],
    ) -> WorkoutSessionState:
        now = self.clock()
        state = WorkoutSessionState(
            routine_id=routine_id,
            routine_name=routine_name,
            exercises=list(exercises),
            start_time=now,
            is_active=True,
            current_exercise=exercises[0].exercise.name if exercises else None,
        )
        self._start_time = now
        self._total_paused = 0.0
        self._last_pause_time = None
        self._is_active = True
        self._publish(state)
        self._start_timer()
        logger.info(f"Workout started: {routine_name} with {len(exercises)} exercises")
        return state

    def update_session(
        self,
        routine_id: Optional[str],
        routine_name: str,
        exercises: List[WorkoutExercise],
    ) -> None:
        """Replace routine identity and exercises; timing and pause state are kept."""
        state = self.workout_state.value
        if state is None:
            return
        self._publish(state.model_copy(update={
            "routine_id": routine_id,
            "routine_name": routine_name,
            "exercises": list(exercises),
        }))

    def pause_workout(self) -> None:
        state = self.workout_state.value
        if state is None or state.is_paused:
            return
        now = self.clock()
        self._last_pause_time = now
        self._is_active = False
        self._stop_timer()
        self._publish(state.model_copy(update={"is_active": False, "paused_at": now}))
        self._refresh_duration()
        logger.info("Workout paused")

    def resume_workout(self) -> None:
        state = self.workout_state.value
        if state is None:
            return
        if self._last_pause_time is not None:
            paused_for = (self.clock() - self._last_pause_time).total_seconds()
            self._total_paused += max(0.0, paused_for)
            self._last_pause_time = None
            logger.debug(f"Added pause of {paused_for:.0f}s, total paused {self._total_paused:.0f}s")
        self._is_active = True
        self._publish(state.model_copy(update={"is_active": True, "paused_at": None}))
        self._start_timer()
        logger.info("Workout resumed")

    def finish_workout(self) -> None:
        logger.info("Finishing workout session")
        self.clear_session()

    def discard_workout(self) -> None:
        logger.info("Discarding workout session")
        self.clear_session()

    def clear_session(self) -> None:
        self._stop_timer()
        self._is_active = False
        self._start_time = None
        self._total_paused = 0.0
        self._last_pause_time = None
        self.workout_state.set(None)
        self.workout_duration.set("0s")
        self._delete_state_file()

    # ------------------------------------------------------------------
    # Progress bookkeeping
    # ------------------------------------------------------------------

    def update_current_exercise(self, exercise_name: str) -> None:
        state = self.workout_state.value
        if state is None:
            return
        self._publish(state.model_copy(update={"current_exercise": exercise_name}))

    def add_completed_set(self) -> None:
        state = self.workout_state.value
        if state is None:
            return
        self._publish(state.model_copy(update={"completed_sets": state.completed_sets + 1}))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_workout_state(self) -> Optional[WorkoutSessionState]:
        return self.workout_state.value

    def has_active_workout(self) -> bool:
        return self.workout_state.value is not None

    def is_workout_active(self) -> bool:
        """True while a workout exists and is not paused."""
        return self._is_active

    @property
    def routine_name(self) -> str:
        state = self.workout_state.value
        return state.routine_name if state else DEFAULT_ROUTINE_NAME

    @property
    def current_exercise_name(self) -> str:
        state = self.workout_state.value
        if state is None or not state.current_exercise:
            return NO_EXERCISE_LABEL
        return state.current_exercise

    def elapsed_seconds(self) -> float:
        if self._start_time is None:
            return 0.0
        end = self._last_pause_time or self.clock()
        return max(0.0, (end - self._start_time).total_seconds() - self._total_paused)

    def duration_string(self) -> str:
        return format_duration(self.elapsed_seconds())

    # ------------------------------------------------------------------
    # Conflict handling
    # ------------------------------------------------------------------

    def check_conflict(self, routine_id: Optional[str], routine_name: str) -> Optional[WorkoutConflict]:
        """Conflict if a different workout is in progress.

        Re-opening the routine that is already active is a resume, not a
        conflict. A quick workout always conflicts with an existing session.
        """
        state = self.workout_state.value
        if state is None:
            return None
        if routine_id is not None and routine_id == state.routine_id:
            return None
        return WorkoutConflict(
            active_routine_id=state.routine_id,
            active_name=state.routine_name,
            requested_routine_id=routine_id,
            requested_name=routine_name,
        )

    def request_start(self, routine_id: Optional[str], routine_name: str) -> Optional[WorkoutConflict]:
        """Stage a conflict for the caller to resolve, or return None when starting is safe."""
        conflict = self.check_conflict(routine_id, routine_name)
        if conflict is not None:
            logger.info(
                f"Start of '{routine_name}' conflicts with active workout '{conflict.active_name}'"
            )
            self.conflict_flow.stage(conflict)
        return conflict

    def resolve_conflict(self, resolution: ConflictResolution) -> Optional[WorkoutConflict]:
        """Apply the user's choice for the staged conflict.

        Returns the conflict when the caller should now start the requested
        workout (DISCARD_AND_START); None for RESUME, CANCEL, or when
        nothing is staged.
        """
        if not self.conflict_flow.is_staged:
            return None
        if resolution == ConflictResolution.CANCEL:
            self.conflict_flow.cancel()
            return None
        conflict = self.conflict_flow.confirm()
        if resolution == ConflictResolution.RESUME:
            logger.info(f"Resuming active workout '{conflict.active_name}'")
            if self.workout_state.value is not None and self.workout_state.value.is_paused:
                self.resume_workout()
            return None
        self.discard_workout()
        return conflict

    # ------------------------------------------------------------------
    # Duration ticker
    # ------------------------------------------------------------------

    def _refresh_duration(self) -> None:
        self.workout_duration.set(self.duration_string())

    def _start_timer(self) -> None:
        self._stop_timer()
        self._refresh_duration()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._ticker = loop.create_task(self._tick())

    def _stop_timer(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    async def _tick(self) -> None:
        while self._is_active:
            await asyncio.sleep(TICK_SECONDS)
            if self._is_active:
                self._refresh_duration()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _publish(self, state: WorkoutSessionState) -> None:
        self.workout_state.set(state)
        self._save_session(state)

    def _save_session(self, state: WorkoutSessionState) -> None:
        if self.state_path is None:
            return
        payload: Dict[str, Any] = {
            "workout_state": state.model_dump(mode="json"),
            "start_time": self._start_time.isoformat() if self._start_time else None,
            "total_paused_duration": self._total_paused,
            "last_pause_time": self._last_pause_time.isoformat() if self._last_pause_time else None,
            "is_active": self._is_active,
        }
        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Error saving session to {self.state_path}: {e}")

    def _delete_state_file(self) -> None:
        if self.state_path is None:
            return
        try:
            self.state_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Error clearing session file {self.state_path}: {e}")

    def _restore_session(self) -> None:
        if self.state_path is None or not self.state_path.exists():
            return
        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
            state = WorkoutSessionState.model_validate(payload["workout_state"])
            start_time = payload.get("start_time")
            last_pause = payload.get("last_pause_time")
            self._start_time = datetime.fromisoformat(start_time) if start_time else state.start_time
            self._total_paused = float(payload.get("total_paused_duration") or 0.0)
            self._last_pause_time = datetime.fromisoformat(last_pause) if last_pause else None
            self._is_active = bool(payload.get("is_active", state.is_active))
        except (OSError, ValueError, KeyError, TypeError, ValidationError) as e:
            logger.warning(f"Discarding unreadable session file {self.state_path}: {e}")
            self.clear_session()
            return

        self.workout_state.set(state)
        self._refresh_duration()
        if self._is_active:
            self._start_timer()
        logger.info(
            f"Session restored: {state.routine_name} with {len(state.exercises)} exercises "
            f"({self.workout_duration.value})"
        )

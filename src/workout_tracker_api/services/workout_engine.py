"""
Workout session engine.

Tracks one workout from start to finish: initialization (from a routine,
from the paused session, or ad hoc), exercise and set mutation, derived
stats, completion status, and the finish / discard / save-as-routine
transitions.

Routines are shown immediately with default sets and enriched in the
background with previous/best values from history. Enrichment results
are tagged with a generation number and dropped if the session was
discarded or re-initialized in the meantime.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from workout_tracker_api.config import Settings, settings as default_settings
from workout_tracker_api.errors import NoCompletedSetsError, WorkoutValidationError
from workout_tracker_api.models import (
    ActiveWorkoutState,
    CompletedExercise,
    CompletedSet,
    Exercise,
    ExerciseSet,
    HistoricalSetData,
    Workout,
    WorkoutCompletionStatus,
    WorkoutExercise,
    WorkoutHistory,
)
from workout_tracker_api.repositories.ports import (
    BillingProvider,
    HistoryStore,
    IdentityProvider,
    WorkoutStore,
)
from workout_tracker_api.services.flows import StagedFlow
from workout_tracker_api.services.history_resolver import (
    HistoricalDataResolver,
    personal_record_set,
)
from workout_tracker_api.services.identity import require_user_id
from workout_tracker_api.services.observable import Observable
from workout_tracker_api.services.rest_timer import RestTimer
from workout_tracker_api.services.routine_service import RoutineService
from workout_tracker_api.services.session_manager import WorkoutSessionManager
from workout_tracker_api.utils import camel_case_id

logger = logging.getLogger(__name__)

QUICK_WORKOUT_NAME = "Quick Workout"


class FinishOutcome(str, Enum):
    NEEDS_CONFIRMATION = "needs_confirmation"
    SAVED = "saved"
    SAVED_ROUTINE_MODIFIED = "saved_routine_modified"


@dataclass(frozen=True)
class FinishResult:
    outcome: FinishOutcome
    history: Optional[WorkoutHistory] = None
    completion: Optional[WorkoutCompletionStatus] = None


# ----------------------------------------------------------------------
# Pure helpers
# ----------------------------------------------------------------------

def materialize_from_template(template: WorkoutExercise) -> WorkoutExercise:
    """Session entry for a routine exercise: template set count, default values."""
    exercise = template.exercise.with_id()
    count = len(template.sets) or exercise.default_sets
    return WorkoutExercise(
        exercise=exercise,
        sets=exercise.default_sets_list(count),
        notes="",
        is_superset=template.is_superset or exercise.is_superset,
        is_dropset=template.is_dropset or exercise.is_dropset,
    )


def apply_historical_data(
    workout_exercise: WorkoutExercise,
    data: Dict[int, HistoricalSetData],
    notes: Optional[str] = None,
) -> WorkoutExercise:
    """Attach previous/best annotations and pre-populate uncompleted sets.

    A value is pre-populated only when the exercise measures it and the
    previous value is positive; anything the user already completed keeps
    its entered values.
    """
    exercise = workout_exercise.exercise
    new_sets = []
    for s in workout_exercise.sets:
        hist = data.get(s.set_number)
        if hist is None:
            new_sets.append(s)
            continue
        prev, best = hist.previous, hist.best
        update = {
            "previous_weight": prev.weight if prev else None,
            "previous_reps": prev.reps if prev else None,
            "previous_distance": prev.distance if prev else None,
            "previous_time": int(prev.time) if prev else None,
            "best_weight": best.weight if best else None,
            "best_reps": best.reps if best else None,
            "best_distance": best.distance if best else None,
            "best_time": int(best.time) if best else None,
        }
        if prev is not None and not s.is_completed:
            if exercise.uses_weight and prev.weight > 0:
                update["weight"] = prev.weight
            if not exercise.is_time_based and prev.reps > 0:
                update["reps"] = prev.reps
            if exercise.tracks_distance and prev.distance > 0:
                update["distance"] = prev.distance
            if exercise.is_time_based and prev.time > 0:
                update["time"] = int(prev.time)
        new_sets.append(s.model_copy(update=update))

    update = {"sets": new_sets}
    if notes and not workout_exercise.notes:
        update["notes"] = notes
    return workout_exercise.model_copy(update=update)


def _max_best(best, value):
    return max(best or 0, value)


def _min_best_time(best: Optional[int], value: int) -> Optional[int]:
    if value <= 0:
        return best
    return value if best is None else min(best, value)


def compute_stats(exercises: List[WorkoutExercise]) -> Tuple[float, int]:
    """(total volume, completed set count) over completed sets only."""
    volume = 0.0
    count = 0
    for we in exercises:
        for s in we.completed_sets:
            volume += s.weight * s.reps
            count += 1
    return volume, count


def completion_status(exercises: List[WorkoutExercise]) -> WorkoutCompletionStatus:
    """Exercises with no sets are counted in neither list."""
    completed = [we for we in exercises if we.is_fully_completed]
    incomplete = [we for we in exercises if len(we.completed_sets) < len(we.sets)]
    total_sets = sum(len(we.sets) for we in exercises)
    completed_sets = sum(len(we.completed_sets) for we in exercises)
    return WorkoutCompletionStatus(
        total_exercises=len(exercises),
        completed_exercises=completed,
        incomplete_exercises=incomplete,
        total_sets=total_sets,
        completed_sets=completed_sets,
        is_fully_completed=not incomplete and completed_sets > 0,
    )


def generate_workout_name(exercises: List[WorkoutExercise]) -> str:
    groups: List[str] = []
    for we in exercises:
        group = we.exercise.muscle_group
        if group and group not in groups:
            groups.append(group)
    if not groups:
        return QUICK_WORKOUT_NAME
    if len(groups) == 1:
        return f"{groups[0]} Workout"
    return f"{groups[0]} & {groups[1]} Workout"


def build_history(
    exercises: List[WorkoutExercise],
    *,
    name: str,
    user_id: str,
    start_time: datetime,
    end_time: datetime,
    color_hex: str,
    routine_id: Optional[str],
) -> WorkoutHistory:
    """History record holding only exercises with completed sets, and only those sets."""
    completed_exercises = []
    for we in exercises:
        done = we.completed_sets
        if not done:
            continue
        completed_exercises.append(CompletedExercise(
            exercise_id=we.exercise.id,
            name=we.exercise.name,
            notes=we.notes,
            muscle_group=we.exercise.muscle_group,
            equipment=we.exercise.equipment,
            sets=[
                CompletedSet(
                    set_number=s.set_number,
                    weight=s.weight,
                    reps=s.reps,
                    distance=s.distance,
                    time=float(s.time),
                )
                for s in done
            ],
        ))
    volume, count = compute_stats(exercises)
    return WorkoutHistory(
        name=name,
        start_time=start_time,
        end_time=end_time,
        exercises=completed_exercises,
        total_volume=volume,
        total_sets=count,
        color_hex=color_hex,
        routine_id=routine_id,
        user_id=user_id,
        exercise_ids=[ce.exercise_id for ce in completed_exercises],
    )


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------

class WorkoutSessionEngine:
    """State for one active workout, observed through ``Observable`` cells."""

    def __init__(
        self,
        session_manager: WorkoutSessionManager,
        workout_store: WorkoutStore,
        history_store: HistoryStore,
        identity: IdentityProvider,
        billing: BillingProvider,
        resolver: Optional[HistoricalDataResolver] = None,
        routine_service: Optional[RoutineService] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or default_settings
        self.session_manager = session_manager
        self.workout_store = workout_store
        self.history_store = history_store
        self.identity = identity
        self.billing = billing
        self.clock = clock
        self.resolver = resolver or HistoricalDataResolver(
            history_store, scan_limit=self.settings.HISTORY_SCAN_LIMIT
        )
        self.routine_service = routine_service or RoutineService(
            workout_store, history_store, identity, billing, self.settings, clock
        )

        # Published state
        self.exercises: Observable[List[WorkoutExercise]] = Observable([])
        self.state: Observable[ActiveWorkoutState] = Observable(ActiveWorkoutState.initial())
        self.loading_progress: Observable[float] = Observable(0.0)
        self.is_loading_routine: Observable[bool] = Observable(False)
        self.total_volume: Observable[float] = Observable(0.0)
        self.total_sets: Observable[int] = Observable(0)
        self.rest_timer = RestTimer()

        # Staged confirmations
        self.replace_flow: StagedFlow[str] = StagedFlow("replace-exercise")
        self.finish_flow: StagedFlow[WorkoutCompletionStatus] = StagedFlow("finish-incomplete")
        self.update_routine_flow: StagedFlow[Workout] = StagedFlow("update-routine")

        self.is_initialized = False
        self.is_reorder_mode = False
        self.is_routine_modified = False
        self.current_routine_id: Optional[str] = None
        self.original_routine_name: Optional[str] = None
        self.routine_name: Optional[str] = None

        self._generation = 0
        self._enrichment_task: Optional[asyncio.Task] = None

    @property
    def workout_duration(self) -> Observable[str]:
        return self.session_manager.workout_duration

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize_from_routine(self, routine_id: str) -> bool:
        """Load a routine, publish default sets now and enrich from history in the background.

        Returns False if already initialized or the routine does not exist.
        """
        if self.is_initialized:
            logger.debug(f"Ignoring initialize_from_routine({routine_id}); already initialized")
            return False

        self.is_loading_routine.set(True)
        try:
            user = await self.identity.get_current_user()
            routine = await self.workout_store.get_workout_by_id(routine_id)
        except Exception as e:
            logger.error(f"Error initializing routine {routine_id}: {e}")
            self.is_loading_routine.set(False)
            self.state.set(ActiveWorkoutState.error(str(e)))
            raise

        if routine is None or user is None or routine.user_id != user.id:
            logger.warning(f"Routine {routine_id} not found")
            self.is_loading_routine.set(False)
            self.state.set(ActiveWorkoutState.error("Routine not found"))
            return False

        # A concurrent initializer may have won while the routine was loading
        if self.is_initialized:
            self.is_loading_routine.set(False)
            return False

        self.current_routine_id = routine.id
        self.original_routine_name = routine.name
        self.routine_name = routine.name

        basic = [materialize_from_template(t) for t in routine.exercises]
        self._set_exercises(basic)
        self.is_loading_routine.set(False)
        self.is_initialized = True
        self.session_manager.start_workout(routine.id, routine.name, basic)
        logger.info(f"Workout initialized from routine '{routine.name}' ({len(basic)} exercises)")

        self._generation += 1
        self._enrichment_task = asyncio.create_task(
            self._enrich(self._generation, [we.exercise for we in basic])
        )
        return True

    def initialize_from_session(self) -> bool:
        """Adopt the paused session snapshot verbatim. False if there is none."""
        if self.is_initialized:
            logger.debug("Ignoring initialize_from_session; already initialized")
            return False
        snapshot = self.session_manager.get_workout_state()
        if snapshot is None:
            logger.warning("No session state found to resume")
            return False

        self.current_routine_id = snapshot.routine_id
        self.original_routine_name = snapshot.routine_name
        self.routine_name = snapshot.routine_name
        self._set_exercises(list(snapshot.exercises))
        self.is_initialized = True
        logger.info(f"Resumed workout '{snapshot.routine_name}' ({len(snapshot.exercises)} exercises)")
        return True

    def initialize_quick_workout(self, workout_name: str = QUICK_WORKOUT_NAME) -> bool:
        if self.is_initialized:
            logger.debug("Ignoring initialize_quick_workout; already initialized")
            return False
        self.current_routine_id = None
        self.original_routine_name = workout_name
        self.routine_name = workout_name
        self._set_exercises([])
        self.session_manager.start_workout(None, workout_name, [])
        self.is_initialized = True
        logger.info(f"Quick workout initialized: {workout_name}")
        return True

    async def wait_for_enrichment(self) -> None:
        """Wait for background history enrichment, if any, to finish."""
        task = self._enrichment_task
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _enrich(self, generation: int, exercises: List[Exercise]) -> None:
        if not exercises:
            self.loading_progress.set(1.0)
            return
        try:
            user_id = await require_user_id(self.identity)
        except Exception as e:
            logger.warning(f"Skipping history enrichment: {e}")
            return

        total = len(exercises)
        processed = 0
        self.loading_progress.set(0.0)
        semaphore = asyncio.Semaphore(self.settings.ENRICHMENT_CONCURRENCY)

        async def resolve_one(exercise: Exercise):
            nonlocal processed
            async with semaphore:
                try:
                    data = await self.resolver.resolve(user_id, exercise.id)
                    notes = await self.resolver.last_notes_for(user_id, exercise.id)
                except Exception as e:
                    logger.warning(f"History lookup failed for {exercise.id}: {e}")
                    data, notes = {}, None
            processed += 1
            if generation == self._generation:
                self.loading_progress.set(processed / total)
            return exercise.id, data, notes

        results = await asyncio.gather(*(resolve_one(e) for e in exercises))

        if generation != self._generation:
            logger.debug(f"Dropping stale enrichment (generation {generation} != {self._generation})")
            return

        by_id = {exercise_id: (data, notes) for exercise_id, data, notes in results}
        merged = []
        for we in self.exercises.value:
            if we.exercise_id in by_id:
                data, notes = by_id[we.exercise_id]
                we = apply_historical_data(we, data, notes)
            merged.append(we)
        self._commit(merged)
        logger.info(f"History enrichment complete for {total} exercises")

    # ------------------------------------------------------------------
    # Exercise management
    # ------------------------------------------------------------------

    def _index_of(self, exercise_id: str) -> Optional[int]:
        for i, we in enumerate(self.exercises.value):
            if we.exercise_id == exercise_id:
                return i
        return None

    def get_exercise(self, exercise_id: str) -> Optional[WorkoutExercise]:
        index = self._index_of(exercise_id)
        return None if index is None else self.exercises.value[index]

    def add_exercise(self, exercise: Exercise) -> Optional[WorkoutExercise]:
        exercise = exercise.with_id()
        if self._index_of(exercise.id) is not None:
            logger.debug(f"Exercise {exercise.id} already in workout, skipping")
            return None
        entry = WorkoutExercise.with_default_sets(exercise)
        self._commit(self.exercises.value + [entry], modified=True)
        self.session_manager.update_current_exercise(exercise.name)
        return entry

    def remove_exercise(self, exercise_id: str) -> None:
        index = self._index_of(exercise_id)
        if index is None:
            return
        exercises = list(self.exercises.value)
        exercises.pop(index)
        self._commit(exercises, modified=True)

    def add_set(self, exercise_id: str) -> None:
        index = self._index_of(exercise_id)
        if index is None:
            return
        we = self.exercises.value[index]
        prev_reps = we.sets[-1].reps if we.sets else we.exercise.default_reps
        new_set = ExerciseSet(
            set_number=len(we.sets) + 1,
            reps=prev_reps,
            previous_reps=prev_reps,
        )
        self._replace_at(index, we.model_copy(update={"sets": we.sets + [new_set]}))

    def delete_set(self, exercise_id: str, set_number: int) -> None:
        index = self._index_of(exercise_id)
        if index is None:
            return
        we = self.exercises.value[index]
        kept = [s for s in we.sets if s.set_number != set_number]
        renumbered = [s.model_copy(update={"set_number": i + 1}) for i, s in enumerate(kept)]
        self._replace_at(index, we.model_copy(update={"sets": renumbered}))

    def update_notes(self, exercise_id: str, notes: str) -> None:
        index = self._index_of(exercise_id)
        if index is None:
            return
        we = self.exercises.value[index]
        self._replace_at(index, we.model_copy(update={"notes": notes}))

    # ------------------------------------------------------------------
    # Set values
    # ------------------------------------------------------------------

    def _mutate_set(self, exercise_id: str, set_number: int, transform: Callable[[ExerciseSet], ExerciseSet]) -> None:
        index = self._index_of(exercise_id)
        if index is None:
            return
        we = self.exercises.value[index]
        for i, s in enumerate(we.sets):
            if s.set_number == set_number:
                sets = list(we.sets)
                sets[i] = transform(s)
                self._replace_at(index, we.model_copy(update={"sets": sets}))
                return
        logger.debug(f"Set {set_number} not found on {exercise_id}")

    def update_weight(self, exercise_id: str, set_number: int, weight: float) -> None:
        def transform(s: ExerciseSet) -> ExerciseSet:
            best = _max_best(s.best_weight, weight) if s.is_completed else s.best_weight
            return s.model_copy(update={"weight": weight, "best_weight": best})
        self._mutate_set(exercise_id, set_number, transform)

    def update_reps(self, exercise_id: str, set_number: int, reps: int) -> None:
        def transform(s: ExerciseSet) -> ExerciseSet:
            best = _max_best(s.best_reps, reps) if s.is_completed else s.best_reps
            return s.model_copy(update={"reps": reps, "best_reps": best})
        self._mutate_set(exercise_id, set_number, transform)

    def update_distance(self, exercise_id: str, set_number: int, distance: float) -> None:
        def transform(s: ExerciseSet) -> ExerciseSet:
            best = _max_best(s.best_distance, distance) if s.is_completed else s.best_distance
            return s.model_copy(update={"distance": distance, "best_distance": best})
        self._mutate_set(exercise_id, set_number, transform)

    def update_time(self, exercise_id: str, set_number: int, time: int) -> None:
        def transform(s: ExerciseSet) -> ExerciseSet:
            best = _min_best_time(s.best_time, time) if s.is_completed else s.best_time
            return s.model_copy(update={"time": time, "best_time": best})
        self._mutate_set(exercise_id, set_number, transform)

    def set_completed(self, exercise_id: str, set_number: int, completed: bool) -> None:
        newly_completed = False

        def transform(s: ExerciseSet) -> ExerciseSet:
            nonlocal newly_completed
            if not completed:
                return s.model_copy(update={"is_completed": False})
            newly_completed = not s.is_completed
            return s.model_copy(update={
                "is_completed": True,
                "best_weight": _max_best(s.best_weight, s.weight),
                "best_reps": _max_best(s.best_reps, s.reps),
                "best_distance": _max_best(s.best_distance, s.distance),
                "best_time": _min_best_time(s.best_time, s.time),
            })

        self._mutate_set(exercise_id, set_number, transform)
        if newly_completed:
            self.session_manager.add_completed_set()

    # ------------------------------------------------------------------
    # Organization
    # ------------------------------------------------------------------

    def arrange_exercise(self) -> None:
        self.is_reorder_mode = True

    def exit_reorder_mode(self) -> None:
        self.is_reorder_mode = False

    def reorder_exercises(self, from_index: int, to_index: int) -> None:
        count = len(self.exercises.value)
        if from_index == to_index or not (0 <= from_index < count) or not (0 <= to_index < count):
            logger.debug(f"Ignoring reorder {from_index} -> {to_index} ({count} exercises)")
            return
        exercises = list(self.exercises.value)
        moved = exercises.pop(from_index)
        exercises.insert(to_index, moved)
        self._commit(exercises, modified=True)

    def add_to_superset(self, exercise_id: str) -> None:
        index = self._index_of(exercise_id)
        if index is None:
            return
        we = self.exercises.value[index]
        self._replace_at(index, we.model_copy(update={"is_superset": not we.is_superset}), modified=True)

    def toggle_dropset(self, exercise_id: str) -> None:
        index = self._index_of(exercise_id)
        if index is None:
            return
        we = self.exercises.value[index]
        self._replace_at(index, we.model_copy(update={"is_dropset": not we.is_dropset}), modified=True)

    def replace_exercise(self, exercise_id: str) -> None:
        """Stage ``exercise_id`` for replacement; see confirm_replace_exercise."""
        if self._index_of(exercise_id) is None:
            return
        self.replace_flow.stage(exercise_id)

    def cancel_replace_exercise(self) -> None:
        self.replace_flow.cancel()

    def confirm_replace_exercise(self, new_exercise: Exercise) -> Optional[WorkoutExercise]:
        """Swap the staged exercise, keeping set count, notes and superset/dropset flags."""
        if not self.replace_flow.is_staged:
            return None
        target_id = self.replace_flow.confirm()
        index = self._index_of(target_id)
        if index is None:
            return None
        new_exercise = new_exercise.with_id()
        existing = self._index_of(new_exercise.id)
        if existing is not None and existing != index:
            logger.debug(f"Replacement {new_exercise.id} already in workout, skipping")
            return None

        old = self.exercises.value[index]
        replacement = WorkoutExercise(
            exercise=new_exercise,
            sets=[s.reset_values(new_exercise) for s in old.sets],
            notes=old.notes,
            is_superset=old.is_superset,
            is_dropset=old.is_dropset,
        )
        self._replace_at(index, replacement, modified=True)
        logger.info(f"Replaced {old.exercise.name} with {new_exercise.name}")
        return replacement

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def get_workout_completion_status(self) -> WorkoutCompletionStatus:
        return completion_status(self.exercises.value)

    def personal_record_set(self, exercise_id: str) -> Optional[int]:
        we = self.get_exercise(exercise_id)
        return None if we is None else personal_record_set(we)

    def duration_string(self) -> str:
        return self.session_manager.duration_string()

    # ------------------------------------------------------------------
    # Workout control
    # ------------------------------------------------------------------

    def pause_workout(self) -> None:
        self.session_manager.pause_workout()

    def resume_workout(self) -> None:
        self.session_manager.resume_workout()

    def start_rest_timer(self, duration: int) -> None:
        self.rest_timer.start(duration)

    def stop_rest_timer(self) -> None:
        self.rest_timer.stop()

    def pause_resume_rest_timer(self) -> None:
        self.rest_timer.pause_resume()

    async def finish_workout(self, force: bool = False) -> FinishResult:
        """Persist the workout as history.

        Raises NoCompletedSetsError when nothing was completed. Without
        ``force``, an incomplete workout stages ``finish_flow`` and returns
        NEEDS_CONFIRMATION instead of saving.
        """
        self.state.set(ActiveWorkoutState.loading())
        status = self.get_workout_completion_status()

        if status.completed_sets == 0:
            error = NoCompletedSetsError()
            self.state.set(ActiveWorkoutState.error(str(error)))
            raise error

        if not force and not status.is_fully_completed:
            self.state.set(ActiveWorkoutState.initial())
            self.finish_flow.stage(status)
            return FinishResult(FinishOutcome.NEEDS_CONFIRMATION, completion=status)

        self.finish_flow.reset()
        exercises = self.exercises.value
        try:
            user_id = await require_user_id(self.identity)
            routine = None
            if self.current_routine_id is not None:
                routine = await self.workout_store.get_workout_by_id(self.current_routine_id)
            color = (routine.color_hex if routine else "") or self.settings.DEFAULT_ROUTINE_COLOR

            snapshot = self.session_manager.get_workout_state()
            end_time = self.clock()
            history = build_history(
                exercises,
                name=self.original_routine_name or generate_workout_name(exercises),
                user_id=user_id,
                start_time=snapshot.start_time if snapshot else end_time,
                end_time=end_time,
                color_hex=color,
                routine_id=self.current_routine_id,
            )
            await self.history_store.save_workout_history(history)
            if self.current_routine_id is not None:
                await self.workout_store.update_last_performed(self.current_routine_id, history.end_time)
        except Exception as e:
            logger.error(f"Error finishing workout: {e}")
            self.state.set(ActiveWorkoutState.error(str(e)))
            raise

        outcome = FinishOutcome.SAVED
        if routine is not None and self.is_routine_modified:
            self.update_routine_flow.stage(routine.model_copy(update={
                "exercises": [we.as_template() for we in exercises],
            }))
            outcome = FinishOutcome.SAVED_ROUTINE_MODIFIED

        logger.info(
            f"Workout '{history.name}' saved: {history.total_sets} sets, volume {history.total_volume:g}"
        )
        self._reset(clear_flows=False)
        self.session_manager.finish_workout()
        self.state.set(ActiveWorkoutState.success())
        return FinishResult(outcome, history=history, completion=status)

    async def confirm_finish(self) -> Optional[FinishResult]:
        """Finish after the user accepted saving an incomplete workout."""
        if not self.finish_flow.is_staged:
            return None
        self.finish_flow.confirm()
        return await self.finish_workout(force=True)

    def cancel_finish(self) -> None:
        self.finish_flow.cancel()

    async def confirm_update_routine(self) -> Optional[Workout]:
        """Write the staged routine changes from the finished session."""
        if not self.update_routine_flow.is_staged:
            return None
        workout = self.update_routine_flow.confirm()
        await self.workout_store.update_workout(workout)
        logger.info(f"Routine '{workout.name}' updated from workout")
        return workout

    def decline_update_routine(self) -> None:
        self.update_routine_flow.cancel()

    def discard_workout(self) -> None:
        """Drop everything without persisting. In-flight enrichment is abandoned."""
        self._reset()
        self.state.set(ActiveWorkoutState.initial())
        self.session_manager.discard_workout()
        logger.info("Workout discarded")

    async def save_as_routine(self, name: str) -> Workout:
        """Save the current exercises as a new routine whose id is derived from ``name``."""
        name = name.strip()
        if not name:
            raise WorkoutValidationError("Please enter a routine name")
        if not self.exercises.value:
            raise WorkoutValidationError("Cannot save empty workout as routine")
        return await self.routine_service.create_routine(
            name,
            self.exercises.value,
            routine_id=camel_case_id(name),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self, clear_flows: bool = True) -> None:
        self._generation += 1
        if self._enrichment_task is not None and not self._enrichment_task.done():
            self._enrichment_task.cancel()
        self._enrichment_task = None
        self.rest_timer.stop()
        self._set_exercises([])
        self.loading_progress.set(0.0)
        self.is_initialized = False
        self.is_reorder_mode = False
        self.is_routine_modified = False
        self.current_routine_id = None
        self.original_routine_name = None
        self.routine_name = None
        self.replace_flow.reset()
        self.finish_flow.reset()
        if clear_flows:
            self.update_routine_flow.reset()

    def _set_exercises(self, exercises: List[WorkoutExercise]) -> None:
        self.exercises.set(exercises)
        volume, count = compute_stats(exercises)
        self.total_volume.set(volume)
        self.total_sets.set(count)

    def _replace_at(self, index: int, workout_exercise: WorkoutExercise, modified: bool = False) -> None:
        exercises = list(self.exercises.value)
        exercises[index] = workout_exercise
        self._commit(exercises, modified=modified)

    def _commit(self, exercises: List[WorkoutExercise], modified: bool = False) -> None:
        self._set_exercises(exercises)
        if modified and self.current_routine_id is not None:
            self.is_routine_modified = True
        if self.is_initialized:
            self.session_manager.update_session(
                self.current_routine_id, self.routine_name or "", exercises
            )

"""Previous/best set lookup over a user's recent workout history."""
import logging
from typing import Dict, List, Optional, Tuple

from workout_tracker_api.models import (
    CompletedSet,
    Exercise,
    ExerciseSet,
    HistoricalSetData,
    WorkoutExercise,
    WorkoutHistory,
)
from workout_tracker_api.repositories.ports import HistoryStore

logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 15


def best_completed_set(candidates: List[CompletedSet]) -> Optional[CompletedSet]:
    """Highest-scoring set using the first non-empty category.

    Categories, in priority order: weight and distance (weight x distance),
    weight (weight x reps), distance, time (longer wins), then reps.
    Ties keep the earliest candidate, i.e. the most recent workout.
    """
    categories = [
        (lambda s: s.weight > 0 and s.distance > 0, lambda s: s.weight * s.distance),
        (lambda s: s.weight > 0, lambda s: s.weight * s.reps),
        (lambda s: s.distance > 0, lambda s: s.distance),
        (lambda s: s.time > 0, lambda s: s.time),
    ]
    for belongs, score in categories:
        members = [s for s in candidates if belongs(s)]
        if members:
            return max(members, key=score)
    if not candidates:
        return None
    return max(candidates, key=lambda s: s.reps)


def session_set_score(exercise: Exercise, exercise_set: ExerciseSet) -> float:
    """Score a live set by the exercise's primary measurement."""
    if exercise.uses_weight:
        return exercise_set.weight * exercise_set.reps
    if exercise.tracks_distance:
        return exercise_set.distance
    if exercise.is_time_based:
        return float(exercise_set.time)
    return float(exercise_set.reps)


def _has_valid_data(exercise: Exercise, exercise_set: ExerciseSet) -> bool:
    if exercise.uses_weight:
        return exercise_set.weight > 0 and exercise_set.reps > 0
    if exercise.tracks_distance:
        return exercise_set.distance > 0
    if exercise.is_time_based:
        return exercise_set.time > 0
    return exercise_set.reps > 0


def _previous_score(exercise: Exercise, exercise_set: ExerciseSet) -> float:
    if exercise.uses_weight:
        weight = exercise_set.previous_weight or 0.0
        reps = exercise_set.previous_reps or 0
        return weight * reps if weight > 0 and reps > 0 else 0.0
    if exercise.tracks_distance:
        return exercise_set.previous_distance or 0.0
    if exercise.is_time_based:
        return float(exercise_set.previous_time or 0)
    return float(exercise_set.previous_reps or 0)


def personal_record_set(workout_exercise: WorkoutExercise) -> Optional[int]:
    """Set number of this session's best completed set if it beats every previous value."""
    exercise = workout_exercise.exercise
    completed = [
        s for s in workout_exercise.sets
        if s.is_completed and _has_valid_data(exercise, s)
    ]
    if not completed:
        return None
    best = max(completed, key=lambda s: session_set_score(exercise, s))
    historical = max((_previous_score(exercise, s) for s in workout_exercise.sets), default=0.0)
    score = session_set_score(exercise, best)
    if score > historical and score > 0:
        return best.set_number
    return None


class HistoricalDataResolver:
    """Resolves previous and best performance per set position for an exercise."""

    def __init__(self, history_store: HistoryStore, scan_limit: int = DEFAULT_SCAN_LIMIT):
        self.history_store = history_store
        self.scan_limit = scan_limit

    async def _recent_entries_with(self, user_id: str, exercise_id: str) -> List[Tuple[WorkoutHistory, List[CompletedSet], str]]:
        history = await self.history_store.get_workout_history(user_id)
        recent = sorted(history, key=lambda h: h.start_time, reverse=True)[: self.scan_limit]
        matches = []
        for entry in recent:
            completed = entry.find_exercise(exercise_id)
            if completed is not None:
                matches.append((entry, completed.sets, completed.notes))
        return matches

    async def resolve(self, user_id: str, exercise_id: str) -> Dict[int, HistoricalSetData]:
        """Map of set position to previous/best data. Positions without history are absent."""
        matches = await self._recent_entries_with(user_id, exercise_id)
        if not matches:
            return {}

        _, latest_sets, _ = matches[0]
        previous_by_position = {s.set_number: s for s in latest_sets}

        candidates: Dict[int, List[CompletedSet]] = {}
        for _, sets, _ in matches:
            for s in sets:
                candidates.setdefault(s.set_number, []).append(s)

        result = {}
        for position, sets in candidates.items():
            result[position] = HistoricalSetData(
                set_number=position,
                previous=previous_by_position.get(position),
                best=best_completed_set(sets),
            )
        logger.debug(
            f"Resolved history for {exercise_id}: {len(matches)} entries, {len(result)} positions"
        )
        return result

    async def last_notes_for(self, user_id: str, exercise_id: str) -> Optional[str]:
        """Notes from the most recent entry containing the exercise, or None."""
        matches = await self._recent_entries_with(user_id, exercise_id)
        if not matches:
            return None
        _, _, notes = matches[0]
        return notes or None

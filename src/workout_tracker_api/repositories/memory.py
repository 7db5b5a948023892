"""In-process implementations of the collaborator ports.

Used as the default wiring when no remote store is configured, and as
test doubles. Every method is async to match the ports even though no
I/O happens.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from workout_tracker_api.errors import WorkoutValidationError
from workout_tracker_api.models import (
    Counter,
    CounterEntry,
    Exercise,
    User,
    UserSubscription,
    Workout,
    WorkoutHistory,
)

logger = logging.getLogger(__name__)


SAMPLE_EXERCISES: List[Exercise] = [
    Exercise(
        id="push_ups", name="Push-ups", muscle_group="Chest", equipment="Bodyweight",
        is_bodyweight=True, uses_weight=False, default_reps=12,
    ),
    Exercise(
        id="barbell_bench_press", name="Barbell Bench Press", muscle_group="Chest",
        equipment="Barbell", default_reps=10,
    ),
    Exercise(
        id="squats", name="Squats", muscle_group="Legs", equipment="Barbell", default_reps=10,
    ),
    Exercise(
        id="deadlift", name="Deadlift", muscle_group="Back", equipment="Barbell",
        default_reps=5,
    ),
    Exercise(
        id="pull_ups", name="Pull-ups", muscle_group="Back", equipment="Pull-up Bar",
        is_bodyweight=True, uses_weight=False, default_reps=8,
    ),
    Exercise(
        id="plank", name="Plank", muscle_group="Core", equipment="Bodyweight",
        is_bodyweight=True, uses_weight=False, is_time_based=True, default_reps=0, default_sets=3,
    ),
    Exercise(
        id="running", name="Running", muscle_group="Cardio", equipment="None",
        is_bodyweight=True, uses_weight=False, tracks_distance=True, is_time_based=True,
        default_reps=0, default_sets=1,
    ),
]


class InMemoryIdentityProvider:
    def __init__(self, user: Optional[User] = None):
        self.user = user

    async def get_current_user(self) -> Optional[User]:
        return self.user


class InMemoryExerciseCatalog:
    def __init__(self, exercises: Optional[List[Exercise]] = None):
        seed = SAMPLE_EXERCISES if exercises is None else exercises
        self._exercises: Dict[str, Exercise] = {}
        for exercise in seed:
            exercise = exercise.with_id()
            self._exercises[exercise.id] = exercise

    async def get_exercises(self) -> List[Exercise]:
        return sorted(self._exercises.values(), key=lambda e: e.name.lower())

    async def search_exercises(self, query: str) -> List[Exercise]:
        return [e for e in await self.get_exercises() if e.matches_search(query)]

    async def get_exercise(self, exercise_id: str) -> Optional[Exercise]:
        return self._exercises.get(exercise_id)

    async def create_custom_exercise(self, exercise: Exercise) -> Exercise:
        """Add ``exercise`` to the catalog. Existing exercises are never replaced."""
        if not exercise.is_valid():
            raise WorkoutValidationError("Please enter an exercise name")
        exercise = exercise.with_id()
        if exercise.id in self._exercises:
            raise WorkoutValidationError(f"Exercise '{exercise.name}' already exists")
        self._exercises[exercise.id] = exercise
        logger.info(f"Created custom exercise: {exercise.name}")
        return exercise


class InMemoryWorkoutStore:
    def __init__(self, workouts: Optional[List[Workout]] = None):
        self._workouts: Dict[str, Workout] = {w.id: w for w in workouts or []}

    async def get_workouts(self, user_id: str) -> List[Workout]:
        return sorted(
            (w for w in self._workouts.values() if w.user_id == user_id),
            key=lambda w: w.created_at,
        )

    async def get_workout_by_id(self, workout_id: str) -> Optional[Workout]:
        return self._workouts.get(workout_id)

    async def create_workout(self, workout: Workout) -> None:
        self._workouts[workout.id] = workout

    async def update_workout(self, workout: Workout) -> None:
        self._workouts[workout.id] = workout

    async def delete_workout(self, workout_id: str) -> None:
        self._workouts.pop(workout_id, None)

    async def get_workout_count(self, user_id: str) -> int:
        return sum(1 for w in self._workouts.values() if w.user_id == user_id)

    async def update_last_performed(self, workout_id: str, when: datetime) -> None:
        workout = self._workouts.get(workout_id)
        if workout is not None:
            self._workouts[workout_id] = workout.model_copy(update={"last_performed": when})


class InMemoryHistoryStore:
    def __init__(self, history: Optional[List[WorkoutHistory]] = None):
        self._history: List[WorkoutHistory] = list(history or [])

    async def get_workout_history(self, user_id: str) -> List[WorkoutHistory]:
        entries = [h for h in self._history if h.user_id == user_id]
        return sorted(entries, key=lambda h: h.start_time, reverse=True)

    async def save_workout_history(self, history: WorkoutHistory) -> None:
        self._history.append(history)

    async def update_routine_name_in_history(
        self, user_id: str, routine_id: str, new_name: str
    ) -> int:
        updated = 0
        for i, entry in enumerate(self._history):
            if entry.user_id == user_id and entry.routine_id == routine_id and entry.name != new_name:
                self._history[i] = entry.model_copy(update={"name": new_name})
                updated += 1
        return updated


class InMemoryBillingProvider:
    def __init__(self, subscription: Optional[UserSubscription] = None):
        self.subscription = subscription or UserSubscription()

    async def get_user_subscription(self) -> UserSubscription:
        return self.subscription


class InMemoryCounterStore:
    def __init__(self):
        self._counters: Dict[str, Counter] = {}
        self._order: List[str] = []
        self.entries: List[CounterEntry] = []
        self._saved_users: Set[str] = set()

    async def get_counters(self, user_id: str) -> List[Counter]:
        return [self._counters[cid] for cid in self._order if self._counters[cid].user_id == user_id]

    async def get_counter(self, counter_id: str) -> Optional[Counter]:
        return self._counters.get(counter_id)

    async def save_counter(self, counter: Counter) -> None:
        if counter.id not in self._counters:
            self._order.append(counter.id)
        self._counters[counter.id] = counter

    async def delete_counter(self, counter_id: str) -> None:
        if self._counters.pop(counter_id, None) is not None:
            self._order.remove(counter_id)

    async def add_entry(self, entry: CounterEntry) -> None:
        self.entries.append(entry)

    async def has_saved_state(self, user_id: str) -> bool:
        return user_id in self._saved_users

    async def mark_saved_state(self, user_id: str) -> None:
        self._saved_users.add(user_id)


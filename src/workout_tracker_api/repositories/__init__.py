"""Collaborator ports and their implementations."""
from workout_tracker_api.repositories.memory import (
    SAMPLE_EXERCISES,
    InMemoryBillingProvider,
    InMemoryCounterStore,
    InMemoryExerciseCatalog,
    InMemoryHistoryStore,
    InMemoryIdentityProvider,
    InMemoryWorkoutStore,
)
from workout_tracker_api.repositories.ports import (
    BillingProvider,
    CounterStore,
    ExerciseCatalog,
    HistoryStore,
    IdentityProvider,
    WorkoutStore,
)

__all__ = [
    "BillingProvider",
    "CounterStore",
    "ExerciseCatalog",
    "HistoryStore",
    "IdentityProvider",
    "WorkoutStore",
    "InMemoryBillingProvider",
    "InMemoryCounterStore",
    "InMemoryExerciseCatalog",
    "InMemoryHistoryStore",
    "InMemoryIdentityProvider",
    "InMemoryWorkoutStore",
    "SAMPLE_EXERCISES",
]

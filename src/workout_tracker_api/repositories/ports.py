"""
Collaborator interfaces (ports) consumed by the workout session core.

The core never talks to a database, an identity provider or a billing
API directly. It depends on these protocols, and the application wires
in concrete implementations (in-memory or Supabase-backed).

Collections that the mobile client observes as streams are modelled here
as async calls returning the current snapshot.
"""
from datetime import datetime
from typing import List, Optional, Protocol

from workout_tracker_api.models import (
    Counter,
    CounterEntry,
    Exercise,
    User,
    UserSubscription,
    Workout,
    WorkoutHistory,
)


class IdentityProvider(Protocol):
    """Resolves the signed-in user. Only the user id is consumed."""

    async def get_current_user(self) -> Optional[User]:
        ...


class ExerciseCatalog(Protocol):
    async def get_exercises(self) -> List[Exercise]:
        ...

    async def search_exercises(self, query: str) -> List[Exercise]:
        ...

    async def get_exercise(self, exercise_id: str) -> Optional[Exercise]:
        ...

    async def create_custom_exercise(self, exercise: Exercise) -> Exercise:
        ...


class WorkoutStore(Protocol):
    """Persistence for routines (reusable workout templates)."""

    async def get_workouts(self, user_id: str) -> List[Workout]:
        ...

    async def get_workout_by_id(self, workout_id: str) -> Optional[Workout]:
        """Return the routine, or None when it does not exist."""
        ...

    async def create_workout(self, workout: Workout) -> None:
        ...

    async def update_workout(self, workout: Workout) -> None:
        ...

    async def delete_workout(self, workout_id: str) -> None:
        ...

    async def get_workout_count(self, user_id: str) -> int:
        ...

    async def update_last_performed(self, workout_id: str, when: datetime) -> None:
        ...


class HistoryStore(Protocol):
    """Append-only log of finished workouts."""

    async def get_workout_history(self, user_id: str) -> List[WorkoutHistory]:
        """All history entries for the user, newest first."""
        ...

    async def save_workout_history(self, history: WorkoutHistory) -> None:
        ...

    async def update_routine_name_in_history(
        self, user_id: str, routine_id: str, new_name: str
    ) -> int:
        """Rename history entries linked to ``routine_id``; returns how many changed."""
        ...


class BillingProvider(Protocol):
    async def get_user_subscription(self) -> UserSubscription:
        ...


class CounterStore(Protocol):
    async def get_counters(self, user_id: str) -> List[Counter]:
        ...

    async def get_counter(self, counter_id: str) -> Optional[Counter]:
        ...

    async def save_counter(self, counter: Counter) -> None:
        """Insert or replace by id."""
        ...

    async def delete_counter(self, counter_id: str) -> None:
        ...

    async def add_entry(self, entry: CounterEntry) -> None:
        ...

    async def has_saved_state(self, user_id: str) -> bool:
        """Whether the user has ever persisted counters (controls first-run seeding)."""
        ...

    async def mark_saved_state(self, user_id: str) -> None:
        ...

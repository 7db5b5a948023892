"""Routine (saved workout template) management with the free-tier quota gate."""
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from workout_tracker_api.config import Settings, settings as default_settings
from workout_tracker_api.errors import NotFoundError, QuotaExceededError, WorkoutValidationError
from workout_tracker_api.models import Workout, WorkoutExercise
from workout_tracker_api.repositories.ports import (
    BillingProvider,
    HistoryStore,
    IdentityProvider,
    WorkoutStore,
)
from workout_tracker_api.services.colors import next_color
from workout_tracker_api.services.identity import require_user_id

logger = logging.getLogger(__name__)


def routine_limit_status(routine_count: int, is_premium: bool, limit: int) -> str:
    """Quota hint shown next to the routine builder. Empty for premium users."""
    if is_premium:
        return ""
    if routine_count >= limit:
        return f"Free limit reached ({limit}/{limit})"
    if routine_count == limit - 1:
        return "Last free routine remaining!"
    return f"{routine_count}/{limit} routines used"


class RoutineService:
    def __init__(
        self,
        workout_store: WorkoutStore,
        history_store: HistoryStore,
        identity: IdentityProvider,
        billing: BillingProvider,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.workout_store = workout_store
        self.history_store = history_store
        self.identity = identity
        self.billing = billing
        self.settings = settings or default_settings
        self.clock = clock

    async def is_premium(self) -> bool:
        subscription = await self.billing.get_user_subscription()
        return subscription.is_premium

    async def can_create_routine(self) -> bool:
        if await self.is_premium():
            return True
        user_id = await require_user_id(self.identity)
        count = await self.workout_store.get_workout_count(user_id)
        return count < self.settings.FREE_ROUTINE_LIMIT

    async def ensure_can_create(self, user_id: str) -> None:
        """Raise QuotaExceededError when a free user is at the routine limit."""
        if await self.is_premium():
            return
        count = await self.workout_store.get_workout_count(user_id)
        if count >= self.settings.FREE_ROUTINE_LIMIT:
            logger.info(f"Routine quota reached for user {user_id} ({count}/{self.settings.FREE_ROUTINE_LIMIT})")
            raise QuotaExceededError("routines", self.settings.FREE_ROUTINE_LIMIT, count)

    async def limit_status(self) -> str:
        user_id = await require_user_id(self.identity)
        count = await self.workout_store.get_workout_count(user_id)
        return routine_limit_status(count, await self.is_premium(), self.settings.FREE_ROUTINE_LIMIT)

    async def list_routines(self) -> List[Workout]:
        user_id = await require_user_id(self.identity)
        return await self.workout_store.get_workouts(user_id)

    async def get_routine(self, routine_id: str) -> Optional[Workout]:
        """The caller's routine, or None when missing or owned by someone else."""
        user_id = await require_user_id(self.identity)
        routine = await self.workout_store.get_workout_by_id(routine_id)
        if routine is None or routine.user_id != user_id:
            return None
        return routine

    async def _require_routine(self, routine_id: str) -> Workout:
        routine = await self.get_routine(routine_id)
        if routine is None:
            raise NotFoundError("Routine", routine_id)
        return routine

    async def _available_id(self, user_id: str, name: str, routine_id: str) -> str:
        """``routine_id`` unless taken. Ids are global, so another user's slug gets a suffix."""
        existing = await self.workout_store.get_workout_by_id(routine_id)
        if existing is None:
            return routine_id
        if existing.user_id == user_id:
            raise WorkoutValidationError(f"A routine named '{name}' already exists")
        return f"{routine_id}_{uuid.uuid4().hex[:8]}"

    async def assign_color(self, user_id: str) -> str:
        routines = await self.workout_store.get_workouts(user_id)
        return next_color(r.color_hex for r in routines)

    async def create_routine(
        self,
        name: str,
        exercises: List[WorkoutExercise],
        color_hex: Optional[str] = None,
        routine_id: Optional[str] = None,
    ) -> Workout:
        name = name.strip()
        if not name:
            raise WorkoutValidationError("Please enter a routine name")
        if not exercises:
            raise WorkoutValidationError("Add at least one exercise to the routine")

        user_id = await require_user_id(self.identity)
        await self.ensure_can_create(user_id)
        if routine_id:
            routine_id = await self._available_id(user_id, name, routine_id)

        workout = Workout(
            id=routine_id or str(uuid.uuid4()),
            name=name,
            user_id=user_id,
            exercises=[e.as_template() for e in exercises],
            created_at=self.clock(),
            color_hex=color_hex or await self.assign_color(user_id),
        )
        await self.workout_store.create_workout(workout)
        logger.info(f"Created routine '{name}' ({workout.id}) color={workout.color_hex}")
        return workout

    async def update_routine(
        self,
        routine_id: str,
        name: Optional[str] = None,
        exercises: Optional[List[WorkoutExercise]] = None,
        color_hex: Optional[str] = None,
    ) -> Workout:
        """Edit an existing routine. Renames are propagated to its history entries."""
        existing = await self._require_routine(routine_id)

        update = {}
        if name is not None:
            name = name.strip()
            if not name:
                raise WorkoutValidationError("Please enter a routine name")
            update["name"] = name
        if exercises is not None:
            if not exercises:
                raise WorkoutValidationError("Add at least one exercise to the routine")
            update["exercises"] = [e.as_template() for e in exercises]
        if color_hex:
            update["color_hex"] = color_hex

        workout = existing.model_copy(update=update)
        await self.workout_store.update_workout(workout)

        if workout.name != existing.name:
            renamed = await self.history_store.update_routine_name_in_history(
                workout.user_id, workout.id, workout.name
            )
            logger.info(f"Renamed routine {workout.id} to '{workout.name}' ({renamed} history entries)")
        return workout

    async def delete_routine(self, routine_id: str) -> None:
        await self._require_routine(routine_id)
        await self.workout_store.delete_workout(routine_id)
        logger.info(f"Deleted routine {routine_id}")

"""Application wiring: shared stores plus one workout engine per user."""
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

from workout_tracker_api.config import Settings, settings as default_settings
from workout_tracker_api.errors import NotFoundError, WorkoutConflictError
from workout_tracker_api.models import User, UserSubscription
from workout_tracker_api.repositories import (
    CounterStore,
    ExerciseCatalog,
    HistoryStore,
    InMemoryBillingProvider,
    InMemoryCounterStore,
    InMemoryExerciseCatalog,
    InMemoryHistoryStore,
    InMemoryIdentityProvider,
    InMemoryWorkoutStore,
    WorkoutStore,
)
from workout_tracker_api.services.counter_service import CounterService
from workout_tracker_api.services.routine_service import RoutineService
from workout_tracker_api.services.session_manager import ConflictResolution, WorkoutSessionManager
from workout_tracker_api.services.workout_engine import QUICK_WORKOUT_NAME, WorkoutSessionEngine

logger = logging.getLogger(__name__)


class AppContainer:
    """Builds and caches per-user services over shared collaborators.

    When Supabase credentials are configured the remote stores are used;
    otherwise everything lives in process memory.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
        workout_store: Optional[WorkoutStore] = None,
        history_store: Optional[HistoryStore] = None,
        counter_store: Optional[CounterStore] = None,
        catalog: Optional[ExerciseCatalog] = None,
    ):
        self.settings = settings or default_settings
        self.clock = clock

        if workout_store is None and history_store is None and counter_store is None and self._remote_configured():
            from workout_tracker_api.repositories.supabase_store import (
                SupabaseCounterStore,
                SupabaseHistoryStore,
                SupabaseWorkoutStore,
            )
            logger.info("Using Supabase stores")
            workout_store = SupabaseWorkoutStore()
            history_store = SupabaseHistoryStore()
            counter_store = SupabaseCounterStore()

        self.workout_store = workout_store or InMemoryWorkoutStore()
        self.history_store = history_store or InMemoryHistoryStore()
        self.counter_store = counter_store or InMemoryCounterStore()
        self.catalog = catalog or InMemoryExerciseCatalog()

        self.subscriptions: Dict[str, UserSubscription] = {}
        self._session_managers: Dict[str, WorkoutSessionManager] = {}
        self._engines: Dict[str, WorkoutSessionEngine] = {}

    def _remote_configured(self) -> bool:
        return bool(self.settings.SUPABASE_URL and self.settings.SUPABASE_KEY)

    # ------------------------------------------------------------------
    # Per-user collaborators
    # ------------------------------------------------------------------

    def identity_for(self, user_id: str) -> InMemoryIdentityProvider:
        return InMemoryIdentityProvider(User(id=user_id))

    def billing_for(self, user_id: str) -> InMemoryBillingProvider:
        return InMemoryBillingProvider(self.subscriptions.get(user_id))

    def session_manager_for(self, user_id: str) -> WorkoutSessionManager:
        manager = self._session_managers.get(user_id)
        if manager is None:
            state_path = None
            if self.settings.SESSION_STATE_PATH:
                state_path = Path(self.settings.SESSION_STATE_PATH) / f"{user_id}.json"
            manager = WorkoutSessionManager(state_path=state_path, clock=self.clock)
            self._session_managers[user_id] = manager
        return manager

    def engine_for(self, user_id: str) -> WorkoutSessionEngine:
        """The user's engine, adopting a stored session if one is in progress."""
        engine = self._engines.get(user_id)
        if engine is None:
            engine = WorkoutSessionEngine(
                session_manager=self.session_manager_for(user_id),
                workout_store=self.workout_store,
                history_store=self.history_store,
                identity=self.identity_for(user_id),
                billing=self.billing_for(user_id),
                routine_service=self.routine_service_for(user_id),
                settings=self.settings,
                clock=self.clock,
            )
            self._engines[user_id] = engine
        if not engine.is_initialized and engine.session_manager.has_active_workout():
            engine.initialize_from_session()
        return engine

    def routine_service_for(self, user_id: str) -> RoutineService:
        return RoutineService(
            self.workout_store,
            self.history_store,
            self.identity_for(user_id),
            self.billing_for(user_id),
            self.settings,
            self.clock,
        )

    def counter_service_for(self, user_id: str) -> CounterService:
        return CounterService(
            self.counter_store,
            self.identity_for(user_id),
            self.billing_for(user_id),
            self.settings,
            self.clock,
        )

    # ------------------------------------------------------------------
    # Workout launch with conflict detection
    # ------------------------------------------------------------------

    async def start_workout(
        self,
        user_id: str,
        routine_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> WorkoutSessionEngine:
        """Start (or resume) a workout.

        Raises WorkoutConflictError when a different workout is in progress;
        the conflict stays staged until resolve_conflict is called.
        """
        engine = self.engine_for(user_id)
        manager = engine.session_manager
        requested_name = name or QUICK_WORKOUT_NAME
        if routine_id is not None:
            routine = await self.workout_store.get_workout_by_id(routine_id)
            if routine is not None and routine.user_id == user_id:
                requested_name = routine.name

        conflict = manager.request_start(routine_id, requested_name)
        if conflict is not None:
            raise WorkoutConflictError(conflict)

        if engine.is_initialized:
            # Same routine already running
            return engine
        await self._launch(engine, routine_id, requested_name)
        return engine

    async def resolve_conflict(self, user_id: str, resolution: ConflictResolution) -> WorkoutSessionEngine:
        engine = self.engine_for(user_id)
        to_start = engine.session_manager.resolve_conflict(resolution)
        if to_start is not None:
            engine.discard_workout()
            await self._launch(engine, to_start.requested_routine_id, to_start.requested_name)
        return engine

    async def _launch(self, engine: WorkoutSessionEngine, routine_id: Optional[str], name: str) -> None:
        if routine_id is not None:
            if not await engine.initialize_from_routine(routine_id):
                raise NotFoundError("Routine", routine_id)
        else:
            engine.initialize_quick_workout(name)

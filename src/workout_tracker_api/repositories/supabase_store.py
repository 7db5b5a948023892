"""Supabase-backed workout, history and counter stores.

Tables:
- routines (id, user_id, name, color_hex, created_at, last_performed, exercises jsonb)
- workout_history (id, user_id, name, start_time, end_time, routine_id, color_hex,
  total_volume, total_sets, exercise_ids, exercises jsonb)
- counters (id, user_id, name, current_count, today_count, created_at, last_reset_date)
- counter_entries (id, counter_id, count, date, timestamp)
- counter_state (user_id, has_saved_state)

The supabase client is synchronous, so calls run in a worker thread.
Transient failures are retried; anything still failing is raised as
CollaboratorError with the original exception as its cause.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from workout_tracker_api.config import settings
from workout_tracker_api.errors import CollaboratorError
from workout_tracker_api.models import Counter, CounterEntry, Workout, WorkoutHistory
from workout_tracker_api.retry import create_retry_decorator

logger = logging.getLogger(__name__)

ROUTINES_TABLE = "routines"
HISTORY_TABLE = "workout_history"
COUNTERS_TABLE = "counters"
COUNTER_ENTRIES_TABLE = "counter_entries"
COUNTER_STATE_TABLE = "counter_state"


def get_supabase_client(url: Optional[str] = None, key: Optional[str] = None):
    """Create a Supabase client, or None when credentials are not configured."""
    from supabase import create_client

    supabase_url = url or settings.SUPABASE_URL
    supabase_key = key or settings.SUPABASE_KEY
    if not supabase_url or not supabase_key:
        logger.warning("Supabase credentials not configured")
        return None
    return create_client(supabase_url, supabase_key)


def _get_supabase_client():
    return get_supabase_client()


class _SupabaseStore:
    """Shared plumbing: lazy client, retries, thread offload, error wrapping."""

    def __init__(self, client=None, retry_decorator=None):
        self._client = client
        self._retry = retry_decorator or create_retry_decorator(max_attempts=settings.STORE_RETRY_ATTEMPTS)

    @property
    def client(self):
        if self._client is None:
            self._client = _get_supabase_client()
            if self._client is None:
                raise CollaboratorError("Supabase is not configured")
        return self._client

    async def _run(self, description: str, fn: Callable[[], Any]) -> Any:
        call = self._retry(fn)
        try:
            return await asyncio.to_thread(call)
        except CollaboratorError:
            raise
        except Exception as e:
            logger.error("Supabase %s failed: %s", description, e)
            raise CollaboratorError(f"Failed to {description}: {e}") from e

    def _select(self, table: str, **filters):
        query = self.client.table(table).select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        return query


def _routine_row(workout: Workout) -> Dict[str, Any]:
    data = workout.model_dump(mode="json")
    return {
        "id": data["id"],
        "user_id": data["user_id"],
        "name": data["name"],
        "color_hex": data["color_hex"],
        "created_at": data["created_at"],
        "last_performed": data["last_performed"],
        "exercises": data["exercises"],
    }


class SupabaseWorkoutStore(_SupabaseStore):
    async def get_workouts(self, user_id: str) -> List[Workout]:
        result = await self._run(
            "load routines",
            lambda: self._select(ROUTINES_TABLE, user_id=user_id).order("created_at").execute(),
        )
        return [Workout.model_validate(row) for row in result.data or []]

    async def get_workout_by_id(self, workout_id: str) -> Optional[Workout]:
        result = await self._run(
            "load routine",
            lambda: self._select(ROUTINES_TABLE, id=workout_id).limit(1).execute(),
        )
        rows = result.data or []
        return Workout.model_validate(rows[0]) if rows else None

    async def create_workout(self, workout: Workout) -> None:
        row = _routine_row(workout)
        await self._run("create routine", lambda: self.client.table(ROUTINES_TABLE).insert(row).execute())
        logger.info("Created routine %s", workout.id)

    async def update_workout(self, workout: Workout) -> None:
        row = _routine_row(workout)
        await self._run(
            "update routine",
            lambda: self.client.table(ROUTINES_TABLE).update(row).eq("id", workout.id).execute(),
        )

    async def delete_workout(self, workout_id: str) -> None:
        await self._run(
            "delete routine",
            lambda: self.client.table(ROUTINES_TABLE).delete().eq("id", workout_id).execute(),
        )

    async def get_workout_count(self, user_id: str) -> int:
        result = await self._run(
            "count routines",
            lambda: self.client.table(ROUTINES_TABLE)
            .select("id", count="exact")
            .eq("user_id", user_id)
            .execute(),
        )
        if result.count is not None:
            return result.count
        return len(result.data or [])

    async def update_last_performed(self, workout_id: str, when: datetime) -> None:
        await self._run(
            "update last performed",
            lambda: self.client.table(ROUTINES_TABLE)
            .update({"last_performed": when.isoformat()})
            .eq("id", workout_id)
            .execute(),
        )


class SupabaseHistoryStore(_SupabaseStore):
    async def get_workout_history(self, user_id: str) -> List[WorkoutHistory]:
        result = await self._run(
            "load workout history",
            lambda: self._select(HISTORY_TABLE, user_id=user_id).order("start_time", desc=True).execute(),
        )
        return [WorkoutHistory.model_validate(row) for row in result.data or []]

    async def save_workout_history(self, history: WorkoutHistory) -> None:
        row = history.model_dump(mode="json")
        await self._run("save workout history", lambda: self.client.table(HISTORY_TABLE).insert(row).execute())
        logger.info("Saved workout history %s (%s sets)", history.id, history.total_sets)

    async def update_routine_name_in_history(self, user_id: str, routine_id: str, new_name: str) -> int:
        result = await self._run(
            "rename routine in history",
            lambda: self.client.table(HISTORY_TABLE)
            .update({"name": new_name})
            .eq("user_id", user_id)
            .eq("routine_id", routine_id)
            .execute(),
        )
        return len(result.data or [])


class SupabaseCounterStore(_SupabaseStore):
    async def get_counters(self, user_id: str) -> List[Counter]:
        result = await self._run(
            "load counters",
            lambda: self._select(COUNTERS_TABLE, user_id=user_id).order("created_at").execute(),
        )
        return [Counter.model_validate(row) for row in result.data or []]

    async def get_counter(self, counter_id: str) -> Optional[Counter]:
        result = await self._run(
            "load counter",
            lambda: self._select(COUNTERS_TABLE, id=counter_id).limit(1).execute(),
        )
        rows = result.data or []
        return Counter.model_validate(rows[0]) if rows else None

    async def save_counter(self, counter: Counter) -> None:
        row = counter.model_dump(mode="json")
        await self._run("save counter", lambda: self.client.table(COUNTERS_TABLE).upsert(row).execute())

    async def delete_counter(self, counter_id: str) -> None:
        await self._run(
            "delete counter",
            lambda: self.client.table(COUNTERS_TABLE).delete().eq("id", counter_id).execute(),
        )

    async def add_entry(self, entry: CounterEntry) -> None:
        row = entry.model_dump(mode="json")
        await self._run("log counter entry", lambda: self.client.table(COUNTER_ENTRIES_TABLE).insert(row).execute())

    async def has_saved_state(self, user_id: str) -> bool:
        result = await self._run(
            "load counter state",
            lambda: self._select(COUNTER_STATE_TABLE, user_id=user_id).limit(1).execute(),
        )
        rows = result.data or []
        return bool(rows and rows[0].get("has_saved_state"))

    async def mark_saved_state(self, user_id: str) -> None:
        await self._run(
            "save counter state",
            lambda: self.client.table(COUNTER_STATE_TABLE)
            .upsert({"user_id": user_id, "has_saved_state": True})
            .execute(),
        )

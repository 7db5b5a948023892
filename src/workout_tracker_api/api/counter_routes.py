"""API routes for counters and routines."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from workout_tracker_api.api.routes import get_container
from workout_tracker_api.auth import get_current_user
from workout_tracker_api.container import AppContainer
from workout_tracker_api.errors import NotFoundError
from workout_tracker_api.models import Counter, CounterStats, Workout, WorkoutExercise
from workout_tracker_api.services.counter_service import CounterService
from workout_tracker_api.services.routine_service import RoutineService

router = APIRouter()


class CounterNameRequest(BaseModel):
    name: str


class AmountRequest(BaseModel):
    amount: int = Field(1, ge=1)


class TodayCountRequest(BaseModel):
    today_count: int = Field(ge=0)


class RoutineRequest(BaseModel):
    name: str
    exercise_ids: List[str]
    color_hex: Optional[str] = None


class RoutineUpdateRequest(BaseModel):
    name: Optional[str] = None
    exercise_ids: Optional[List[str]] = None
    color_hex: Optional[str] = None


def _counters(
    user_id: str = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> CounterService:
    return container.counter_service_for(user_id)


def _routines(
    user_id: str = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> RoutineService:
    return container.routine_service_for(user_id)


async def _catalog_entries(container: AppContainer, exercise_ids: List[str]) -> List[WorkoutExercise]:
    entries = []
    for exercise_id in exercise_ids:
        exercise = await container.catalog.get_exercise(exercise_id)
        if exercise is None:
            raise NotFoundError("Exercise", exercise_id)
        entries.append(WorkoutExercise.with_default_sets(exercise))
    return entries


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

@router.get("/counters")
async def list_counters(service: CounterService = Depends(_counters)) -> Dict[str, Any]:
    visible, hidden = await service.load_visible_counters()
    return {
        "counters": [c.model_dump(mode="json") for c in visible],
        "hidden_count": hidden,
    }


@router.post("/counters", response_model=Counter)
async def create_counter(request: CounterNameRequest, service: CounterService = Depends(_counters)):
    return await service.create_counter(request.name)


@router.patch("/counters/{counter_id}", response_model=Counter)
async def rename_counter(
    counter_id: str,
    request: CounterNameRequest,
    service: CounterService = Depends(_counters),
):
    return await service.rename_counter(counter_id, request.name)


@router.post("/counters/{counter_id}/increment", response_model=Counter)
async def increment_counter(
    counter_id: str,
    request: AmountRequest = AmountRequest(),
    service: CounterService = Depends(_counters),
):
    return await service.increment(counter_id, request.amount)


@router.post("/counters/{counter_id}/decrement", response_model=Counter)
async def decrement_counter(
    counter_id: str,
    request: AmountRequest = AmountRequest(),
    service: CounterService = Depends(_counters),
):
    return await service.decrement(counter_id, request.amount)


@router.put("/counters/{counter_id}/today", response_model=Counter)
async def set_today_count(
    counter_id: str,
    request: TodayCountRequest,
    service: CounterService = Depends(_counters),
):
    return await service.set_today_count(counter_id, request.today_count)


@router.get("/counters/{counter_id}/stats", response_model=CounterStats)
async def counter_stats(counter_id: str, service: CounterService = Depends(_counters)):
    return await service.get_stats(counter_id)


@router.delete("/counters/{counter_id}")
async def delete_counter(counter_id: str, service: CounterService = Depends(_counters)):
    await service.delete_counter(counter_id)
    return {"deleted": counter_id}


# ---------------------------------------------------------------------------
# Routines
# ---------------------------------------------------------------------------

@router.get("/routines", response_model=List[Workout])
async def list_routines(service: RoutineService = Depends(_routines)):
    return await service.list_routines()


@router.get("/routines/limit-status")
async def routine_limit_status(service: RoutineService = Depends(_routines)):
    return {
        "status": await service.limit_status(),
        "can_create": await service.can_create_routine(),
    }


@router.post("/routines", response_model=Workout)
async def create_routine(
    request: RoutineRequest,
    service: RoutineService = Depends(_routines),
    container: AppContainer = Depends(get_container),
):
    exercises = await _catalog_entries(container, request.exercise_ids)
    return await service.create_routine(request.name, exercises, color_hex=request.color_hex)


@router.patch("/routines/{routine_id}", response_model=Workout)
async def update_routine(
    routine_id: str,
    request: RoutineUpdateRequest,
    service: RoutineService = Depends(_routines),
    container: AppContainer = Depends(get_container),
):
    exercises = None
    if request.exercise_ids is not None:
        exercises = await _catalog_entries(container, request.exercise_ids)
    return await service.update_routine(
        routine_id, name=request.name, exercises=exercises, color_hex=request.color_hex
    )


@router.delete("/routines/{routine_id}")
async def delete_routine(routine_id: str, service: RoutineService = Depends(_routines)):
    await service.delete_routine(routine_id)
    return {"deleted": routine_id}

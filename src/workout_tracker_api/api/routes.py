"""API routes for the active workout session and the exercise catalog."""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from workout_tracker_api.auth import get_current_user
from workout_tracker_api.container import AppContainer
from workout_tracker_api.errors import NotFoundError
from workout_tracker_api.models import Exercise, Workout, WorkoutCompletionStatus
from workout_tracker_api.services.session_manager import ConflictResolution
from workout_tracker_api.services.workout_engine import WorkoutSessionEngine

router = APIRouter()

_container: Optional[AppContainer] = None


def get_container() -> AppContainer:
    """Process-wide container; tests replace it through dependency_overrides."""
    global _container
    if _container is None:
        _container = AppContainer()
    return _container


# ---------------------------------------------------------------------------
# Small helper models
# ---------------------------------------------------------------------------

class StartWorkoutRequest(BaseModel):
    routine_id: Optional[str] = None
    name: Optional[str] = None


class ConflictRequest(BaseModel):
    resolution: ConflictResolution


class FinishRequest(BaseModel):
    force: bool = False


class SaveAsRoutineRequest(BaseModel):
    name: str


class CustomExerciseRequest(BaseModel):
    name: str
    muscle_group: str = ""
    equipment: str = ""
    default_reps: int = Field(15, ge=0)
    default_sets: int = Field(3, ge=1)
    is_bodyweight: bool = False
    uses_weight: bool = True
    tracks_distance: bool = False
    is_time_based: bool = False


class AddExerciseRequest(BaseModel):
    exercise_id: str


class SetUpdateRequest(BaseModel):
    weight: Optional[float] = None
    reps: Optional[int] = None
    distance: Optional[float] = None
    time: Optional[int] = None
    completed: Optional[bool] = None


class NotesRequest(BaseModel):
    notes: str = ""


class ReorderRequest(BaseModel):
    from_index: int
    to_index: int


class ReplaceConfirmRequest(BaseModel):
    exercise_id: str


class RestTimerRequest(BaseModel):
    duration: int = Field(gt=0)


def session_view(engine: WorkoutSessionEngine) -> Dict[str, Any]:
    manager = engine.session_manager
    snapshot = manager.get_workout_state()
    return {
        "active": engine.is_initialized,
        "routine_id": engine.current_routine_id,
        "routine_name": engine.routine_name,
        "state": engine.state.value.model_dump(mode="json"),
        "duration": engine.duration_string(),
        "is_paused": bool(snapshot and snapshot.is_paused),
        "current_exercise": manager.current_exercise_name,
        "total_volume": engine.total_volume.value,
        "total_sets": engine.total_sets.value,
        "loading_progress": engine.loading_progress.value,
        "is_routine_modified": engine.is_routine_modified,
        "is_reorder_mode": engine.is_reorder_mode,
        "exercises": [we.model_dump(mode="json") for we in engine.exercises.value],
        "pending_replace": engine.replace_flow.payload,
        "pending_routine_update": engine.update_routine_flow.is_staged,
        "rest_timer": engine.rest_timer.state.value.model_dump(mode="json"),
    }


def _engine(
    user_id: str = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
) -> WorkoutSessionEngine:
    return container.engine_for(user_id)


def _require_exercise(engine: WorkoutSessionEngine, exercise_id: str) -> None:
    if engine.get_exercise(exercise_id) is None:
        raise NotFoundError("Exercise", exercise_id)


# ---------------------------------------------------------------------------
# Health / catalog
# ---------------------------------------------------------------------------

@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/exercises", response_model=List[Exercise])
async def list_exercises(
    q: Optional[str] = Query(None),
    container: AppContainer = Depends(get_container),
    user_id: str = Depends(get_current_user),
):
    if q:
        return await container.catalog.search_exercises(q)
    return await container.catalog.get_exercises()


@router.post("/exercises", response_model=Exercise)
async def create_custom_exercise(
    request: CustomExerciseRequest,
    container: AppContainer = Depends(get_container),
    user_id: str = Depends(get_current_user),
):
    return await container.catalog.create_custom_exercise(Exercise(**request.model_dump()))


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------

@router.get("/session")
async def get_session(engine: WorkoutSessionEngine = Depends(_engine)):
    return session_view(engine)


@router.post("/session/start")
async def start_session(
    request: StartWorkoutRequest,
    user_id: str = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    engine = await container.start_workout(user_id, request.routine_id, request.name)
    return session_view(engine)


@router.post("/session/conflict")
async def resolve_conflict(
    request: ConflictRequest,
    user_id: str = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    engine = await container.resolve_conflict(user_id, request.resolution)
    return session_view(engine)


@router.post("/session/pause")
async def pause_session(engine: WorkoutSessionEngine = Depends(_engine)):
    engine.pause_workout()
    return session_view(engine)


@router.post("/session/resume")
async def resume_session(engine: WorkoutSessionEngine = Depends(_engine)):
    engine.resume_workout()
    return session_view(engine)


@router.post("/session/discard")
async def discard_session(engine: WorkoutSessionEngine = Depends(_engine)):
    engine.discard_workout()
    return session_view(engine)


@router.get("/session/completion", response_model=WorkoutCompletionStatus)
async def session_completion(engine: WorkoutSessionEngine = Depends(_engine)):
    return engine.get_workout_completion_status()


@router.post("/session/finish")
async def finish_session(
    request: FinishRequest,
    engine: WorkoutSessionEngine = Depends(_engine),
):
    result = await engine.finish_workout(force=request.force)
    return {
        "outcome": result.outcome.value,
        "history": result.history.model_dump(mode="json") if result.history else None,
        "completion": result.completion.model_dump(mode="json") if result.completion else None,
    }


@router.post("/session/routine-update/confirm", response_model=Optional[Workout])
async def confirm_routine_update(engine: WorkoutSessionEngine = Depends(_engine)):
    return await engine.confirm_update_routine()


@router.post("/session/routine-update/decline")
async def decline_routine_update(engine: WorkoutSessionEngine = Depends(_engine)):
    engine.decline_update_routine()
    return {"declined": True}


@router.post("/session/save-as-routine", response_model=Workout)
async def save_as_routine(
    request: SaveAsRoutineRequest,
    engine: WorkoutSessionEngine = Depends(_engine),
):
    return await engine.save_as_routine(request.name)


@router.post("/session/rest-timer")
async def start_rest_timer(
    request: RestTimerRequest,
    engine: WorkoutSessionEngine = Depends(_engine),
):
    engine.start_rest_timer(request.duration)
    return engine.rest_timer.state.value


@router.delete("/session/rest-timer")
async def stop_rest_timer(engine: WorkoutSessionEngine = Depends(_engine)):
    engine.stop_rest_timer()
    return engine.rest_timer.state.value


# ---------------------------------------------------------------------------
# Exercises within the session
# ---------------------------------------------------------------------------

@router.post("/session/exercises")
async def add_exercise(
    request: AddExerciseRequest,
    engine: WorkoutSessionEngine = Depends(_engine),
    container: AppContainer = Depends(get_container),
):
    exercise = await container.catalog.get_exercise(request.exercise_id)
    if exercise is None:
        raise NotFoundError("Exercise", request.exercise_id)
    engine.add_exercise(exercise)
    return session_view(engine)


@router.post("/session/exercises/reorder")
async def reorder_exercises(
    request: ReorderRequest,
    engine: WorkoutSessionEngine = Depends(_engine),
):
    engine.reorder_exercises(request.from_index, request.to_index)
    return session_view(engine)


@router.delete("/session/exercises/{exercise_id}")
async def remove_exercise(exercise_id: str, engine: WorkoutSessionEngine = Depends(_engine)):
    _require_exercise(engine, exercise_id)
    engine.remove_exercise(exercise_id)
    return session_view(engine)


@router.put("/session/exercises/{exercise_id}/notes")
async def update_notes(
    exercise_id: str,
    request: NotesRequest,
    engine: WorkoutSessionEngine = Depends(_engine),
):
    _require_exercise(engine, exercise_id)
    engine.update_notes(exercise_id, request.notes)
    return session_view(engine)


@router.post("/session/exercises/{exercise_id}/superset")
async def toggle_superset(exercise_id: str, engine: WorkoutSessionEngine = Depends(_engine)):
    _require_exercise(engine, exercise_id)
    engine.add_to_superset(exercise_id)
    return session_view(engine)


@router.post("/session/exercises/{exercise_id}/dropset")
async def toggle_dropset(exercise_id: str, engine: WorkoutSessionEngine = Depends(_engine)):
    _require_exercise(engine, exercise_id)
    engine.toggle_dropset(exercise_id)
    return session_view(engine)


@router.post("/session/exercises/{exercise_id}/replace")
async def stage_replace(exercise_id: str, engine: WorkoutSessionEngine = Depends(_engine)):
    _require_exercise(engine, exercise_id)
    engine.replace_exercise(exercise_id)
    return session_view(engine)


@router.post("/session/replace/confirm")
async def confirm_replace(
    request: ReplaceConfirmRequest,
    engine: WorkoutSessionEngine = Depends(_engine),
    container: AppContainer = Depends(get_container),
):
    exercise = await container.catalog.get_exercise(request.exercise_id)
    if exercise is None:
        raise NotFoundError("Exercise", request.exercise_id)
    engine.confirm_replace_exercise(exercise)
    return session_view(engine)


@router.post("/session/replace/cancel")
async def cancel_replace(engine: WorkoutSessionEngine = Depends(_engine)):
    engine.cancel_replace_exercise()
    return session_view(engine)


@router.post("/session/exercises/{exercise_id}/sets")
async def add_set(exercise_id: str, engine: WorkoutSessionEngine = Depends(_engine)):
    _require_exercise(engine, exercise_id)
    engine.add_set(exercise_id)
    return session_view(engine)


@router.delete("/session/exercises/{exercise_id}/sets/{set_number}")
async def delete_set(exercise_id: str, set_number: int, engine: WorkoutSessionEngine = Depends(_engine)):
    _require_exercise(engine, exercise_id)
    engine.delete_set(exercise_id, set_number)
    return session_view(engine)


@router.patch("/session/exercises/{exercise_id}/sets/{set_number}")
async def update_set(
    exercise_id: str,
    set_number: int,
    request: SetUpdateRequest,
    engine: WorkoutSessionEngine = Depends(_engine),
):
    _require_exercise(engine, exercise_id)
    if request.weight is not None:
        engine.update_weight(exercise_id, set_number, request.weight)
    if request.reps is not None:
        engine.update_reps(exercise_id, set_number, request.reps)
    if request.distance is not None:
        engine.update_distance(exercise_id, set_number, request.distance)
    if request.time is not None:
        engine.update_time(exercise_id, set_number, request.time)
    if request.completed is not None:
        engine.set_completed(exercise_id, set_number, request.completed)
    return session_view(engine)

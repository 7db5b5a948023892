"""Main FastAPI application."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workout_tracker_api.api.counter_routes import router as counter_router
from workout_tracker_api.api.routes import router
from workout_tracker_api.errors import (
    CollaboratorError,
    NotFoundError,
    QuotaExceededError,
    UserNotAuthenticatedError,
    WorkoutConflictError,
    WorkoutTrackerError,
    WorkoutValidationError,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Workout Tracker API")

# Configure CORS to allow requests from the UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:3001"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)
app.include_router(counter_router)


@app.exception_handler(WorkoutTrackerError)
async def workout_tracker_error_handler(request: Request, exc: WorkoutTrackerError):
    body = {"detail": str(exc)}
    if isinstance(exc, UserNotAuthenticatedError):
        status_code = 401
    elif isinstance(exc, QuotaExceededError):
        status_code = 402
        body.update(resource=exc.resource, limit=exc.limit, current=exc.current, upgrade_required=True)
    elif isinstance(exc, WorkoutValidationError):
        status_code = 422
    elif isinstance(exc, WorkoutConflictError):
        status_code = 409
        conflict = exc.conflict
        body["conflict"] = {
            "active_routine_id": conflict.active_routine_id,
            "active_name": conflict.active_name,
            "requested_routine_id": conflict.requested_routine_id,
            "requested_name": conflict.requested_name,
        }
    elif isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, CollaboratorError):
        status_code = 502
    else:
        status_code = 500
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content=body)

"""Error taxonomy shared by the workout session core and its adapters."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from workout_tracker_api.services.session_manager import WorkoutConflict


class WorkoutTrackerError(RuntimeError):
    """Base class for every error raised by the workout tracker."""


class UserNotAuthenticatedError(WorkoutTrackerError):
    """Raised when an operation needs a user id and nobody is signed in."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class QuotaExceededError(WorkoutTrackerError):
    """Raised when a free-tier quota is exhausted. Callers should offer an upgrade."""

    def __init__(self, resource: str, limit: int, current: int):
        self.resource = resource
        self.limit = limit
        self.current = current
        super().__init__(
            f"Free limit reached for {resource} ({current}/{limit}). Upgrade required."
        )


class WorkoutValidationError(WorkoutTrackerError):
    """Raised for local pre-flight validation failures."""


class NoCompletedSetsError(WorkoutValidationError):
    """Raised when finishing a workout that has no completed sets."""

    def __init__(self):
        super().__init__(
            "No completed sets found. Complete at least one set to finish the workout."
        )


class CollaboratorError(WorkoutTrackerError):
    """Wraps a failure reported by a store, billing or identity collaborator."""


class WorkoutConflictError(WorkoutTrackerError):
    """Raised when starting a workout would overwrite a different active session."""

    def __init__(self, conflict: "WorkoutConflict", message: Optional[str] = None):
        self.conflict = conflict
        super().__init__(
            message
            or f"Workout '{conflict.active_name}' is in progress; "
            f"resume it or discard it before starting '{conflict.requested_name}'."
        )


class NotFoundError(WorkoutTrackerError, LookupError):
    """Raised when an operation targets an id that does not exist."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} '{identifier}' not found")

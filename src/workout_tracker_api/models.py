"""Domain models for the workout tracker.

All models are immutable value types. Changes are made by building a new
instance with ``model_copy(update=...)`` and swapping it into whichever
observable slot holds the current value.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from workout_tracker_api.utils import (
    camel_case_id,
    format_duration,
    format_set_time,
    normalize_for_search,
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _number(value: float) -> str:
    return f"{value:g}"


class Exercise(BaseModel):
    """A catalog exercise and how its performance is measured."""
    id: str = ""
    name: str
    primary_muscles: List[str] = Field(default_factory=list)
    muscle_group: str = ""
    equipment: str = ""
    default_reps: int = 15
    default_sets: int = 3
    is_bodyweight: bool = False
    uses_weight: bool = True
    tracks_distance: bool = False
    is_time_based: bool = False
    description: str = ""
    # Exercise-level defaults, copied onto new session entries
    is_superset: bool = False
    is_dropset: bool = False

    class Config:
        extra = "ignore"
        frozen = True

    @model_validator(mode="before")
    @classmethod
    def _fill_muscle_group(cls, data):
        if isinstance(data, dict) and not data.get("muscle_group") and data.get("primary_muscles"):
            data = {**data, "muscle_group": data["primary_muscles"][0]}
        return data

    @property
    def is_pure_time_based(self) -> bool:
        """Timed with nothing else to record (planks, holds)."""
        return self.is_time_based and not self.uses_weight and not self.tracks_distance

    def is_valid(self) -> bool:
        return bool(self.name.strip())

    def with_id(self) -> "Exercise":
        if self.id:
            return self
        return self.model_copy(update={"id": camel_case_id(self.name)})

    def matches_search(self, query: str) -> bool:
        """Loose containment match over name, equipment and muscle group."""
        needle = normalize_for_search(query)
        if not needle:
            return True
        return any(
            needle in normalize_for_search(field)
            for field in (self.name, self.equipment, self.muscle_group)
        )

    def default_set(self, set_number: int) -> "ExerciseSet":
        """A fresh, uncompleted set with values defaulted from the measurement flags."""
        return ExerciseSet(
            set_number=set_number,
            reps=0 if self.is_pure_time_based else self.default_reps,
        )

    def default_sets_list(self, count: Optional[int] = None) -> List["ExerciseSet"]:
        total = self.default_sets if count is None else count
        return [self.default_set(i + 1) for i in range(total)]


class ExerciseSet(BaseModel):
    """One set of an exercise within the active session."""
    set_number: int = 0
    weight: float = 0.0
    reps: int = 0
    distance: float = 0.0
    time: int = 0
    is_completed: bool = False

    # Same-position values from the most recent prior workout
    previous_weight: Optional[float] = None
    previous_reps: Optional[int] = None
    previous_distance: Optional[float] = None
    previous_time: Optional[int] = None

    # Best values seen for this position
    best_weight: Optional[float] = None
    best_reps: Optional[int] = None
    best_distance: Optional[float] = None
    best_time: Optional[int] = None

    class Config:
        extra = "ignore"
        frozen = True

    def has_previous(self) -> bool:
        return (
            (self.previous_weight is not None and self.previous_reps is not None)
            or self.previous_distance is not None
            or self.previous_time is not None
        )

    def previous_display(self) -> str:
        if self.previous_weight is not None and self.previous_reps is not None:
            return f"{_number(self.previous_weight)} x {self.previous_reps}"
        if self.previous_distance is not None:
            return f"{_number(self.previous_distance)} mi"
        if self.previous_time is not None:
            return format_set_time(self.previous_time)
        return "-"

    def as_template(self) -> "ExerciseSet":
        """Values kept, completion and history annotations dropped."""
        return ExerciseSet(
            set_number=self.set_number,
            weight=self.weight,
            reps=self.reps,
            distance=self.distance,
            time=self.time,
        )

    def reset_values(self, exercise: Exercise) -> "ExerciseSet":
        """Same position, values and annotations reset to ``exercise`` defaults."""
        return exercise.default_set(self.set_number)

    @property
    def volume(self) -> float:
        return self.weight * self.reps


class WorkoutExercise(BaseModel):
    """One exercise instance within a session or a routine template."""
    exercise: Exercise
    sets: List[ExerciseSet] = Field(default_factory=list)
    notes: str = ""
    is_superset: bool = False
    is_dropset: bool = False

    class Config:
        extra = "ignore"
        frozen = True

    @property
    def exercise_id(self) -> str:
        return self.exercise.id

    @property
    def completed_sets(self) -> List[ExerciseSet]:
        return [s for s in self.sets if s.is_completed]

    @property
    def is_fully_completed(self) -> bool:
        done = len(self.completed_sets)
        return done == len(self.sets) and done > 0

    def as_template(self) -> "WorkoutExercise":
        return self.model_copy(update={"sets": [s.as_template() for s in self.sets]})

    @classmethod
    def with_default_sets(cls, exercise: Exercise) -> "WorkoutExercise":
        return cls(
            exercise=exercise,
            sets=exercise.default_sets_list(),
            is_superset=exercise.is_superset,
            is_dropset=exercise.is_dropset,
        )


class Workout(BaseModel):
    """A saved routine owned by a user."""
    id: str
    name: str
    user_id: str
    exercises: List[WorkoutExercise] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    color_hex: str = ""
    last_performed: Optional[datetime] = None

    class Config:
        extra = "ignore"
        frozen = True


class CompletedSet(BaseModel):
    id: str = Field(default_factory=_new_id)
    set_number: int = 0
    weight: float = 0.0
    reps: int = 0
    distance: float = 0.0
    time: float = 0.0

    class Config:
        extra = "ignore"
        frozen = True


class CompletedExercise(BaseModel):
    id: str = Field(default_factory=_new_id)
    exercise_id: str = ""
    name: str = ""
    notes: str = ""
    muscle_group: str = ""
    equipment: str = ""
    sets: List[CompletedSet] = Field(default_factory=list)

    class Config:
        extra = "ignore"
        frozen = True


class WorkoutHistory(BaseModel):
    """An append-only record of a finished workout."""
    id: str = Field(default_factory=_new_id)
    name: str = ""
    start_time: datetime
    end_time: datetime
    exercises: List[CompletedExercise] = Field(default_factory=list)
    total_volume: float = 0.0
    total_sets: int = 0
    color_hex: str = ""
    routine_id: Optional[str] = None
    user_id: str = ""
    exercise_ids: List[str] = Field(default_factory=list)

    class Config:
        extra = "ignore"
        frozen = True

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration_seconds)

    def find_exercise(self, exercise_id: str) -> Optional[CompletedExercise]:
        for completed in self.exercises:
            if completed.exercise_id == exercise_id:
                return completed
        return None


class Counter(BaseModel):
    """A free-standing tally (e.g. daily push-ups) with a daily reset."""
    id: str = Field(default_factory=_new_id)
    name: str
    user_id: str = ""
    current_count: int = 0
    today_count: int = 0
    created_at: datetime = Field(default_factory=datetime.now)
    last_reset_date: str = ""

    class Config:
        extra = "ignore"
        frozen = True


class CounterEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    counter_id: str
    count: int
    date: str
    timestamp: datetime = Field(default_factory=datetime.now)

    class Config:
        extra = "ignore"
        frozen = True


class CounterStats(BaseModel):
    """Derived projection of a counter; only ``today`` and ``all_time`` are exact."""
    yesterday: int = 0
    today: int = 0
    this_week: int = 0
    this_month: int = 0
    this_year: int = 0
    all_time: int = 0


class User(BaseModel):
    id: str
    email: Optional[str] = None
    display_name: Optional[str] = None


class SubscriptionTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class UserSubscription(BaseModel):
    tier: SubscriptionTier = SubscriptionTier.FREE
    is_active: bool = False
    purchase_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None

    @property
    def is_premium(self) -> bool:
        return self.tier == SubscriptionTier.PREMIUM and self.is_active


class WorkoutSessionState(BaseModel):
    """The single in-progress workout snapshot."""
    routine_id: Optional[str] = None
    routine_name: str = ""
    exercises: List[WorkoutExercise] = Field(default_factory=list)
    start_time: datetime
    is_active: bool = True
    current_exercise: Optional[str] = None
    paused_at: Optional[datetime] = None
    completed_sets: int = 0

    class Config:
        extra = "ignore"
        frozen = True

    @property
    def is_paused(self) -> bool:
        return self.paused_at is not None


class WorkoutCompletionStatus(BaseModel):
    total_exercises: int = 0
    completed_exercises: List[WorkoutExercise] = Field(default_factory=list)
    incomplete_exercises: List[WorkoutExercise] = Field(default_factory=list)
    total_sets: int = 0
    completed_sets: int = 0
    is_fully_completed: bool = False


class HistoricalSetData(BaseModel):
    """Previous and best values for one set position."""
    set_number: int
    previous: Optional[CompletedSet] = None
    best: Optional[CompletedSet] = None


class WorkoutPhase(str, Enum):
    INITIAL = "initial"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class ActiveWorkoutState(BaseModel):
    """Finish/save lifecycle of the engine. ``message`` is set only for ERROR."""
    phase: WorkoutPhase = WorkoutPhase.INITIAL
    message: Optional[str] = None

    class Config:
        frozen = True

    @classmethod
    def initial(cls) -> "ActiveWorkoutState":
        return cls()

    @classmethod
    def loading(cls) -> "ActiveWorkoutState":
        return cls(phase=WorkoutPhase.LOADING)

    @classmethod
    def success(cls) -> "ActiveWorkoutState":
        return cls(phase=WorkoutPhase.SUCCESS)

    @classmethod
    def error(cls, message: str) -> "ActiveWorkoutState":
        return cls(phase=WorkoutPhase.ERROR, message=message)

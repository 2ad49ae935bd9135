"""Recurring goal model definitions."""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.config import settings
from app.utils.dates import week_order


class Frequency(str, Enum):
    """How often a recurring goal should happen."""

    DAILY = "daily"
    SPECIFIC_DAYS = "specific_days"
    X_PER_WEEK = "x_per_week"


class Weekday(str, Enum):
    """Weekday names as stored on goals."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class PreferredTime(str, Enum):
    """Part of the day the user prefers for the goal."""

    ANY = "any"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


def _normalize_frequency(value):
    # "weekly" is the legacy name for x_per_week
    if isinstance(value, str) and value.strip().lower() == "weekly":
        return Frequency.X_PER_WEEK.value
    return value


def _strip_title(value):
    if isinstance(value, str):
        return value.strip()
    return value


def _normalize_days(value):
    """Lower-case, de-duplicate and sort weekday names in week order."""
    if value is None or isinstance(value, str):
        return value
    names = {str(getattr(day, "value", day)).strip().lower() for day in value}
    order = week_order(settings.week_start_day)
    known = [name for name in order if name in names]
    unknown = sorted(names - set(order))
    return known + unknown  # unknown names are rejected by the enum


class RecurringGoalBase(BaseModel):
    """Base recurring goal fields."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    category: str = "General"
    frequency: Frequency
    times_per_week: int = 1
    specific_days: list[Weekday] = Field(default_factory=list)
    preferred_time: PreferredTime = PreferredTime.ANY
    duration_minutes: Optional[int] = None

    @field_validator("title", mode="before")
    @classmethod
    def _blank_title(cls, v):
        return _strip_title(v)

    @field_validator("frequency", mode="before")
    @classmethod
    def _legacy_frequency(cls, v):
        return _normalize_frequency(v)

    @field_validator("specific_days", mode="before")
    @classmethod
    def _ordered_days(cls, v):
        return _normalize_days(v)


class RecurringGoalCreate(RecurringGoalBase):
    """Recurring goal creation model."""

    times_per_week: int = Field(default=1, ge=1)
    duration_minutes: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_frequency_fields(self):
        if self.frequency == Frequency.SPECIFIC_DAYS:
            if not self.specific_days:
                raise ValueError("specific_days is required when frequency is specific_days")
        else:
            self.specific_days = []
        if self.frequency == Frequency.DAILY:
            self.times_per_week = 7
        return self


class RecurringGoalUpdate(BaseModel):
    """Recurring goal update model - all fields optional.

    Only the fields listed here can be changed by a partial update; counters,
    streaks and generation markers are owned by the tracking service.
    """

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    frequency: Optional[Frequency] = None
    times_per_week: Optional[int] = Field(default=None, ge=1)
    specific_days: Optional[list[Weekday]] = None
    preferred_time: Optional[PreferredTime] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None

    @field_validator("title", mode="before")
    @classmethod
    def _blank_title(cls, v):
        return _strip_title(v)

    @field_validator("frequency", mode="before")
    @classmethod
    def _legacy_frequency(cls, v):
        return _normalize_frequency(v)

    @field_validator("specific_days", mode="before")
    @classmethod
    def _ordered_days(cls, v):
        return _normalize_days(v)


class RecurringGoal(RecurringGoalBase):
    """Full recurring goal model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    is_active: bool = True
    week_start_date: Optional[date] = None
    times_completed_this_week: int = 0
    streak: int = 0
    best_streak: int = 0
    last_completed_date: Optional[date] = None
    last_generated_date: Optional[date] = None
    tasks_generated_today: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}


class GoalTodayStatus(RecurringGoal):
    """Recurring goal with the computed fields shown on the daily view."""

    completed_today: bool
    due_today: bool
    remaining_this_week: Optional[int] = None
    total_completions: int = 0


class CompletionStatus(str, Enum):
    """Outcome of marking a goal done."""

    COMPLETED = "completed"
    ALREADY_DONE = "already_done"


class CompletionResult(BaseModel):
    """Response for a completion request."""

    status: CompletionStatus
    goal: Optional[RecurringGoal] = None
    detail: Optional[str] = None


class GoalCompletionLog(BaseModel):
    """One completion of a goal on a calendar day."""

    id: str = Field(alias="_id", serialization_alias="id")
    goal_id: str
    user_id: str
    date: date
    completed: bool = True
    created_at: datetime

    model_config = {"populate_by_name": True}


class GoalStats(BaseModel):
    """Completion statistics for a goal."""

    goal_id: str
    current_streak: int
    best_streak: int
    total_completions: int
    last_completed_date: Optional[date] = None
    completion_rate_30_days: int

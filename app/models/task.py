"""Task model definitions."""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TaskStatus(str, Enum):
    """Task workflow states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskSource(str, Enum):
    """Who created the task."""

    USER = "user"
    GOAL = "goal"  # generated from a recurring goal
    AI = "ai"


class TaskBase(BaseModel):
    """Base task fields."""

    title: str = Field(min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    deadline: Optional[datetime] = None
    estimated_duration: Optional[int] = None  # minutes

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class TaskCreate(TaskBase):
    """Task creation model."""

    estimated_duration: Optional[int] = Field(default=None, gt=0)


class TaskUpdate(BaseModel):
    """Task update model - all fields optional."""

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    status: Optional[TaskStatus] = None
    deadline: Optional[datetime] = None
    estimated_duration: Optional[int] = Field(default=None, gt=0)

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v):
        return v.strip() if isinstance(v, str) else v


class Task(TaskBase):
    """Full task model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: str
    status: TaskStatus = TaskStatus.PENDING
    created_by: TaskSource = TaskSource.USER
    goal_id: Optional[str] = None
    scheduled_date: Optional[date] = None
    completed_at: Optional[datetime] = None
    deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}


class GeneratedTasks(BaseModel):
    """Result of a daily generation pass."""

    tasks: list[Task]
    count: int
    message: str

"""User model definitions."""
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserBase(BaseModel):
    """Base user fields."""

    email: EmailStr
    name: str
    # IANA timezone used to decide what "today" is for this user;
    # None falls back to the service timezone.
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "local":
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v


class UserCreate(UserBase):
    """User creation model with password."""

    password: str = Field(min_length=8)


class User(UserBase):
    """User model without password (for API responses)."""

    id: str = Field(alias="_id", serialization_alias="id")
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

"""
Pydantic schemas for class-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from class_booking.domain.records import as_utc


class ClassCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    instructor: Optional[str] = Field(None, max_length=255)
    max_capacity: int = Field(..., gt=0, le=10000)
    scheduled_at: datetime
    duration_minutes: int = Field(60, ge=15, le=24 * 60)

    @field_validator("scheduled_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class ClassUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    instructor: Optional[str] = Field(None, max_length=255)
    max_capacity: Optional[int] = Field(None, gt=0, le=10000)
    scheduled_at: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=15, le=24 * 60)

    @field_validator("scheduled_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None


class ClassResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    instructor: Optional[str]
    max_capacity: int
    scheduled_at: datetime
    duration_minutes: int
    created_at: datetime
    booked_count: int = 0

    model_config = {"from_attributes": True}

    @field_validator("scheduled_at", "created_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @computed_field
    @property
    def available_spots(self) -> int:
        return max(self.max_capacity - self.booked_count, 0)


class ParticipantResponse(BaseModel):
    user_id: int
    first_name: str
    last_name: str
    booked_at: datetime


class ClassDetailResponse(ClassResponse):
    participants: list[ParticipantResponse] = []


class ClassListResponse(BaseModel):
    classes: list[ClassResponse]
    total: int
    cached: bool = False

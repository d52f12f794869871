"""
Fixed-shape records exchanged between the booking core and its stores.

Timestamps are normalized to aware UTC on the way in; SQLite hands back naive
datetimes even for timezone-aware columns.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from class_booking.models.booking import BookingStatus


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ClassRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    capacity: int = Field(gt=0)
    scheduled_at: datetime
    duration_minutes: int = Field(gt=0)

    @field_validator("scheduled_at")
    @classmethod
    def _normalize_scheduled_at(cls, value: datetime) -> datetime:
        return as_utc(value)

    def has_started(self, now: datetime) -> bool:
        return self.scheduled_at <= now


class BookingRecord(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: Optional[int] = None
    user_id: int
    class_id: int
    status: BookingStatus
    booked_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("booked_at", "updated_at")
    @classmethod
    def _normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value) if value is not None else None

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED


class BookingTransition(str, enum.Enum):
    CREATE = "create"
    REACTIVATE = "reactivate"
    CANCEL = "cancel"


class BookingOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    booking: BookingRecord
    transition: BookingTransition
    attempts: int = 1

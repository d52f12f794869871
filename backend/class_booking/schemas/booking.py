"""
Pydantic schemas for booking-related responses.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from class_booking.models.booking import BookingStatus
from class_booking.schemas.fitness_class import ParticipantResponse


class BookingResponse(BaseModel):
    id: Optional[int]
    user_id: int
    class_id: int
    status: BookingStatus
    booked_at: datetime

    model_config = {"from_attributes": True}


class BookingOutcomeResponse(BaseModel):
    message: str
    reactivated: bool
    booking: BookingResponse


class BookingCancelResponse(BaseModel):
    message: str
    class_id: int
    status: BookingStatus


class BookedClassSummary(BaseModel):
    id: int
    title: str
    description: Optional[str]
    instructor: Optional[str]
    scheduled_at: datetime
    duration_minutes: int


class UserBookingResponse(BookingResponse):
    fitness_class: BookedClassSummary


class ClassParticipantsResponse(BaseModel):
    class_id: int
    class_title: str
    confirmed_count: int
    participants: list[ParticipantResponse]


class BookingErrorResponse(BaseModel):
    detail: str
    code: str

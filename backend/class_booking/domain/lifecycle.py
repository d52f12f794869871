"""
Booking lifecycle: the state machine for one (user, class) booking record.

    Absent --book--> Confirmed --cancel--> Cancelled --book--> Confirmed ...

Pure functions only. Capacity and class timing guards live in the capacity
guard; this module decides which transition an event maps to for the record
as it currently exists, or raises the error for an illegal one.
"""

from datetime import datetime
from typing import Optional

from class_booking.domain.errors import (
    AlreadyBooked,
    AlreadyCancelled,
    BookingNotFound,
    ClassAlreadyStarted,
    ClassFull,
)
from class_booking.domain.records import BookingRecord, BookingTransition, ClassRecord


def plan_booking(existing: Optional[BookingRecord]) -> BookingTransition:
    if existing is None:
        return BookingTransition.CREATE
    if existing.is_confirmed:
        raise AlreadyBooked(user_id=existing.user_id, class_id=existing.class_id)
    return BookingTransition.REACTIVATE


def plan_cancellation(existing: Optional[BookingRecord]) -> BookingTransition:
    if existing is None:
        raise BookingNotFound()
    if not existing.is_confirmed:
        raise AlreadyCancelled(user_id=existing.user_id, class_id=existing.class_id)
    return BookingTransition.CANCEL


def ensure_not_started(fitness_class: ClassRecord, now: datetime) -> None:
    """Booking-time only; cancellation is allowed whatever the class timing."""
    if fitness_class.has_started(now):
        raise ClassAlreadyStarted(class_id=fitness_class.id)


def ensure_capacity(confirmed_count: int, capacity: int, class_id: int) -> None:
    # confirmed_count == capacity is full
    if confirmed_count >= capacity:
        raise ClassFull(class_id=class_id, confirmed=confirmed_count, capacity=capacity)

"""
Booking endpoints backed by the capacity guard.

Booking errors propagate as BookingError and are rendered by the handler in
class_booking.api.errors with their stable code.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from class_booking.api.deps import get_current_user
from class_booking.db.session import get_db
from class_booking.domain.records import BookingTransition
from class_booking.models.user import User
from class_booking.schemas.booking import (
    BookedClassSummary,
    BookingCancelResponse,
    BookingErrorResponse,
    BookingOutcomeResponse,
    BookingResponse,
    ClassParticipantsResponse,
    UserBookingResponse,
)
from class_booking.schemas.fitness_class import ParticipantResponse
from class_booking.services import class_service
from class_booking.services.cache_service import invalidate_class_cache
from class_booking.services.capacity_guard import CapacityGuard
from class_booking.services.guard_factory import get_capacity_guard
from class_booking.services.user_service import get_users_by_ids

router = APIRouter(prefix="/bookings", tags=["Bookings"])

ERROR_RESPONSES = {
    400: {"model": BookingErrorResponse},
    404: {"model": BookingErrorResponse},
    409: {"model": BookingErrorResponse},
}


@router.get("/", response_model=list[UserBookingResponse])
async def list_user_bookings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: CapacityGuard = Depends(get_capacity_guard),
):
    """
    All bookings (confirmed and cancelled) of the authenticated user, sorted
    by class start. Bookings whose class has been deleted are left out.
    """
    bookings = await guard.list_bookings_for_user(user.id)
    classes = await class_service.get_classes_by_ids(db, {b.class_id for b in bookings})

    result = [
        UserBookingResponse(
            **BookingResponse.model_validate(booking).model_dump(),
            fitness_class=BookedClassSummary.model_validate(classes[booking.class_id], from_attributes=True),
        )
        for booking in bookings
        if booking.class_id in classes
    ]
    result.sort(key=lambda b: b.fitness_class.scheduled_at)
    return result


@router.post(
    "/{class_id}",
    response_model=BookingOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def book_class(
    class_id: int,
    response: Response,
    user: User = Depends(get_current_user),
    guard: CapacityGuard = Depends(get_capacity_guard),
):
    """
    Book a spot in a class.

    201 for a new booking, 200 when a cancelled booking is reactivated.
    Concurrent attempts are serialized per class by the capacity guard: with
    K spots left, K attempts win and the rest get class_full. 409 conflict
    (with Retry-After) means the database kept failing transiently.
    """
    outcome = await guard.attempt_book(user.id, class_id)
    await invalidate_class_cache()

    reactivated = outcome.transition == BookingTransition.REACTIVATE
    if reactivated:
        response.status_code = status.HTTP_200_OK
    return BookingOutcomeResponse(
        message="Booking reactivated" if reactivated else "Booking confirmed",
        reactivated=reactivated,
        booking=BookingResponse.model_validate(outcome.booking),
    )


@router.delete("/{class_id}", response_model=BookingCancelResponse, responses=ERROR_RESPONSES)
async def cancel_booking_endpoint(
    class_id: int,
    user: User = Depends(get_current_user),
    guard: CapacityGuard = Depends(get_capacity_guard),
):
    """Cancel the authenticated user's booking for a class. Always allowed, even after start."""
    booking = await guard.cancel_booking(user.id, class_id)
    await invalidate_class_cache()
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        class_id=booking.class_id,
        status=booking.status,
    )


@router.get("/class/{class_id}", response_model=ClassParticipantsResponse)
async def list_class_participants(
    class_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: CapacityGuard = Depends(get_capacity_guard),
):
    """Confirmed participants of a class, earliest booking first."""
    fitness_class = await class_service.get_class(db, class_id)
    bookings = await guard.list_confirmed_bookings_for_class(class_id)
    users = await get_users_by_ids(db, {b.user_id for b in bookings})

    participants = [
        ParticipantResponse(
            user_id=booking.user_id,
            first_name=users[booking.user_id].first_name,
            last_name=users[booking.user_id].last_name,
            booked_at=booking.booked_at,
        )
        for booking in bookings
        if booking.user_id in users
    ]
    return ClassParticipantsResponse(
        class_id=class_id,
        class_title=fitness_class.title,
        confirmed_count=len(bookings),
        participants=participants,
    )

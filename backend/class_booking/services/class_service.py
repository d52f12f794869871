"""
Class service handling CRUD operations for class management.

Capacity changes are an administrative policy decision made here; the
booking core only ever reads the capacity at booking time.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from class_booking.infrastructure.sql_booking_store import confirmed_count_query
from class_booking.models.booking import Booking, BookingStatus
from class_booking.models.fitness_class import FitnessClass
from class_booking.models.user import User
from class_booking.schemas.fitness_class import (
    ClassCreate,
    ClassDetailResponse,
    ClassResponse,
    ClassUpdate,
    ParticipantResponse,
)
from class_booking.core.logging import get_logger

logger = get_logger(__name__)


async def create_class(db: AsyncSession, class_data: ClassCreate, created_by: int) -> ClassResponse:
    """Create a new class with every spot open."""
    if class_data.scheduled_at <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Class must be scheduled in the future",
        )

    fitness_class = FitnessClass(
        title=class_data.title,
        description=class_data.description,
        instructor=class_data.instructor,
        max_capacity=class_data.max_capacity,
        scheduled_at=class_data.scheduled_at,
        duration_minutes=class_data.duration_minutes,
        created_by=created_by,
    )
    db.add(fitness_class)
    await db.commit()
    await db.refresh(fitness_class)

    logger.info(
        "class_created",
        class_id=fitness_class.id,
        title=fitness_class.title,
        capacity=fitness_class.max_capacity,
    )
    return ClassResponse.model_validate(fitness_class)


async def get_class(db: AsyncSession, class_id: int) -> FitnessClass:
    result = await db.execute(select(FitnessClass).where(FitnessClass.id == class_id))
    fitness_class = result.scalar_one_or_none()

    if not fitness_class:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Class {class_id} not found",
        )
    return fitness_class


async def count_confirmed(db: AsyncSession, class_id: int) -> int:
    """Same query the booking store counts capacity with."""
    result = await db.execute(confirmed_count_query(class_id))
    return result.scalar_one()


async def get_class_detail(db: AsyncSession, class_id: int) -> ClassDetailResponse:
    """Class with its confirmed count and participants, earliest booking first."""
    fitness_class = await get_class(db, class_id)

    result = await db.execute(
        select(User.id, User.first_name, User.last_name, Booking.booked_at)
        .join(Booking, Booking.user_id == User.id)
        .where(
            Booking.class_id == class_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        .order_by(Booking.booked_at.asc())
    )
    participants = [
        ParticipantResponse(user_id=row.id, first_name=row.first_name, last_name=row.last_name, booked_at=row.booked_at)
        for row in result.all()
    ]

    booked = await count_confirmed(db, class_id)
    return ClassDetailResponse.model_validate(fitness_class).model_copy(
        update={"booked_count": booked, "participants": participants}
    )


async def list_upcoming_classes(db: AsyncSession) -> list[ClassResponse]:
    """
    Upcoming classes with their confirmed counts, soonest first.
    Uses the ix_classes_scheduled_at index for the date filter.
    """
    booked_count = confirmed_count_query(FitnessClass.id).scalar_subquery().label("booked_count")
    result = await db.execute(
        select(FitnessClass, booked_count)
        .where(FitnessClass.scheduled_at > datetime.now(timezone.utc))
        .order_by(FitnessClass.scheduled_at.asc())
    )
    return [
        ClassResponse.model_validate(fitness_class).model_copy(update={"booked_count": count})
        for fitness_class, count in result.all()
    ]


async def update_class(db: AsyncSession, class_id: int, class_data: ClassUpdate) -> ClassResponse:
    fitness_class = await get_class(db, class_id)
    changes = class_data.model_dump(exclude_unset=True, exclude_none=True)

    booked = await count_confirmed(db, class_id)
    if "max_capacity" in changes and changes["max_capacity"] < booked:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot reduce capacity to {changes['max_capacity']}: {booked} spots are already booked",
        )

    for field, value in changes.items():
        setattr(fitness_class, field, value)
    await db.commit()
    await db.refresh(fitness_class)

    logger.info("class_updated", class_id=class_id, fields=sorted(changes))
    return ClassResponse.model_validate(fitness_class).model_copy(update={"booked_count": booked})


async def delete_class(db: AsyncSession, class_id: int) -> str:
    """Delete a class. Its bookings are left in place, orphaned."""
    fitness_class = await get_class(db, class_id)
    title = fitness_class.title
    await db.delete(fitness_class)
    await db.commit()

    logger.info("class_deleted", class_id=class_id, title=title)
    return title


async def get_classes_by_ids(db: AsyncSession, class_ids: set[int]) -> dict[int, FitnessClass]:
    if not class_ids:
        return {}
    result = await db.execute(select(FitnessClass).where(FitnessClass.id.in_(class_ids)))
    return {c.id: c for c in result.scalars().all()}

"""
User administration: listing, editing and removing accounts.

Removing a user deletes all of that user's bookings first; this is the only
path that physically deletes booking records.
"""

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from class_booking.models.booking import Booking, BookingStatus
from class_booking.models.user import User, UserRole
from class_booking.schemas.user import UserUpdate, UserWithBookingsResponse
from class_booking.services.auth_service import ensure_email_available
from class_booking.core.security import hash_password
from class_booking.core.logging import get_logger

logger = get_logger(__name__)


async def list_users(db: AsyncSession) -> list[UserWithBookingsResponse]:
    """All users, newest first, with their confirmed booking counts."""
    booking_count = func.count(Booking.id).label("booking_count")
    result = await db.execute(
        select(User, booking_count)
        .outerjoin(
            Booking,
            and_(Booking.user_id == User.id, Booking.status == BookingStatus.CONFIRMED.value),
        )
        .group_by(User.id)
        .order_by(User.created_at.desc(), User.id.desc())
    )
    return [
        UserWithBookingsResponse.model_validate(user).model_copy(update={"booking_count": count})
        for user, count in result.all()
    ]


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


async def get_users_by_ids(db: AsyncSession, user_ids: set[int]) -> dict[int, User]:
    if not user_ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(user_ids)))
    return {user.id: user for user in result.scalars().all()}


async def update_user(db: AsyncSession, user_id: int, user_data: UserUpdate, actor: User) -> User:
    user = await get_user(db, user_id)
    changes = user_data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update",
        )

    if user.id == actor.id and changes.get("role") == UserRole.USER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot remove your own admin role",
        )
    if "email" in changes:
        await ensure_email_available(db, changes["email"], exclude_user_id=user.id)

    password = changes.pop("password", None)
    if password:
        user.hashed_password = hash_password(password)
    if "role" in changes:
        changes["role"] = changes["role"].value
    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)

    logger.info("user_updated", user_id=user.id, actor_id=actor.id, fields=sorted(changes))
    return user


async def delete_user(db: AsyncSession, user_id: int, actor: User) -> None:
    if user_id == actor.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )
    user = await get_user(db, user_id)

    removed = await db.execute(delete(Booking).where(Booking.user_id == user.id))
    await db.delete(user)
    await db.commit()

    logger.info("user_deleted", user_id=user_id, actor_id=actor.id, bookings_removed=removed.rowcount)

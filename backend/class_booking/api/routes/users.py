"""
User administration endpoints. Admin only.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from class_booking.api.deps import require_admin
from class_booking.db.session import get_db
from class_booking.models.user import User
from class_booking.schemas.user import AdminUserCreate, UserResponse, UserUpdate, UserWithBookingsResponse
from class_booking.services import user_service
from class_booking.services.auth_service import register_user
from class_booking.services.cache_service import invalidate_class_cache

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/", response_model=list[UserWithBookingsResponse])
async def list_users_endpoint(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(
    user_data: AdminUserCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create an account with any role."""
    return await register_user(db, user_data, role=user_data.role)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_endpoint(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user_endpoint(
    user_id: int,
    user_data: UserUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_user(db, user_id, user_data, actor=admin)


@router.delete("/{user_id}")
async def delete_user_endpoint(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a user together with all of their bookings."""
    await user_service.delete_user(db, user_id, actor=admin)
    # Booked counts change when confirmed bookings go away
    await invalidate_class_cache()
    return {"message": "User deleted", "user_id": user_id}

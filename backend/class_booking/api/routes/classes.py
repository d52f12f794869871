"""
Class endpoints with Redis caching on the listing.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from class_booking.api.deps import require_class_manager
from class_booking.core.logging import get_logger
from class_booking.db.session import get_db
from class_booking.models.user import User
from class_booking.schemas.fitness_class import (
    ClassCreate,
    ClassDetailResponse,
    ClassListResponse,
    ClassResponse,
    ClassUpdate,
)
from class_booking.services import class_service
from class_booking.services.cache_service import get_cached_classes, set_cached_classes, invalidate_class_cache

logger = get_logger(__name__)
router = APIRouter(prefix="/classes", tags=["Classes"])


@router.get("/", response_model=ClassListResponse)
async def list_classes_endpoint(db: AsyncSession = Depends(get_db)):
    """
    List upcoming classes with booked counts and open spots.
    Results are cached in Redis; bookings and class changes invalidate the cache.
    """
    cached = await get_cached_classes()
    if cached:
        logger.info("classes_list_cache_hit")
        cached["cached"] = True
        return ClassListResponse(**cached)

    classes = await class_service.list_upcoming_classes(db)
    response_data = {
        "classes": [c.model_dump(mode="json") for c in classes],
        "total": len(classes),
        "cached": False,
    }
    await set_cached_classes(response_data)

    return ClassListResponse(**response_data)


@router.get("/{class_id}", response_model=ClassDetailResponse)
async def get_class_endpoint(class_id: int, db: AsyncSession = Depends(get_db)):
    """Single class with participants. Not cached (needs real-time counts)."""
    return await class_service.get_class_detail(db, class_id)


@router.post("/", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
async def create_class_endpoint(
    class_data: ClassCreate,
    user: User = Depends(require_class_manager),
    db: AsyncSession = Depends(get_db),
):
    """Create a new class. Requires admin or superuser."""
    fitness_class = await class_service.create_class(db, class_data, user.id)
    await invalidate_class_cache()
    return fitness_class


@router.put("/{class_id}", response_model=ClassResponse)
async def update_class_endpoint(
    class_id: int,
    class_data: ClassUpdate,
    user: User = Depends(require_class_manager),
    db: AsyncSession = Depends(get_db),
):
    fitness_class = await class_service.update_class(db, class_id, class_data)
    await invalidate_class_cache()
    return fitness_class


@router.delete("/{class_id}")
async def delete_class_endpoint(
    class_id: int,
    user: User = Depends(require_class_manager),
    db: AsyncSession = Depends(get_db),
):
    """Delete a class. Existing bookings are kept, orphaned."""
    title = await class_service.delete_class(db, class_id)
    await invalidate_class_cache()
    return {"message": f'Class "{title}" has been deleted', "class_id": class_id}

"""
Capacity guard factory.
Wires the booking core to the configured database and retry policy.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from class_booking.core.config import get_settings
from class_booking.db.session import AsyncSessionLocal, BookingSessionLocal
from class_booking.infrastructure import SqlBookingStore, SqlClassCatalog
from class_booking.services.capacity_guard import CapacityGuard


def build_capacity_guard(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    booking_session_factory: async_sessionmaker[AsyncSession] = BookingSessionLocal,
) -> CapacityGuard:
    settings = get_settings()
    return CapacityGuard(
        catalog=SqlClassCatalog(session_factory),
        store=SqlBookingStore(booking_session_factory, read_session_factory=session_factory),
        max_attempts=settings.BOOKING_MAX_ATTEMPTS,
        retry_backoff=settings.BOOKING_RETRY_BACKOFF_MS / 1000,
    )


# Singleton instance
_guard: Optional[CapacityGuard] = None


def get_capacity_guard() -> CapacityGuard:
    """Get capacity guard singleton. Also used as a FastAPI dependency."""
    global _guard
    if _guard is None:
        _guard = build_capacity_guard()
    return _guard

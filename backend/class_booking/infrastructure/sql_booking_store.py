"""
SQLAlchemy booking store.

Every transaction runs in its own session and starts by locking the class
row (SELECT ... FOR UPDATE on PostgreSQL, the BEGIN IMMEDIATE write lock on
SQLite), so bookings for one class are counted and written one at a time.
What can still go wrong surfaces as WriteConflict:
- the guarded class update touched no rows
- the reactivation/cancel update found the booking in another state
- a unique (user_id, class_id) violation on insert
- serialization failures and deadlocks (PostgreSQL), lock timeouts (SQLite)
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from class_booking.core.logging import get_logger
from class_booking.domain.errors import WriteConflict
from class_booking.domain.records import BookingRecord
from class_booking.models.booking import Booking, BookingStatus
from class_booking.models.fitness_class import FitnessClass
from class_booking.services.interfaces import BookingStore, BookingTransaction

logger = get_logger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03"}
UNIQUE_VIOLATION_SQLSTATE = "23505"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    return getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)


def is_unique_violation(exc: IntegrityError) -> bool:
    return _sqlstate(exc) == UNIQUE_VIOLATION_SQLSTATE or "UNIQUE constraint failed" in str(exc.orig)


def is_transient(exc: DBAPIError) -> bool:
    return _sqlstate(exc) in TRANSIENT_SQLSTATES or "database is locked" in str(exc.orig)


def confirmed_count_query(class_id):
    """COUNT of confirmed bookings; class_id may be a value or a correlated column."""
    return select(func.count(Booking.id)).where(
        Booking.class_id == class_id,
        Booking.status == BookingStatus.CONFIRMED.value,
    )


class SqlBookingTransaction(BookingTransaction):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_booking(self, user_id: int, class_id: int) -> Optional[BookingRecord]:
        result = await self.session.execute(
            select(Booking)
            .where(Booking.user_id == user_id, Booking.class_id == class_id)
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        return BookingRecord.model_validate(booking) if booking else None

    async def count_confirmed(self, class_id: int) -> int:
        return (await self.session.execute(confirmed_count_query(class_id))).scalar_one()

    async def lock_class(self, class_id: int) -> Optional[int]:
        # FOR UPDATE is not rendered on SQLite, where BEGIN IMMEDIATE holds the lock
        result = await self.session.execute(
            select(FitnessClass.booking_version)
            .where(FitnessClass.id == class_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def confirm(
        self,
        user_id: int,
        class_id: int,
        expected_version: int,
        now: datetime,
        existing: Optional[BookingRecord],
    ) -> BookingRecord:
        # Capacity predicate and version guard in one statement
        guarded = await self.session.execute(
            update(FitnessClass)
            .where(
                FitnessClass.id == class_id,
                FitnessClass.booking_version == expected_version,
                FitnessClass.scheduled_at > now,
                FitnessClass.max_capacity > confirmed_count_query(class_id).scalar_subquery(),
            )
            .values(booking_version=FitnessClass.booking_version + 1)
            .execution_options(synchronize_session=False)
        )
        if guarded.rowcount != 1:
            raise WriteConflict(f"class {class_id} changed since version {expected_version}")

        if existing is None:
            booking = Booking(
                user_id=user_id,
                class_id=class_id,
                status=BookingStatus.CONFIRMED.value,
                booked_at=now,
                updated_at=now,
            )
            self.session.add(booking)
            await self.session.flush()
            return BookingRecord.model_validate(booking)

        reactivated = await self.session.execute(
            update(Booking)
            .where(
                Booking.user_id == user_id,
                Booking.class_id == class_id,
                Booking.status == BookingStatus.CANCELLED.value,
            )
            .values(status=BookingStatus.CONFIRMED.value, booked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if reactivated.rowcount != 1:
            raise WriteConflict(f"booking for user {user_id} in class {class_id} is no longer cancelled")
        return existing.model_copy(
            update={"status": BookingStatus.CONFIRMED, "booked_at": now, "updated_at": now}
        )

    async def cancel(self, user_id: int, class_id: int, now: datetime) -> BookingRecord:
        result = await self.session.execute(
            update(Booking)
            .where(
                Booking.user_id == user_id,
                Booking.class_id == class_id,
                Booking.status == BookingStatus.CONFIRMED.value,
            )
            .values(status=BookingStatus.CANCELLED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise WriteConflict(f"booking for user {user_id} in class {class_id} is not confirmed")
        booking = await self.get_booking(user_id, class_id)
        if booking is None:
            raise WriteConflict(f"booking for user {user_id} in class {class_id} disappeared")
        return booking


class SqlBookingStore(BookingStore):
    transaction_class = SqlBookingTransaction

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        read_session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        self.session_factory = session_factory
        self.read_session_factory = read_session_factory or session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlBookingTransaction]:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield self.transaction_class(session)
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            raise WriteConflict("duplicate booking insert") from e
        except DBAPIError as e:
            if not is_transient(e):
                raise
            logger.info("booking_transaction_transient_error", sqlstate=_sqlstate(e), error=str(e.orig))
            raise WriteConflict("transient database conflict") from e

    async def count_confirmed(self, class_id: int) -> int:
        async with self.read_session_factory() as session:
            return (await session.execute(confirmed_count_query(class_id))).scalar_one()

    async def list_for_user(self, user_id: int) -> list[BookingRecord]:
        async with self.read_session_factory() as session:
            result = await session.execute(
                select(Booking)
                .where(Booking.user_id == user_id)
                .order_by(Booking.booked_at.desc())
            )
            return [BookingRecord.model_validate(b) for b in result.scalars().all()]

    async def list_confirmed_for_class(self, class_id: int) -> list[BookingRecord]:
        async with self.read_session_factory() as session:
            result = await session.execute(
                select(Booking)
                .where(
                    Booking.class_id == class_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                )
                .order_by(Booking.booked_at.asc(), Booking.id.asc())
            )
            return [BookingRecord.model_validate(b) for b in result.scalars().all()]

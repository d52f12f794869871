"""
Capacity guard: concurrency-safe class booking.

CONCURRENCY STRATEGY: Class Row Lock + Conditional Write
========================================================

Problem:
  Two users try to book the last spot simultaneously.
  Both count confirmed=capacity-1, both insert a confirmed booking.
  Result: Overbooking.

Solution:
  A booking attempt runs in one transaction:

  1. Lock the class row (SELECT ... FOR UPDATE) and read its
     `booking_version`. Other bookings for the same class wait here, so
     the count below cannot go stale before commit.
  2. Read the user's existing booking and the confirmed count
  3. UPDATE classes SET booking_version = booking_version + 1
     WHERE id = :class_id AND booking_version = :version
       AND scheduled_at > :now
       AND max_capacity > (SELECT count(*) FROM bookings
                           WHERE class_id = :class_id AND status = 'confirmed')
  4. Insert the booking, or flip the cancelled one back to confirmed

  Concurrent members for one class queue on the lock instead of failing a
  version check, so N members racing for K spots end with K bookings and
  N-K class_full answers. The capacity predicate in step 3 still guards the
  write itself: should the lock ever not hold, the update touches no rows
  and no extra confirmed booking is written.

  What remains (unique violation on insert, deadlock, lock timeout, a
  guarded update touching no rows) is a WriteConflict: roll back, re-check
  the class and retry only while spots are left. When retries run out the
  caller gets a transient conflict.

Cancellation never consumes capacity and does not lock the class row. A
cancel that loses a race is retried from a fresh read of the booking, which
tells an already-cancelled booking apart from a transient failure.
"""

import asyncio
import random
import time
from datetime import datetime
from typing import Optional

from class_booking.core.logging import get_logger
from class_booking.core.metrics import (
    booking_latency,
    record_booking_attempt,
    record_cancellation,
    record_write_conflict,
)
from class_booking.domain.errors import (
    BookingConflict,
    BookingError,
    ClassNotFound,
    WriteConflict,
)
from class_booking.domain.lifecycle import (
    ensure_capacity,
    ensure_not_started,
    plan_booking,
    plan_cancellation,
)
from class_booking.domain.records import (
    BookingOutcome,
    BookingRecord,
    BookingTransition,
    as_utc,
    utc_now,
)
from class_booking.services.interfaces import BookingStore, ClassCatalog

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class CapacityGuard:
    def __init__(
        self,
        catalog: ClassCatalog,
        store: BookingStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_backoff: float = 0.02,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.catalog = catalog
        self.store = store
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff

    async def attempt_book(
        self,
        user_id: int,
        class_id: int,
        now: Optional[datetime] = None,
    ) -> BookingOutcome:
        """
        Book a spot in a class for a user.
        Raises a BookingError subclass when the booking is not possible.
        """
        now = as_utc(now) if now is not None else utc_now()
        start_time = time.perf_counter()
        try:
            outcome = await self._book(user_id, class_id, now)
        except BookingError as e:
            record_booking_attempt(e.code.value)
            logger.info(
                "booking_rejected",
                user_id=user_id,
                class_id=class_id,
                code=e.code.value,
            )
            raise
        finally:
            booking_latency.observe(time.perf_counter() - start_time)

        record_booking_attempt(
            "created" if outcome.transition == BookingTransition.CREATE else "reactivated"
        )
        logger.info(
            "booking_confirmed",
            user_id=user_id,
            class_id=class_id,
            booking_id=outcome.booking.id,
            transition=outcome.transition.value,
            attempt=outcome.attempts,
        )
        return outcome

    async def _book(self, user_id: int, class_id: int, now: datetime) -> BookingOutcome:
        for attempt in range(1, self.max_attempts + 1):
            # Re-fetched on every attempt; capacity or schedule may have changed
            fitness_class = await self.catalog.get_class(class_id)
            if fitness_class is None:
                raise ClassNotFound(class_id=class_id)
            ensure_not_started(fitness_class, now)

            try:
                async with self.store.transaction() as txn:
                    version = await txn.lock_class(class_id)
                    if version is None:
                        raise ClassNotFound(class_id=class_id)

                    existing = await txn.get_booking(user_id, class_id)
                    transition = plan_booking(existing)
                    confirmed = await txn.count_confirmed(class_id)
                    ensure_capacity(confirmed, fitness_class.capacity, class_id)

                    booking = await txn.confirm(user_id, class_id, version, now, existing)
            except WriteConflict as e:
                record_write_conflict()
                logger.info(
                    "booking_retry",
                    user_id=user_id,
                    class_id=class_id,
                    attempt=attempt,
                    reason=str(e),
                )
                await self._ensure_spots_left(class_id)
                if attempt < self.max_attempts:
                    await self._backoff(attempt)
                continue

            return BookingOutcome(booking=booking, transition=transition, attempts=attempt)

        logger.warning("booking_retries_exhausted", class_id=class_id, attempts=self.max_attempts)
        raise BookingConflict(class_id=class_id, attempts=self.max_attempts)

    async def _ensure_spots_left(self, class_id: int) -> None:
        """After a lost race: raises ClassFull (or ClassNotFound) unless retrying can still succeed."""
        fitness_class = await self.catalog.get_class(class_id)
        if fitness_class is None:
            raise ClassNotFound(class_id=class_id)
        confirmed = await self.store.count_confirmed(class_id)
        ensure_capacity(confirmed, fitness_class.capacity, class_id)

    async def _backoff(self, attempt: int) -> None:
        if self.retry_backoff > 0:
            await asyncio.sleep(random.uniform(0, self.retry_backoff * attempt))

    async def cancel_booking(
        self,
        user_id: int,
        class_id: int,
        now: Optional[datetime] = None,
    ) -> BookingRecord:
        """Cancel a confirmed booking. Allowed even after the class has started."""
        now = as_utc(now) if now is not None else utc_now()
        try:
            booking, attempts = await self._cancel(user_id, class_id, now)
        except BookingError as e:
            record_cancellation(e.code.value)
            raise

        record_cancellation("cancelled")
        logger.info(
            "booking_cancelled",
            user_id=user_id,
            class_id=class_id,
            booking_id=booking.id,
            attempt=attempts,
        )
        return booking

    async def _cancel(self, user_id: int, class_id: int, now: datetime) -> tuple[BookingRecord, int]:
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.store.transaction() as txn:
                    # A booking cancelled by a concurrent request shows up
                    # here on retry and raises AlreadyCancelled
                    existing = await txn.get_booking(user_id, class_id)
                    plan_cancellation(existing)
                    booking = await txn.cancel(user_id, class_id, now)
            except WriteConflict as e:
                record_write_conflict()
                logger.info(
                    "cancellation_retry",
                    user_id=user_id,
                    class_id=class_id,
                    attempt=attempt,
                    reason=str(e),
                )
                if attempt < self.max_attempts:
                    await self._backoff(attempt)
                continue

            return booking, attempt

        logger.warning("cancellation_retries_exhausted", class_id=class_id, attempts=self.max_attempts)
        raise BookingConflict(user_id=user_id, class_id=class_id, attempts=self.max_attempts)

    async def get_confirmed_count(self, class_id: int) -> int:
        return await self.store.count_confirmed(class_id)

    async def list_bookings_for_user(self, user_id: int) -> list[BookingRecord]:
        return await self.store.list_for_user(user_id)

    async def list_confirmed_bookings_for_class(self, class_id: int) -> list[BookingRecord]:
        return await self.store.list_confirmed_for_class(class_id)

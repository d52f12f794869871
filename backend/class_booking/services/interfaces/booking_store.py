"""
Booking store interface.
Allows swapping persistence backends without changing the capacity guard.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Optional

from class_booking.domain.records import BookingRecord


class BookingTransaction(ABC):
    """
    One atomic unit of work against the booking records.

    Leaving the transaction normally commits; leaving it with an exception
    rolls everything back. Write methods raise WriteConflict when their
    condition no longer holds.
    """

    @abstractmethod
    async def get_booking(self, user_id: int, class_id: int) -> Optional[BookingRecord]:
        pass

    @abstractmethod
    async def count_confirmed(self, class_id: int) -> int:
        pass

    @abstractmethod
    async def lock_class(self, class_id: int) -> Optional[int]:
        """
        Lock the class row until the transaction ends and return its booking
        version token, or None if the class row is gone. Counts read after
        this call cannot be changed by another booking before commit.
        """
        pass

    @abstractmethod
    async def confirm(
        self,
        user_id: int,
        class_id: int,
        expected_version: int,
        now: datetime,
        existing: Optional[BookingRecord],
    ) -> BookingRecord:
        """
        Conditional write. Atomically, and only if the class still has
        `expected_version`, has not started at `now` and has fewer confirmed
        bookings than its capacity: advance the version and create the
        booking (existing is None) or reactivate the cancelled one.
        """
        pass

    @abstractmethod
    async def cancel(self, user_id: int, class_id: int, now: datetime) -> BookingRecord:
        """Set a confirmed booking to cancelled. WriteConflict if it is no longer confirmed."""
        pass


class BookingStore(ABC):
    """
    Implementations:
    - SqlBookingStore: SQLAlchemy, PostgreSQL in production, SQLite for dev/tests

    Reads outside transaction() are snapshots and take no locks.
    """

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[BookingTransaction]:
        pass

    @abstractmethod
    async def count_confirmed(self, class_id: int) -> int:
        """Read-only snapshot of the confirmed count."""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: int) -> list[BookingRecord]:
        pass

    @abstractmethod
    async def list_confirmed_for_class(self, class_id: int) -> list[BookingRecord]:
        """Confirmed bookings ordered by booked_at ascending."""
        pass

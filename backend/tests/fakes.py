"""
In-memory ClassCatalog and BookingStore for exercising the capacity guard
without a database.

Reads yield to the event loop, so concurrent tasks interleave. `lock_class`
takes a per-class asyncio.Lock held until the transaction ends, like a row
lock; the guarded write itself is atomic, as a single conditional statement
would be.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Iterable, Optional

from class_booking.domain.errors import WriteConflict
from class_booking.domain.records import BookingRecord, ClassRecord
from class_booking.models.booking import BookingStatus
from class_booking.services.interfaces import BookingStore, BookingTransaction, ClassCatalog


class FakeClassCatalog(ClassCatalog):
    def __init__(self, classes: Iterable[ClassRecord] = ()):
        self.classes = {c.id: c for c in classes}
        self.lookups = 0

    def add(self, fitness_class: ClassRecord) -> None:
        self.classes[fitness_class.id] = fitness_class

    async def get_class(self, class_id: int) -> Optional[ClassRecord]:
        self.lookups += 1
        return self.classes.get(class_id)

    async def get_classes(self, class_ids: Iterable[int]) -> dict[int, ClassRecord]:
        return {i: self.classes[i] for i in class_ids if i in self.classes}


class FakeBookingTransaction(BookingTransaction):
    def __init__(self, store: "FakeBookingStore"):
        self.store = store
        self.held: list[asyncio.Lock] = []

    async def get_booking(self, user_id: int, class_id: int) -> Optional[BookingRecord]:
        await asyncio.sleep(0)
        return self.store.bookings.get((user_id, class_id))

    async def count_confirmed(self, class_id: int) -> int:
        await asyncio.sleep(0)
        return self.store.confirmed_count(class_id)

    async def lock_class(self, class_id: int) -> Optional[int]:
        if class_id not in self.store.catalog.classes:
            return None
        lock = self.store.locks.setdefault(class_id, asyncio.Lock())
        await lock.acquire()
        self.held.append(lock)
        return self.store.versions.setdefault(class_id, 1)

    async def confirm(
        self,
        user_id: int,
        class_id: int,
        expected_version: int,
        now: datetime,
        existing: Optional[BookingRecord],
    ) -> BookingRecord:
        store = self.store
        store.maybe_inject_conflict()

        fitness_class = store.catalog.classes[class_id]
        if (
            store.versions.get(class_id, 1) != expected_version
            or fitness_class.has_started(now)
            or store.confirmed_count(class_id) >= fitness_class.capacity
        ):
            raise WriteConflict(f"class {class_id} changed since version {expected_version}")

        current = store.bookings.get((user_id, class_id))
        if existing is None and current is not None:
            raise WriteConflict("duplicate booking insert")
        if existing is not None and (current is None or current.is_confirmed):
            raise WriteConflict("booking is no longer cancelled")

        store.versions[class_id] = expected_version + 1
        booking = BookingRecord(
            id=existing.id if existing else store.next_id(),
            user_id=user_id,
            class_id=class_id,
            status=BookingStatus.CONFIRMED,
            booked_at=now,
            updated_at=now,
        )
        store.bookings[(user_id, class_id)] = booking
        return booking

    async def cancel(self, user_id: int, class_id: int, now: datetime) -> BookingRecord:
        self.store.maybe_inject_conflict()
        current = self.store.bookings.get((user_id, class_id))
        if current is None or not current.is_confirmed:
            raise WriteConflict("booking is not confirmed")
        booking = current.model_copy(update={"status": BookingStatus.CANCELLED, "updated_at": now})
        self.store.bookings[(user_id, class_id)] = booking
        return booking


class FakeBookingStore(BookingStore):
    def __init__(self, catalog: FakeClassCatalog):
        self.catalog = catalog
        self.bookings: dict[tuple[int, int], BookingRecord] = {}
        self.versions: dict[int, int] = {}
        self.locks: dict[int, asyncio.Lock] = {}
        self.injected_conflicts = 0
        self.on_injected_conflict: Optional[Callable[[], None]] = None
        self._ids = 0

    def maybe_inject_conflict(self) -> None:
        if self.injected_conflicts > 0:
            self.injected_conflicts -= 1
            if self.on_injected_conflict:
                self.on_injected_conflict()
            raise WriteConflict("injected")

    def next_id(self) -> int:
        self._ids += 1
        return self._ids

    def confirmed_count(self, class_id: int) -> int:
        return sum(1 for b in self.bookings.values() if b.class_id == class_id and b.is_confirmed)

    def seed(self, booking: BookingRecord) -> BookingRecord:
        booking = booking.model_copy(update={"id": self.next_id()})
        self.bookings[(booking.user_id, booking.class_id)] = booking
        return booking

    @asynccontextmanager
    async def transaction(self):
        txn = FakeBookingTransaction(self)
        try:
            yield txn
        finally:
            for lock in txn.held:
                lock.release()

    async def count_confirmed(self, class_id: int) -> int:
        return self.confirmed_count(class_id)

    async def list_for_user(self, user_id: int) -> list[BookingRecord]:
        found = [b for b in self.bookings.values() if b.user_id == user_id]
        return sorted(found, key=lambda b: b.booked_at, reverse=True)

    async def list_confirmed_for_class(self, class_id: int) -> list[BookingRecord]:
        found = [b for b in self.bookings.values() if b.class_id == class_id and b.is_confirmed]
        return sorted(found, key=lambda b: (b.booked_at, b.id))

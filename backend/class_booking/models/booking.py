"""
Booking model representing a user's reservation for a class.

Key design decisions:
- Unique constraint on (user_id, class_id): one record per pair, mutated in
  place on cancel and reactivation
- Status field allows cancellation without deleting records
- class_id is not a foreign key; deleting a class leaves its bookings orphaned
"""

import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index

from class_booking.db.base import Base, TimestampMixin


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    class_id = Column(Integer, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    booked_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "class_id", name="uq_user_class_booking"),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_booking_status"),
        # Confirmed count per class is the capacity check's hot query
        Index("ix_bookings_class_status", "class_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, class={self.class_id}, status={self.status})>"

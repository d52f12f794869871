"""
Fitness class model: a time-slotted resource with a fixed capacity.

Key design decisions:
- No `available_spots` column; the confirmed count is always recomputed from
  the bookings table
- `booking_version` is bumped by every capacity-consuming booking write and
  is the token the conditional write is guarded on
- Index on `scheduled_at` for the upcoming-classes listing
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint

from class_booking.db.base import Base, TimestampMixin


class FitnessClass(Base, TimestampMixin):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    instructor = Column(String(255), nullable=True)
    max_capacity = Column(Integer, nullable=False)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    booking_version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("max_capacity > 0", name="check_class_capacity_positive"),
        CheckConstraint("duration_minutes > 0", name="check_class_duration_positive"),
        Index("ix_classes_scheduled_at", "scheduled_at"),
    )

    def __repr__(self) -> str:
        return f"<FitnessClass(id={self.id}, title={self.title}, capacity={self.max_capacity})>"

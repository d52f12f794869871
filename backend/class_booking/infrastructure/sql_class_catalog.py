"""
Class catalog backed by the classes table.
"""

from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from class_booking.domain.records import ClassRecord
from class_booking.models.fitness_class import FitnessClass
from class_booking.services.interfaces import ClassCatalog


def to_class_record(fitness_class: FitnessClass) -> ClassRecord:
    return ClassRecord(
        id=fitness_class.id,
        capacity=fitness_class.max_capacity,
        scheduled_at=fitness_class.scheduled_at,
        duration_minutes=fitness_class.duration_minutes,
    )


class SqlClassCatalog(ClassCatalog):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_class(self, class_id: int) -> Optional[ClassRecord]:
        async with self.session_factory() as session:
            result = await session.execute(select(FitnessClass).where(FitnessClass.id == class_id))
            fitness_class = result.scalar_one_or_none()
            return to_class_record(fitness_class) if fitness_class else None

    async def get_classes(self, class_ids: Iterable[int]) -> dict[int, ClassRecord]:
        ids = set(class_ids)
        if not ids:
            return {}
        async with self.session_factory() as session:
            result = await session.execute(select(FitnessClass).where(FitnessClass.id.in_(ids)))
            return {c.id: to_class_record(c) for c in result.scalars().all()}

"""
Class catalog interface.
The booking core's read-only view of classes owned by class management.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from class_booking.domain.records import ClassRecord


class ClassCatalog(ABC):
    """
    Point-in-time lookup of class capacity and schedule.

    The capacity guard calls get_class once per booking attempt and never
    caches the result across attempts.
    """

    @abstractmethod
    async def get_class(self, class_id: int) -> Optional[ClassRecord]:
        """Return the class, or None if it does not exist."""
        pass

    @abstractmethod
    async def get_classes(self, class_ids: Iterable[int]) -> dict[int, ClassRecord]:
        """Batch lookup; missing ids are absent from the result."""
        pass

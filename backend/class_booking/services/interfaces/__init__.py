"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .booking_store import BookingStore, BookingTransaction
from .class_catalog import ClassCatalog

__all__ = ['BookingStore', 'BookingTransaction', 'ClassCatalog']

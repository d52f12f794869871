"""
Infrastructure layer - persistence behind the booking core's interfaces.
Keeps business logic clean from implementation details.
"""

from .sql_booking_store import SqlBookingStore, SqlBookingTransaction
from .sql_class_catalog import SqlClassCatalog

__all__ = ['SqlBookingStore', 'SqlBookingTransaction', 'SqlClassCatalog']

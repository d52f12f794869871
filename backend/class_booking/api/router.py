"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from class_booking.api.routes import auth, bookings, classes, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(classes.router)
api_router.include_router(bookings.router)
api_router.include_router(users.router)

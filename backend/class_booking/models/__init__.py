from class_booking.models.user import User, UserRole
from class_booking.models.fitness_class import FitnessClass
from class_booking.models.booking import Booking, BookingStatus

__all__ = ["User", "UserRole", "FitnessClass", "Booking", "BookingStatus"]

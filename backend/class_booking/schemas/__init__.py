from class_booking.schemas.user import (
    UserCreate, AdminUserCreate, UserUpdate, UserResponse, UserWithBookingsResponse, UserLogin, Token,
)
from class_booking.schemas.fitness_class import (
    ClassCreate, ClassUpdate, ClassResponse, ClassDetailResponse, ClassListResponse, ParticipantResponse,
)
from class_booking.schemas.booking import (
    BookingResponse, BookingOutcomeResponse, BookingCancelResponse, UserBookingResponse,
    ClassParticipantsResponse, BookingErrorResponse,
)

__all__ = [
    "UserCreate", "AdminUserCreate", "UserUpdate", "UserResponse", "UserWithBookingsResponse",
    "UserLogin", "Token",
    "ClassCreate", "ClassUpdate", "ClassResponse", "ClassDetailResponse", "ClassListResponse",
    "ParticipantResponse",
    "BookingResponse", "BookingOutcomeResponse", "BookingCancelResponse", "UserBookingResponse",
    "ClassParticipantsResponse", "BookingErrorResponse",
]

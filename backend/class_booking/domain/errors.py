"""
Booking error taxonomy.

Every error has a stable, enumerable `code` (what happened) and a `kind`
(how callers should treat it). The API layer maps kinds to HTTP statuses;
free-text messages are for humans only.
"""

import enum


class BookingErrorKind(str, enum.Enum):
    NOT_FOUND = "not_found"
    PRECONDITION_FAILED = "precondition_failed"
    CAPACITY = "capacity"
    CONFLICT = "conflict"


class BookingErrorCode(str, enum.Enum):
    CLASS_NOT_FOUND = "class_not_found"
    BOOKING_NOT_FOUND = "booking_not_found"
    CLASS_ALREADY_STARTED = "class_already_started"
    ALREADY_BOOKED = "already_booked"
    ALREADY_CANCELLED = "already_cancelled"
    CLASS_FULL = "class_full"
    CONFLICT = "conflict"


class BookingError(Exception):
    code: BookingErrorCode
    kind: BookingErrorKind
    default_message: str = "Booking failed"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(code={self.code.value}, context={self.context})>"


class ClassNotFound(BookingError):
    code = BookingErrorCode.CLASS_NOT_FOUND
    kind = BookingErrorKind.NOT_FOUND
    default_message = "Class not found"


class BookingNotFound(BookingError):
    code = BookingErrorCode.BOOKING_NOT_FOUND
    kind = BookingErrorKind.NOT_FOUND
    default_message = "Booking not found"


class ClassAlreadyStarted(BookingError):
    code = BookingErrorCode.CLASS_ALREADY_STARTED
    kind = BookingErrorKind.PRECONDITION_FAILED
    default_message = "Cannot book a class that has already started"


class AlreadyBooked(BookingError):
    code = BookingErrorCode.ALREADY_BOOKED
    kind = BookingErrorKind.PRECONDITION_FAILED
    default_message = "You have already booked this class"


class AlreadyCancelled(BookingError):
    code = BookingErrorCode.ALREADY_CANCELLED
    kind = BookingErrorKind.PRECONDITION_FAILED
    default_message = "Booking is already cancelled"


class ClassFull(BookingError):
    code = BookingErrorCode.CLASS_FULL
    kind = BookingErrorKind.CAPACITY
    default_message = "Class is full"


class BookingConflict(BookingError):
    code = BookingErrorCode.CONFLICT
    kind = BookingErrorKind.CONFLICT
    default_message = "Booking failed due to high demand. Please try again."


class WriteConflict(Exception):
    """
    Raised by a store when a conditional write loses a race.

    Internal to the booking core: the capacity guard rolls back, retries and
    only surfaces BookingConflict once attempts are exhausted.
    """

"""
Translate booking core errors into HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from class_booking.domain.errors import BookingError, BookingErrorKind

STATUS_BY_KIND = {
    BookingErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    BookingErrorKind.PRECONDITION_FAILED: status.HTTP_400_BAD_REQUEST,
    BookingErrorKind.CAPACITY: status.HTTP_400_BAD_REQUEST,
    BookingErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
}


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    headers = {"Retry-After": "1"} if exc.kind == BookingErrorKind.CONFLICT else None
    return JSONResponse(
        status_code=STATUS_BY_KIND[exc.kind],
        content={"detail": exc.message, "code": exc.code.value},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)

"""Exceptions raised by the booking workflow.

Each carries the HTTP status the API answers with.
"""

from __future__ import annotations

from roombook.domain.models import ConflictResult


class BookingError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidBookingRequest(BookingError):
    status_code = 400


class InvalidBookingState(BookingError):
    status_code = 400


class PermissionDenied(BookingError):
    status_code = 403


class BookingNotFound(BookingError):
    status_code = 404

    def __init__(self, booking_id: str) -> None:
        super().__init__("Booking not found")
        self.booking_id = booking_id


class RoomNotFound(BookingError):
    status_code = 404

    def __init__(self, room_name: str) -> None:
        super().__init__(f'Room "{room_name}" not found')
        self.room_name = room_name


class BookingConflictError(BookingError):
    """The requested time overlaps a booking that holds the room."""

    status_code = 409

    def __init__(self, conflict: ConflictResult, message: str | None = None) -> None:
        super().__init__(message or conflict.message or "Time slot conflicts with an existing booking")
        self.conflict = conflict


class NotAuthenticated(BookingError):
    status_code = 401

    def __init__(self) -> None:
        super().__init__("User email not found. Please log in again.")

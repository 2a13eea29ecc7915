"""FastAPI application for the meeting room booking service."""

from __future__ import annotations

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from roombook.config import get_settings
from roombook.domain.bus import EventBus
from roombook.domain.errors import (
    BookingConflictError,
    BookingError,
    InvalidBookingRequest,
    NotAuthenticated,
    RoomNotFound,
)
from roombook.domain.handlers import HandlerRegistry
from roombook.domain.models import (
    AuthContext,
    AvailableSlotsResponse,
    Booking,
    BookingCreateRequest,
    BookingStatus,
    BookingUpdateRequest,
    HistoryEntry,
    Notification,
    Role,
    Room,
    StatusChangeRequest,
)
from roombook.log import setup_logging
from roombook.repos.memory import (
    HistoryRepository,
    NotificationRepository,
    create_booking_repository,
    create_room_repository,
)
from roombook.services.bookings import BookingService
from roombook.services.conflicts import available_slots
from roombook.services.statistics import booking_statistics

settings = get_settings()
setup_logging(settings.log_level, settings.log_file)

app = FastAPI(title="Meeting Room Booking Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
booking_repo = create_booking_repository(seed=settings.seed_bookings)
room_repo = create_room_repository()
history_repo = HistoryRepository()
notification_repo = NotificationRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    booking_repo=booking_repo,
    history_repo=history_repo,
    notification_repo=notification_repo,
)
booking_service = BookingService(bus=event_bus, booking_repo=booking_repo, room_repo=room_repo)


# ── Error handling ────────────────────────────────────────────────────


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    body: dict = {"message": exc.message}
    if isinstance(exc, BookingConflictError):
        booking = exc.conflict.conflicting_booking
        body["conflictingBooking"] = (
            booking.model_dump(mode="json", by_alias=True) if booking else None
        )
        body["type"] = "BOOKING_CONFLICT"
    return JSONResponse(status_code=exc.status_code, content=body)


# ── Caller identity ───────────────────────────────────────────────────


def get_auth(
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
    x_employee_id: str | None = Header(default=None),
    x_user_role: Role = Header(default=Role.EMPLOYEE),
) -> AuthContext:
    """Build the caller's AuthContext from request headers."""
    if not x_user_email:
        raise NotAuthenticated()
    return AuthContext(
        email=x_user_email.strip().lower(),
        name=x_user_name or "Unknown User",
        employee_id=x_employee_id,
        role=x_user_role,
    )


def _sorted(bookings: list[Booking]) -> list[Booking]:
    return sorted(bookings, key=lambda b: (b.date, b.start_time))


# ── Rooms ─────────────────────────────────────────────────────────────


@app.get("/rooms", response_model=list[Room])
def list_rooms(floor: str | None = None) -> list[Room]:
    """Return the room catalogue, optionally for one floor."""
    rooms = room_repo.list_all()
    if floor and floor != "all":
        rooms = [r for r in rooms if r.floor == floor]
    return rooms


@app.get("/rooms/{room_id}", response_model=Room)
def get_room(room_id: str) -> Room:
    room = room_repo.get(room_id)
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


# ── Bookings ──────────────────────────────────────────────────────────


@app.post("/bookings", response_model=Booking, status_code=201)
def create_booking(payload: BookingCreateRequest, auth: AuthContext = Depends(get_auth)) -> Booking:
    """Create a booking; 409 when the slot is already held."""
    return booking_service.create(payload, auth)


@app.get("/bookings", response_model=list[Booking])
def list_bookings(
    room: str | None = None,
    date: str | None = None,
    status: BookingStatus | None = None,
    auth: AuthContext = Depends(get_auth),
) -> list[Booking]:
    """Return all bookings, filtered by room, date and status when given."""
    bookings = [
        b
        for b in booking_repo.list_all()
        if (room is None or b.room_name == room)
        and (date is None or b.date == date)
        and (status is None or b.status == status)
    ]
    return _sorted(bookings)


@app.get("/bookings/my", response_model=list[Booking])
def list_my_bookings(auth: AuthContext = Depends(get_auth)) -> list[Booking]:
    return _sorted(booking_repo.list_by_email(auth.email))


@app.get("/bookings/date-range", response_model=list[Booking])
def list_bookings_in_range(
    start_date: str,
    end_date: str,
    room: str | None = None,
    auth: AuthContext = Depends(get_auth),
) -> list[Booking]:
    """Return bookings dated between start_date and end_date inclusive."""
    bookings = [
        b
        for b in booking_repo.list_all()
        if start_date <= b.date <= end_date and (room is None or b.room_name == room)
    ]
    return _sorted(bookings)


@app.get("/bookings/availability", response_model=list[Booking])
def room_availability(
    date: str, room: str | None = None, auth: AuthContext = Depends(get_auth)
) -> list[Booking]:
    """Return the bookings that hold a room on *date*, earliest first."""
    bookings = [
        b
        for b in booking_repo.list_all()
        if b.date == date and b.occupies_room and (room is None or b.room_name == room)
    ]
    return sorted(bookings, key=lambda b: b.start_time)


@app.get("/bookings/available-slots", response_model=AvailableSlotsResponse)
def list_available_slots(
    room: str,
    date: str,
    duration: int = Query(gt=0),
    auth: AuthContext = Depends(get_auth),
) -> AvailableSlotsResponse:
    """Return the canonical start times still free for *room* on *date*."""
    if room_repo.get_by_name(room) is None:
        raise RoomNotFound(room)
    slots = available_slots(
        room, date, duration, existing_bookings=booking_repo.list_for_room_date(room, date)
    )
    return AvailableSlotsResponse(room=room, date=date, duration=duration, slots=slots)


@app.get("/bookings/statistics")
def get_statistics(
    filter_type: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    auth: AuthContext = Depends(get_auth),
) -> dict:
    try:
        data = booking_statistics(
            booking_repo.list_all(),
            auth,
            filter_type=filter_type,
            start_date=start_date,
            end_date=end_date,
            total_rooms=len(room_repo.list_all()),
        )
    except ValueError as exc:
        raise InvalidBookingRequest(str(exc)) from exc
    return {
        "data": data,
        "userRole": auth.role,
        "filter": {"startDate": start_date, "endDate": end_date, "filterType": filter_type},
    }


@app.get("/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: str, auth: AuthContext = Depends(get_auth)) -> Booking:
    return booking_service.get(booking_id)


@app.put("/bookings/{booking_id}", response_model=Booking)
def update_booking(
    booking_id: str, payload: BookingUpdateRequest, auth: AuthContext = Depends(get_auth)
) -> Booking:
    """Edit a booking; the booking never conflicts with itself."""
    return booking_service.update(booking_id, payload, auth)


@app.put("/bookings/{booking_id}/approve", response_model=Booking)
def approve_booking(booking_id: str, auth: AuthContext = Depends(get_auth)) -> Booking:
    return booking_service.approve(booking_id, auth)


@app.put("/bookings/{booking_id}/reject", response_model=Booking)
def reject_booking(
    booking_id: str,
    body: StatusChangeRequest | None = None,
    auth: AuthContext = Depends(get_auth),
) -> Booking:
    return booking_service.reject(booking_id, auth, reason=body.reason if body else None)


@app.patch("/bookings/{booking_id}/cancel", response_model=Booking)
def cancel_booking(
    booking_id: str,
    body: StatusChangeRequest | None = None,
    auth: AuthContext = Depends(get_auth),
) -> Booking:
    return booking_service.cancel(booking_id, auth, reason=body.reason if body else None)


@app.delete("/bookings/{booking_id}", status_code=200)
def delete_booking(booking_id: str, auth: AuthContext = Depends(get_auth)) -> dict:
    booking_service.delete(booking_id, auth)
    return {"status": "deleted"}


# ── Notifications & history ───────────────────────────────────────────


@app.get("/notifications", response_model=list[Notification])
def list_notifications(
    unread_only: bool = False, auth: AuthContext = Depends(get_auth)
) -> list[Notification]:
    """Return the caller's notifications, newest first."""
    return notification_repo.list_for_recipient(auth.email, unread_only=unread_only)


@app.get("/notifications/unread-count")
def unread_notification_count(auth: AuthContext = Depends(get_auth)) -> dict:
    return {"count": notification_repo.unread_count(auth.email)}


@app.patch("/notifications/mark-all-read")
def mark_all_notifications_read(auth: AuthContext = Depends(get_auth)) -> dict:
    return {"updated": notification_repo.mark_all_read(auth.email)}


@app.patch("/notifications/{notification_id}/read", response_model=Notification)
def mark_notification_read(
    notification_id: str, auth: AuthContext = Depends(get_auth)
) -> Notification:
    notification = notification_repo.get(notification_id)
    if notification is None or notification.recipient.lower() != auth.email:
        raise HTTPException(status_code=404, detail="Notification not found")
    notification.read = True
    return notification


@app.get("/history", response_model=list[HistoryEntry])
def list_history(auth: AuthContext = Depends(get_auth)) -> list[HistoryEntry]:
    """Return the caller's booking history, most recently changed first."""
    return history_repo.list_for_user(auth.email)

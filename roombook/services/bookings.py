"""Booking workflow: create, edit, approve, reject, cancel and delete bookings.

Every write re-runs the conflict scan against the repository, which makes the
backend the authoritative check behind the client-side pre-check. Successful
state changes are published on the event bus so history and notifications
follow along.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from loguru import logger

from roombook.domain.bus import EventBus
from roombook.domain.errors import (
    BookingConflictError,
    BookingNotFound,
    InvalidBookingRequest,
    InvalidBookingState,
    PermissionDenied,
    RoomNotFound,
)
from roombook.domain.events import (
    BookingApproved,
    BookingCancelled,
    BookingCreated,
    BookingRejected,
    BookingUpdated,
)
from roombook.domain.models import (
    AuthContext,
    Booking,
    BookingCreateRequest,
    BookingStatus,
    BookingUpdateRequest,
    Candidate,
    ConflictResult,
    Role,
    Room,
    RoomStatus,
)
from roombook.repos.memory import BookingRepository, RoomRepository
from roombook.services.conflicts import find_conflict, find_conflicts
from roombook.services.timeslots import compute_end_time


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidBookingRequest(f"Invalid date {value!r}") from exc


class BookingService:
    """Applies booking workflow rules on top of the in-memory repositories."""

    def __init__(
        self,
        bus: EventBus,
        booking_repo: BookingRepository,
        room_repo: RoomRepository,
    ) -> None:
        self.bus = bus
        self.booking_repo = booking_repo
        self.room_repo = room_repo

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, booking_id: str) -> Booking:
        booking = self.booking_repo.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking

    def check(self, candidate: Candidate) -> ConflictResult:
        """Run the conflict scan for *candidate* against the stored bookings."""
        if not candidate.is_complete:
            return ConflictResult.none()
        existing = self.booking_repo.list_for_room_date(candidate.room_name, candidate.date)
        conflicts = find_conflicts(candidate, existing)
        if len(conflicts) > 1:
            logger.debug(
                "{} bookings overlap {} {} {}",
                len(conflicts),
                candidate.room_name,
                candidate.date,
                candidate.start_time,
            )
        return find_conflict(candidate, conflicts)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(
        self, request: BookingCreateRequest, auth: AuthContext, today: date | None = None
    ) -> Booking:
        self._require_bookable_room(request.room_name, request.attendees)
        if _parse_date(request.date) < (today or date.today()):
            raise InvalidBookingRequest("Cannot book rooms for past dates")
        end_time = self._end_time(request.start_time, request.duration_minutes)

        conflict = self.check(request.to_candidate())
        if conflict.has_conflict:
            logger.warning(
                "Rejected booking of {} on {} at {} for {}: {}",
                request.room_name,
                request.date,
                request.start_time,
                auth.email,
                conflict.message,
            )
            raise BookingConflictError(conflict)

        booking = Booking(
            room_name=request.room_name,
            date=request.date,
            start_time=request.start_time,
            end_time=end_time,
            booked_by=auth.as_booked_by(),
            purpose=request.purpose,
            attendees=request.attendees,
            manager_email=request.manager_email,
        )
        # Bookings made by managers, HR and admins need no approval.
        if auth.is_privileged:
            booking.status = BookingStatus.APPROVED
            booking.approved_by = auth.name
            booking.approved_at = _utcnow()

        self.booking_repo.add(booking)
        logger.info(
            "Created {} booking {} for {} on {} {}-{} by {}",
            booking.status,
            booking.id,
            booking.room_name,
            booking.date,
            booking.start_time,
            booking.end_time,
            auth.email,
        )
        self.bus.publish(BookingCreated(booking_id=booking.id))
        return booking

    def update(self, booking_id: str, request: BookingUpdateRequest, auth: AuthContext) -> Booking:
        booking = self.get(booking_id)
        self._require_owner_or_privileged(booking, auth, "update")

        attendees = request.attendees or booking.attendees
        if request.reschedules:
            room_name = request.room_name or booking.room_name
            booking_date = request.date or booking.date
            start_time = request.start_time or booking.start_time
            duration = request.duration_minutes or booking.duration_minutes
            _parse_date(booking_date)
            self._require_bookable_room(room_name, attendees)
            end_time = self._end_time(start_time, duration)

            conflict = self.check(
                Candidate(
                    room_name=room_name,
                    date=booking_date,
                    start_time=start_time,
                    duration_minutes=duration,
                    exclude_booking_id=booking.id,
                )
            )
            if conflict.has_conflict:
                logger.warning("Rejected edit of booking {}: {}", booking.id, conflict.message)
                raise BookingConflictError(conflict)

            booking.room_name = room_name
            booking.date = booking_date
            booking.start_time = start_time
            booking.end_time = end_time
        elif request.attendees is not None:
            self._require_bookable_room(booking.room_name, attendees)

        if request.purpose is not None:
            booking.purpose = request.purpose
        booking.attendees = attendees
        booking.updated_at = _utcnow()

        logger.info("Updated booking {} by {}", booking.id, auth.email)
        self.bus.publish(BookingUpdated(booking_id=booking.id, updated_by=auth.name))
        return booking

    def approve(self, booking_id: str, auth: AuthContext) -> Booking:
        self._require_privileged(auth, "approve")
        booking = self.get(booking_id)
        if booking.status != BookingStatus.PENDING:
            raise InvalidBookingState(f"Cannot approve booking with status: {booking.status}")

        # The slot may have been taken since the request was made.
        conflict = self.check(
            Candidate(
                room_name=booking.room_name,
                date=booking.date,
                start_time=booking.start_time,
                duration_minutes=booking.duration_minutes,
                exclude_booking_id=booking.id,
            )
        )
        if conflict.has_conflict:
            logger.warning("Cannot approve booking {}: {}", booking.id, conflict.message)
            raise BookingConflictError(
                conflict,
                "Cannot approve - time slot conflicts with another booking",
            )

        booking.status = BookingStatus.APPROVED
        booking.approved_by = auth.name
        booking.approved_at = _utcnow()
        booking.updated_at = booking.approved_at

        logger.info("Approved booking {} by {}", booking.id, auth.email)
        self.bus.publish(BookingApproved(booking_id=booking.id, approved_by=auth.name))
        return booking

    def reject(self, booking_id: str, auth: AuthContext, reason: str | None = None) -> Booking:
        self._require_privileged(auth, "reject")
        booking = self.get(booking_id)
        if booking.status != BookingStatus.PENDING:
            raise InvalidBookingState(f"Cannot reject booking with status: {booking.status}")

        booking.status = BookingStatus.REJECTED
        booking.rejection_reason = reason
        booking.updated_at = _utcnow()

        logger.info("Rejected booking {} by {}", booking.id, auth.email)
        self.bus.publish(
            BookingRejected(booking_id=booking.id, rejected_by=auth.name, reason=reason)
        )
        return booking

    def cancel(self, booking_id: str, auth: AuthContext, reason: str | None = None) -> Booking:
        booking = self.get(booking_id)
        self._require_owner_or_privileged(booking, auth, "cancel")
        if booking.status in (BookingStatus.CANCELLED, BookingStatus.REJECTED):
            raise InvalidBookingState(f"Cannot cancel booking with status: {booking.status}")

        booking.status = BookingStatus.CANCELLED
        if reason:
            booking.rejection_reason = reason
        booking.updated_at = _utcnow()

        logger.info("Cancelled booking {} by {}", booking.id, auth.email)
        self.bus.publish(
            BookingCancelled(booking_id=booking.id, cancelled_by=auth.name, reason=reason)
        )
        return booking

    def delete(self, booking_id: str, auth: AuthContext) -> None:
        if auth.role != Role.ADMIN:
            raise PermissionDenied("Only administrators can delete bookings")
        self.get(booking_id)
        self.booking_repo.delete(booking_id)
        logger.info("Deleted booking {} by {}", booking_id, auth.email)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _require_bookable_room(self, room_name: str, attendees: int) -> Room:
        room = self.room_repo.get_by_name(room_name)
        if room is None:
            raise RoomNotFound(room_name)
        if room.status != RoomStatus.ACTIVE:
            raise InvalidBookingRequest(f'Room "{room_name}" is not available ({room.status})')
        if attendees > room.capacity:
            raise InvalidBookingRequest(
                f'Room "{room_name}" holds at most {room.capacity} attendees'
            )
        return room

    @staticmethod
    def _end_time(start_time: str, duration: int) -> str:
        try:
            return compute_end_time(start_time, duration)
        except ValueError as exc:
            raise InvalidBookingRequest(str(exc)) from exc

    @staticmethod
    def _require_privileged(auth: AuthContext, action: str) -> None:
        if not auth.is_privileged:
            raise PermissionDenied(f"Unauthorized to {action} bookings")

    @staticmethod
    def _require_owner_or_privileged(booking: Booking, auth: AuthContext, action: str) -> None:
        owner = (booking.booked_by.email or "").lower()
        if not auth.is_privileged and owner != auth.email.lower():
            raise PermissionDenied(f"Unauthorized to {action} this booking")

"""Booking lifecycle handlers, wired up at application startup."""

from __future__ import annotations

from loguru import logger

from roombook.domain.bus import EventBus
from roombook.domain.events import (
    BookingApproved,
    BookingCancelled,
    BookingCreated,
    BookingEvent,
    BookingRejected,
    BookingUpdated,
)
from roombook.domain.models import (
    Booking,
    BookingStatus,
    HistoryEntry,
    Notification,
    NotificationType,
)
from roombook.repos.memory import (
    BookingRepository,
    HistoryRepository,
    NotificationRepository,
)
from roombook.services.conflicts import format_booking_date


class HandlerRegistry:
    """Wires booking lifecycle handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        booking_repo: BookingRepository,
        history_repo: HistoryRepository,
        notification_repo: NotificationRepository,
    ) -> None:
        self.bus = bus
        self.booking_repo = booking_repo
        self.history_repo = history_repo
        self.notification_repo = notification_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(BookingCreated, self.on_booking_created)
        self.bus.subscribe(BookingUpdated, self.on_booking_updated)
        self.bus.subscribe(BookingApproved, self.on_booking_approved)
        self.bus.subscribe(BookingRejected, self.on_booking_rejected)
        self.bus.subscribe(BookingCancelled, self.on_booking_cancelled)
        self.bus.subscribe(BookingEvent, self.on_any_event)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _record_history(self, booking: Booking) -> None:
        """Create or refresh the history entry mirroring *booking*."""
        if not booking.booked_by.email:
            return
        existing = self.history_repo.get_for_booking(booking.id)
        entry = HistoryEntry(
            user_email=booking.booked_by.email,
            booking_id=booking.id,
            title=booking.purpose or "Meeting",
            date=booking.date,
            time=f"{booking.start_time} - {booking.end_time}",
            room=booking.room_name,
            attendees=booking.attendees,
            status=booking.status,
            organizer=booking.booked_by.name or "Unknown User",
        )
        if existing is not None:
            entry.id = existing.id
        self.history_repo.upsert(entry)

    def _notify(
        self,
        recipient: str | None,
        booking: Booking,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> None:
        if not recipient:
            return
        self.notification_repo.add(
            Notification(
                recipient=recipient,
                type=notification_type,
                title=title,
                message=message,
                booking_id=booking.id,
                room_name=booking.room_name,
                booking_date=booking.date,
                booking_time=f"{booking.start_time} - {booking.end_time}",
            )
        )

    @staticmethod
    def _describe(booking: Booking) -> str:
        return (
            f'"{booking.room_name}" on {format_booking_date(booking.date)} '
            f"from {booking.start_time} to {booking.end_time}"
        )

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_any_event(self, event: BookingEvent) -> None:
        logger.info("Booking {}: {}", event.booking_id, type(event).__name__)

    def on_booking_created(self, event: BookingCreated) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return

        # 1. History
        self._record_history(booking)

        # 2. Confirmation to the booker
        if booking.status == BookingStatus.APPROVED:
            title = "Booking confirmed"
            message = f"Your booking of {self._describe(booking)} is confirmed."
        else:
            title = "Booking submitted"
            message = f"Your booking of {self._describe(booking)} is awaiting approval."
        self._notify(
            booking.booked_by.email, booking, NotificationType.BOOKING_CREATED, title, message
        )

        # 3. Approval request to the chosen manager
        if booking.status == BookingStatus.PENDING:
            self._notify(
                booking.manager_email,
                booking,
                NotificationType.BOOKING_REQUEST,
                "New booking request",
                f"{booking.booked_by.name or 'An employee'} requested {self._describe(booking)}.",
            )

    def on_booking_updated(self, event: BookingUpdated) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return

        self._record_history(booking)
        self._notify(
            booking.booked_by.email,
            booking,
            NotificationType.BOOKING_UPDATED,
            "Booking updated",
            f"Your booking is now {self._describe(booking)} (updated by {event.updated_by}).",
        )

    def on_booking_approved(self, event: BookingApproved) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return

        self._record_history(booking)
        self._notify(
            booking.booked_by.email,
            booking,
            NotificationType.BOOKING_APPROVED,
            "Booking approved",
            f"{event.approved_by} approved your booking of {self._describe(booking)}.",
        )

    def on_booking_rejected(self, event: BookingRejected) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return

        self._record_history(booking)
        message = f"{event.rejected_by} rejected your booking of {self._describe(booking)}."
        if event.reason:
            message += f" Reason: {event.reason}"
        self._notify(
            booking.booked_by.email,
            booking,
            NotificationType.BOOKING_REJECTED,
            "Booking rejected",
            message,
        )

    def on_booking_cancelled(self, event: BookingCancelled) -> None:
        booking = self.booking_repo.get(event.booking_id)
        if booking is None:
            return

        self._record_history(booking)
        message = f"The booking of {self._describe(booking)} was cancelled by {event.cancelled_by}."
        if event.reason:
            message += f" Reason: {event.reason}"

        recipients = {booking.booked_by.email, booking.manager_email} - {None}
        for recipient in sorted(recipients):
            self._notify(
                recipient,
                booking,
                NotificationType.BOOKING_CANCELLED,
                "Booking cancelled",
                message,
            )
        logger.debug("Cancellation of {} sent to {} recipient(s)", booking.id, len(recipients))

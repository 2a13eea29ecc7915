"""Domain events emitted during the booking lifecycle."""

from __future__ import annotations

from pydantic import BaseModel


class BookingEvent(BaseModel):
    """Base for every booking lifecycle event; subscribe to it to see them all."""

    booking_id: str


class BookingCreated(BookingEvent):
    """Fired when a new Booking is stored."""


class BookingUpdated(BookingEvent):
    """Fired when a booking is edited (time, room, purpose, attendees)."""

    updated_by: str


class BookingApproved(BookingEvent):
    approved_by: str


class BookingRejected(BookingEvent):
    rejected_by: str
    reason: str | None = None


class BookingCancelled(BookingEvent):
    """Fired when the booker (or a privileged user) cancels a booking."""

    cancelled_by: str
    reason: str | None = None

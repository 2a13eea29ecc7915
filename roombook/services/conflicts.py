"""Service for detecting room booking conflicts and free start times."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from roombook.domain.models import Booking, Candidate, ConflictResult
from roombook.services.timeslots import CANONICAL_SLOTS, MINUTES_PER_DAY, time_to_minutes


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval test on minutes since midnight.

    Exact boundary touches (end == start) are NOT considered overlaps, so
    back-to-back bookings are allowed.
    """
    return start_a < end_b and start_b < end_a


def find_conflicts(candidate: Candidate, existing_bookings: Iterable[Booking]) -> list[Booking]:
    """Return every room-occupying booking that overlaps *candidate*, in input order.

    An incomplete candidate never conflicts.
    """
    if not candidate.is_complete:
        return []

    start = time_to_minutes(candidate.start_time)
    end = start + int(candidate.duration_minutes)
    return [
        booking
        for booking in existing_bookings
        if booking.room_name == candidate.room_name
        and booking.date == candidate.date
        and booking.occupies_room
        and booking.id != candidate.exclude_booking_id
        and overlaps(
            start,
            end,
            time_to_minutes(booking.start_time),
            time_to_minutes(booking.end_time),
        )
    ]


def find_conflict(candidate: Candidate, existing_bookings: Iterable[Booking]) -> ConflictResult:
    """Return the first booking that blocks *candidate*, or a no-conflict result."""
    conflicts = find_conflicts(candidate, existing_bookings)
    if not conflicts:
        return ConflictResult.none()

    booking = conflicts[0]
    booked_by = booking.booked_by.name or "Unknown User"
    return ConflictResult(
        has_conflict=True,
        conflicting_booking=booking,
        booked_by=booked_by,
        time_slot=f"{booking.start_time} to {booking.end_time}",
        message=(
            f'This time slot is already booked! The room "{booking.room_name}" is reserved '
            f"from {booking.start_time} to {booking.end_time} on {format_booking_date(booking.date)} "
            f"by {booked_by}."
        ),
    )


def available_slots(
    room_name: str | None,
    date: str | None,
    duration_minutes: int | None,
    canonical_slots: Sequence[str] = CANONICAL_SLOTS,
    existing_bookings: Iterable[Booking] = (),
    exclude_booking_id: str | None = None,
) -> list[str]:
    """Return the slots in *canonical_slots* that can start a booking without conflict.

    Until room, date and duration are all known every slot is offered.
    Slots whose booking would run past midnight are left out. Pass
    *exclude_booking_id* when rescheduling a booking so it does not block itself.
    """
    if not (room_name and date and duration_minutes):
        return list(canonical_slots)

    bookings = list(existing_bookings)
    free: list[str] = []
    for slot in canonical_slots:
        if time_to_minutes(slot) + int(duration_minutes) >= MINUTES_PER_DAY:
            continue
        candidate = Candidate(
            room_name=room_name,
            date=date,
            start_time=slot,
            duration_minutes=duration_minutes,
            exclude_booking_id=exclude_booking_id,
        )
        if not find_conflict(candidate, bookings).has_conflict:
            free.append(slot)
    return free


def format_booking_date(date_str: str) -> str:
    """Render ``YYYY-MM-DD`` as e.g. ``30 Jan 2025``; unparseable input is returned as-is."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").strftime("%d %b %Y")
    except ValueError:
        return date_str

"""Tests for the conflict-detection service."""

import pytest

from roombook.domain.models import BookedBy, Booking, BookingStatus, Candidate
from roombook.services.conflicts import (
    available_slots,
    find_conflict,
    find_conflicts,
    overlaps,
)
from roombook.services.timeslots import CANONICAL_SLOTS

_DATE = "2025-01-30"


def _make_booking(
    start: str,
    end: str,
    room: str = "Room X",
    date: str = _DATE,
    status: BookingStatus = BookingStatus.APPROVED,
    name: str = "Dana Whitfield",
) -> Booking:
    return Booking(
        room_name=room,
        date=date,
        start_time=start,
        end_time=end,
        status=status,
        booked_by=BookedBy(name=name, email="dana@example.com"),
    )


def _candidate(start: str = "10:30", duration: int = 30, **overrides) -> Candidate:
    fields = dict(room_name="Room X", date=_DATE, start_time=start, duration_minutes=duration)
    fields.update(overrides)
    return Candidate(**fields)


# ---------------------------------------------------------------------------
# Overlap predicate
# ---------------------------------------------------------------------------


def test_touching_intervals_do_not_overlap():
    """09:00-10:00 and 10:00-11:00 can be booked back to back."""
    assert overlaps(540, 600, 600, 660) is False
    assert overlaps(600, 660, 540, 600) is False


def test_contained_interval_overlaps():
    assert overlaps(540, 660, 570, 600) is True


@pytest.mark.parametrize(
    "a, b",
    [
        ((540, 600), (570, 630)),
        ((540, 600), (600, 660)),
        ((540, 660), (570, 600)),
        ((600, 660), (480, 540)),
    ],
)
def test_overlap_is_symmetric(a, b):
    assert overlaps(*a, *b) == overlaps(*b, *a)


# ---------------------------------------------------------------------------
# Conflict scanner
# ---------------------------------------------------------------------------


def test_partial_overlap_reports_conflict():
    existing = [_make_booking("10:00", "11:00")]

    result = find_conflict(_candidate("10:30", 30), existing)

    assert result.has_conflict is True
    assert result.conflicting_booking is existing[0]
    assert result.booked_by == "Dana Whitfield"
    assert result.time_slot == "10:00 to 11:00"
    assert result.message == (
        'This time slot is already booked! The room "Room X" is reserved '
        "from 10:00 to 11:00 on 30 Jan 2025 by Dana Whitfield."
    )


def test_exact_boundary_no_conflict():
    """A candidate starting when the existing booking ends does not conflict."""
    existing = [_make_booking("10:00", "11:00")]

    result = find_conflict(_candidate("11:00", 30), existing)

    assert result.has_conflict is False
    assert result.conflicting_booking is None


@pytest.mark.parametrize("status", [BookingStatus.REJECTED, BookingStatus.CANCELLED])
def test_inert_statuses_never_conflict(status):
    existing = [_make_booking("10:00", "11:00", status=status)]
    assert find_conflict(_candidate("10:00", 60), existing).has_conflict is False


def test_pending_booking_holds_the_room():
    existing = [_make_booking("10:00", "11:00", status=BookingStatus.PENDING)]
    assert find_conflict(_candidate("10:15", 30), existing).has_conflict is True


def test_other_room_or_date_does_not_conflict():
    existing = [
        _make_booking("10:00", "11:00", room="Room Y"),
        _make_booking("10:00", "11:00", date="2025-01-31"),
    ]
    assert find_conflict(_candidate("10:00", 60), existing).has_conflict is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"room_name": None},
        {"room_name": ""},
        {"date": None},
        {"start_time": None},
        {"start_time": ""},
        {"duration_minutes": None},
        {"duration_minutes": 0},
    ],
)
def test_incomplete_candidate_never_conflicts(overrides):
    existing = [_make_booking("09:00", "18:00")]
    result = find_conflict(_candidate("10:00", 60, **overrides), existing)
    assert result.has_conflict is False


def test_first_overlapping_booking_wins():
    existing = [
        _make_booking("09:00", "09:30", name="Early"),
        _make_booking("10:30", "11:30", name="Second"),
        _make_booking("10:00", "10:45", name="Third"),
    ]

    result = find_conflict(_candidate("10:00", 60), existing)

    assert result.booked_by == "Second"
    assert [b.booked_by.name for b in find_conflicts(_candidate("10:00", 60), existing)] == [
        "Second",
        "Third",
    ]


def test_editing_a_booking_never_conflicts_with_itself():
    booking = _make_booking("10:00", "11:00")

    result = find_conflict(
        _candidate("10:00", 60, exclude_booking_id=booking.id), [booking]
    )

    assert result.has_conflict is False


def test_excluded_booking_does_not_hide_other_conflicts():
    booking = _make_booking("10:00", "11:00")
    other = _make_booking("11:00", "12:00", name="Neighbour")

    result = find_conflict(
        _candidate("10:30", 60, exclude_booking_id=booking.id), [booking, other]
    )

    assert result.booked_by == "Neighbour"


def test_missing_booker_name_is_reported_as_unknown():
    existing = [_make_booking("10:00", "11:00")]
    existing[0].booked_by = BookedBy()
    assert find_conflict(_candidate("10:00", 30), existing).booked_by == "Unknown User"


def test_malformed_candidate_time_raises():
    with pytest.raises(ValueError):
        find_conflict(_candidate("10h30", 30), [_make_booking("10:00", "11:00")])


# ---------------------------------------------------------------------------
# Availability filter
# ---------------------------------------------------------------------------


def test_available_slots_excludes_every_overlapping_start():
    """A one-hour booking at 10:00-11:00 removes exactly 09:30, 10:00 and 10:30."""
    existing = [_make_booking("10:00", "11:00")]

    slots = available_slots("Room X", _DATE, 60, CANONICAL_SLOTS, existing)

    assert len(slots) == 15
    assert set(CANONICAL_SLOTS) - set(slots) == {"09:30", "10:00", "10:30"}
    assert "09:00" in slots
    assert "11:00" in slots
    assert slots == [s for s in CANONICAL_SLOTS if s in slots]


def test_available_slots_with_missing_fields_returns_everything():
    existing = [_make_booking("09:00", "18:00")]
    assert available_slots(None, _DATE, 60, CANONICAL_SLOTS, existing) == list(CANONICAL_SLOTS)
    assert available_slots("Room X", None, 60, CANONICAL_SLOTS, existing) == list(CANONICAL_SLOTS)
    assert available_slots("Room X", _DATE, None, CANONICAL_SLOTS, existing) == list(CANONICAL_SLOTS)


def test_available_slots_returns_a_fresh_list():
    first = available_slots("Room X", _DATE, 30)
    first.clear()
    assert len(available_slots("Room X", _DATE, 30)) == 18


def test_available_slots_for_rescheduling_ignores_the_booking_itself():
    booking = _make_booking("10:00", "11:00")
    slots = available_slots(
        "Room X", _DATE, 60, CANONICAL_SLOTS, [booking], exclude_booking_id=booking.id
    )
    assert slots == list(CANONICAL_SLOTS)


def test_available_slots_drops_slots_running_past_midnight():
    slots = available_slots("Room X", _DATE, 60, ["22:00", "22:30", "23:00", "23:30"])
    assert slots == ["22:00", "22:30"]

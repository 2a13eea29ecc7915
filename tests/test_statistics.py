"""Tests for dashboard booking statistics."""

from datetime import date

import pytest

from roombook.domain.models import AuthContext, BookedBy, Booking, BookingStatus, Role
from roombook.services.statistics import booking_statistics, date_window

# Wednesday
_TODAY = date(2026, 6, 10)

ALICE = AuthContext(email="alice@example.com", name="Alice")
PRIYA = AuthContext(email="priya@example.com", name="Priya", role=Role.MANAGER)
HANNA = AuthContext(email="hanna@example.com", name="Hanna", role=Role.HR)


def _booking(owner: AuthContext, day: str, status: BookingStatus, manager: str | None = None):
    return Booking(
        room_name="Orion",
        date=day,
        start_time="10:00",
        end_time="11:00",
        status=status,
        booked_by=BookedBy(name=owner.name, email=owner.email),
        manager_email=manager,
    )


@pytest.fixture()
def bookings():
    return [
        _booking(ALICE, "2026-06-10", BookingStatus.APPROVED, PRIYA.email),
        _booking(ALICE, "2026-06-12", BookingStatus.PENDING, PRIYA.email),
        _booking(ALICE, "2026-06-20", BookingStatus.REJECTED, PRIYA.email),
        _booking(PRIYA, "2026-06-11", BookingStatus.APPROVED),
        _booking(HANNA, "2026-06-10", BookingStatus.CANCELLED),
        _booking(HANNA, "2026-07-01", BookingStatus.APPROVED),
    ]


def test_date_windows():
    assert date_window(None, today=_TODAY) is None
    assert date_window("today", today=_TODAY) == ("2026-06-10", "2026-06-11")
    assert date_window("this_week", today=_TODAY) == ("2026-06-08", "2026-06-15")
    assert date_window("this_month", today=_TODAY) == ("2026-06-01", "2026-07-01")
    assert date_window("custom_date", "2026-02-28") == ("2026-02-28", "2026-03-01")
    assert date_window("custom_range", "2026-01-01", "2026-01-15") == ("2026-01-01", "2026-01-15")


@pytest.mark.parametrize(
    "args",
    [("fortnight",), ("custom_date",), ("custom_range", "2026-01-01")],
)
def test_bad_filters_raise(args):
    with pytest.raises(ValueError):
        date_window(*args, today=_TODAY)


def test_employee_counts_own_bookings(bookings):
    stats = booking_statistics(bookings, ALICE, total_rooms=6)
    assert stats == {"total": 3, "available": 6, "approved": 1, "pending": 1, "rejected": 1}


def test_employee_counts_this_week(bookings):
    stats = booking_statistics(bookings, ALICE, filter_type="this_week", today=_TODAY)
    assert stats["total"] == 2
    assert stats["rejected"] == 0


def test_manager_sees_approval_queue(bookings):
    stats = booking_statistics(bookings, PRIYA, total_rooms=6)
    assert stats == {"total": 1, "available": 6, "approved": 1, "pending": 1, "rejected": 1}


def test_hr_sees_cancellations(bookings):
    stats = booking_statistics(bookings, HANNA, filter_type="this_month", today=_TODAY)
    assert stats == {"total": 1, "available": 0, "cancelled": 1}

"""Per-role booking counts for the dashboard status widget."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from dateutil.relativedelta import MO, relativedelta

from roombook.domain.models import AuthContext, Booking, BookingStatus, Role

FILTER_TYPES = ("today", "this_week", "this_month", "custom_date", "custom_range")


def date_window(
    filter_type: str | None,
    start_date: str | None = None,
    end_date: str | None = None,
    today: date | None = None,
) -> tuple[str, str] | None:
    """Return the ``[start, end)`` window of ISO dates selected by *filter_type*.

    ``None`` means no filtering. Raises ``ValueError`` for an unknown filter
    type or a custom filter without the dates it needs.
    """
    if not filter_type:
        return None
    today = today or date.today()

    if filter_type == "today":
        start = today
        end = today + relativedelta(days=1)
    elif filter_type == "this_week":
        start = today + relativedelta(weekday=MO(-1))
        end = start + relativedelta(weeks=1)
    elif filter_type == "this_month":
        start = today + relativedelta(day=1)
        end = start + relativedelta(months=1)
    elif filter_type == "custom_date":
        if not start_date:
            raise ValueError("custom_date requires start_date")
        start = date.fromisoformat(start_date)
        end = start + relativedelta(days=1)
    elif filter_type == "custom_range":
        if not (start_date and end_date):
            raise ValueError("custom_range requires start_date and end_date")
        start = date.fromisoformat(start_date)
        end = date.fromisoformat(end_date)
    else:
        raise ValueError(f"unknown filter type {filter_type!r}, expected one of {FILTER_TYPES}")

    return start.isoformat(), end.isoformat()


def _count(bookings: list[Booking], status: BookingStatus) -> int:
    return sum(1 for b in bookings if b.status == status)


def booking_statistics(
    bookings: Iterable[Booking],
    auth: AuthContext,
    filter_type: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    today: date | None = None,
    total_rooms: int = 0,
) -> dict[str, int]:
    """Count bookings the way each role's dashboard shows them.

    Employees see their own bookings by status. Managers see their own total
    plus the approval queue addressed to them. HR and admins see their own
    totals and cancellations.
    """
    window = date_window(filter_type, start_date, end_date, today)
    scoped = [
        b for b in bookings if window is None or window[0] <= b.date < window[1]
    ]
    email = auth.email.lower()
    own = [b for b in scoped if (b.booked_by.email or "").lower() == email]

    if auth.role == Role.MANAGER:
        queue = [b for b in scoped if (b.manager_email or "").lower() == email]
        return {
            "total": len(own),
            "available": total_rooms,
            "approved": _count(queue, BookingStatus.APPROVED),
            "pending": _count(queue, BookingStatus.PENDING),
            "rejected": _count(queue, BookingStatus.REJECTED),
        }

    if auth.role in (Role.HR, Role.ADMIN):
        return {
            "total": len(own),
            "available": total_rooms,
            "cancelled": _count(own, BookingStatus.CANCELLED),
        }

    return {
        "total": len(own),
        "available": total_rooms,
        "approved": _count(own, BookingStatus.APPROVED),
        "pending": _count(own, BookingStatus.PENDING),
        "rejected": _count(own, BookingStatus.REJECTED),
    }

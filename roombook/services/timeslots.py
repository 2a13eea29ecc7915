"""Wall-clock time arithmetic for booking slots.

Times are ``"HH:MM"`` strings on a 24-hour clock and are compared as integer
minutes since midnight.
"""

from __future__ import annotations

import re

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

# Start times offered by the booking form: 09:00 to 17:30 every 30 minutes.
CANONICAL_SLOTS: tuple[str, ...] = tuple(
    f"{minutes // 60:02d}:{minutes % 60:02d}" for minutes in range(9 * 60, 18 * 60, 30)
)

DURATIONS: tuple[tuple[int, str], ...] = (
    (30, "30 minutes"),
    (60, "1 hour"),
    (90, "1.5 hours"),
    (120, "2 hours"),
    (180, "3 hours"),
    (240, "4 hours"),
)


def time_to_minutes(time_str: str) -> int:
    """Convert ``"HH:MM"`` to minutes since midnight.

    Raises ``ValueError`` for anything that is not a valid 24-hour time.
    """
    if not isinstance(time_str, str):
        raise ValueError(f"time must be a string, got {type(time_str).__name__}")
    match = _TIME_RE.match(time_str.strip())
    if match is None:
        raise ValueError(f"invalid time {time_str!r}, expected HH:MM")
    hours, minutes = match.groups()
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValueError(f"{minutes} minutes is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def compute_end_time(start_time: str, duration_minutes: int) -> str:
    """Return the end time of a booking starting at *start_time*.

    The booking must finish on the same day; an end past 23:59 raises
    ``ValueError`` instead of producing an out-of-range string like ``"26:00"``.
    """
    duration = int(duration_minutes)
    if duration <= 0:
        raise ValueError("duration must be a positive number of minutes")
    end_minutes = time_to_minutes(start_time) + duration
    if end_minutes >= MINUTES_PER_DAY:
        raise ValueError(
            f"booking starting at {start_time} for {duration} minutes crosses midnight"
        )
    return minutes_to_time(end_minutes)

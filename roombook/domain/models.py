"""Domain models for the meeting room booking service."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from roombook.services.timeslots import minutes_to_time, time_to_minutes

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def _check_time(value: str) -> str:
    return minutes_to_time(time_to_minutes(value))


# "HH:MM" on a 24-hour clock; "9:00" is stored as "09:00", malformed values fail validation.
TimeOfDay = Annotated[str, AfterValidator(_check_time)]


class BookingStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Statuses that hold the room; rejected and cancelled bookings are inert.
ROOM_OCCUPYING_STATUSES = frozenset({BookingStatus.APPROVED, BookingStatus.PENDING})


class Role(StrEnum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    HR = "hr"
    ADMIN = "admin"


PRIVILEGED_ROLES = frozenset({Role.MANAGER, Role.HR, Role.ADMIN})


class RoomStatus(StrEnum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class NotificationType(StrEnum):
    BOOKING_REQUEST = "booking_request"
    BOOKING_CREATED = "booking_created"
    BOOKING_APPROVED = "booking_approved"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_UPDATED = "booking_updated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class BookedBy(CamelModel):
    name: str | None = None
    email: str | None = None
    employee_id: str | None = None
    role: Role = Role.EMPLOYEE


class Booking(CamelModel):
    id: str = Field(default_factory=_new_id)
    room_name: str
    date: str = Field(pattern=DATE_PATTERN)
    start_time: TimeOfDay
    end_time: TimeOfDay
    status: BookingStatus = BookingStatus.PENDING
    booked_by: BookedBy = Field(default_factory=BookedBy)
    purpose: str = ""
    attendees: int = 1
    manager_email: str | None = None
    rejection_reason: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> Booking:
        if time_to_minutes(self.end_time) <= time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def duration_minutes(self) -> int:
        return time_to_minutes(self.end_time) - time_to_minutes(self.start_time)

    @property
    def occupies_room(self) -> bool:
        return self.status in ROOM_OCCUPYING_STATUSES


class Candidate(CamelModel):
    """A not-yet-submitted booking request being checked for conflicts.

    Every field is optional: a half-filled booking form is a valid candidate
    that simply never conflicts.
    """

    room_name: str | None = None
    date: str | None = None
    start_time: str | None = None
    duration_minutes: int | None = None
    exclude_booking_id: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.room_name and self.date and self.start_time and self.duration_minutes)


class ConflictResult(CamelModel):
    has_conflict: bool = False
    conflicting_booking: Booking | None = None
    booked_by: str | None = None
    time_slot: str | None = None
    message: str | None = None

    @classmethod
    def none(cls) -> ConflictResult:
        return cls(has_conflict=False)


class Room(CamelModel):
    id: str
    name: str
    capacity: int = Field(gt=0)
    floor: str = ""
    wing: str = ""
    equipment: list[str] = Field(default_factory=list)
    status: RoomStatus = RoomStatus.ACTIVE


class Notification(CamelModel):
    id: str = Field(default_factory=_new_id)
    recipient: str
    type: NotificationType
    title: str
    message: str
    booking_id: str | None = None
    room_name: str | None = None
    booking_date: str | None = None
    booking_time: str | None = None
    read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class HistoryEntry(CamelModel):
    id: str = Field(default_factory=_new_id)
    user_email: str
    booking_id: str
    title: str
    date: str
    time: str
    room: str
    attendees: int
    status: BookingStatus
    organizer: str
    updated_at: datetime = Field(default_factory=_utcnow)


class AuthContext(BaseModel):
    """Identity of the caller, passed explicitly to every operation."""

    email: str
    name: str = "Unknown User"
    employee_id: str | None = None
    role: Role = Role.EMPLOYEE

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    def as_booked_by(self) -> BookedBy:
        return BookedBy(
            name=self.name,
            email=self.email,
            employee_id=self.employee_id,
            role=self.role,
        )


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class BookingCreateRequest(CamelModel):
    room_name: str = Field(min_length=1)
    date: str = Field(pattern=DATE_PATTERN)
    start_time: TimeOfDay
    duration_minutes: int = Field(ge=15, le=480)
    purpose: str = Field(min_length=1, max_length=500)
    attendees: int = Field(ge=1, le=100)
    manager_email: str | None = None

    def to_candidate(self, exclude_booking_id: str | None = None) -> Candidate:
        return Candidate(
            room_name=self.room_name,
            date=self.date,
            start_time=self.start_time,
            duration_minutes=self.duration_minutes,
            exclude_booking_id=exclude_booking_id,
        )


class BookingUpdateRequest(CamelModel):
    """Partial edit; omitted fields keep the booking's current values."""

    room_name: str | None = Field(default=None, min_length=1)
    date: str | None = Field(default=None, pattern=DATE_PATTERN)
    start_time: TimeOfDay | None = None
    duration_minutes: int | None = Field(default=None, ge=15, le=480)
    purpose: str | None = Field(default=None, min_length=1, max_length=500)
    attendees: int | None = Field(default=None, ge=1, le=100)

    @property
    def reschedules(self) -> bool:
        return any(
            value is not None
            for value in (self.room_name, self.date, self.start_time, self.duration_minutes)
        )


class StatusChangeRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class AvailableSlotsResponse(BaseModel):
    room: str
    date: str
    duration: int
    slots: list[str]

"""In-memory repositories for bookings, rooms, notifications and history."""

from __future__ import annotations

from datetime import date, timedelta

from roombook.domain.models import (
    BookedBy,
    Booking,
    BookingStatus,
    HistoryEntry,
    Notification,
    Role,
    Room,
    RoomStatus,
)


class BookingRepository:
    """Dict-backed store for Booking instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Booking] = {}

    def add(self, booking: Booking) -> None:
        self._store[booking.id] = booking

    def get(self, booking_id: str) -> Booking | None:
        return self._store.get(booking_id)

    def list_all(self) -> list[Booking]:
        return list(self._store.values())

    def list_for_room_date(self, room_name: str, booking_date: str) -> list[Booking]:
        return [
            b
            for b in self._store.values()
            if b.room_name == room_name and b.date == booking_date
        ]

    def list_by_email(self, email: str) -> list[Booking]:
        """Return bookings made by *email*, compared case-insensitively."""
        email = email.lower()
        return [
            b
            for b in self._store.values()
            if b.booked_by.email and b.booked_by.email.lower() == email
        ]

    def delete(self, booking_id: str) -> None:
        self._store.pop(booking_id, None)


class RoomRepository:
    """Dict-backed store for Room instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Room] = {}

    def add(self, room: Room) -> None:
        self._store[room.id] = room

    def get(self, room_id: str) -> Room | None:
        return self._store.get(room_id)

    def get_by_name(self, name: str) -> Room | None:
        for room in self._store.values():
            if room.name == name:
                return room
        return None

    def list_all(self) -> list[Room]:
        return list(self._store.values())


class NotificationRepository:
    """List-backed store for Notification instances."""

    def __init__(self) -> None:
        self._items: list[Notification] = []

    def add(self, notification: Notification) -> None:
        self._items.append(notification)

    def get(self, notification_id: str) -> Notification | None:
        for item in self._items:
            if item.id == notification_id:
                return item
        return None

    def list_for_recipient(self, email: str, unread_only: bool = False) -> list[Notification]:
        email = email.lower()
        items = [
            n
            for n in self._items
            if n.recipient.lower() == email and not (unread_only and n.read)
        ]
        # Newest first
        return items[::-1]

    def unread_count(self, email: str) -> int:
        return len(self.list_for_recipient(email, unread_only=True))

    def mark_all_read(self, email: str) -> int:
        unread = self.list_for_recipient(email, unread_only=True)
        for item in unread:
            item.read = True
        return len(unread)


class HistoryRepository:
    """Dict-backed store for HistoryEntry instances, one per booking."""

    def __init__(self) -> None:
        self._store: dict[str, HistoryEntry] = {}

    def upsert(self, entry: HistoryEntry) -> None:
        self._store[entry.booking_id] = entry

    def get_for_booking(self, booking_id: str) -> HistoryEntry | None:
        return self._store.get(booking_id)

    def list_for_user(self, email: str) -> list[HistoryEntry]:
        email = email.lower()
        return sorted(
            [e for e in self._store.values() if e.user_email.lower() == email],
            key=lambda e: e.updated_at,
            reverse=True,
        )


# ---------------------------------------------------------------------------
# Seed data – the room catalogue and a few bookings useful for conflict testing
# ---------------------------------------------------------------------------

_ROOMS = [
    Room(id="R101", name="Orion", capacity=8, floor="1", wing="East",
         equipment=["Projector", "Whiteboard"]),
    Room(id="R102", name="Lyra", capacity=4, floor="1", wing="East",
         equipment=["TV Screen"]),
    Room(id="R201", name="Andromeda", capacity=16, floor="2", wing="West",
         equipment=["Projector", "Video Conferencing", "Whiteboard"]),
    Room(id="R202", name="Cassiopeia", capacity=10, floor="2", wing="West",
         equipment=["Video Conferencing"]),
    Room(id="R301", name="Phoenix", capacity=30, floor="3", wing="North",
         equipment=["Projector", "Microphone", "Video Conferencing"]),
    Room(id="R302", name="Draco", capacity=6, floor="3", wing="North",
         equipment=["Whiteboard"], status=RoomStatus.MAINTENANCE),
]


def create_room_repository() -> RoomRepository:
    """Return a RoomRepository pre-loaded with the room catalogue."""
    repo = RoomRepository()
    for room in _ROOMS:
        repo.add(room.model_copy(deep=True))
    return repo


def _seed_bookings(repo: BookingRepository, today: date) -> None:
    tomorrow = (today + timedelta(days=1)).isoformat()
    alice = BookedBy(name="Alice Moreau", email="alice@example.com", employee_id="E100")
    priya = BookedBy(
        name="Priya Raman", email="priya@example.com", employee_id="M200", role=Role.MANAGER
    )

    repo.add(
        Booking(
            room_name="Orion",
            date=tomorrow,
            start_time="10:00",
            end_time="11:00",
            status=BookingStatus.APPROVED,
            booked_by=priya,
            purpose="Quarterly planning",
            attendees=6,
            approved_by=priya.name,
        )
    )
    repo.add(
        Booking(
            room_name="Orion",
            date=tomorrow,
            start_time="14:00",
            end_time="15:30",
            booked_by=alice,
            purpose="Design review",
            attendees=4,
            manager_email=priya.email,
        )
    )
    repo.add(
        Booking(
            room_name="Andromeda",
            date=tomorrow,
            start_time="09:00",
            end_time="10:00",
            status=BookingStatus.CANCELLED,
            booked_by=alice,
            purpose="Team sync",
            attendees=10,
            rejection_reason="Moved online",
        )
    )


def create_booking_repository(seed: bool = False, today: date | None = None) -> BookingRepository:
    """Return a BookingRepository, optionally pre-loaded with sample bookings."""
    repo = BookingRepository()
    if seed:
        _seed_bookings(repo, today or date.today())
    return repo

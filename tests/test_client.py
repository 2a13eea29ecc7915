"""Tests for the HTTP client: local pre-check, server 409 and the snapshot poller."""

from __future__ import annotations

import json
import threading

import httpx
import pytest

from roombook.client import ApiError, BookingClient, SnapshotPoller
from roombook.domain.errors import BookingConflictError
from roombook.domain.models import AuthContext, BookedBy, Booking, BookingCreateRequest, BookingStatus

ALICE = AuthContext(email="alice@example.com", name="Alice Moreau")

_DATE = "2099-03-02"


def _booking(start: str, end: str, name: str = "Priya Raman") -> Booking:
    return Booking(
        room_name="Orion",
        date=_DATE,
        start_time=start,
        end_time=end,
        status=BookingStatus.APPROVED,
        booked_by=BookedBy(name=name, email="priya@example.com"),
    )


def _request(start: str = "10:00") -> BookingCreateRequest:
    return BookingCreateRequest(
        room_name="Orion",
        date=_DATE,
        start_time=start,
        duration_minutes=60,
        purpose="Sprint review",
        attendees=4,
    )


def _client(handler) -> BookingClient:
    return BookingClient(ALICE, base_url="http://booking.test", transport=httpx.MockTransport(handler))


def test_local_conflict_never_reaches_the_server():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(201, json={})

    with _client(handler) as client:
        with pytest.raises(BookingConflictError) as excinfo:
            client.book(_request("10:30"), snapshot=[_booking("10:00", "11:00")])

    assert calls == []
    assert excinfo.value.conflict.time_slot == "10:00 to 11:00"


def test_server_409_is_surfaced_verbatim():
    """A stale snapshot passes the pre-check; the server's answer wins."""
    server_booking = _booking("10:00", "11:00", name="Bob Chen")
    message = "This time slot is already booked! Reserved by Bob Chen."

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            409,
            json={
                "message": message,
                "conflictingBooking": server_booking.model_dump(mode="json", by_alias=True),
                "type": "BOOKING_CONFLICT",
            },
        )

    with _client(handler) as client:
        with pytest.raises(BookingConflictError) as excinfo:
            client.book(_request(), snapshot=[])

    assert excinfo.value.message == message
    assert excinfo.value.conflict.conflicting_booking.id == server_booking.id
    assert excinfo.value.conflict.conflicting_booking.booked_by.name == "Bob Chen"


def test_successful_booking_sends_identity_and_camel_case_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        created = _booking("10:00", "11:00", name="Alice Moreau")
        created.status = BookingStatus.PENDING
        return httpx.Response(201, json=created.model_dump(mode="json", by_alias=True))

    with _client(handler) as client:
        booking = client.book(_request(), snapshot=[_booking("11:00", "12:00")])

    assert booking.status == BookingStatus.PENDING
    assert seen["headers"]["x-user-email"] == "alice@example.com"
    assert seen["headers"]["x-user-role"] == "employee"
    assert seen["body"]["roomName"] == "Orion"
    assert seen["body"]["durationMinutes"] == 60


def test_other_errors_raise_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "Unauthorized to update this booking"})

    with _client(handler) as client:
        with pytest.raises(ApiError) as excinfo:
            client.list_bookings()

    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Unauthorized to update this booking"


def test_list_bookings_and_slots_pass_query_params():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/bookings":
            assert request.url.params["date"] == _DATE
            return httpx.Response(
                200, json=[_booking("10:00", "11:00").model_dump(mode="json", by_alias=True)]
            )
        assert request.url.params["duration"] == "60"
        return httpx.Response(200, json={"room": "Orion", "date": _DATE, "duration": 60, "slots": ["09:00"]})

    with _client(handler) as client:
        assert [b.start_time for b in client.list_bookings(date=_DATE)] == ["10:00"]
        assert client.available_slots("Orion", _DATE, 60) == ["09:00"]


# ---------------------------------------------------------------------------
# Snapshot poller
# ---------------------------------------------------------------------------


def test_refresh_keeps_previous_snapshot_on_failure():
    responses = [[_booking("10:00", "11:00")], httpx.ConnectError("down")]

    def fetch():
        result = responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    poller = SnapshotPoller(fetch, interval=60)

    assert len(poller.refresh()) == 1
    assert len(poller.refresh()) == 1
    assert poller.snapshot[0].start_time == "10:00"


def test_poller_runs_in_background_until_stopped():
    fetched = threading.Event()

    def fetch():
        fetched.set()
        return [_booking("10:00", "11:00")]

    with SnapshotPoller(fetch, interval=60) as poller:
        assert fetched.wait(timeout=5)
        assert poller.running

    assert not poller.running
    assert len(poller.snapshot) == 1


def test_poller_survives_undecodable_responses():
    calls = []
    second_call = threading.Event()

    def fetch():
        calls.append(1)
        if len(calls) >= 2:
            second_call.set()
        raise ValueError("Expecting value: line 1 column 1 (char 0)")

    with SnapshotPoller(fetch, interval=0.01) as poller:
        assert second_call.wait(timeout=5)
        assert poller.running

    assert poller.snapshot == []


def test_non_object_error_body_raises_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json=["upstream", "down"])

    with _client(handler) as client:
        with pytest.raises(ApiError) as excinfo:
            client.list_bookings()

    assert excinfo.value.status_code == 502

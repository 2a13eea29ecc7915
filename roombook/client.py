"""HTTP client for the booking API with a local conflict pre-check.

The local check runs against a snapshot of bookings the caller already holds
and gives instant feedback. It can miss a booking made since the snapshot was
taken, so the server repeats the check on submit and answers 409. Both paths
raise the same ``BookingConflictError``.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence

import httpx
from loguru import logger

from roombook.config import get_settings
from roombook.domain.errors import BookingConflictError
from roombook.domain.models import (
    AuthContext,
    Booking,
    BookingCreateRequest,
    ConflictResult,
)
from roombook.services.conflicts import find_conflict


class ApiError(Exception):
    """Non-success response other than a booking conflict."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def _auth_headers(auth: AuthContext) -> dict[str, str]:
    headers = {"X-User-Email": auth.email, "X-User-Name": auth.name, "X-User-Role": str(auth.role)}
    if auth.employee_id:
        headers["X-Employee-Id"] = auth.employee_id
    return headers


class BookingClient:
    def __init__(
        self,
        auth: AuthContext,
        base_url: str | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.auth = auth
        self._http = httpx.Client(
            base_url=base_url or get_settings().api_url,
            headers=_auth_headers(auth),
            transport=transport,
            timeout=timeout,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> BookingClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------

    def _check(self, response: httpx.Response) -> httpx.Response:
        if response.is_success:
            return response
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("detail") or response.text
        if response.status_code == 409:
            conflicting = body.get("conflictingBooking")
            conflict = ConflictResult(
                has_conflict=True,
                conflicting_booking=Booking.model_validate(conflicting) if conflicting else None,
                message=message,
            )
            raise BookingConflictError(conflict, message)
        raise ApiError(response.status_code, str(message))

    def list_bookings(self, date: str | None = None, room: str | None = None) -> list[Booking]:
        params = {k: v for k, v in (("date", date), ("room", room)) if v is not None}
        response = self._check(self._http.get("/bookings", params=params))
        return [Booking.model_validate(item) for item in response.json()]

    def available_slots(self, room: str, date: str, duration: int) -> list[str]:
        response = self._check(
            self._http.get(
                "/bookings/available-slots",
                params={"room": room, "date": date, "duration": duration},
            )
        )
        return response.json()["slots"]

    def create_booking(self, request: BookingCreateRequest) -> Booking:
        response = self._check(
            self._http.post("/bookings", json=request.model_dump(mode="json", by_alias=True))
        )
        return Booking.model_validate(response.json())

    def book(self, request: BookingCreateRequest, snapshot: Sequence[Booking]) -> Booking:
        """Pre-check *request* against *snapshot*, then submit it.

        A local conflict raises without contacting the server. A server-side
        409 raises with the server's message and conflicting booking as sent.
        """
        conflict = find_conflict(request.to_candidate(), snapshot)
        if conflict.has_conflict:
            logger.info(
                "Local pre-check blocked {} {} {}", request.room_name, request.date, request.start_time
            )
            raise BookingConflictError(conflict)
        return self.create_booking(request)


class SnapshotPoller:
    """Keeps a fresh copy of the bookings list by calling *fetch* every *interval* seconds.

    A failed fetch is logged and the previous snapshot kept; polling carries on.
    """

    def __init__(self, fetch: Callable[[], list[Booking]], interval: float | None = None) -> None:
        self._fetch = fetch
        self.interval = interval if interval is not None else get_settings().poll_interval
        self._snapshot: list[Booking] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def snapshot(self) -> list[Booking]:
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def refresh(self) -> list[Booking]:
        # ValueError covers undecodable JSON and pydantic validation failures.
        try:
            self._snapshot = list(self._fetch())
        except (httpx.HTTPError, ApiError, ValueError):
            logger.exception("Refreshing the bookings snapshot failed")
        return self._snapshot

    def _run(self) -> None:
        while not self._stop.is_set():
            self.refresh()
            self._stop.wait(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="snapshot-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def __enter__(self) -> SnapshotPoller:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

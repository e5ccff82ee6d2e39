import datetime as dt
import itertools
import os
from typing import Callable, List, Optional

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_spa.db")

from common.schemas import (  # noqa: E402
    BookingRead,
    CategoryColor,
    CategoryRead,
    PersonSummary,
    QuickBooking,
    QuickBookingService,
    RoomRead,
    RoomSummary,
    ServiceRead,
    ServiceSummary,
    TherapistRead,
)
from reservations.date_range import day_to_epoch  # noqa: E402
from reservations.errors import RepositoryUnavailable  # noqa: E402
from reservations.query import BookingRepository, RoomDirectory, ServiceDirectory, TherapistDirectory  # noqa: E402

STAMP = dt.datetime(2024, 6, 1, 9, 0)
ROOMS = {1: "Lotus", 2: "Bamboo", 3: "Orchid"}
THERAPISTS = {1: ("Anna", "Berg"), 2: ("Carl", "Dahl")}


def clock(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 3600 + int(minutes) * 60


@pytest.fixture()
def make_booking() -> Callable[..., BookingRead]:
    ids = itertools.count(1)

    def factory(
        day: dt.date = dt.date(2024, 6, 10),
        at: str = "10:00",
        duration: int = 60,
        room_id: int = 1,
        therapist_id: Optional[int] = 1,
        service_id: int = 1,
        confirmed: bool = False,
        cancelled: bool = False,
        booking_id: Optional[int] = None,
    ) -> BookingRead:
        therapist = None
        if therapist_id is not None:
            first, last = THERAPISTS.get(therapist_id, ("T", str(therapist_id)))
            therapist = PersonSummary(id=therapist_id, first_name=first, last_name=last)
        return BookingRead(
            id=booking_id if booking_id is not None else next(ids),
            date=day_to_epoch(day),
            time=clock(at),
            duration=duration,
            price=80,
            service=ServiceSummary(
                id=service_id,
                name=f"Service {service_id}",
                duration=duration,
                price=80,
                category=CategoryColor(hexcode="#2196f3", textcolor="#ffffff"),
            ),
            room=RoomSummary(id=room_id, name=ROOMS.get(room_id, f"Room {room_id}")),
            guest=PersonSummary(id=1, first_name="Guest", last_name="One"),
            therapist=therapist,
            confirmed=confirmed,
            cancelled=cancelled,
            created_at=STAMP,
            updated_at=STAMP,
        )

    return factory


class InMemoryBookingRepository(BookingRepository):
    """Returns matches newest first so callers cannot rely on store order."""

    def __init__(self, bookings: List[BookingRead]) -> None:
        self.bookings = bookings
        self.calls: list[tuple] = []

    def find(self, date_from, date_to, room_id=None, therapist_id=None, service_id=None):
        self.calls.append((date_from, date_to, room_id, therapist_id, service_id))
        matches = [
            b
            for b in self.bookings
            if date_from <= b.date <= date_to
            and (room_id is None or b.room.id == room_id)
            and (therapist_id is None or (b.therapist is not None and b.therapist.id == therapist_id))
            and (service_id is None or b.service.id == service_id)
        ]
        return sorted(matches, key=lambda b: (b.date, b.time), reverse=True)


class UnavailableBookingRepository(BookingRepository):
    def find(self, date_from, date_to, room_id=None, therapist_id=None, service_id=None):
        raise RepositoryUnavailable("Could not read bookings")


class StaticRoomDirectory(RoomDirectory):
    def __init__(self, rooms: List[RoomRead]) -> None:
        self.rooms = rooms

    def list_active(self, room_id=None):
        return [r for r in self.rooms if room_id is None or r.id == room_id]


class StaticTherapistDirectory(TherapistDirectory):
    def __init__(self, therapists: List[TherapistRead]) -> None:
        self.therapists = therapists

    def list_active(self, therapist_id=None):
        return [t for t in self.therapists if therapist_id is None or t.id == therapist_id]


class StaticServiceDirectory(ServiceDirectory):
    def __init__(self, services: List[ServiceRead]) -> None:
        self.services = services

    def list_active(self):
        return list(self.services)

    def list_quick_bookable(self, limit):
        quick = [s for s in self.services if s.quick_booking][:limit]
        return [
            QuickBooking(
                id=s.id,
                name=s.name,
                service=QuickBookingService(id=s.id, name=s.name, duration=s.duration or 60, price=s.price or 0),
                category=s.category,
            )
            for s in quick
        ]


@pytest.fixture()
def rooms_directory() -> StaticRoomDirectory:
    return StaticRoomDirectory(
        [
            RoomRead(id=2, name="Bamboo", priority=0, active=True, created_at=STAMP, updated_at=STAMP),
            RoomRead(id=1, name="Lotus", priority=0, active=True, created_at=STAMP, updated_at=STAMP),
        ]
    )


@pytest.fixture()
def therapists_directory() -> StaticTherapistDirectory:
    return StaticTherapistDirectory(
        [
            TherapistRead(id=1, first_name="Anna", last_name="Berg", priority=0, created_at=STAMP, updated_at=STAMP),
            TherapistRead(id=2, first_name="Carl", last_name="Dahl", priority=0, created_at=STAMP, updated_at=STAMP),
        ]
    )


@pytest.fixture()
def services_directory() -> StaticServiceDirectory:
    category = CategoryRead(id=1, name="Massage", hexcode="#2196f3", textcolor="#ffffff")
    return StaticServiceDirectory(
        [
            ServiceRead(
                id=i,
                category=category,
                name=f"Service {i:02d}",
                duration=30 + i,
                price=50,
                quick_booking=i != 3,
                active=True,
                created_at=STAMP,
                updated_at=STAMP,
            )
            for i in range(1, 14)
        ]
    )


@pytest.fixture()
def booking_store() -> Callable[[List[BookingRead]], InMemoryBookingRepository]:
    return InMemoryBookingRepository


@pytest.fixture()
def unavailable_store() -> UnavailableBookingRepository:
    return UnavailableBookingRepository()

"""SQLAlchemy-backed implementations of the scheduling read ports."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from common.config import Settings, get_settings, get_zone
from common.models import Booking, Room, Service, ServiceCategory, Therapist
from common.schemas import (
    BookingRead,
    CategoryColor,
    CategoryRead,
    PersonSummary,
    QuickBooking,
    QuickBookingService,
    RoomRead,
    RoomSummary,
    ServiceRead,
    ServiceRef,
    ServiceSummary,
    TherapistRead,
)

from .errors import RepositoryUnavailable
from .query import BookingRepository, RoomDirectory, ServiceDirectory, TherapistDirectory
from .slots import generate_slots
from .views import ReservationViews

logger = logging.getLogger(__name__)


@contextmanager
def _reading(what: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.warning("Reading %s failed: %s", what, exc)
        raise RepositoryUnavailable(f"Could not read {what}") from exc


# ORM -> read-model mapping


def category_to_read(category: ServiceCategory, settings: Optional[Settings] = None) -> CategoryRead:
    settings = settings or get_settings()
    return CategoryRead(
        id=category.id,
        name=category.name,
        hexcode=category.hexcode or settings.default_category_hexcode,
        textcolor=category.textcolor or settings.default_category_textcolor,
    )


def service_to_read(service: Service, settings: Optional[Settings] = None) -> ServiceRead:
    return ServiceRead(
        id=service.id,
        category=category_to_read(service.category, settings),
        name=service.name,
        description=service.description,
        price=service.price,
        duration=service.duration,
        quick_booking=service.quick_booking,
        active=service.active,
        created_at=service.created_at,
        updated_at=service.updated_at,
    )


def service_to_quick_booking(service: Service, settings: Optional[Settings] = None) -> QuickBooking:
    settings = settings or get_settings()
    return QuickBooking(
        id=service.id,
        name=service.name,
        service=QuickBookingService(
            id=service.id,
            name=service.name,
            duration=service.duration or settings.quick_booking_default_duration,
            price=service.price or 0,
        ),
        category=category_to_read(service.category, settings),
    )


def therapist_to_read(therapist: Therapist) -> TherapistRead:
    return TherapistRead(
        id=therapist.id,
        first_name=therapist.first_name,
        last_name=therapist.last_name,
        priority=therapist.priority,
        services=[ServiceRef(id=s.id, name=s.name) for s in sorted(therapist.services, key=lambda s: s.id)],
        created_at=therapist.created_at,
        updated_at=therapist.updated_at,
    )


def booking_to_read(booking: Booking, settings: Optional[Settings] = None) -> BookingRead:
    """Flatten a booking with its service, room, guest and therapist projections.

    Duration and price fall back to the service's when the booking has none.
    """
    settings = settings or get_settings()
    service = booking.service
    category = service.category
    duration = booking.duration if booking.duration is not None else (service.duration or 0)
    price = booking.price if booking.price is not None else (service.price or 0)
    therapist = None
    if booking.therapist is not None:
        therapist = PersonSummary.model_validate(booking.therapist)
    return BookingRead(
        id=booking.id,
        date=booking.date,
        time=booking.time,
        duration=duration,
        price=price,
        service=ServiceSummary(
            id=service.id,
            name=service.name,
            duration=service.duration or 0,
            price=service.price or 0,
            category=CategoryColor(
                hexcode=(category.hexcode if category else None) or settings.default_category_hexcode,
                textcolor=(category.textcolor if category else None) or settings.default_category_textcolor,
            ),
        ),
        room=RoomSummary.model_validate(booking.room),
        guest=PersonSummary.model_validate(booking.guest),
        therapist=therapist,
        confirmed=booking.confirmed,
        cancelled=booking.cancelled,
        comment=booking.comment,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


def booking_query(db: Session):
    return db.query(Booking).options(
        joinedload(Booking.service).joinedload(Service.category),
        joinedload(Booking.room),
        joinedload(Booking.guest),
        joinedload(Booking.therapist),
    )


# Ports


class SqlBookingRepository(BookingRepository):
    def __init__(self, db: Session, settings: Optional[Settings] = None) -> None:
        self._db = db
        self._settings = settings or get_settings()

    def find(
        self,
        date_from: int,
        date_to: int,
        room_id: Optional[int] = None,
        therapist_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> List[BookingRead]:
        query = booking_query(self._db).filter(Booking.date >= date_from, Booking.date <= date_to)
        if room_id is not None:
            query = query.filter(Booking.room_id == room_id)
        if therapist_id is not None:
            query = query.filter(Booking.therapist_id == therapist_id)
        if service_id is not None:
            query = query.filter(Booking.service_id == service_id)
        with _reading("bookings"):
            rows = query.order_by(Booking.date.asc(), Booking.time.asc(), Booking.id.asc()).all()
        return [booking_to_read(row, self._settings) for row in rows]


class SqlRoomDirectory(RoomDirectory):
    def __init__(self, db: Session) -> None:
        self._db = db

    def list_active(self, room_id: Optional[int] = None) -> List[RoomRead]:
        query = self._db.query(Room).filter(Room.active.is_(True), Room.deleted.is_(False))
        if room_id is not None:
            query = query.filter(Room.id == room_id)
        with _reading("rooms"):
            rows = query.order_by(Room.name.asc(), Room.id.asc()).all()
        return [RoomRead.model_validate(row) for row in rows]


class SqlTherapistDirectory(TherapistDirectory):
    def __init__(self, db: Session) -> None:
        self._db = db

    def list_active(self, therapist_id: Optional[int] = None) -> List[TherapistRead]:
        query = self._db.query(Therapist).options(selectinload(Therapist.services))
        if therapist_id is not None:
            query = query.filter(Therapist.id == therapist_id)
        with _reading("therapists"):
            rows = query.order_by(Therapist.first_name.asc(), Therapist.last_name.asc(), Therapist.id.asc()).all()
        return [therapist_to_read(row) for row in rows]


class SqlServiceDirectory(ServiceDirectory):
    def __init__(self, db: Session, settings: Optional[Settings] = None) -> None:
        self._db = db
        self._settings = settings or get_settings()

    def _active(self):
        return (
            self._db.query(Service)
            .options(joinedload(Service.category))
            .filter(Service.active.is_(True), Service.deleted.is_(False))
            .order_by(Service.name.asc(), Service.id.asc())
        )

    def list_active(self) -> List[ServiceRead]:
        with _reading("services"):
            rows = self._active().all()
        return [service_to_read(row, self._settings) for row in rows]

    def list_quick_bookable(self, limit: int) -> List[QuickBooking]:
        with _reading("quick booking services"):
            rows = self._active().filter(Service.quick_booking.is_(True)).limit(limit).all()
        return [service_to_quick_booking(row, self._settings) for row in rows]


def build_views(db: Session, settings: Optional[Settings] = None) -> ReservationViews:
    settings = settings or get_settings()
    return ReservationViews(
        SqlBookingRepository(db, settings),
        SqlRoomDirectory(db),
        SqlTherapistDirectory(db),
        SqlServiceDirectory(db, settings),
        tz=get_zone(),
        slots=generate_slots(settings.business_day_start_hour, settings.business_day_end_hour, settings.slot_minutes),
        reference_minutes=settings.workload_reference_minutes,
        quick_booking_limit=settings.quick_booking_limit,
    )

import datetime as dt
import logging
import math
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.orm import Session

from common.config import get_settings, get_zone
from common.database import Base, engine, get_db
from common.dependencies import allow_roles, get_current_principal
from common.errors import register_exception_handlers
from common.logging_middleware import add_audit_middleware
from common.models import Booking, Guest, RoleEnum, Room, Service, Therapist
from common.rate_limit import apply_rate_limiter, limiter
from common.schemas import AvailabilityResult, BookingCreate, BookingPage, BookingRead, BookingUpdate, TokenData
from reservations.date_range import ViewMode, day_to_epoch, resolve
from reservations.repository import SqlBookingRepository, booking_query, booking_to_read
from reservations.slots import find_conflicts

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Bookings Service", version="0.1.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    register_exception_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "bookings")
    Instrumentator(registry=CollectorRegistry()).instrument(fastapi_app).expose(fastapi_app)
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "bookings"}


def _get_booking(db: Session, booking_id: int) -> Booking:
    booking = booking_query(db).filter(Booking.id == booking_id).first()
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


def _ensure_references(
    db: Session,
    room_id: Optional[int] = None,
    service_id: Optional[int] = None,
    guest_id: Optional[int] = None,
    therapist_id: Optional[int] = None,
) -> None:
    """Check only the references given; omitted ones are left alone."""
    if room_id is not None:
        room = db.query(Room).filter(Room.id == room_id, Room.active.is_(True), Room.deleted.is_(False)).first()
        if not room:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found or inactive")
    if service_id is not None:
        service = (
            db.query(Service)
            .filter(Service.id == service_id, Service.active.is_(True), Service.deleted.is_(False))
            .first()
        )
        if not service:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found or inactive")
    if guest_id is not None and db.get(Guest, guest_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Guest not found")
    if therapist_id is not None and db.get(Therapist, therapist_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Therapist not found")


@app.post("/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def create_booking(
    request: Request,
    booking_in: BookingCreate,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> BookingRead:
    _ensure_references(db, booking_in.room_id, booking_in.service_id, booking_in.guest_id, booking_in.therapist_id)
    data = booking_in.model_dump(exclude={"day"})
    booking = Booking(date=day_to_epoch(booking_in.day, get_zone()), **data)
    db.add(booking)
    db.commit()
    logger.info("Booking %s created for room %s on %s", booking.id, booking.room_id, booking_in.day)
    return booking_to_read(_get_booking(db, booking.id), settings)


@app.get("/bookings", response_model=BookingPage)
@limiter.limit("60/minute")
def list_bookings(
    request: Request,
    date_from: Optional[dt.date] = Query(None, alias="dateFrom"),
    date_to: Optional[dt.date] = Query(None, alias="dateTo"),
    room_id: Optional[int] = Query(None, alias="roomId"),
    therapist_id: Optional[int] = Query(None, alias="therapistId"),
    service_id: Optional[int] = Query(None, alias="serviceId"),
    guest_id: Optional[int] = Query(None, alias="guestId"),
    confirmed: Optional[bool] = None,
    cancelled: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> BookingPage:
    zone = get_zone()
    query = booking_query(db)
    if date_from is not None:
        query = query.filter(Booking.date >= day_to_epoch(date_from, zone))
    if date_to is not None:
        query = query.filter(Booking.date <= day_to_epoch(date_to, zone))
    for column, value in (
        (Booking.room_id, room_id),
        (Booking.therapist_id, therapist_id),
        (Booking.service_id, service_id),
        (Booking.guest_id, guest_id),
        (Booking.confirmed, confirmed),
        (Booking.cancelled, cancelled),
    ):
        if value is not None:
            query = query.filter(column == value)

    total = query.count()
    rows = (
        query.order_by(Booking.date.asc(), Booking.time.asc(), Booking.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return BookingPage(
        items=[booking_to_read(row, settings) for row in rows],
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
    )


@app.get("/bookings/availability", response_model=AvailabilityResult)
@limiter.limit("60/minute")
def check_availability(
    request: Request,
    day: dt.date = Query(...),
    time: int = Query(..., ge=0, lt=86400),
    duration: int = Query(..., gt=0),
    room_id: Optional[int] = Query(None, alias="roomId"),
    therapist_id: Optional[int] = Query(None, alias="therapistId"),
    exclude_booking_id: Optional[int] = Query(None, alias="excludeBookingId"),
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> AvailabilityResult:
    """Report bookings overlapping a candidate slot. Advisory only; writes are never blocked."""
    if room_id is None and therapist_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provide roomId or therapistId")
    zone = get_zone()
    day_range = resolve(day, ViewMode.DAY, zone)
    bookings = SqlBookingRepository(db, settings).find(
        day_range.start_ts, day_range.end_ts, room_id=room_id, therapist_id=therapist_id
    )
    start = day_range.start + dt.timedelta(seconds=time)
    conflicts = find_conflicts(start, start + dt.timedelta(minutes=duration), bookings, zone, exclude_booking_id)
    return AvailabilityResult(available=not conflicts, conflicts=conflicts)


@app.get("/bookings/{booking_id}", response_model=BookingRead)
def get_booking(
    booking_id: int,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> BookingRead:
    return booking_to_read(_get_booking(db, booking_id), settings)


@app.put("/bookings/{booking_id}", response_model=BookingRead)
@limiter.limit("20/minute")
def update_booking(
    request: Request,
    booking_id: int,
    booking_update: BookingUpdate,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> BookingRead:
    booking = _get_booking(db, booking_id)
    data = booking_update.model_dump(exclude_unset=True)
    # Room, service and guest are required on a booking; null means "keep".
    for key in ("room_id", "service_id", "guest_id"):
        if key in data and data[key] is None:
            del data[key]
    _ensure_references(
        db,
        room_id=data.get("room_id"),
        service_id=data.get("service_id"),
        guest_id=data.get("guest_id"),
        therapist_id=data.get("therapist_id"),
    )
    day = data.pop("day", None)
    if day is not None:
        booking.date = day_to_epoch(day, get_zone())
    for key, value in data.items():
        setattr(booking, key, value)
    db.commit()
    return booking_to_read(_get_booking(db, booking_id), settings)


def _set_status(db: Session, booking_id: int, **flags: bool) -> BookingRead:
    booking = _get_booking(db, booking_id)
    for key, value in flags.items():
        setattr(booking, key, value)
    db.commit()
    logger.info("Booking %s updated: %s", booking_id, flags)
    return booking_to_read(_get_booking(db, booking_id), settings)


@app.post("/bookings/{booking_id}/confirm", response_model=BookingRead)
@limiter.limit("20/minute")
def confirm_booking(
    request: Request,
    booking_id: int,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> BookingRead:
    booking = _get_booking(db, booking_id)
    if booking.cancelled:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cancelled bookings cannot be confirmed")
    return _set_status(db, booking_id, confirmed=True)


@app.post("/bookings/{booking_id}/cancel", response_model=BookingRead)
@limiter.limit("20/minute")
def cancel_booking(
    request: Request,
    booking_id: int,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> BookingRead:
    return _set_status(db, booking_id, cancelled=True)


@app.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20/minute")
def delete_booking(
    request: Request,
    booking_id: int,
    _: TokenData = Depends(allow_roles(RoleEnum.ADMIN)),
    db: Session = Depends(get_db),
) -> None:
    booking = db.get(Booking, booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    db.delete(booking)
    db.commit()
    logger.info("Booking %s deleted", booking_id)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.bookings_service_port)

import datetime as dt
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.orm import Session

from common.config import get_settings
from common.database import Base, engine, get_db
from common.dependencies import get_current_principal
from common.errors import register_exception_handlers
from common.logging_middleware import add_audit_middleware
from common.rate_limit import apply_rate_limiter, limiter
from common.schemas import (
    CalendarResult,
    OverviewResult,
    QuickBooking,
    RoomSlotsResult,
    RoomsOverviewResult,
    TherapistsOverviewResult,
    TokenData,
)
from reservations.date_range import ViewMode
from reservations.query import BookingFilters
from reservations.repository import build_views
from reservations.views import ReservationViews

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Reservations Service", version="0.1.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    register_exception_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "reservations")
    Instrumentator(registry=CollectorRegistry()).instrument(fastapi_app).expose(fastapi_app)
    return fastapi_app


app = create_app()


def get_views(db: Session = Depends(get_db)) -> ReservationViews:
    return build_views(db, settings)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "reservations"}


@app.get("/reservations", include_in_schema=False)
def reservations_root(request: Request) -> RedirectResponse:
    target = "/reservations/overview"
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return RedirectResponse(url=target)


@app.get("/reservations/overview", response_model=OverviewResult)
@limiter.limit("60/minute")
def overview(
    request: Request,
    date: Optional[dt.date] = Query(None, description="Reference day (ISO date); defaults to today"),
    view_mode: ViewMode = Query(ViewMode.DAY, alias="viewMode"),
    room_id: Optional[int] = Query(None, alias="roomId"),
    therapist_id: Optional[int] = Query(None, alias="therapistId"),
    service_id: Optional[int] = Query(None, alias="serviceId"),
    _: TokenData = Depends(get_current_principal),
    views: ReservationViews = Depends(get_views),
) -> OverviewResult:
    filters = BookingFilters(room_id=room_id, therapist_id=therapist_id, service_id=service_id)
    return views.overview(date, view_mode, filters)


@app.get("/reservations/quick-booking", response_model=List[QuickBooking])
@limiter.limit("60/minute")
def quick_booking(
    request: Request,
    _: TokenData = Depends(get_current_principal),
    views: ReservationViews = Depends(get_views),
) -> List[QuickBooking]:
    return views.quick_bookings()


@app.get("/reservations/rooms", response_model=RoomsOverviewResult)
@limiter.limit("60/minute")
def rooms_overview(
    request: Request,
    date: Optional[dt.date] = Query(None),
    view_mode: ViewMode = Query(ViewMode.DAY, alias="viewMode"),
    room_id: Optional[int] = Query(None, alias="roomId"),
    _: TokenData = Depends(get_current_principal),
    views: ReservationViews = Depends(get_views),
) -> RoomsOverviewResult:
    return views.rooms(date, view_mode, room_id)


@app.get("/reservations/rooms/{room_id}/slots", response_model=RoomSlotsResult)
@limiter.limit("60/minute")
def room_slots(
    request: Request,
    room_id: int,
    date: Optional[dt.date] = Query(None),
    include_cancelled: bool = Query(False, alias="includeCancelled"),
    _: TokenData = Depends(get_current_principal),
    views: ReservationViews = Depends(get_views),
) -> RoomSlotsResult:
    result = views.room_slots(room_id, date, include_cancelled)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found or inactive")
    return result


@app.get("/reservations/therapists", response_model=TherapistsOverviewResult)
@limiter.limit("60/minute")
def therapists_overview(
    request: Request,
    date: Optional[dt.date] = Query(None),
    view_mode: ViewMode = Query(ViewMode.DAY, alias="viewMode"),
    therapist_id: Optional[int] = Query(None, alias="therapistId"),
    _: TokenData = Depends(get_current_principal),
    views: ReservationViews = Depends(get_views),
) -> TherapistsOverviewResult:
    return views.therapists(date, view_mode, therapist_id)


@app.get("/reservations/calendar", response_model=CalendarResult)
@limiter.limit("60/minute")
def calendar(
    request: Request,
    date: Optional[dt.date] = Query(None),
    view_mode: ViewMode = Query(ViewMode.DAY, alias="viewMode"),
    room_id: Optional[int] = Query(None, alias="roomId"),
    therapist_id: Optional[int] = Query(None, alias="therapistId"),
    service_id: Optional[int] = Query(None, alias="serviceId"),
    _: TokenData = Depends(get_current_principal),
    views: ReservationViews = Depends(get_views),
) -> CalendarResult:
    filters = BookingFilters(room_id=room_id, therapist_id=therapist_id, service_id=service_id)
    return views.calendar(date, view_mode, filters)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.reservations_service_port)

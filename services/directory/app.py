from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, selectinload

from common.config import get_settings
from common.database import Base, engine, get_db
from common.dependencies import allow_roles, get_current_principal
from common.errors import register_exception_handlers
from common.logging_middleware import add_audit_middleware
from common.models import Guest, RoleEnum, Room, Service, ServiceCategory, Therapist
from common.rate_limit import apply_rate_limiter, limiter
from common.schemas import (
    CategoryCreate,
    CategoryRead,
    GuestCreate,
    GuestRead,
    RoomCreate,
    RoomRead,
    RoomUpdate,
    ServiceCreate,
    ServiceRead,
    TherapistCreate,
    TherapistRead,
    TokenData,
)
from reservations.repository import category_to_read, service_to_read, therapist_to_read

settings = get_settings()
admin_only = allow_roles(RoleEnum.ADMIN)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Directory Service", version="0.1.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    register_exception_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "directory")
    Instrumentator(registry=CollectorRegistry()).instrument(fastapi_app).expose(fastapi_app)
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "directory"}


# Service categories


@app.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def add_category(
    request: Request,
    category_in: CategoryCreate,
    _: TokenData = Depends(admin_only),
    db: Session = Depends(get_db),
) -> CategoryRead:
    category = ServiceCategory(**category_in.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    return category_to_read(category, settings)


@app.get("/categories", response_model=List[CategoryRead])
def list_categories(
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> List[CategoryRead]:
    rows = db.query(ServiceCategory).order_by(ServiceCategory.name.asc()).all()
    return [category_to_read(row, settings) for row in rows]


# Rooms


def _get_room(db: Session, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id, Room.deleted.is_(False)).first()
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


@app.post("/rooms", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def add_room(
    request: Request,
    room_in: RoomCreate,
    _: TokenData = Depends(admin_only),
    db: Session = Depends(get_db),
) -> Room:
    room = Room(**room_in.model_dump())
    db.add(room)
    db.commit()
    db.refresh(room)
    return room


@app.get("/rooms", response_model=List[RoomRead])
def list_rooms(
    active: Optional[bool] = None,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> List[Room]:
    query = db.query(Room).filter(Room.deleted.is_(False))
    if active is not None:
        query = query.filter(Room.active.is_(active))
    return query.order_by(Room.name.asc(), Room.id.asc()).all()


@app.get("/rooms/{room_id}", response_model=RoomRead)
def get_room(
    room_id: int,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Room:
    return _get_room(db, room_id)


@app.put("/rooms/{room_id}", response_model=RoomRead)
@limiter.limit("10/minute")
def update_room(
    request: Request,
    room_id: int,
    room_update: RoomUpdate,
    _: TokenData = Depends(admin_only),
    db: Session = Depends(get_db),
) -> Room:
    room = _get_room(db, room_id)
    for field, value in room_update.model_dump(exclude_unset=True).items():
        setattr(room, field, value)
    db.commit()
    db.refresh(room)
    return room


@app.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("10/minute")
def delete_room(
    request: Request,
    room_id: int,
    _: TokenData = Depends(admin_only),
    db: Session = Depends(get_db),
) -> None:
    room = _get_room(db, room_id)
    room.deleted = True
    db.commit()


# Services


def _get_service(db: Session, service_id: int) -> Service:
    service = (
        db.query(Service)
        .options(joinedload(Service.category))
        .filter(Service.id == service_id, Service.deleted.is_(False))
        .first()
    )
    if not service:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return service


@app.post("/services", response_model=ServiceRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def add_service(
    request: Request,
    service_in: ServiceCreate,
    _: TokenData = Depends(admin_only),
    db: Session = Depends(get_db),
) -> ServiceRead:
    if db.get(ServiceCategory, service_in.category_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    service = Service(**service_in.model_dump())
    db.add(service)
    db.commit()
    return service_to_read(_get_service(db, service.id), settings)


@app.get("/services", response_model=List[ServiceRead])
def list_services(
    active: Optional[bool] = None,
    category_id: Optional[int] = Query(None, alias="categoryId"),
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> List[ServiceRead]:
    query = db.query(Service).options(joinedload(Service.category)).filter(Service.deleted.is_(False))
    if active is not None:
        query = query.filter(Service.active.is_(active))
    if category_id is not None:
        query = query.filter(Service.category_id == category_id)
    return [service_to_read(row, settings) for row in query.order_by(Service.name.asc(), Service.id.asc()).all()]


@app.get("/services/{service_id}", response_model=ServiceRead)
def get_service(
    service_id: int,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> ServiceRead:
    return service_to_read(_get_service(db, service_id), settings)


@app.delete("/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("10/minute")
def delete_service(
    request: Request,
    service_id: int,
    _: TokenData = Depends(admin_only),
    db: Session = Depends(get_db),
) -> None:
    service = _get_service(db, service_id)
    service.deleted = True
    db.commit()


# Therapists


@app.post("/therapists", response_model=TherapistRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def add_therapist(
    request: Request,
    therapist_in: TherapistCreate,
    _: TokenData = Depends(admin_only),
    db: Session = Depends(get_db),
) -> TherapistRead:
    service_ids = set(therapist_in.services)
    services = db.query(Service).filter(Service.id.in_(service_ids)).all() if service_ids else []
    if len(services) != len(service_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    therapist = Therapist(**therapist_in.model_dump(exclude={"services"}), services=services)
    db.add(therapist)
    db.commit()
    db.refresh(therapist)
    return therapist_to_read(therapist)


@app.get("/therapists", response_model=List[TherapistRead])
def list_therapists(
    service_id: Optional[int] = Query(None, alias="serviceId"),
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> List[TherapistRead]:
    query = db.query(Therapist).options(selectinload(Therapist.services))
    if service_id is not None:
        query = query.filter(Therapist.services.any(Service.id == service_id))
    rows = query.order_by(Therapist.first_name.asc(), Therapist.last_name.asc(), Therapist.id.asc()).all()
    return [therapist_to_read(row) for row in rows]


@app.get("/therapists/{therapist_id}", response_model=TherapistRead)
def get_therapist(
    therapist_id: int,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> TherapistRead:
    therapist = db.get(Therapist, therapist_id)
    if not therapist:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Therapist not found")
    return therapist_to_read(therapist)


# Guests


@app.post("/guests", response_model=GuestRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def add_guest(
    request: Request,
    guest_in: GuestCreate,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Guest:
    guest = Guest(**guest_in.model_dump())
    db.add(guest)
    db.commit()
    db.refresh(guest)
    return guest


@app.get("/guests", response_model=List[GuestRead])
def list_guests(
    search: Optional[str] = None,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> List[Guest]:
    query = db.query(Guest)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Guest.first_name.ilike(pattern), Guest.last_name.ilike(pattern)))
    return query.order_by(Guest.last_name.asc(), Guest.first_name.asc(), Guest.id.asc()).all()


@app.get("/guests/{guest_id}", response_model=GuestRead)
def get_guest(
    guest_id: int,
    _: TokenData = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> Guest:
    guest = db.get(Guest, guest_id)
    if not guest:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Guest not found")
    return guest


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.directory_service_port)

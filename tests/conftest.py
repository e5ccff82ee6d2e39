import datetime as dt
import os
from typing import Callable, Dict, Generator, Optional

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_spa.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("LOG_DIR", "./logs")

from common.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from common.auth import issue_token  # noqa: E402
from common.database import Base, SessionLocal, engine  # noqa: E402
from common.models import Booking, Guest, RoleEnum, Room, Service, ServiceCategory, Therapist  # noqa: E402
from reservations.date_range import day_to_epoch  # noqa: E402
from services.bookings.app import app as bookings_app  # noqa: E402
from services.directory.app import app as directory_app  # noqa: E402
from services.reservations.app import app as reservations_app  # noqa: E402


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def directory_client() -> Generator[TestClient, None, None]:
    with TestClient(directory_app) as client:
        yield client


@pytest.fixture()
def bookings_client() -> Generator[TestClient, None, None]:
    with TestClient(bookings_app) as client:
        yield client


@pytest.fixture()
def reservations_client() -> Generator[TestClient, None, None]:
    with TestClient(reservations_app) as client:
        yield client


@pytest.fixture()
def admin_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token('manager', RoleEnum.ADMIN)}"}


@pytest.fixture()
def staff_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token('frontdesk')}"}


@pytest.fixture()
def spa(db_session) -> Dict[str, object]:
    """A small spa: two rooms, two therapists, three services and one guest."""

    massage = ServiceCategory(name="Massage", hexcode="#8bc34a", textcolor="#000000")
    facial = ServiceCategory(name="Facial")
    hot_stone = Service(category=massage, name="Hot Stone", duration=90, price=120, quick_booking=True)
    swedish = Service(category=massage, name="Swedish", duration=60, price=80, quick_booking=True)
    glow = Service(category=facial, name="Glow Facial", duration=45, price=70)
    lotus = Room(name="Lotus")
    bamboo = Room(name="Bamboo")
    closed = Room(name="Attic", active=False)
    anna = Therapist(first_name="Anna", last_name="Berg", services=[hot_stone, swedish])
    carl = Therapist(first_name="Carl", last_name="Dahl", services=[glow])
    guest = Guest(first_name="Eva", last_name="Fischer")
    db_session.add_all([massage, facial, hot_stone, swedish, glow, lotus, bamboo, closed, anna, carl, guest])
    db_session.commit()
    return {
        "hot_stone": hot_stone.id,
        "swedish": swedish.id,
        "glow": glow.id,
        "lotus": lotus.id,
        "bamboo": bamboo.id,
        "closed": closed.id,
        "anna": anna.id,
        "carl": carl.id,
        "guest": guest.id,
    }


@pytest.fixture()
def add_booking(db_session, spa) -> Callable[..., int]:
    def factory(day: dt.date, time: int, room: str = "lotus", service: str = "swedish",
                therapist: Optional[str] = "anna", **fields) -> int:
        booking = Booking(
            date=day_to_epoch(day),
            time=time,
            room_id=spa[room],
            service_id=spa[service],
            guest_id=spa["guest"],
            therapist_id=spa[therapist] if therapist else None,
            **fields,
        )
        db_session.add(booking)
        db_session.commit()
        return booking.id

    return factory

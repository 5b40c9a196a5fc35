# tests/conftest.py
import os
from datetime import datetime, timezone
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_SAMPLE_DATA", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.main import app
from src.database import Base, get_db
from src.auth.service import UserService
from src.bookings.booking_service import BookingService
from src.bookings.dependencies import get_booking_service
from src.bookings.qr_service import QRCodeEncoder
from src.bookings.store import InMemoryBookingStore, SqlBookingStore
from src.bookings.token_service import TokenGenerator
from src.monuments.schemas import MonumentCreate, TicketPrices
from src.monuments.service import MonumentService


class FrozenClock:
    """Callable clock the tests can move forward"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 3, 10, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def memory_store():
    return InMemoryBookingStore(TokenGenerator())


@pytest.fixture
def booking_service(memory_store, clock):
    return BookingService(memory_store, QRCodeEncoder(), clock=clock, tz="UTC")


@pytest.fixture
def monument(db_session):
    return MonumentService.create_monument(db_session, MonumentCreate(
        name="Taj Mahal",
        description="Marble mausoleum in Agra",
        city="Agra",
        state="Uttar Pradesh",
        image_url="https://example.com/taj.jpg",
        ticket_prices=TicketPrices(adult=Decimal("50"), child=Decimal("25"), foreigner=Decimal("1100")),
    ))


@pytest.fixture
def client(session_factory, clock):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_booking_service(db=Depends(get_db)):
        store = SqlBookingStore(db, TokenGenerator())
        return BookingService(store, QRCodeEncoder(), clock=clock, tz="UTC")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_booking_service] = override_booking_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email: str, name: str = "Test Visitor", password: str = "secret123") -> dict:
    r = client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": password})
    assert r.status_code == 201, r.text
    return r.json()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(client):
    return auth_headers(register(client, "visitor@example.com")["access_token"])


@pytest.fixture
def admin_headers(client, db_session):
    body = register(client, "gate@example.com", name="Gate Admin")
    UserService.assign_role(db_session, body["user"]["id"], "admin")
    return auth_headers(body["access_token"])

"""Test configuration and fixtures."""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BEARER_TOKEN_SECRET", "test-bearer-secret")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

from datetime import date, datetime, timedelta, timezone  # noqa: E402
from typing import Optional  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from norseman_booking.core.config import settings  # noqa: E402
from norseman_booking.core.database import Base, utcnow  # noqa: E402
from norseman_booking.core.dependencies import get_db, get_notifier  # noqa: E402
from norseman_booking.core.exceptions import (  # noqa: E402
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    request_validation_handler,
)
from norseman_booking.core.middleware import setup_middleware  # noqa: E402
from norseman_booking.models import Booking, BookingStatus, Participant, Tour  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingNotifier:
    """Notifier that keeps every message instead of sending it."""

    def __init__(self):
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, html: str) -> None:
        self.sent.append((to, subject, html))

    def subjects_for(self, to: str) -> list[str]:
        return [subject for recipient, subject, _ in self.sent if recipient == to]


class FailingNotifier:
    """Notifier whose transport is always down."""

    def __init__(self):
        self.attempts = 0

    async def send(self, to: str, subject: str, html: str) -> None:
        self.attempts += 1
        raise ConnectionError("mail relay unreachable")


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return FailingNotifier()


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, notifier):
    """Create a test FastAPI application without lifespan or tracing."""
    from norseman_booking.routers import bookings, cron, health, metrics, tours, waitlist, webhooks

    app = FastAPI(title="Norseman Booking API (Test)", version="1.0.0-test")

    setup_middleware(app, enable_logging=True)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(tours.router)
    app.include_router(tours.admin_router)
    app.include_router(bookings.router)
    app.include_router(bookings.admin_router)
    app.include_router(waitlist.router)
    app.include_router(webhooks.router)
    app.include_router(cron.router)

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers():
    """Bearer token accepted by the admin routes."""
    token = jwt.encode(
        {
            "sub": "admin-1",
            "email": "admin@norsemanadventure.no",
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        },
        settings.bearer_token_secret,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_tour(test_session):
    """Factory inserting a tour directly."""

    async def _make_tour(
        total_seats: Optional[int] = 10,
        seats_available: Optional[int] = None,
        title: str = "Lofoten på ski",
        price: int = 4500,
    ) -> Tour:
        tour = Tour(
            title=title,
            price=price,
            total_seats=total_seats,
            seats_available=seats_available if seats_available is not None else (total_seats or 0),
            start_date=date(2027, 3, 1),
            end_date=date(2027, 3, 5),
        )
        test_session.add(tour)
        await test_session.commit()
        return tour

    return _make_tour


@pytest.fixture
def make_booking(test_session):
    """Factory inserting a booking with n participants directly."""

    async def _make_booking(
        tour: Optional[Tour],
        status: BookingStatus = BookingStatus.BETALT,
        participants: int = 1,
        navn: str = "Kari Nordmann",
        epost: Optional[str] = None,
        belop: Optional[int] = None,
        created_at: Optional[datetime] = None,
        reservation_expires_at: Optional[datetime] = None,
    ) -> Booking:
        booking = Booking(
            tour_id=tour.id if tour else None,
            navn=navn,
            epost=epost or f"{navn.split()[0].lower()}@example.no",
            telefon="",
            dato=date(2026, 10, 1),
            status=status,
            belop=belop if belop is not None else (0 if status == BookingStatus.VENTELISTE else 4500 * participants),
            created_at=created_at or utcnow(),
            reservation_expires_at=reservation_expires_at,
            participants=[
                Participant(
                    position=i,
                    name=f"{navn} {i}",
                    email=f"deltaker{i}@example.no",
                    telefon="99999999",
                    sos_navn="Ola Nordmann",
                    sos_telefon="88888888",
                )
                for i in range(participants)
            ],
        )
        test_session.add(booking)
        await test_session.commit()
        return booking

    return _make_booking


@pytest.fixture
def participant_payload():
    """Build the public booking form payload for n participants."""

    def _payload(count: int = 1) -> dict:
        return {
            "participants": [
                {
                    "name": f"Deltaker {i}",
                    "email": f"deltaker{i}@example.no",
                    "telefon": "99999999",
                    "sos_navn": "Ola Nordmann",
                    "sos_telefon": "88888888",
                }
                for i in range(count)
            ]
        }

    return _payload

"""Pytest fixtures for the booking core."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["ENV"] = "test"
os.environ["BUSINESS_TIMEZONE"] = "UTC"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from tests.fakes import (
    UTC_ZONE,
    FakeBookingStore,
    FakeCalendar,
    FakeCredentialStore,
    FakeNotifier,
    FakeZoom,
    google_credential,
    utc,
    zoom_credential,
)
from zoomzone.models.integration import GOOGLE, ZOOM
from zoomzone.services.availability_service import AvailabilityService
from zoomzone.services.booking_service import BookingOrchestrator
from zoomzone.services.busy_service import BusyIntervalProvider
from zoomzone.services.credentials import RefreshingCredential


@pytest.fixture
def credential_store():
    return FakeCredentialStore(google_credential(), zoom_credential())


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def zoom():
    return FakeZoom()


@pytest.fixture
def booking_store():
    return FakeBookingStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def make_orchestrator(credential_store, booking_store, notifier):
    """Wire an orchestrator the way api.deps does, over fakes, in UTC, with the clock before 2024-06-10."""

    def _make(
        calendar,
        zoom,
        bookings=None,
        notify=None,
        store=None,
        operator_email="owner@example.com",
        now=utc(2024, 6, 1, 0, 0),
    ):
        store = store or credential_store
        google = RefreshingCredential(GOOGLE, store, calendar.refresh_token)
        meeting = RefreshingCredential(ZOOM, store, zoom.refresh_token)
        availability = AvailabilityService(BusyIntervalProvider(calendar, google, UTC_ZONE), UTC_ZONE)
        return BookingOrchestrator(
            availability=availability,
            calendar=calendar,
            calendar_credential=google,
            meetings=zoom,
            meeting_credential=meeting,
            bookings=bookings or booking_store,
            notifier=notify or notifier,
            tz=UTC_ZONE,
            operator_email=operator_email,
            clock=lambda: now,
        )

    return _make


@pytest_asyncio.fixture
async def db_session():
    """In-memory SQLite session with the real tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
    await engine.dispose()

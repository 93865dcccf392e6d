"""Test fixtures for the booking backend."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.pop("SMTP_HOST", None)

from app.core.config import get_settings
from app.db.base import Base
from app.db.session import dispose_engine, get_sessionmaker
from app.main import app
from app.models import AvailabilityRule, Service, StaffMember, Venue


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def booking_setup(
    reset_database: AsyncIterator[None], db_url: str
) -> dict[str, object]:
    """Seed a capacity-mode service and a staff-mode service at one venue.

    The venue is open 09:00-17:00 every day. Avery works 09:00-12:00 and
    Jordan 13:00-17:00, both performing the haircut; Morgan works all day
    but is not linked to the haircut.
    """
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        venue = Venue(
            name="Harbor Table",
            email="hello@harbortable.example",
            timezone="UTC",
            booking_advance_hours=48,
            cancellation_hours=24,
        )
        session.add(venue)
        await session.flush()

        dinner = Service(
            venue_id=venue.id,
            name="Dinner table",
            duration_minutes=60,
            capacity=4,
        )
        haircut = Service(
            venue_id=venue.id,
            name="Haircut",
            duration_minutes=30,
            requires_staff=True,
        )
        session.add_all([dinner, haircut])
        await session.flush()

        avery = StaffMember(venue_id=venue.id, name="Avery Lind")
        jordan = StaffMember(venue_id=venue.id, name="Jordan Pike")
        morgan = StaffMember(venue_id=venue.id, name="Morgan Reyes")
        avery.services.append(haircut)
        jordan.services.append(haircut)
        session.add_all([avery, jordan, morgan])
        await session.flush()

        for day in range(7):
            session.add_all(
                [
                    AvailabilityRule(
                        venue_id=venue.id,
                        day_of_week=day,
                        start_time="09:00",
                        end_time="17:00",
                    ),
                    AvailabilityRule(
                        staff_member_id=avery.id,
                        day_of_week=day,
                        start_time="09:00",
                        end_time="12:00",
                    ),
                    AvailabilityRule(
                        staff_member_id=jordan.id,
                        day_of_week=day,
                        start_time="13:00",
                        end_time="17:00",
                    ),
                    AvailabilityRule(
                        staff_member_id=morgan.id,
                        day_of_week=day,
                        start_time="09:00",
                        end_time="17:00",
                    ),
                ]
            )
        await session.commit()

        return {
            "venue_id": venue.id,
            "dinner_id": dinner.id,
            "haircut_id": haircut.id,
            "avery_id": avery.id,
            "jordan_id": jordan.id,
            "morgan_id": morgan.id,
        }


@pytest_asyncio.fixture()
async def api_context(
    booking_setup: dict[str, object],
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client alongside the seeded venue data."""
    context = dict(booking_setup)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context

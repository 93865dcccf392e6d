"""Concurrent booking attempts against one contended resource."""

from __future__ import annotations

import asyncio
from datetime import UTC, date, datetime

import pytest
from sqlalchemy import func, select

from app.core.errors import ConflictError
from app.db.session import get_sessionmaker
from app.models import Booking, BookingResourceLock
from app.services import booking_service
from app.services.booking_modes import StaffMode

pytestmark = pytest.mark.asyncio

NOW = datetime(2030, 1, 7, 8, 0, tzinfo=UTC)
BOOKING_DAY = date(2030, 1, 14)


async def _attempt(db_url: str, setup: dict[str, object], **overrides) -> object:
    sessionmaker = get_sessionmaker(db_url)
    values = {
        "venue_id": setup["venue_id"],
        "service_id": setup["haircut_id"],
        "staff_member_id": setup["avery_id"],
        "customer_name": "Racer",
        "customer_email": "racer@example.com",
        "booking_date": BOOKING_DAY,
        "start_time": "10:00",
        "now": NOW,
    }
    values.update(overrides)
    async with sessionmaker() as session:
        try:
            booking = await booking_service.create_booking(session, **values)
        except ConflictError as exc:
            return exc
        return booking.id


async def test_only_one_staff_booking_wins(
    booking_setup: dict[str, object], db_url: str
) -> None:
    results = await asyncio.gather(
        *[
            _attempt(db_url, booking_setup, customer_email=f"racer{index}@example.com")
            for index in range(5)
        ]
    )

    winners = [result for result in results if not isinstance(result, ConflictError)]
    losers = [result for result in results if isinstance(result, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == 4

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        stored = await session.execute(select(func.count()).select_from(Booking))
        locks = await session.execute(
            select(func.count()).select_from(BookingResourceLock)
        )
    assert stored.scalar_one() == 1
    assert locks.scalar_one() == 1


async def test_capacity_is_never_oversold(
    booking_setup: dict[str, object], db_url: str
) -> None:
    results = await asyncio.gather(
        *[
            _attempt(
                db_url,
                booking_setup,
                service_id=booking_setup["dinner_id"],
                staff_member_id=None,
                party_size=2,
            )
            for _ in range(4)
        ]
    )

    winners = [result for result in results if not isinstance(result, ConflictError)]
    assert len(winners) == 2



async def test_lock_row_created_elsewhere_is_reused(
    booking_setup: dict[str, object], db_url: str
) -> None:
    key = StaffMode(
        venue_id=booking_setup["venue_id"], staff_member_id=booking_setup["avery_id"]
    ).resource_key(BOOKING_DAY)
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        session.add(
            BookingResourceLock(
                venue_id=key.venue_id,
                resource_kind=key.resource_kind,
                resource_id=key.resource_id,
                booking_date=key.booking_date,
            )
        )
        await session.commit()

    first = await _attempt(db_url, booking_setup)
    second = await _attempt(db_url, booking_setup, start_time="11:00")

    assert not isinstance(first, ConflictError)
    assert not isinstance(second, ConflictError)
    async with sessionmaker() as session:
        locks = await session.execute(
            select(func.count()).select_from(BookingResourceLock)
        )
    assert locks.scalar_one() == 1

"""Seed a capacity-mode restaurant and a staff-mode salon for local runs."""
from __future__ import annotations

import asyncio
from decimal import Decimal

from sqlalchemy import select

from app.db.session import get_sessionmaker
from app.models import AvailabilityRule, Service, StaffMember, Venue

RESTAURANT_NAME = "Harbor Table"
SALON_NAME = "Maple Street Salon"

_LUNCH = ("11:30", "14:30")
_DINNER = ("17:00", "22:00")
_MORNING_SHIFT = ("09:00", "13:00")
_AFTERNOON_SHIFT = ("14:00", "18:00")


async def _venue_exists(session, name: str) -> bool:
    result = await session.execute(select(Venue.id).where(Venue.name == name))
    return result.first() is not None


def _restaurant() -> Venue:
    venue = Venue(
        name=RESTAURANT_NAME,
        email="hello@harbortable.example",
        timezone="America/Chicago",
        booking_advance_hours=2,
        cancellation_hours=4,
    )
    venue.services.append(
        Service(name="Table reservation", duration_minutes=90, capacity=24)
    )
    # Closed Mondays.
    for day in (0, 2, 3, 4, 5, 6):
        for start, end in (_LUNCH, _DINNER):
            venue.availability_rules.append(
                AvailabilityRule(day_of_week=day, start_time=start, end_time=end)
            )
    return venue


def _salon() -> Venue:
    venue = Venue(
        name=SALON_NAME,
        email="desk@maplesalon.example",
        timezone="America/Chicago",
        booking_advance_hours=24,
        cancellation_hours=24,
    )
    haircut = Service(
        name="Haircut",
        duration_minutes=45,
        requires_staff=True,
        price=Decimal("42.00"),
    )
    colour = Service(
        name="Colour",
        duration_minutes=120,
        requires_staff=True,
        price=Decimal("110.00"),
    )
    venue.services.extend([haircut, colour])

    avery = StaffMember(name="Avery Lind", email="avery@maplesalon.example")
    avery.services.extend([haircut, colour])
    jordan = StaffMember(name="Jordan Pike", email="jordan@maplesalon.example")
    jordan.services.append(haircut)
    venue.staff_members.extend([avery, jordan])

    for day in range(1, 6):
        for start, end in (_MORNING_SHIFT, _AFTERNOON_SHIFT):
            avery.availability_rules.append(
                AvailabilityRule(day_of_week=day, start_time=start, end_time=end)
            )
    for day in (2, 4, 6):
        for start, end in (("10:00", "12:30"), ("15:00", "19:00")):
            jordan.availability_rules.append(
                AvailabilityRule(day_of_week=day, start_time=start, end_time=end)
            )
    return venue


async def seed_demo_venues() -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        created = 0
        for name, factory in ((RESTAURANT_NAME, _restaurant), (SALON_NAME, _salon)):
            if await _venue_exists(session, name):
                continue
            session.add(factory())
            created += 1
        if created:
            await session.commit()
        print(f"Seeded {created} demo venue(s).")


def main() -> None:
    asyncio.run(seed_demo_venues())


if __name__ == "__main__":
    main()

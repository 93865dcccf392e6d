"""Public slot availability API."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.availability import DayAvailabilityRead
from app.services import availability_service

router = APIRouter()


@router.get(
    "/venues/{venue_id}/services/{service_id}/availability",
    response_model=DayAvailabilityRead,
    summary="List slots for one day",
)
async def get_day_availability(
    venue_id: uuid.UUID,
    service_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    booking_date: Annotated[date, Query(alias="date")],
    party_size: Annotated[int, Query(ge=1)] = 1,
    time_window_start: str | None = None,
    time_window_end: str | None = None,
) -> DayAvailabilityRead:
    day = await availability_service.get_available_slots(
        session,
        venue_id=venue_id,
        service_id=service_id,
        booking_date=booking_date,
        party_size=party_size,
        time_window_start=time_window_start,
        time_window_end=time_window_end,
    )
    return DayAvailabilityRead.model_validate(day)


@router.get(
    "/venues/{venue_id}/services/{service_id}/availability/week",
    response_model=list[DayAvailabilityRead],
    summary="List slots for seven days",
)
async def get_week_availability(
    venue_id: uuid.UUID,
    service_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    start_date: date,
    party_size: Annotated[int, Query(ge=1)] = 1,
) -> list[DayAvailabilityRead]:
    week = await availability_service.get_week_availability(
        session,
        venue_id=venue_id,
        service_id=service_id,
        start_date=start_date,
        party_size=party_size,
    )
    return [DayAvailabilityRead.model_validate(day) for day in week]

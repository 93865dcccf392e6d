"""Customer booking API: create, manage by token, cancel."""

from __future__ import annotations

import logging
import re
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.booking import (
    BookingCancelRequest,
    BookingCreate,
    BookingManageRead,
    BookingRead,
    BookingUpdate,
)
from app.services import booking_service
from app.services.audit_service import Actor

logger = logging.getLogger(__name__)

router = APIRouter()

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,64}$")


def _require_valid_token(token: str) -> None:
    if not _TOKEN_PATTERN.match(token):
        logger.warning("Invalid booking token format (prefix=%s)", token[:4])
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid booking token format",
        )


@router.post(
    "",
    response_model=BookingManageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create booking",
)
async def create_booking(
    payload: BookingCreate,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> BookingManageRead:
    booking = await booking_service.create_booking(
        session,
        venue_id=payload.venue_id,
        service_id=payload.service_id,
        staff_member_id=payload.staff_member_id,
        customer_name=payload.customer_name,
        customer_email=str(payload.customer_email),
        customer_phone=payload.customer_phone,
        booking_date=payload.booking_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        party_size=payload.party_size,
        special_requests=payload.special_requests,
        actor=Actor.customer(str(payload.customer_email)),
        background_tasks=background_tasks,
    )
    return BookingManageRead.model_validate(booking)


@router.get(
    "/customer",
    response_model=list[BookingRead],
    summary="List bookings for a customer email",
)
async def list_customer_bookings(
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    email: Annotated[EmailStr, Query()],
    only_future: bool = False,
) -> list[BookingRead]:
    bookings = await booking_service.list_customer_bookings(
        session,
        str(email),
        only_future=only_future,
        background_tasks=background_tasks,
    )
    return [BookingRead.model_validate(booking) for booking in bookings]


@router.get(
    "/manage/{token}",
    response_model=BookingManageRead,
    summary="Fetch booking by manage token",
)
async def get_booking_by_token(
    token: str,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> BookingManageRead:
    _require_valid_token(token)
    booking = await booking_service.get_booking_by_token(
        session, token, background_tasks=background_tasks
    )
    return BookingManageRead.model_validate(booking)


@router.patch(
    "/manage/{token}",
    response_model=BookingManageRead,
    summary="Update booking by manage token",
)
async def update_booking(
    token: str,
    payload: BookingUpdate,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> BookingManageRead:
    _require_valid_token(token)
    booking = await booking_service.update_booking(
        session,
        token,
        payload.model_dump(exclude_unset=True),
        background_tasks=background_tasks,
    )
    return BookingManageRead.model_validate(booking)


@router.post(
    "/manage/{token}/cancel",
    response_model=BookingManageRead,
    summary="Cancel booking by manage token",
)
async def cancel_booking(
    token: str,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    payload: BookingCancelRequest | None = None,
) -> BookingManageRead:
    _require_valid_token(token)
    booking = await booking_service.cancel_booking(
        session,
        token,
        reason=payload.reason if payload else None,
        background_tasks=background_tasks,
    )
    return BookingManageRead.model_validate(booking)

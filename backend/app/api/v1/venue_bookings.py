"""Provider booking management API."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.booking import BookingStatus
from app.schemas.audit import AuditEntryRead
from app.schemas.booking import (
    BookingConfirmResponse,
    BookingManageRead,
    BookingRead,
    BookingStatusUpdate,
    ManualBookingCreate,
)
from app.services import audit_service, booking_service
from app.services.audit_service import Actor

router = APIRouter(prefix="/venues/{venue_id}/bookings")


@router.get("", response_model=list[BookingRead], summary="List venue bookings")
async def list_bookings(
    venue_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _actor: Annotated[Actor, Depends(deps.get_provider_actor)],
    booking_date: Annotated[date | None, Query(alias="date")] = None,
    date_from: date | None = None,
    date_to: date | None = None,
    status_filter: Annotated[BookingStatus | None, Query(alias="status")] = None,
    service_id: uuid.UUID | None = None,
    search: str | None = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[BookingRead]:
    bookings = await booking_service.list_venue_bookings(
        session,
        venue_id,
        booking_date=booking_date,
        date_from=date_from,
        date_to=date_to,
        status=status_filter,
        service_id=service_id,
        search=search,
        limit=limit,
        offset=offset,
        background_tasks=background_tasks,
    )
    return [BookingRead.model_validate(booking) for booking in bookings]


@router.post(
    "",
    response_model=BookingManageRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create booking on behalf of a customer",
)
async def create_manual_booking(
    venue_id: uuid.UUID,
    payload: ManualBookingCreate,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_provider_actor)],
) -> BookingManageRead:
    booking = await booking_service.create_booking(
        session,
        venue_id=venue_id,
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
        bypass_advance_check=True,
        actor=actor,
        background_tasks=background_tasks,
    )
    return BookingManageRead.model_validate(booking)


@router.get("/{booking_id}", response_model=BookingRead, summary="Get venue booking")
async def get_booking(
    venue_id: uuid.UUID,
    booking_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _actor: Annotated[Actor, Depends(deps.get_provider_actor)],
) -> BookingRead:
    booking = await booking_service.get_booking(
        session, booking_id, venue_id=venue_id, background_tasks=background_tasks
    )
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/confirm",
    response_model=BookingConfirmResponse,
    summary="Confirm or reactivate booking",
)
async def confirm_booking(
    venue_id: uuid.UUID,
    booking_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_provider_actor)],
) -> BookingConfirmResponse:
    booking, reactivated = await booking_service.confirm_booking(
        session,
        booking_id,
        venue_id=venue_id,
        actor=actor,
        background_tasks=background_tasks,
    )
    return BookingConfirmResponse(
        booking=BookingRead.model_validate(booking), reactivated=reactivated
    )


@router.patch(
    "/{booking_id}/status",
    response_model=BookingRead,
    summary="Change booking status",
)
async def update_status(
    venue_id: uuid.UUID,
    booking_id: uuid.UUID,
    payload: BookingStatusUpdate,
    background_tasks: BackgroundTasks,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    actor: Annotated[Actor, Depends(deps.get_provider_actor)],
) -> BookingRead:
    booking = await booking_service.update_booking_status(
        session,
        booking_id,
        payload.status,
        reason=payload.reason,
        actor=actor,
        venue_id=venue_id,
        background_tasks=background_tasks,
    )
    return BookingRead.model_validate(booking)


@router.get(
    "/{booking_id}/audit",
    response_model=list[AuditEntryRead],
    summary="Booking change history",
)
async def get_audit_history(
    venue_id: uuid.UUID,
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _actor: Annotated[Actor, Depends(deps.get_provider_actor)],
) -> list[AuditEntryRead]:
    entries = await audit_service.list_booking_audit(session, booking_id, venue_id)
    return [AuditEntryRead.model_validate(entry) for entry in entries]


@router.delete(
    "/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete booking permanently",
)
async def delete_booking(
    venue_id: uuid.UUID,
    booking_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    _actor: Annotated[Actor, Depends(deps.get_provider_actor)],
) -> Response:
    await booking_service.delete_booking(session, booking_id, venue_id=venue_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

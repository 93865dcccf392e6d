"""Common API dependencies."""

from __future__ import annotations

from typing import Annotated
from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.models.booking_audit import AuditActorType
from app.services.audit_service import Actor

_PROVIDER_ACTOR_TYPES = {
    AuditActorType.ADMIN,
    AuditActorType.OWNER,
    AuditActorType.STAFF,
}


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


async def get_provider_actor(
    x_actor_type: Annotated[str | None, Header()] = None,
    x_actor_id: Annotated[str | None, Header()] = None,
) -> Actor:
    """Resolve the provider identity forwarded by the upstream gateway."""
    try:
        actor_type = AuditActorType(x_actor_type) if x_actor_type else None
    except ValueError:
        actor_type = None
    if actor_type not in _PROVIDER_ACTOR_TYPES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Provider actor headers required",
        )
    return Actor(actor_type=actor_type, actor_id=x_actor_id)

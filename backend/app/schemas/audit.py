"""Pydantic schemas for booking audit history."""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.booking_audit import AuditAction, AuditActorType


class AuditEntryRead(BaseModel):
    id: uuid.UUID
    action: AuditAction
    old_status: str | None = None
    new_status: str | None = None
    reason: str | None = None
    actor_type: AuditActorType
    actor_id: str | None = None
    actor_label: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

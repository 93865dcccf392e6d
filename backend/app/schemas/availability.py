"""Pydantic schemas for slot availability listings."""
from __future__ import annotations

import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field


class TimeSlotRead(BaseModel):
    start_time: str
    end_time: str
    available: bool
    staff_member_id: uuid.UUID | None = None
    remaining_capacity: int | None = None

    model_config = ConfigDict(from_attributes=True)


class DayAvailabilityRead(BaseModel):
    """Slots for one calendar day; ``day_of_week`` counts from Sunday = 0."""

    date: datetime.date
    day_of_week: int
    time_slots: list[TimeSlotRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

"""Booking schemas — availability rules, slots, appointments."""

import re
from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class AvailabilityRuleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    expert_id: UUID
    day_of_week: int
    start_time: str
    end_time: str
    is_available: bool


class AvailabilityRuleWrite(BaseModel):
    """One weekly rule in the admin availability editor (0 = Sunday)."""

    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str = "09:00"
    end_time: str = "17:00"
    is_available: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_hhmm(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError("time must be HH:MM")
        return v

    @model_validator(mode="after")
    def _check_order(self) -> "AvailabilityRuleWrite":
        # Zero-padded HH:MM compares correctly as text
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AvailabilityReplace(BaseModel):
    """Full replacement of an expert's weekly rules."""

    rules: list[AvailabilityRuleWrite] = Field(default_factory=list)


class SlotRead(BaseModel):
    hour: int
    label: str


class SlotList(BaseModel):
    expert_id: UUID
    date: date
    day_of_week: int
    slots: list[SlotRead] = Field(default_factory=list)


class AppointmentCreate(BaseModel):
    expert_id: UUID
    date: date
    hour: int = Field(..., ge=0, le=23)
    notes: str | None = Field(None, max_length=2000)


class AppointmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    expert_id: UUID
    booked_at: datetime
    duration_minutes: int
    status: str
    notes: str | None = None
    created_at: datetime | None = None


class AppointmentStatusUpdate(BaseModel):
    status: Literal["pending", "confirmed", "completed", "cancelled"]

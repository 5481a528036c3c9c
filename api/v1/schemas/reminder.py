from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from core.models.reminder import ReminderStatus

HHMM_PATTERN = r"^(?:[01]\d|2[0-3]):[0-5]\d$"


class ReminderIn(BaseModel):
    medicine: str = Field(..., min_length=1)
    reminder_time: str = Field(..., pattern=HHMM_PATTERN, examples=["09:00"])


class ReminderOut(BaseModel):
    id: int
    user_id: int
    name: str | None
    phone: str | None
    medicine: str
    reminder_time: str
    status: ReminderStatus
    sent: bool
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ReminderEnvelope(BaseModel):
    success: bool = True
    reminder: ReminderOut

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel

from core.errors import ValidationError

_HHMM = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")


class ReminderStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    skipped = "skipped"


class ReminderPatch(BaseModel):
    """Partial edit; ``None`` fields are left untouched."""

    medicine: str | None = None
    reminder_time: str | None = None
    status: ReminderStatus | None = None


def validate_hhmm(value: str) -> str:
    if not _HHMM.match(value or ""):
        raise ValidationError(f"reminder time must be HH:MM (24h), got {value!r}")
    return value

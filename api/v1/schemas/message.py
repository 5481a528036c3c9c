from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ChatMessageIn(BaseModel):
    sender: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    time: str | None = None    # display string from the client, e.g. "10:05 AM"


class MessageOut(BaseModel):
    id: int
    sender: str
    text: str
    time: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

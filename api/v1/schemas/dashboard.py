from __future__ import annotations

from pydantic import BaseModel

from .nutrition import LedgerOut
from .user import UserOut


class ActivityOut(BaseModel):
    dates: list[str]
    steps: list[int]
    today_steps: int
    today_heart_rate: int
    today_calories_burned: int
    today_sleep: str
    is_connected: bool


class DashboardOut(BaseModel):
    user: UserOut
    ledger: LedgerOut
    activity: ActivityOut

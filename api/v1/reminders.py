# api/v1/reminders.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.deps import current_user
from api.v1.schemas import ReminderEnvelope, ReminderIn, ReminderOut
from core import reminder_store
from core.models.reminder import ReminderPatch
from services.db import User, get_session

router = APIRouter()


def _envelope(reminder) -> ReminderEnvelope:
    return ReminderEnvelope(reminder=ReminderOut.model_validate(reminder, from_attributes=True))


# ───────────────────────── create ──────────────────────────
@router.post(
    "",
    response_model=ReminderEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_reminder(
    body: ReminderIn,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_session),
) -> ReminderEnvelope:
    reminder = await reminder_store.create(db, user, body.medicine, body.reminder_time)
    return _envelope(reminder)


# ───────────────────────── list ────────────────────────────
@router.get("/today", response_model=list[ReminderOut])
async def reminders_today(
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_session),
) -> list[ReminderOut]:
    rows = await reminder_store.list_today(db, user.id)
    return [ReminderOut.model_validate(r, from_attributes=True) for r in rows]


@router.get("/history", response_model=list[ReminderOut])
async def reminder_history(
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_session),
) -> list[ReminderOut]:
    rows = await reminder_store.list_history(db, user.id)
    return [ReminderOut.model_validate(r, from_attributes=True) for r in rows]


# ───────────────────────── edit ────────────────────────────
@router.put("/{reminder_id}", response_model=ReminderEnvelope)
async def update_reminder(
    reminder_id: int,
    body: ReminderPatch,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_session),
) -> ReminderEnvelope:
    reminder = await reminder_store.update(db, reminder_id, body, user_id=user.id)
    return _envelope(reminder)


@router.put("/{reminder_id}/complete", response_model=ReminderEnvelope)
async def complete_reminder(
    reminder_id: int,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_session),
) -> ReminderEnvelope:
    reminder = await reminder_store.complete(db, reminder_id, user_id=user.id)
    return _envelope(reminder)


@router.delete("/{reminder_id}")
async def delete_reminder(
    reminder_id: int,
    user: User = Depends(current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    await reminder_store.delete(db, reminder_id, user_id=user.id)
    return {"success": True, "message": "Reminder deleted"}

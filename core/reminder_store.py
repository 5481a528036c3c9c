"""
CRUD over medication reminders.

``user_id`` arguments scope an operation to one owner; a reminder that
belongs to someone else is reported exactly like a missing one.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Sequence

from sqlalchemy import delete as sa_delete
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError
from core.models.reminder import ReminderPatch, ReminderStatus, validate_hhmm
from services.db import Reminder, User

_LOG = logging.getLogger(__name__)


async def create(
    db: AsyncSession,
    owner: User,
    medicine: str,
    reminder_time: str,
    now: datetime | None = None,
) -> Reminder:
    """New pending reminder; the owner's name/phone are copied in as a snapshot."""
    now = now or datetime.now()
    reminder = Reminder(
        user_id=owner.id,
        name=owner.name,
        phone=owner.phone,
        medicine=medicine,
        reminder_time=validate_hhmm(reminder_time),
        status=ReminderStatus.pending.value,
        sent=False,
        created_at=now,
        updated_at=now,
    )
    db.add(reminder)
    await db.commit()
    await db.refresh(reminder)
    _LOG.info("reminder %s created for user %s at %s", reminder.id, owner.id, reminder_time)
    return reminder


async def get(db: AsyncSession, reminder_id: int, user_id: int | None = None) -> Reminder:
    reminder = await db.get(Reminder, reminder_id)
    if reminder is None or (user_id is not None and reminder.user_id != user_id):
        raise NotFoundError(f"reminder {reminder_id} not found")
    return reminder


async def list_today(
    db: AsyncSession, user_id: int, now: datetime | None = None
) -> Sequence[Reminder]:
    """Reminders created during the current calendar day, earliest time first."""
    start = datetime.combine((now or datetime.now()).date(), time.min)
    res = await db.execute(
        select(Reminder)
        .where(
            Reminder.user_id == user_id,
            Reminder.created_at >= start,
            Reminder.created_at < start + timedelta(days=1),
        )
        .order_by(Reminder.reminder_time.asc())
    )
    return res.scalars().all()


async def list_history(db: AsyncSession, user_id: int) -> Sequence[Reminder]:
    res = await db.execute(
        select(Reminder)
        .where(Reminder.user_id == user_id)
        .order_by(Reminder.created_at.desc())
    )
    return res.scalars().all()


async def update(
    db: AsyncSession,
    reminder_id: int,
    patch: ReminderPatch,
    user_id: int | None = None,
    now: datetime | None = None,
) -> Reminder:
    """
    Merge the supplied fields and stamp ``updated_at``.

    Status moves are not checked: any of the three values may follow any other.
    """
    reminder = await get(db, reminder_id, user_id)

    if patch.medicine:
        reminder.medicine = patch.medicine
    if patch.reminder_time:
        reminder.reminder_time = validate_hhmm(patch.reminder_time)
    if patch.status is not None:
        reminder.status = patch.status.value
    reminder.updated_at = now or datetime.now()

    await db.commit()
    await db.refresh(reminder)
    return reminder


async def complete(
    db: AsyncSession,
    reminder_id: int,
    user_id: int | None = None,
    now: datetime | None = None,
) -> Reminder:
    reminder = await get(db, reminder_id, user_id)
    now = now or datetime.now()
    reminder.status = ReminderStatus.completed.value
    reminder.completed_at = now
    reminder.updated_at = now
    await db.commit()
    await db.refresh(reminder)
    return reminder


async def delete(db: AsyncSession, reminder_id: int, user_id: int | None = None) -> None:
    """Idempotent: deleting a missing reminder is still a success."""
    stmt = sa_delete(Reminder).where(Reminder.id == reminder_id)
    if user_id is not None:
        stmt = stmt.where(Reminder.user_id == user_id)
    await db.execute(stmt)
    await db.commit()


async def due_at(db: AsyncSession, hhmm: str) -> Sequence[Reminder]:
    """Every reminder set for ``hhmm``, any owner, any status."""
    res = await db.execute(
        select(Reminder).where(Reminder.reminder_time == hhmm).order_by(Reminder.id)
    )
    return res.scalars().all()

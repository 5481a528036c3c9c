"""
core/ledger.py
────────────────────────────────────────────────────────────────────────
Per-user daily nutrition ledger.

* ten running accumulators (calories … cholesterol)
* five named meal slots, each holding the latest meal written to it
* a calendar-day rollover that zeroes both

All writes are single UPDATE statements so concurrent uploads for the
same user never lose an increment:

    reset     → UPDATE … WHERE id = :id AND last_reset_date != :today
    increment → UPDATE … SET calories = calories + :delta, …

Writing the same slot twice in one day overwrites the slot but still adds
both meals to the totals; the totals are not reconciled with the slots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFoundError
from core.models.nutrition import NutritionResult
from services.db import User

Logger = logging.getLogger(__name__)

NUTRIENTS = (
    "calories", "protein", "carbs", "fats", "fiber",
    "calcium", "iron", "zinc", "magnesium", "cholesterol",
)

# public slot label → column prefix on ``users``
MEAL_SLOTS = {
    "breakfast": "breakfast",
    "morningSnack": "morning_snack",
    "lunch": "lunch",
    "eveningSnack": "evening_snack",
    "dinner": "dinner",
}


@dataclass(frozen=True)
class MealSlot:
    name: str
    calories: float


@dataclass(frozen=True)
class DailyLedger:
    last_reset_date: str
    nutrition: dict[str, float]
    meals: dict[str, MealSlot | None]


def today_str(now: datetime | None = None) -> str:
    """Server-local calendar day as YYYY-MM-DD."""
    return (now or datetime.now()).date().isoformat()


def blank_ledger(today: str) -> dict[str, Any]:
    """Column values of a freshly zeroed ledger."""
    values: dict[str, Any] = {n: 0.0 for n in NUTRIENTS}
    for prefix in MEAL_SLOTS.values():
        values[f"{prefix}_name"] = None
        values[f"{prefix}_calories"] = None
    values["last_reset_date"] = today
    return values


# ──────────────────────────────────────────────────────────────────────
#  Reset
# ──────────────────────────────────────────────────────────────────────
async def ensure_daily_reset(db: AsyncSession, user_id: int, today: str) -> bool:
    """
    Zero the ledger if it was last reset on another day.

    Returns True when a reset happened. Calling it again with the same
    ``today`` is a no-op.
    """
    res = await db.execute(
        update(User)
        .where(User.id == user_id, User.last_reset_date != today)
        .values(**blank_ledger(today))
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if res.rowcount:
        Logger.info("ledger reset for user %s (day %s)", user_id, today)
        return True

    if await _load(db, user_id) is None:
        raise NotFoundError(f"user {user_id} not found")
    return False


# ──────────────────────────────────────────────────────────────────────
#  Increment
# ──────────────────────────────────────────────────────────────────────
async def apply_meal_analysis(
    db: AsyncSession,
    user_id: int,
    meal_type: str | None,
    result: NutritionResult | Mapping[str, Any],
) -> NutritionResult:
    """
    Add one analysed meal to the user's totals.

    The slot named by ``meal_type`` is overwritten with the meal; an absent
    or unknown label still updates the totals but leaves every slot alone.
    Raises ``ValidationError`` for malformed results (nothing is written).
    """
    meal = NutritionResult.parse(result)

    values: dict[str, Any] = {
        col: getattr(User, col) + amount for col, amount in meal.increments().items()
    }

    prefix = MEAL_SLOTS.get(meal_type) if meal_type else None
    if prefix:
        values[f"{prefix}_name"] = meal.food_name
        values[f"{prefix}_calories"] = meal.calories
    elif meal_type:
        Logger.warning(
            "unknown meal slot %r for user %s – totals updated, no slot written",
            meal_type, user_id,
        )

    res = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if not res.rowcount:
        await db.rollback()
        raise NotFoundError(f"user {user_id} not found")

    await db.commit()
    return meal


# ──────────────────────────────────────────────────────────────────────
#  Read
# ──────────────────────────────────────────────────────────────────────
async def get_ledger(db: AsyncSession, user_id: int) -> DailyLedger:
    user = await _load(db, user_id)
    if user is None:
        raise NotFoundError(f"user {user_id} not found")
    return snapshot(user)


def snapshot(user: User) -> DailyLedger:
    meals: dict[str, MealSlot | None] = {}
    for slot, prefix in MEAL_SLOTS.items():
        name = getattr(user, f"{prefix}_name")
        meals[slot] = (
            MealSlot(name=name, calories=getattr(user, f"{prefix}_calories") or 0.0)
            if name is not None
            else None
        )
    return DailyLedger(
        last_reset_date=user.last_reset_date,
        nutrition={n: getattr(user, n) for n in NUTRIENTS},
        meals=meals,
    )


async def _load(db: AsyncSession, user_id: int) -> User | None:
    # bypass the identity map: the UPDATEs above don't refresh loaded rows
    return (
        await db.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()

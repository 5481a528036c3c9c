"""
services/db.py
────────────────────────────────────────────────────────────────────────
* Async SQLAlchemy v2 setup
* Models for users (with the daily nutrition ledger), reminders and
  community chat messages
* Session helpers used by routers / workers
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from config import settings

# ───────── connection helper ────────────────────────────────────────
_ENGINE: AsyncEngine | None = None
_SESSIONS: async_sessionmaker[AsyncSession] | None = None


def _create_engine() -> AsyncEngine:
    if not settings.database_url:
        raise RuntimeError("Set the DATABASE_URL env var")
    return create_async_engine(settings.database_url, pool_pre_ping=True)


def engine() -> AsyncEngine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = _create_engine()
    return _ENGINE


def sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _SESSIONS
    if _SESSIONS is None:
        _SESSIONS = async_sessionmaker(engine(), expire_on_commit=False)
    return _SESSIONS


# ───────── declarative base ──────────────────────────────────────────
Base = declarative_base(cls=AsyncAttrs)

# ───────── models ────────────────────────────────────────────────────


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String)
    name: Mapped[str] = mapped_column(String)
    phone: Mapped[str | None] = mapped_column(String)

    # calendar day (YYYY-MM-DD) the ledger was last zeroed
    last_reset_date: Mapped[str] = mapped_column(String, default="")

    # daily totals
    calories: Mapped[float] = mapped_column(Float, default=0)
    protein: Mapped[float] = mapped_column(Float, default=0)
    carbs: Mapped[float] = mapped_column(Float, default=0)
    fats: Mapped[float] = mapped_column(Float, default=0)
    fiber: Mapped[float] = mapped_column(Float, default=0)
    calcium: Mapped[float] = mapped_column(Float, default=0)
    iron: Mapped[float] = mapped_column(Float, default=0)
    zinc: Mapped[float] = mapped_column(Float, default=0)
    magnesium: Mapped[float] = mapped_column(Float, default=0)
    cholesterol: Mapped[float] = mapped_column(Float, default=0)

    # the five meal slots; NULL name == empty slot
    breakfast_name: Mapped[str | None] = mapped_column(String)
    breakfast_calories: Mapped[float | None] = mapped_column(Float)
    morning_snack_name: Mapped[str | None] = mapped_column(String)
    morning_snack_calories: Mapped[float | None] = mapped_column(Float)
    lunch_name: Mapped[str | None] = mapped_column(String)
    lunch_calories: Mapped[float | None] = mapped_column(Float)
    evening_snack_name: Mapped[str | None] = mapped_column(String)
    evening_snack_calories: Mapped[float | None] = mapped_column(Float)
    dinner_name: Mapped[str | None] = mapped_column(String)
    dinner_calories: Mapped[float | None] = mapped_column(Float)


class Reminder(Base):
    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    # snapshot of the owner at creation time
    name: Mapped[str | None] = mapped_column(String)
    phone: Mapped[str | None] = mapped_column(String)
    medicine: Mapped[str] = mapped_column(String)
    reminder_time: Mapped[str] = mapped_column(String(5), index=True)  # HH:MM
    status: Mapped[str] = mapped_column(String, default="pending")
    # never read by the delivery loop
    sent: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer)
    sender: Mapped[str] = mapped_column(String)
    text: Mapped[str] = mapped_column(Text)
    time: Mapped[str | None] = mapped_column(String)  # client display string
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


# ───────── schema / session helpers ─────────────────────────────────

async def init_models(eng: AsyncEngine | None = None) -> None:
    async with (eng or engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with sessionmaker()() as session:
        yield session


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Standalone session for code running outside a request (workers)."""
    async with sessionmaker()() as session:
        yield session

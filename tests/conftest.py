"""
Shared fixtures: an in-memory SQLite database per test plus fake
provider clients (vision, SMS, uploads).
"""
from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.ledger import blank_ledger
from services.db import Base, User

YESTERDAY = "2026-10-17"
TODAY = "2026-10-18"


def nutrition_json(
    food_name: str = "Paneer Wrap",
    calories: float = 450,
    protein: float = 22,
    **micros: float,
) -> dict:
    return {
        "food_name": food_name,
        "calories": calories,
        "macros": {"protein_g": protein, "carbs_g": 48, "fats_g": 18, "fiber_g": 6},
        "micros": {
            "calcium_mg": micros.get("calcium_mg", 210),
            "iron_mg": micros.get("iron_mg", 3.1),
            "zinc_mg": micros.get("zinc_mg", 1.8),
            "magnesium_mg": micros.get("magnesium_mg", 40),
            "cholesterol_mg": micros.get("cholesterol_mg", 35),
        },
    }


# ──────────────────────────── fakes ─────────────────────────────────
class FakeVision:
    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []

    async def generate(self, prompt, image=None, mime_type=None):
        self.calls.append({"prompt": prompt, "image": image, "mime_type": mime_type})
        if self.error is not None:
            raise self.error
        return self.reply


class FakeUpload:
    def __init__(self, data: bytes = b"\x89PNG fake", content_type: str = "image/png") -> None:
        self.data = data
        self.content_type = content_type
        self.closed = False

    async def read(self) -> bytes:
        return self.data

    async def close(self) -> None:
        self.closed = True


class FakeSms:
    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.fail_for = fail_for or set()
        self.sent: list[tuple[str, str]] = []
        self.attempts: list[str] = []

    async def send(self, to: str, body: str) -> str:
        self.attempts.append(to)
        if to in self.fail_for:
            raise RuntimeError("Twilio 400: invalid 'To' number")
        self.sent.append((to, body))
        return f"SM{len(self.sent):04d}"


# ──────────────────────────── database ──────────────────────────────
@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(sessions):
    async with sessions() as session:
        yield session


async def make_user(db, **overrides) -> User:
    fields = dict(
        email="asha@example.com",
        password_hash="not-a-real-hash",
        name="Asha",
        phone="9876543210",
        **blank_ledger(YESTERDAY),
    )
    fields.update(overrides)
    user = User(**fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def user(db) -> User:
    return await make_user(db)

# api/v1/deps.py
from __future__ import annotations

from dataclasses import asdict

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from api.v1.schemas import LedgerOut
from core.chat import ChatHub
from core.errors import AnalysisError, Unauthorized
from core.ledger import DailyLedger
from core.meal_analysis import MealAnalyzer
from services.auth import COOKIE_NAME, verify_token
from services.db import User, get_session
from services.google_fit import GoogleFitClient


# ───────────────────────── identity gate ─────────────────────
def current_user_id(conn: HTTPConnection) -> int:
    """User id from the ``token`` cookie or an ``Authorization: Bearer`` header."""
    token = conn.cookies.get(COOKIE_NAME)
    if not token:
        auth = conn.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            token = auth[7:].strip()
    return verify_token(token)


async def current_user(
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise Unauthorized("account no longer exists")
    return user


# ───────────────────────── provider clients ──────────────────
def get_analyzer(conn: HTTPConnection) -> MealAnalyzer:
    vision = getattr(conn.app.state, "vision", None)
    if vision is None:
        raise AnalysisError("vision provider not configured")
    return MealAnalyzer(vision)


def get_fit_client(conn: HTTPConnection) -> GoogleFitClient:
    fit = getattr(conn.app.state, "google_fit", None)
    if fit is None:
        raise HTTPException(status_code=503, detail="Google Fit client not started")
    return fit


def get_chat_hub(conn: HTTPConnection) -> ChatHub:
    return conn.app.state.chat_hub


# ───────────────────────── helpers ───────────────────────────
def ledger_out(ledger: DailyLedger) -> LedgerOut:
    return LedgerOut.model_validate(asdict(ledger))

# api/v1/dashboard.py
from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.deps import current_user, get_fit_client, ledger_out
from api.v1.schemas import ActivityOut, DashboardOut, UserOut
from core.activity import ActivitySummary
from core.ledger import ensure_daily_reset, get_ledger, today_str
from services.db import User, get_session
from services.google_fit import GoogleFitClient

router = APIRouter()
_LOG = logging.getLogger(__name__)


@router.get("", response_model=DashboardOut)
async def dashboard(
    response: Response,
    google_token: str | None = None,
    user: User = Depends(current_user),
    fit: GoogleFitClient = Depends(get_fit_client),
    db: AsyncSession = Depends(get_session),
) -> DashboardOut:
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"

    await ensure_daily_reset(db, user.id, today_str())
    ledger = await get_ledger(db, user.id)

    activity = await fit.fetch_summary(google_token) if google_token else ActivitySummary()

    return DashboardOut(
        user=UserOut.model_validate(user, from_attributes=True),
        ledger=ledger_out(ledger),
        activity=ActivityOut.model_validate(activity.to_dict()),
    )


# ───────────────────────── Google Fit OAuth ─────────────────
@router.get("/google/authorize")
async def google_authorize(fit: GoogleFitClient = Depends(get_fit_client)) -> RedirectResponse:
    return RedirectResponse(fit.authorize_url())


@router.get("/google/callback")
async def google_callback(
    code: str,
    fit: GoogleFitClient = Depends(get_fit_client),
) -> dict[str, str]:
    try:
        token = await fit.exchange_code(code)
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        _LOG.error("Google auth failed: %s", exc)
        raise HTTPException(status_code=502, detail="Error logging into Google Fit") from exc
    return {"access_token": token}

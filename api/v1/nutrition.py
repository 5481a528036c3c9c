# api/v1/nutrition.py
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.deps import current_user_id, get_analyzer, ledger_out
from api.v1.schemas import AnalysisOut, LedgerOut
from core.ledger import ensure_daily_reset, get_ledger, today_str
from core.meal_analysis import MealAnalyzer
from services.db import get_session

router = APIRouter()


@router.post(
    "/analyze",
    response_model=AnalysisOut,
    status_code=status.HTTP_200_OK,
    summary="Analyse a food photo and add it to today's ledger",
)
async def analyze_meal(
    report: UploadFile | None = File(None, description="food photo"),
    meal_type: str | None = Form(None, alias="mealType"),
    user_id: int = Depends(current_user_id),
    analyzer: MealAnalyzer = Depends(get_analyzer),
    db: AsyncSession = Depends(get_session),
) -> AnalysisOut:
    """
    `mealType` is one of breakfast / morningSnack / lunch / eveningSnack /
    dinner. Any other value (or none) still counts toward the daily totals
    but fills no slot.
    """
    result = await analyzer.analyze(db, user_id, report, meal_type, today_str())
    return AnalysisOut(data=result)


@router.get(
    "",
    response_model=LedgerOut,
    summary="Today's nutrition totals and meal slots",
)
async def read_ledger(
    user_id: int = Depends(current_user_id),
    db: AsyncSession = Depends(get_session),
) -> LedgerOut:
    # first read of a new day shows a zeroed ledger
    await ensure_daily_reset(db, user_id, today_str())
    return ledger_out(await get_ledger(db, user_id))

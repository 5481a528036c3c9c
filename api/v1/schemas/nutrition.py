from __future__ import annotations

from pydantic import BaseModel

from core.models.nutrition import NutritionResult


class MealSlotOut(BaseModel):
    name: str
    calories: float


class LedgerOut(BaseModel):
    last_reset_date: str
    nutrition: dict[str, float]
    # breakfast / morningSnack / lunch / eveningSnack / dinner; None == empty
    meals: dict[str, MealSlotOut | None]


class AnalysisOut(BaseModel):
    success: bool = True
    data: NutritionResult

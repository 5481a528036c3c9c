"""
Food-photo → nutrition record, via the Gemini vision model.

One ``analyze`` call runs the whole request: daily rollover, provider
call, JSON extraction, ledger update. The uploaded image is closed on
every exit path.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import AnalysisError, ValidationError
from core.ledger import apply_meal_analysis, ensure_daily_reset
from core.models.nutrition import NutritionResult

_LOG = logging.getLogger(__name__)

ANALYSIS_PROMPT = (
    "Analyze this food image. Return a pure JSON object: "
    '{ "food_name": "Short Name", "calories": 0, '
    '"macros": { "protein_g": 0, "carbs_g": 0, "fats_g": 0, "fiber_g": 0 }, '
    '"micros": { "calcium_mg": 0, "iron_mg": 0, "zinc_mg": 0, '
    '"magnesium_mg": 0, "cholesterol_mg": 0 } }'
)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


class VisionClient(Protocol):
    async def generate(
        self, prompt: str, image: bytes | None = None, mime_type: str | None = None
    ) -> str: ...


class ImageUpload(Protocol):
    """What we need from an upload (FastAPI's ``UploadFile`` fits)."""

    content_type: str | None

    async def read(self) -> bytes: ...

    async def close(self) -> None: ...


def extract_clean_json(raw: str | None) -> dict[str, Any]:
    """Decode the single JSON object in ``raw``, with or without ``` fences."""
    if not raw or not raw.strip():
        raise AnalysisError("empty response from vision provider")

    text = _FENCE.sub("", raw).strip()
    if not text.startswith("{"):
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise AnalysisError("no JSON object in vision response")
        text = text[start:end + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AnalysisError(f"undecodable vision response: {exc}") from exc

    if not isinstance(data, dict):
        raise AnalysisError("vision response is not a JSON object")
    return data


class MealAnalyzer:
    def __init__(self, vision: VisionClient) -> None:
        self._vision = vision

    async def analyze(
        self,
        db: AsyncSession,
        user_id: int,
        image: ImageUpload | None,
        meal_type: str | None,
        today: str,
    ) -> NutritionResult:
        try:
            # rollover must land before this request's increment
            await ensure_daily_reset(db, user_id, today)

            data: bytes | None = None
            mime: str | None = None
            if image is not None:
                data = await image.read()
                mime = image.content_type

            try:
                raw = await self._vision.generate(ANALYSIS_PROMPT, image=data, mime_type=mime)
            except Exception as exc:
                _LOG.error("vision provider call failed for user %s", user_id, exc_info=True)
                raise AnalysisError("vision provider call failed") from exc

            try:
                result = NutritionResult.parse(extract_clean_json(raw))
            except ValidationError as exc:
                raise AnalysisError(str(exc)) from exc

            await apply_meal_analysis(db, user_id, meal_type, result)
            _LOG.info(
                "user %s logged %r (%s kcal) to %s",
                user_id, result.food_name, result.calories, meal_type or "no slot",
            )
            return result
        finally:
            if image is not None:
                await image.close()

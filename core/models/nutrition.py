from __future__ import annotations

import math
from typing import Annotated, Any, Mapping

from pydantic import BaseModel, BeforeValidator
from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError


def _number(value: Any) -> Any:
    # provider numbers only: "12" or true must not become 12.0 / 1.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


Amount = Annotated[float, BeforeValidator(_number)]


class Macros(BaseModel):
    protein_g: Amount
    carbs_g: Amount
    fats_g: Amount
    fiber_g: Amount


class Micros(BaseModel):
    calcium_mg: Amount
    iron_mg: Amount
    zinc_mg: Amount
    magnesium_mg: Amount
    cholesterol_mg: Amount


class NutritionResult(BaseModel):
    """One analysed meal, in the JSON shape the vision prompt asks for."""

    food_name: str
    calories: Amount
    macros: Macros
    micros: Micros

    @classmethod
    def parse(cls, data: Mapping[str, Any] | "NutritionResult") -> "NutritionResult":
        if isinstance(data, NutritionResult):
            return data
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            fields = ", ".join(".".join(map(str, e["loc"])) for e in exc.errors())
            raise ValidationError(f"malformed nutrition result: {fields}") from exc

    def increments(self) -> dict[str, float]:
        """Ledger column → amount to add."""
        return {
            "calories": self.calories,
            "protein": self.macros.protein_g,
            "carbs": self.macros.carbs_g,
            "fats": self.macros.fats_g,
            "fiber": self.macros.fiber_g,
            "calcium": self.micros.calcium_mg,
            "iron": self.micros.iron_mg,
            "zinc": self.micros.zinc_mg,
            "magnesium": self.micros.magnesium_mg,
            "cholesterol": self.micros.cholesterol_mg,
        }

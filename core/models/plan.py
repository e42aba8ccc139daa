from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, model_validator

RECIPE_MIN_CHARS = 140
RECIPE_MAX_CHARS = 1200
MAX_PLAN_DAYS = 14


class MealType(str, Enum):
    BREAKFAST = "Frühstück"
    LUNCH = "Mittagessen"
    DINNER = "Abendessen"
    SNACK = "Snack"


class Unit(str, Enum):
    GRAMS = "g"
    MILLILITERS = "ml"
    PIECE = "Stück"
    TABLESPOON = "EL"
    TEASPOON = "TL"


class IngredientCategory(str, Enum):
    PRODUCE = "Gemüse & Obst"
    PROTEIN = "Protein"
    DAIRY = "Milchprodukte"
    CARBOHYDRATE = "Kohlenhydrate"
    OTHER = "Sonstiges"


class _WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Ingredient(_WireModel):
    name: str
    amount: float = Field(..., ge=0, strict=True)
    unit: Unit
    category: IngredientCategory


class Meal(_WireModel):
    meal_type: MealType = Field(..., alias="mealType")
    name: str = Field(..., min_length=1)
    description: str
    recipe: str = Field(..., min_length=RECIPE_MIN_CHARS, max_length=RECIPE_MAX_CHARS)
    kcal: float = Field(..., ge=0, strict=True)
    protein: float = Field(..., ge=0, strict=True)
    carbs: float = Field(..., ge=0, strict=True)
    fat: float = Field(..., ge=0, strict=True)
    ingredients: list[Ingredient]

    @property
    def recipe_steps(self) -> list[str]:
        """Recipe split into its ';'-separated steps, blanks dropped."""
        return [step.strip() for step in self.recipe.split(";") if step.strip()]


class DayPlan(_WireModel):
    day_name: str = Field(..., alias="dayName")
    meals: list[Meal]
    daily_kcal: float = Field(..., alias="dailyKcal", ge=0, strict=True)

    @model_validator(mode="after")
    def _one_meal_per_type(self) -> "DayPlan":
        counts = Counter(m.meal_type for m in self.meals)
        missing = [t.value for t in MealType if counts[t] == 0]
        doubled = [t.value for t, n in counts.items() if n > 1]
        if missing or doubled or len(self.meals) != len(MealType):
            raise ValueError(
                f"need exactly one meal per type (missing={missing}, repeated={doubled})"
            )
        return self

    @property
    def meal_kcal_sum(self) -> float:
        return sum(m.kcal for m in self.meals)

    @property
    def effective_daily_kcal(self) -> int:
        """max(declared total, sum of meals), rounded."""
        return int(round(max(self.daily_kcal, self.meal_kcal_sum)))


class MealPlan(_WireModel):
    days: list[DayPlan] = Field(..., min_length=1, max_length=MAX_PLAN_DAYS)

    @model_validator(mode="after")
    def _unique_day_names(self) -> "MealPlan":
        names = [d.day_name for d in self.days]
        repeated = sorted({n for n in names if names.count(n) > 1})
        if repeated:
            raise ValueError(f"day names must be unique, repeated: {repeated}")
        return self


# ─────────────────────────── request / result ─────────────────────────
class GenerationRequest(BaseModel):
    num_days: int = Field(7, ge=1, le=MAX_PLAN_DAYS)
    additional_notes: str | None = None
    fast_mode: bool = False
    request_timeout_s: float | None = Field(None, gt=0)
    on_progress: Callable[..., None] | None = Field(None, exclude=True)


class GenerationResult(BaseModel):
    plan: MealPlan
    prompt: str

# backend/studio/schemas/nutrition.py
"""
Pydantic schemas for the food log.

Entries are stored as JSON on the day row; addedAt keeps its stored key on
the wire.
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field

from .tools import MacroRequest


class NutritionTargetsUpdate(BaseModel):
    calories: int = Field(ge=0)
    protein: int = Field(ge=0)
    carbs: int = Field(ge=0)
    fats: int = Field(ge=0)
    goal: Optional[str] = None

    model_config = {"from_attributes": True}


class NutritionTargetsCalculate(MacroRequest):
    """Macro calculator inputs; the result becomes the client's targets."""


class NutritionTargetsRead(BaseModel):
    calories: int
    protein: int
    carbs: int
    fats: int
    goal: Optional[str] = None
    updated_at: Optional[str] = None

    model_config = {"from_attributes": True}


class FoodEntryCreate(BaseModel):
    name: str = Field(min_length=1)
    meal: Literal["breakfast", "lunch", "dinner", "snacks"]
    protein: float = Field(default=0, ge=0)
    carbs: float = Field(default=0, ge=0)
    fats: float = Field(default=0, ge=0)
    calories: float = Field(default=0, ge=0)
    serving: Optional[str] = None

    model_config = {"from_attributes": True}


class FoodEntry(FoodEntryCreate):
    id: str
    added_at: str = Field(alias="addedAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class MacroTotals(BaseModel):
    protein: float
    carbs: float
    fats: float
    calories: float

    model_config = {"from_attributes": True}


class DayLogRead(BaseModel):
    date: str
    entries: list[FoodEntry]
    totals: MacroTotals
    targets: Optional[NutritionTargetsRead] = None
    remaining: Optional[MacroTotals] = None
    progress: Optional[dict[str, int]] = None

    model_config = {"from_attributes": True}

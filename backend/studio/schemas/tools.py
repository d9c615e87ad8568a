# backend/studio/schemas/tools.py

from typing import Literal, Optional
from pydantic import BaseModel, Field


class MacroRequest(BaseModel):
    gender: Literal["male", "female"]
    age: int = Field(gt=0, lt=120)
    weight: float = Field(gt=0)
    weight_unit: Literal["kg", "lbs"] = "kg"
    height: Optional[float] = Field(default=None, gt=0)
    height_unit: Literal["cm", "ft"] = "cm"
    height_feet: float = 0
    height_inches: float = 0
    daily_activity: str = Field(description="sedentary / light / moderate / active")
    training_frequency: str = Field(description="low / moderate / high / daily")
    goal: str = Field(default="maintain", description="lose / build / maintain")
    deficit_level: str = Field(default="moderate", description="light / moderate / harsh")

    model_config = {"from_attributes": True}


class MacroResponse(BaseModel):
    bmr: int
    neat: int
    exercise_add: int
    tdee: int
    target_calories: int
    protein: int
    carbs: int
    fats: int
    protein_calories: int
    carb_calories: int
    fat_calories: int

    model_config = {"from_attributes": True}

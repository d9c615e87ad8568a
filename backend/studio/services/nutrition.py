# backend/studio/services/nutrition.py
"""
Macro calculator.

BMR (Mifflin-St Jeor) × daily-activity multiplier, plus a flat add-on for
training frequency, gives TDEE. The goal then sets calories, protein per kg
and the share of calories from fat; carbs take what is left.
"""

import math
from dataclasses import asdict, dataclass
from typing import Optional

from ..errors import ValidationError

NEAT_MULTIPLIERS = {
    "sedentary": 1.2,
    "light": 1.3,
    "moderate": 1.4,
    "active": 1.5,
}

EXERCISE_ADD_ONS = {
    "low": 100,
    "moderate": 200,
    "high": 300,
    "daily": 400,
}

DEFICIT_PCTS = {
    "light": 0.15,
    "moderate": 0.20,
    "harsh": 0.25,
}

# goal -> (calorie factor, protein g/kg, fat share); "lose" takes its factor from the deficit
GOALS = {
    "lose": (None, 2.2, 0.30),
    "build": (1.10, 2.0, 0.22),
    "maintain": (1.0, 1.8, 0.25),
}

MIN_CALORIES = {"male": 1400, "female": 1100}

LBS_TO_KG = 0.453592
CM_PER_FOOT = 30.48
CM_PER_INCH = 2.54


@dataclass(frozen=True)
class MacroResult:
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

    def to_dict(self) -> dict:
        return asdict(self)


def _round(value: float) -> int:
    """Round half up."""
    return math.floor(value + 0.5)


def to_kg(weight: float, unit: str = "kg") -> float:
    return weight * LBS_TO_KG if unit == "lbs" else weight


def to_cm(height: Optional[float] = None, feet: float = 0, inches: float = 0, unit: str = "cm") -> float:
    if unit == "cm":
        if height is None:
            raise ValidationError("height is required")
        return height
    return (feet or 0) * CM_PER_FOOT + (inches or 0) * CM_PER_INCH


def _pick(table: dict, key: str, name: str):
    try:
        return table[key]
    except KeyError:
        raise ValidationError(f"Unknown {name}: {key}")


def calculate_macros(
    gender: str,
    age: int,
    weight: float,
    daily_activity: str,
    training_frequency: str,
    goal: str = "maintain",
    deficit_level: str = "moderate",
    weight_unit: str = "kg",
    height: Optional[float] = None,
    height_unit: str = "cm",
    height_feet: float = 0,
    height_inches: float = 0,
) -> MacroResult:
    weight_kg = to_kg(weight, weight_unit)
    height_cm = to_cm(height, height_feet, height_inches, height_unit)

    bmr = 10 * weight_kg + 6.25 * height_cm - 5 * age
    bmr += 5 if gender == "male" else -161

    neat = bmr * _pick(NEAT_MULTIPLIERS, daily_activity, "daily activity")
    exercise_add = _pick(EXERCISE_ADD_ONS, training_frequency, "training frequency")
    tdee = _round(neat + exercise_add)

    factor, protein_per_kg, fat_pct = GOALS.get(goal, GOALS["maintain"])
    if factor is None:
        factor = 1 - _pick(DEFICIT_PCTS, deficit_level, "deficit level")
    target = tdee * factor

    target = max(target, MIN_CALORIES["male"] if gender == "male" else MIN_CALORIES["female"])

    protein = _round(weight_kg * protein_per_kg)
    protein_calories = protein * 4
    fat_calories = target * fat_pct
    fats = _round(fat_calories / 9)
    carb_calories = target - protein_calories - fat_calories
    carbs = max(0, _round(carb_calories / 4))

    return MacroResult(
        bmr=_round(bmr),
        neat=_round(neat),
        exercise_add=exercise_add,
        tdee=tdee,
        target_calories=_round(target),
        protein=protein,
        carbs=carbs,
        fats=fats,
        protein_calories=_round(protein_calories),
        carb_calories=_round(carb_calories),
        fat_calories=_round(fat_calories),
    )

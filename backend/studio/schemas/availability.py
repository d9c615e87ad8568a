# backend/studio/schemas/availability.py
"""
Pydantic schemas for availability API.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


class SlotRead(BaseModel):
    time: str  # "HH:MM"
    period: str  # morning / afternoon
    label: str  # "6:15am"

    model_config = {"from_attributes": True}


class DayAvailability(BaseModel):
    date: date
    slots: list[SlotRead]

    model_config = {"from_attributes": True}


class WeekAvailability(BaseModel):
    week_of: date
    duration_minutes: int
    days: list[DayAvailability]

    model_config = {"from_attributes": True}


class SlotCheck(BaseModel):
    """Result of checking one candidate slot."""
    date: date
    time: str
    duration_minutes: int
    available: bool
    reason: Optional[str] = Field(default=None, description="First failed check, None when available")

    model_config = {"from_attributes": True}


class RescheduleDates(BaseModel):
    dates: list[date]

    model_config = {"from_attributes": True}

# backend/studio/schemas/calendar.py

from datetime import date
from pydantic import BaseModel, Field

from ..services.schedule.timeutils import TIME_PATTERN


class HolidayCreate(BaseModel):
    date: date

    model_config = {"from_attributes": True}


class HolidayRead(BaseModel):
    id: int
    date: str

    model_config = {"from_attributes": True}


class OverrideCreate(BaseModel):
    """Blocked time or opened slot."""
    date: date
    time: str = Field(pattern=TIME_PATTERN)

    model_config = {"from_attributes": True}


class OverrideRead(BaseModel):
    id: int
    date: str
    time: str

    model_config = {"from_attributes": True}

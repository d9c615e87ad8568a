# backend/studio/schemas/reschedule.py

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field

from ..services.schedule.timeutils import TIME_PATTERN


class RescheduleCreate(BaseModel):
    session_id: int
    requested_date: date
    requested_time: str = Field(pattern=TIME_PATTERN)

    model_config = {"from_attributes": True}


class RescheduleResponse(BaseModel):
    approve: bool

    model_config = {"from_attributes": True}


class RescheduleRead(BaseModel):
    id: int
    session_id: int
    client_id: int
    client_name: Optional[str] = None
    original_date: str
    original_time: str
    requested_date: str
    requested_time: str
    duration_minutes: Optional[int] = None
    status: str
    dismissed: bool
    created_at: Optional[str] = None
    responded_at: Optional[str] = None

    model_config = {"from_attributes": True}

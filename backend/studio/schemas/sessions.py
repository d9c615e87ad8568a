# backend/studio/schemas/sessions.py

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field

from ..services.schedule.timeutils import TIME_PATTERN


class SessionCreate(BaseModel):
    date: date
    time: str = Field(pattern=TIME_PATTERN)
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)

    model_config = {"from_attributes": True}


class SessionRead(BaseModel):
    id: int
    date: str
    time: str
    duration_minutes: int
    client_id: Optional[int] = None
    client_name: Optional[str] = None
    created_at: Optional[str] = None

    model_config = {"from_attributes": True}


class ClientSessionsRead(BaseModel):
    """Client dashboard: upcoming and completed sessions."""
    total_sessions: int
    remaining: int
    upcoming: list[SessionRead]
    completed: list[SessionRead]

    model_config = {"from_attributes": True}

# backend/studio/schemas/clients.py

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


class ClientCreate(BaseModel):
    name: str
    email: str
    client_type: str = "block"
    total_sessions: int = Field(default=0, ge=0)
    session_duration: int = Field(default=45, gt=0)
    block_start_date: Optional[date] = None
    block_end_date: Optional[date] = None
    circuit_access: bool = False
    signup_source: Optional[str] = None

    model_config = {"from_attributes": True}


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    status: Optional[str] = None
    client_type: Optional[str] = None
    total_sessions: Optional[int] = Field(default=None, ge=0)
    session_duration: Optional[int] = Field(default=None, gt=0)
    block_start_date: Optional[date] = None
    block_end_date: Optional[date] = None
    circuit_access: Optional[bool] = None
    onboarding_complete: Optional[bool] = None

    model_config = {"from_attributes": True}


class ClientRead(BaseModel):
    id: int
    name: str
    email: str
    status: str
    client_type: str
    signup_source: Optional[str] = None
    onboarding_complete: bool
    total_sessions: int
    session_duration: int
    block_start_date: Optional[str] = None
    block_end_date: Optional[str] = None
    circuit_access: bool
    circuit_strikes: int
    circuit_ban_until: Optional[str] = None
    tier: str
    subscription_status: Optional[str] = None
    stripe_customer_id: Optional[str] = None

    model_config = {"from_attributes": True}


class TierRead(BaseModel):
    tier: str
    subscription_status: Optional[str] = None
    is_premium: bool
    home_path: str
    features: dict[str, bool]

    model_config = {"from_attributes": True}


class BadgeRead(BaseModel):
    badge_id: str
    name: str
    desc: str
    category: str
    earned_at: str

    model_config = {"from_attributes": True}

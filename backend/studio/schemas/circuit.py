# backend/studio/schemas/circuit.py
"""
Pydantic schemas for the circuit class.

Slot and waitlist entries are stored as JSON on the session row with
camelCase keys; the same keys are used on the wire.
"""

from typing import Optional
from pydantic import BaseModel, Field


class CircuitSlot(BaseModel):
    slot_number: int = Field(alias="slotNumber")
    member_id: Optional[int] = Field(default=None, alias="memberId")
    member_name: Optional[str] = Field(default=None, alias="memberName")
    member_type: Optional[str] = Field(default=None, alias="memberType")
    status: str  # available / confirmed
    booked_at: Optional[str] = Field(default=None, alias="bookedAt")
    attended: Optional[bool] = None

    model_config = {"from_attributes": True, "populate_by_name": True}


class WaitlistEntry(BaseModel):
    member_id: int = Field(alias="memberId")
    member_name: Optional[str] = Field(default=None, alias="memberName")
    member_type: Optional[str] = Field(default=None, alias="memberType")
    added_at: Optional[str] = Field(default=None, alias="addedAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class CircuitSessionRead(BaseModel):
    id: str
    date: str
    time: str
    end_time: str
    max_capacity: int
    slots: list[CircuitSlot]
    waitlist: list[WaitlistEntry]
    vip_opt_outs: list[int]
    booking_deadline: str
    release_deadline: str

    model_config = {"from_attributes": True}


class SlotRequest(BaseModel):
    slot_number: int = Field(ge=1, description="1-based slot number")

    model_config = {"from_attributes": True}


class AdminAssignRequest(BaseModel):
    client_id: int
    slot_number: int = Field(ge=1)

    model_config = {"from_attributes": True}


class AttendanceRequest(BaseModel):
    slot_number: int = Field(ge=1)
    attended: bool

    model_config = {"from_attributes": True}


class MemberRead(BaseModel):
    id: int
    name: str
    client_type: str
    circuit_strikes: int
    circuit_ban_until: Optional[str] = None

    model_config = {"from_attributes": True}

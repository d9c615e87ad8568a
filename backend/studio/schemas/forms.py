# backend/studio/schemas/forms.py

from typing import Optional
from pydantic import BaseModel


class WelcomeForm(BaseModel):
    fitness_goals: str = ""
    current_activity_level: str = ""
    exercise_history: str = ""
    injuries: str = ""
    medical_conditions: str = ""
    sleep_hours: str = ""
    stress_level: str = ""
    dietary_info: str = ""
    availability: str = ""
    additional_info: str = ""

    model_config = {"from_attributes": True}


class ParqForm(BaseModel):
    q1_heart_condition: bool = False
    q2_chest_pain: bool = False
    q3_chest_pain_last_month: bool = False
    q4_balance: bool = False
    q5_bone_joint: bool = False
    q6_blood_pressure: bool = False
    q7_other_reason: bool = False
    additional_details: str = ""
    declaration: bool = False

    model_config = {"from_attributes": True}


class FormRead(BaseModel):
    form_type: str
    answers: dict
    completed_at: str
    reviewed_at: Optional[str] = None
    flags: list[str] = []  # PAR-Q questions answered yes

    model_config = {"from_attributes": True}


class FormSubmissionRead(BaseModel):
    client_id: int
    name: str
    email: str
    status: str  # completed / partial / pending
    welcome: Optional[FormRead] = None
    parq: Optional[FormRead] = None

    model_config = {"from_attributes": True}

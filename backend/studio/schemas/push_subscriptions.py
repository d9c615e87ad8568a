# backend/studio/schemas/push_subscriptions.py

from typing import Optional
from pydantic import BaseModel


class PushSubscriptionCreate(BaseModel):
    endpoint: str
    auth: str
    p256dh: str

    model_config = {"from_attributes": True}


class PushSubscriptionRead(BaseModel):
    id: int
    client_id: int
    endpoint: str
    auth: Optional[str] = None
    p256dh: Optional[str] = None
    created_at: Optional[str] = None

    model_config = {"from_attributes": True}

# backend/studio/schemas/billing.py

from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    price_id: str = Field(alias="priceId", min_length=1)
    client_id: int = Field(alias="clientId")
    email: str = Field(min_length=1)

    model_config = {"from_attributes": True, "populate_by_name": True}


class PortalRequest(BaseModel):
    stripe_customer_id: str = Field(alias="stripeCustomerId", min_length=1)

    model_config = {"from_attributes": True, "populate_by_name": True}


class UrlResponse(BaseModel):
    url: str

    model_config = {"from_attributes": True}

# backend/studio/routers/billing.py

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ..auth import Identity, require_client
from ..database import get_db
from ..models.tables import Clients as DBClients
from ..schemas.billing import CheckoutRequest, PortalRequest, UrlResponse
from ..services.billing import (
    BillingProviderError,
    WebhookSignatureError,
    construct_event,
    create_checkout_session,
    create_portal_session,
    handle_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/webhook")
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Stripe webhook.

    The signature is checked against the raw body before anything in it
    is trusted.
    """
    payload = await request.body()
    try:
        event = construct_event(payload, request.headers.get("stripe-signature"))
    except WebhookSignatureError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Webhook Error: {e}")

    try:
        handle_event(db, event)
    except Exception:
        db.rollback()
        logger.exception(f"Webhook handler failed for {event.get('type')}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed",
        )

    return {"received": True}


@router.post("/checkout-session", response_model=UrlResponse)
def checkout_session(
    data: CheckoutRequest,
    identity: Identity = Depends(require_client),
):
    if identity.client_id != data.client_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your account")

    try:
        url = create_checkout_session(data.price_id, data.client_id, data.email)
    except BillingProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return UrlResponse(url=url)


@router.post("/portal-session", response_model=UrlResponse)
def portal_session(
    data: PortalRequest,
    identity: Identity = Depends(require_client),
    db: Session = Depends(get_db),
):
    client = db.get(DBClients, identity.client_id)
    if not client or client.stripe_customer_id != data.stripe_customer_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your subscription")

    try:
        url = create_portal_session(data.stripe_customer_id)
    except BillingProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return UrlResponse(url=url)

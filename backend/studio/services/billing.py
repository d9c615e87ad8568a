# backend/studio/services/billing.py
"""
Subscription billing (Stripe).

Webhook:
- signature is verified before anything is read from the payload
- checkout.session.completed       → premium, trialing, ids stored
- customer.subscription.updated    → status mapped, tier follows status
- customer.subscription.deleted    → free, expired

Checkout / portal sessions return the hosted Stripe URL to redirect to.
"""

import json
import logging
from typing import Optional

import stripe
from sqlalchemy.orm import Session

from ..config import settings
from ..models.tables import Clients as DBClients

logger = logging.getLogger(__name__)

WEBHOOK_TOLERANCE_SECONDS = 300
TRIAL_PERIOD_DAYS = 7

TIER_FREE = "free"
TIER_PREMIUM = "premium"

STATUS_MAP = {
    "active": "active",
    "trialing": "trialing",
    "canceled": "cancelled",
    "past_due": "expired",
    "unpaid": "expired",
}

FREE_STATUSES = {"canceled", "unpaid", "past_due"}
PREMIUM_STATUSES = {"active", "trialing"}


class WebhookSignatureError(Exception):
    """Raised when a webhook payload can't be authenticated."""


class BillingProviderError(Exception):
    """Stripe rejected or failed a call."""


def map_subscription_status(stripe_status: str) -> str:
    return STATUS_MAP.get(stripe_status, stripe_status)


def tier_for_status(stripe_status: str) -> Optional[str]:
    """Tier implied by a Stripe subscription status; None leaves it unchanged."""
    if stripe_status in FREE_STATUSES:
        return TIER_FREE
    if stripe_status in PREMIUM_STATUSES:
        return TIER_PREMIUM
    return None


# ──────────────────────────────────────────────────────────────────────────────
# Webhook
# ──────────────────────────────────────────────────────────────────────────────

def construct_event(payload: bytes, signature: Optional[str]) -> dict:
    """
    Verify the Stripe-Signature header and parse the event.

    Raises:
        WebhookSignatureError: missing/invalid signature, stale timestamp or
            unparseable payload
    """
    if not signature:
        raise WebhookSignatureError("Missing Stripe-Signature header")
    if not settings.stripe_webhook_secret:
        raise WebhookSignatureError("Webhook secret not configured")

    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"),
            signature,
            settings.stripe_webhook_secret,
            tolerance=WEBHOOK_TOLERANCE_SECONDS,
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Stripe webhook signature rejected: {e}")
        raise WebhookSignatureError(str(e))

    try:
        return json.loads(payload)
    except ValueError as e:
        logger.warning(f"Stripe webhook payload invalid: {e}")
        raise WebhookSignatureError("Invalid payload")


def _client_by_customer(db: Session, customer_id: Optional[str]) -> Optional[DBClients]:
    if not customer_id:
        return None
    return (
        db.query(DBClients)
        .filter(DBClients.stripe_customer_id == customer_id)
        .first()
    )


def handle_event(db: Session, event: dict) -> bool:
    """
    Apply a verified event to the client record.

    Returns True when the event type is one we act on.
    """
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        client_id = (obj.get("metadata") or {}).get("clientId")
        client = db.get(DBClients, int(client_id)) if client_id else None
        if client:
            client.tier = TIER_PREMIUM
            client.subscription_status = "trialing"
            client.stripe_customer_id = obj.get("customer")
            client.stripe_subscription_id = obj.get("subscription")
            db.commit()
            logger.info(f"Checkout completed: client={client.id} → premium (trialing)")
        else:
            logger.warning(f"Checkout completed for unknown client: {client_id}")
        return True

    if event_type == "customer.subscription.updated":
        client = _client_by_customer(db, obj.get("customer"))
        if client:
            status = obj.get("status")
            client.subscription_status = map_subscription_status(status)
            tier = tier_for_status(status)
            if tier:
                client.tier = tier
            db.commit()
            logger.info(
                f"Subscription updated: client={client.id} "
                f"status={client.subscription_status} tier={client.tier}"
            )
        return True

    if event_type == "customer.subscription.deleted":
        client = _client_by_customer(db, obj.get("customer"))
        if client:
            client.tier = TIER_FREE
            client.subscription_status = "expired"
            db.commit()
            logger.info(f"Subscription deleted: client={client.id} → free")
        return True

    logger.debug(f"Ignoring Stripe event {event_type}")
    return False


# ──────────────────────────────────────────────────────────────────────────────
# Hosted sessions
# ──────────────────────────────────────────────────────────────────────────────

def create_checkout_session(price_id: str, client_id: int, email: str) -> str:
    """Subscription checkout with a free trial; returns the redirect URL."""
    origin = settings.public_origin.rstrip("/")
    try:
        session = stripe.checkout.Session.create(
            api_key=settings.stripe_secret_key,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            allow_promotion_codes=True,
            subscription_data={"trial_period_days": TRIAL_PERIOD_DAYS},
            success_url=f"{origin}/client/core-buddy?upgraded=true",
            cancel_url=f"{origin}/upgrade",
            customer_email=email,
            metadata={"clientId": str(client_id)},
        )
    except stripe.StripeError as e:
        logger.error(f"Checkout session error: {e}")
        raise BillingProviderError(str(e))

    logger.info(f"Checkout session created for client={client_id}")
    return session.url


def create_portal_session(customer_id: str) -> str:
    origin = settings.public_origin.rstrip("/")
    try:
        session = stripe.billing_portal.Session.create(
            api_key=settings.stripe_secret_key,
            customer=customer_id,
            return_url=f"{origin}/client/core-buddy",
        )
    except stripe.StripeError as e:
        logger.error(f"Portal session error: {e}")
        raise BillingProviderError(str(e))

    return session.url

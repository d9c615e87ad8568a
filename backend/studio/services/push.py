# backend/studio/services/push.py
"""
Web Push delivery.

send_to_client fans a notification out to every subscription a client has
registered. Subscriptions the push service reports as gone (404/410) are
deleted on the spot.

The consumer loop pops events emitted by services/events.py, turns the ones
addressed to a client into a notification and delivers it. Failed events
are retried up to MAX_RETRIES times, then parked on a dead-letter queue.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as aioredis
from pywebpush import WebPushException, webpush
from sqlalchemy.orm import Session

from ..config import settings
from ..database import SessionLocal
from ..models.tables import PushSubscriptions as DBPushSubscriptions
from .events import P2P_QUEUE
from .schedule.timeutils import format_time, parse_date_key

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_QUEUE = f"{P2P_QUEUE}:retry"
DEAD_QUEUE = f"{P2P_QUEUE}:dead"

GONE_STATUSES = {404, 410}


@dataclass
class Notification:
    client_id: int
    title: str
    body: str
    event_type: str


@dataclass
class DeliveryResult:
    sent: int = 0
    pruned: int = 0
    failed: int = 0


def _subscription_info(sub: DBPushSubscriptions) -> dict:
    return {
        "endpoint": sub.endpoint,
        "keys": {
            "auth": sub.auth or "",
            "p256dh": sub.p256dh or "",
        },
    }


def send_to_client(
    db: Session,
    client_id: int,
    title: str,
    body: str,
    data: Optional[dict] = None,
) -> DeliveryResult:
    """Send one notification to all of a client's devices."""
    result = DeliveryResult()

    if not settings.vapid_private_key:
        logger.debug("VAPID private key not set, skipping Web Push")
        return result

    subscriptions = (
        db.query(DBPushSubscriptions)
        .filter(DBPushSubscriptions.client_id == client_id)
        .all()
    )
    if not subscriptions:
        logger.info(f"No push subscriptions for client={client_id}")
        return result

    payload = json.dumps({"title": title, "body": body[:200], "data": data or {}})

    for sub in subscriptions:
        try:
            webpush(
                subscription_info=_subscription_info(sub),
                data=payload,
                vapid_private_key=settings.vapid_private_key,
                vapid_claims={"sub": f"mailto:{settings.vapid_email}"},
            )
            result.sent += 1
        except WebPushException as e:
            status_code = getattr(e.response, "status_code", None)
            if status_code in GONE_STATUSES:
                db.delete(sub)
                result.pruned += 1
                logger.info(f"Pruned expired push subscription {sub.id} (HTTP {status_code})")
            else:
                result.failed += 1
                logger.warning(f"Web Push failed for subscription {sub.id}: {e}")

    if result.pruned:
        db.commit()

    logger.info(
        f"Push to client={client_id}: sent={result.sent} "
        f"pruned={result.pruned} failed={result.failed}"
    )
    return result


# ──────────────────────────────────────────────────────────────────────────────
# Event → notification
# ──────────────────────────────────────────────────────────────────────────────

def _day_label(date_key: str) -> str:
    try:
        return parse_date_key(date_key).strftime("%a %d %b")
    except (TypeError, ValueError):
        return date_key or ""


def format_event(event: dict) -> Optional[Notification]:
    """Notification for the client an event concerns, or None."""
    event_type = event.get("type")
    client_id = event.get("client_id")
    if not client_id:
        return None

    if event_type == "session_booked":
        return Notification(
            client_id, "Session booked",
            f"{_day_label(event.get('date'))} at {format_time(event['time'])}",
            event_type,
        )
    if event_type == "session_cancelled":
        return Notification(
            client_id, "Session cancelled",
            f"Your session on {_day_label(event.get('date'))} at {format_time(event['time'])} was cancelled",
            event_type,
        )
    if event_type == "reschedule_responded":
        status = event.get("status")
        if status == "approved":
            body = "Your reschedule request was approved"
        else:
            body = "Your reschedule request was declined"
        return Notification(client_id, "Reschedule update", body, event_type)
    if event_type == "circuit_promoted":
        return Notification(
            client_id, "You're in!",
            f"A circuit slot opened up for {_day_label(event.get('date'))}",
            event_type,
        )
    return None


def process_event(event: dict) -> Optional[DeliveryResult]:
    notification = format_event(event)
    if notification is None:
        logger.debug(f"No client notification for event type={event.get('type')}")
        return None

    db = SessionLocal()
    try:
        return send_to_client(
            db,
            notification.client_id,
            notification.title,
            notification.body,
            data={"type": notification.event_type},
        )
    finally:
        db.close()


# ──────────────────────────────────────────────────────────────────────────────
# Consumer loops
# ──────────────────────────────────────────────────────────────────────────────

async def p2p_consumer_loop(redis_url: str) -> None:
    """
    Consume events from the p2p queue.

    BRPOP with a 5s timeout avoids busy-waiting.
    """
    r = aioredis.from_url(redis_url, decode_responses=True)
    logger.info("p2p_consumer_loop started")

    try:
        while True:
            try:
                result = await r.brpop(P2P_QUEUE, timeout=5)
                if result is None:
                    continue

                _, raw = result
                await process_raw_event(r, raw)

            except asyncio.CancelledError:
                logger.info("p2p_consumer_loop cancelled")
                raise
            except Exception:
                logger.exception("p2p_consumer_loop error, retrying in 2s")
                await asyncio.sleep(2)
    finally:
        await r.aclose()


async def process_raw_event(r: aioredis.Redis, raw: str) -> None:
    """
    Parse and deliver one event.

    On failure the event goes back on the retry queue until MAX_RETRIES,
    then to the dead-letter queue.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.error(f"Invalid JSON in event queue: {raw[:200]}")
        await r.rpush(DEAD_QUEUE, raw)
        return

    attempt = data.get("_attempt", 1)

    try:
        await asyncio.to_thread(process_event, data)
    except Exception:
        logger.exception(
            f"Failed to process event type={data.get('type')} "
            f"(attempt {attempt}/{MAX_RETRIES})"
        )

        if attempt < MAX_RETRIES:
            data["_attempt"] = attempt + 1
            await r.rpush(RETRY_QUEUE, json.dumps(data))
            logger.info(f"Event re-queued to {RETRY_QUEUE} (attempt {attempt + 1})")
        else:
            await r.rpush(DEAD_QUEUE, json.dumps(data))
            logger.warning(
                f"Event moved to dead-letter queue {DEAD_QUEUE}: "
                f"type={data.get('type')}"
            )


async def retry_consumer_loop(redis_url: str) -> None:
    """Move retried events back onto the main queue, one every few seconds at most."""
    r = aioredis.from_url(redis_url, decode_responses=True)
    logger.info("retry_consumer_loop started")

    try:
        while True:
            try:
                raw = await r.lpop(RETRY_QUEUE)
                if raw:
                    await r.rpush(P2P_QUEUE, raw)
                    logger.info(f"Retry: moved event from {RETRY_QUEUE} → {P2P_QUEUE}")
                else:
                    await asyncio.sleep(5)

            except asyncio.CancelledError:
                logger.info("retry_consumer_loop cancelled")
                raise
            except Exception:
                logger.exception("retry_consumer_loop error, retrying in 5s")
                await asyncio.sleep(5)
    finally:
        await r.aclose()

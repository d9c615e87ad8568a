"""
backend/studio/services/events.py

Event emitter: pushes notification events to a Redis list for the push
consumer (see services/push.py).

Queue:
- events:p2p: one event per client-facing notification
"""

import json
import time
import logging

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event.

    Best effort: the booking write has already been committed, so a Redis
    outage only costs the notification.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(P2P_QUEUE, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")

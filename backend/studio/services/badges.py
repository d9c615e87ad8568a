# backend/studio/services/badges.py

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import localize
from ..models.tables import (
    ClientBadges as DBClientBadges,
    Clients as DBClients,
    Sessions as DBSessions,
)
from .bookings import split_sessions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    desc: str
    category: str


BADGE_DEFS = [
    Badge("first_workout", "First Rep", "Complete your first workout", "workouts"),
    Badge("workouts_10", "On Fire", "Complete 10 workouts", "workouts"),
    Badge("nutrition_7", "Fuelled Up", "Hit your protein target 7 days in a row", "nutrition"),
]

BADGES_BY_ID = {b.id: b for b in BADGE_DEFS}


def earned_badges(db: Session, client_id: int) -> list[DBClientBadges]:
    return (
        db.query(DBClientBadges)
        .filter(DBClientBadges.client_id == client_id)
        .order_by(DBClientBadges.earned_at)
        .all()
    )


def award_badge(
    db: Session,
    client_id: int,
    badge_id: str,
    now: datetime | None = None,
) -> Optional[Badge]:
    """
    Award a badge once.

    Returns the badge when newly earned, None when unknown or already held.
    """
    badge = BADGES_BY_ID.get(badge_id)
    if badge is None:
        return None

    exists = (
        db.query(DBClientBadges)
        .filter(DBClientBadges.client_id == client_id)
        .filter(DBClientBadges.badge_id == badge_id)
        .first()
    )
    if exists:
        return None

    db.add(DBClientBadges(
        client_id=client_id,
        badge_id=badge_id,
        earned_at=localize(now).isoformat(),
    ))
    try:
        db.commit()
    except IntegrityError:
        # Awarded concurrently
        db.rollback()
        return None

    logger.info(f"Badge {badge_id} awarded to client={client_id}")
    return badge


# Completed one-to-one sessions needed for each workout badge
WORKOUT_THRESHOLDS = {
    "first_workout": 1,
    "workouts_10": 10,
}


def sync_workout_badges(
    db: Session,
    client: DBClients,
    now: datetime | None = None,
) -> list[Badge]:
    """Award the workout badges the client's completed sessions have earned."""
    now = localize(now)
    sessions = db.query(DBSessions).filter(DBSessions.client_id == client.id).all()
    _, completed = split_sessions(sessions, now)

    awarded = []
    for badge_id, threshold in WORKOUT_THRESHOLDS.items():
        if len(completed) >= threshold:
            badge = award_badge(db, client.id, badge_id, now)
            if badge:
                awarded.append(badge)
    return awarded

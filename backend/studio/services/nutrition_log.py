# backend/studio/services/nutrition_log.py
"""
Daily food log against macro targets.

Targets come from the macro calculator or are set by hand. Each day is one row
whose entries are a JSON array rewritten as a whole:

    {id, name, meal, protein, carbs, fats, calories, serving?, addedAt}

Totals are summed from the entries on read. Hitting the protein target seven
days running, checked when today's log is saved, earns nutrition_7.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import localize
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.tables import (
    Clients as DBClients,
    NutritionLogs as DBNutritionLogs,
    NutritionTargets as DBNutritionTargets,
)
from .badges import award_badge
from .nutrition import MacroResult
from .schedule.timeutils import format_date_key, parse_date_key

logger = logging.getLogger(__name__)

MACROS = ("protein", "carbs", "fats", "calories")
MEALS = ("breakfast", "lunch", "dinner", "snacks")

PROTEIN_BADGE = "nutrition_7"
PROTEIN_STREAK_DAYS = 7


@dataclass(frozen=True)
class DayLog:
    date: str
    entries: list[dict]
    totals: dict[str, float]
    targets: Optional[DBNutritionTargets]

    @property
    def remaining(self) -> Optional[dict[str, float]]:
        if self.targets is None:
            return None
        return {m: max(0, _target(self.targets, m) - self.totals[m]) for m in MACROS}

    @property
    def progress(self) -> Optional[dict[str, int]]:
        """Percent of each target reached, capped at 100."""
        if self.targets is None:
            return None
        result = {}
        for m in MACROS:
            target = _target(self.targets, m)
            result[m] = min(100, round(self.totals[m] / target * 100)) if target > 0 else 0
        return result


def _target(targets: DBNutritionTargets, macro: str) -> int:
    return getattr(targets, macro) or 0


def _date_key(value: str) -> str:
    try:
        return format_date_key(parse_date_key(value))
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")


def day_totals(entries: list[dict]) -> dict[str, float]:
    totals = {m: 0 for m in MACROS}
    for entry in entries:
        for m in MACROS:
            totals[m] += entry.get(m) or 0
    return totals


# ──────────────────────────────────────────────────────────────────────────────
# Targets
# ──────────────────────────────────────────────────────────────────────────────

def get_targets(db: Session, client_id: int) -> Optional[DBNutritionTargets]:
    return (
        db.query(DBNutritionTargets)
        .filter(DBNutritionTargets.client_id == client_id)
        .first()
    )


def save_targets(
    db: Session,
    client: DBClients,
    calories: int,
    protein: int,
    carbs: int,
    fats: int,
    goal: Optional[str] = None,
    now: datetime | None = None,
) -> DBNutritionTargets:
    """Create or overwrite the client's daily targets."""
    if min(calories, protein, carbs, fats) < 0:
        raise ValidationError("Targets can't be negative")

    targets = get_targets(db, client.id)
    if targets is None:
        targets = DBNutritionTargets(client_id=client.id)
        db.add(targets)

    targets.calories = calories
    targets.protein = protein
    targets.carbs = carbs
    targets.fats = fats
    targets.goal = goal
    targets.updated_at = localize(now).isoformat()

    db.commit()
    db.refresh(targets)
    logger.info(f"Nutrition targets saved for client={client.id}: {calories} kcal, {protein}g protein")
    return targets


def save_calculated_targets(
    db: Session,
    client: DBClients,
    result: MacroResult,
    goal: Optional[str] = None,
    now: datetime | None = None,
) -> DBNutritionTargets:
    return save_targets(
        db,
        client,
        calories=result.target_calories,
        protein=result.protein,
        carbs=result.carbs,
        fats=result.fats,
        goal=goal,
        now=now,
    )


# ──────────────────────────────────────────────────────────────────────────────
# Daily log
# ──────────────────────────────────────────────────────────────────────────────

def _log_row(db: Session, client_id: int, date_key: str) -> Optional[DBNutritionLogs]:
    return (
        db.query(DBNutritionLogs)
        .filter(DBNutritionLogs.client_id == client_id)
        .filter(DBNutritionLogs.date == date_key)
        .first()
    )


def _entries(row: Optional[DBNutritionLogs]) -> list[dict]:
    if row is None:
        return []
    return json.loads(row.entries or "[]")


def get_day(db: Session, client_id: int, date_key: str) -> DayLog:
    date_key = _date_key(date_key)
    entries = _entries(_log_row(db, client_id, date_key))
    return DayLog(
        date=date_key,
        entries=entries,
        totals=day_totals(entries),
        targets=get_targets(db, client_id),
    )


def _save_day(
    db: Session,
    client: DBClients,
    date_key: str,
    entries: list[dict],
    now: datetime,
) -> DayLog:
    row = _log_row(db, client.id, date_key)
    if row is None:
        row = DBNutritionLogs(client_id=client.id, date=date_key)
        db.add(row)

    row.entries = json.dumps(entries)
    row.updated_at = now.isoformat()
    try:
        db.commit()
    except IntegrityError:
        # Day row created concurrently
        db.rollback()
        raise ConflictError("Log was changed elsewhere, try again")

    if date_key == format_date_key(now):
        check_protein_streak(db, client, now)

    return get_day(db, client.id, date_key)


def add_entry(
    db: Session,
    client: DBClients,
    date_key: str,
    entry: dict,
    now: datetime | None = None,
) -> DayLog:
    """
    Append a food entry to a day.

    entry: name, meal, protein, carbs, fats, calories and optional serving.
    """
    now = localize(now)
    date_key = _date_key(date_key)

    if not (entry.get("name") or "").strip():
        raise ValidationError("Food name is required")
    if entry.get("meal") not in MEALS:
        raise ValidationError(f"Unknown meal: {entry.get('meal')}")
    if any((entry.get(m) or 0) < 0 for m in MACROS):
        raise ValidationError("Macros can't be negative")

    entries = _entries(_log_row(db, client.id, date_key))
    entries.append({
        **entry,
        "name": entry["name"].strip(),
        "id": uuid.uuid4().hex,
        "addedAt": now.isoformat(),
    })
    return _save_day(db, client, date_key, entries, now)


def remove_entry(
    db: Session,
    client: DBClients,
    date_key: str,
    entry_id: str,
    now: datetime | None = None,
) -> DayLog:
    now = localize(now)
    date_key = _date_key(date_key)

    entries = _entries(_log_row(db, client.id, date_key))
    kept = [e for e in entries if e.get("id") != entry_id]
    if len(kept) == len(entries):
        raise NotFoundError("Entry not found")
    return _save_day(db, client, date_key, kept, now)


def copy_day(
    db: Session,
    client: DBClients,
    source_date: str,
    target_date: str,
    now: datetime | None = None,
) -> DayLog:
    """Append every entry of source_date to target_date under fresh ids."""
    now = localize(now)
    source_date = _date_key(source_date)
    target_date = _date_key(target_date)

    if source_date == target_date:
        raise ValidationError("Pick a different day to copy from")

    source = _entries(_log_row(db, client.id, source_date))
    if not source:
        raise ValidationError("No food logged on that day")

    copied = [{**e, "id": uuid.uuid4().hex, "addedAt": now.isoformat()} for e in source]
    entries = _entries(_log_row(db, client.id, target_date)) + copied

    logger.info(f"Copied {len(copied)} entries {source_date} -> {target_date} for client={client.id}")
    return _save_day(db, client, target_date, entries, now)


# ──────────────────────────────────────────────────────────────────────────────
# Protein streak
# ──────────────────────────────────────────────────────────────────────────────

def protein_streak(db: Session, client_id: int, today: date, target: int) -> int:
    """Consecutive days up to and including today at or above the protein target."""
    keys = [format_date_key(today - timedelta(days=i)) for i in range(PROTEIN_STREAK_DAYS)]
    rows = (
        db.query(DBNutritionLogs)
        .filter(DBNutritionLogs.client_id == client_id)
        .filter(DBNutritionLogs.date.in_(keys))
        .all()
    )
    protein_by_day = {row.date: day_totals(_entries(row))["protein"] for row in rows}

    streak = 0
    for key in keys:
        if protein_by_day.get(key, 0) < target:
            break
        streak += 1
    return streak


def check_protein_streak(db: Session, client: DBClients, now: datetime | None = None) -> bool:
    """Award nutrition_7 once the streak reaches seven days. True when newly awarded."""
    now = localize(now)
    targets = get_targets(db, client.id)
    if targets is None or not targets.protein:
        return False

    if protein_streak(db, client.id, now.date(), targets.protein) < PROTEIN_STREAK_DAYS:
        return False
    return award_badge(db, client.id, PROTEIN_BADGE, now) is not None

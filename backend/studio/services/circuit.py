# backend/studio/services/circuit.py
"""
Saturday circuit class.

One row per class date (id = date key). Slots, waitlist and VIP opt-outs are
JSON arrays stored on the row and rewritten as a whole; every mutation reads
the row with FOR UPDATE and commits once.

Slot:      {slotNumber, memberId, memberName, memberType, status, bookedAt, attended?}
Waitlist:  {memberId, memberName, memberType, addedAt}

A member holds at most one confirmed slot and is never on the waitlist while
holding one.

Rules:
- booking closes Wednesday 23:59:59 before the class
- a slot can't be released inside 24h of the start
- a freed slot goes to the waitlist head, keeping its slot number
- active VIPs fill empty slots on load unless they opted out for that date
- 3 no-shows → banned for one calendar month, strikes back to 0
"""

import json
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from ..clock import localize
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..models.tables import CircuitSessions as DBCircuitSessions, Clients as DBClients
from .events import emit_event
from .schedule.timeutils import combine_local, format_date_key, parse_date_key, to_datetime

logger = logging.getLogger(__name__)

CLASS_TIME = "09:00"
CLASS_END_TIME = "09:45"
MAX_CAPACITY = 8

SATURDAY = 5
BOOKING_DEADLINE_DAYS = 3
CANCEL_NOTICE = timedelta(hours=24)

STRIKE_LIMIT = 3
BAN_LENGTH = relativedelta(months=1)

TYPE_VIP = "circuit_vip"
TYPE_DROPIN = "circuit_dropin"

SLOT_AVAILABLE = "available"
SLOT_CONFIRMED = "confirmed"


# ──────────────────────────────────────────────────────────────────────────────
# Dates
# ──────────────────────────────────────────────────────────────────────────────

def next_class_date(now: datetime | None = None) -> date:
    """
    Date of the upcoming class.

    On Saturday itself the class stays current until it has ended.
    """
    now = localize(now)
    days_until = (SATURDAY - now.weekday()) % 7
    if days_until == 0:
        class_end = combine_local(format_date_key(now), CLASS_END_TIME, now.tzinfo)
        if now > class_end:
            days_until = 7
    return now.date() + timedelta(days=days_until)


def class_start(session: DBCircuitSessions, tz=None) -> datetime:
    return combine_local(session.date, session.time, tz)


def booking_deadline(session: DBCircuitSessions, tz=None) -> datetime:
    """Last instant of the Wednesday before the class."""
    cutoff_day = parse_date_key(session.date) - timedelta(days=BOOKING_DEADLINE_DAYS)
    return combine_local(format_date_key(cutoff_day), "00:00", tz) + timedelta(days=1, microseconds=-1)


def release_deadline(session: DBCircuitSessions, tz=None) -> datetime:
    return class_start(session, tz) - CANCEL_NOTICE


# ──────────────────────────────────────────────────────────────────────────────
# Members
# ──────────────────────────────────────────────────────────────────────────────

def is_circuit_member(client: DBClients) -> bool:
    return (
        client.client_type in (TYPE_VIP, TYPE_DROPIN)
        or bool(client.circuit_access)
    )


def ban_until(client: DBClients, tz=None) -> Optional[datetime]:
    return to_datetime(client.circuit_ban_until, tz)


def is_banned(client: DBClients, now: datetime | None = None) -> bool:
    now = localize(now)
    until = ban_until(client, now.tzinfo)
    return until is not None and until > now


def list_members(db: Session) -> list[DBClients]:
    return [c for c in db.query(DBClients).order_by(DBClients.name).all() if is_circuit_member(c)]


def _active_vips(db: Session) -> list[DBClients]:
    return (
        db.query(DBClients)
        .filter(DBClients.client_type == TYPE_VIP)
        .filter(DBClients.status == "active")
        .order_by(DBClients.id)
        .all()
    )


# ──────────────────────────────────────────────────────────────────────────────
# Row <-> lists
# ──────────────────────────────────────────────────────────────────────────────

def empty_slot(slot_number: int) -> dict:
    return {
        "slotNumber": slot_number,
        "memberId": None,
        "memberName": None,
        "memberType": None,
        "status": SLOT_AVAILABLE,
    }


def _confirmed_slot(slot_number: int, member_id: int, name: str, member_type: str, now: datetime) -> dict:
    return {
        "slotNumber": slot_number,
        "memberId": member_id,
        "memberName": name,
        "memberType": member_type,
        "status": SLOT_CONFIRMED,
        "bookedAt": now.isoformat(),
    }


def read_state(session: DBCircuitSessions) -> tuple[list[dict], list[dict], list[int]]:
    slots = json.loads(session.slots) if session.slots else []
    waitlist = json.loads(session.waitlist) if session.waitlist else []
    opt_outs = json.loads(session.vip_opt_outs) if session.vip_opt_outs else []
    return slots, waitlist, opt_outs


def _write_state(
    session: DBCircuitSessions,
    slots: list[dict],
    waitlist: list[dict],
    opt_outs: list[int],
) -> None:
    session.slots = json.dumps(slots)
    session.waitlist = json.dumps(waitlist)
    session.vip_opt_outs = json.dumps(opt_outs)


def _slot_of(slots: list[dict], member_id: int) -> Optional[dict]:
    for slot in slots:
        if slot.get("memberId") == member_id and slot.get("status") == SLOT_CONFIRMED:
            return slot
    return None


def _find_slot(slots: list[dict], slot_number: int) -> dict:
    for slot in slots:
        if slot["slotNumber"] == slot_number:
            return slot
    raise NotFoundError(f"Slot {slot_number} not found")


def _free_slot(
    slots: list[dict],
    waitlist: list[dict],
    slot: dict,
    now: datetime,
) -> Optional[dict]:
    """
    Empty a slot in place, promoting the waitlist head into it.

    Returns the promoted waitlist entry, if any.
    """
    index = slots.index(slot)
    if waitlist:
        head = waitlist.pop(0)
        slots[index] = _confirmed_slot(
            slot["slotNumber"], head["memberId"], head["memberName"], head["memberType"], now
        )
        return head

    slots[index] = empty_slot(slot["slotNumber"])
    return None


def _announce_promotion(session: DBCircuitSessions, promoted: Optional[dict]) -> None:
    if not promoted:
        return
    logger.info(f"Circuit {session.id}: member {promoted['memberId']} promoted from waitlist")
    emit_event("circuit_promoted", {
        "client_id": promoted["memberId"],
        "date": session.date,
    })


# ──────────────────────────────────────────────────────────────────────────────
# Load
# ──────────────────────────────────────────────────────────────────────────────

def _get_for_update(db: Session, date_key: str) -> Optional[DBCircuitSessions]:
    return (
        db.query(DBCircuitSessions)
        .filter(DBCircuitSessions.id == date_key)
        .with_for_update()
        .first()
    )


def get_session(db: Session, date_key: str) -> DBCircuitSessions:
    session = _get_for_update(db, date_key)
    if not session:
        raise NotFoundError("Circuit session not found")
    return session


def load_session(
    db: Session,
    class_date: str | date | None = None,
    now: datetime | None = None,
) -> DBCircuitSessions:
    """
    Circuit session for a date (default: the upcoming class).

    Created on first load with active VIPs pre-slotted. On later loads, VIPs
    missing from the slots are filled into free slots unless they opted out
    of that date.

    Raises:
        ValidationError: date is not a Saturday
        NotFoundError: no session exists for a past date
    """
    now = localize(now)
    if class_date is None:
        class_date = next_class_date(now)
    date_key = class_date if isinstance(class_date, str) else format_date_key(class_date)

    try:
        target = parse_date_key(date_key)
    except ValueError:
        raise ValidationError(f"Invalid date: {date_key}")
    is_past = target < now.date()

    vips = _active_vips(db)
    session = _get_for_update(db, date_key)

    if session is None:
        if target.weekday() != SATURDAY:
            raise ValidationError(f"{date_key} is not a circuit class date")
        if is_past:
            raise NotFoundError("Circuit session not found")

        slots = []
        for i in range(MAX_CAPACITY):
            if i < len(vips):
                slots.append(_confirmed_slot(i + 1, vips[i].id, vips[i].name, TYPE_VIP, now))
            else:
                slots.append(empty_slot(i + 1))

        session = DBCircuitSessions(
            id=date_key,
            date=date_key,
            time=CLASS_TIME,
            end_time=CLASS_END_TIME,
            max_capacity=MAX_CAPACITY,
            created_at=now.isoformat(),
        )
        _write_state(session, slots, [], [])
        db.add(session)
        db.commit()
        db.refresh(session)

        logger.info(f"Circuit session created: {date_key} ({min(len(vips), MAX_CAPACITY)} VIPs slotted)")
        return session

    if is_past:
        return session

    slots, waitlist, opt_outs = read_state(session)
    slotted = {s.get("memberId") for s in slots if s.get("status") == SLOT_CONFIRMED}
    missing = [v for v in vips if v.id not in slotted and v.id not in opt_outs]

    filled = 0
    for vip in missing:
        free = next((s for s in slots if s["status"] == SLOT_AVAILABLE), None)
        if free is None:
            break
        slots[slots.index(free)] = _confirmed_slot(free["slotNumber"], vip.id, vip.name, TYPE_VIP, now)
        waitlist = [w for w in waitlist if w["memberId"] != vip.id]
        filled += 1

    if filled:
        _write_state(session, slots, waitlist, opt_outs)
        db.commit()
        db.refresh(session)
        logger.info(f"Circuit {date_key}: auto-slotted {filled} VIP(s)")

    return session


def list_sessions(db: Session) -> list[DBCircuitSessions]:
    return db.query(DBCircuitSessions).order_by(DBCircuitSessions.date.desc()).all()


# ──────────────────────────────────────────────────────────────────────────────
# Member actions
# ──────────────────────────────────────────────────────────────────────────────

def book_slot(
    db: Session,
    session: DBCircuitSessions,
    member: DBClients,
    slot_number: int,
    now: datetime | None = None,
) -> DBCircuitSessions:
    """
    Claim an available slot.

    Raises:
        ForbiddenError: not a circuit member, or banned
        ValidationError: booking deadline passed
        ConflictError: member already has a slot, or the slot is taken
    """
    now = localize(now)
    if not is_circuit_member(member):
        raise ForbiddenError("Circuit access required")
    if is_banned(member, now):
        raise ForbiddenError("You are currently suspended from booking")
    if now > booking_deadline(session, now.tzinfo):
        raise ValidationError("Booking deadline has passed (Wednesday)")

    slots, waitlist, opt_outs = read_state(session)
    if _slot_of(slots, member.id):
        raise ConflictError("You already have a slot booked")

    slot = _find_slot(slots, slot_number)
    if slot["status"] != SLOT_AVAILABLE:
        raise ConflictError("Slot is no longer available")

    slots[slots.index(slot)] = _confirmed_slot(
        slot_number, member.id, member.name, member.client_type or "block", now
    )
    waitlist = [w for w in waitlist if w["memberId"] != member.id]
    opt_outs = [m for m in opt_outs if m != member.id]

    _write_state(session, slots, waitlist, opt_outs)
    db.commit()
    db.refresh(session)

    logger.info(f"Circuit {session.id}: member {member.id} booked slot {slot_number}")
    return session


def release_slot(
    db: Session,
    session: DBCircuitSessions,
    member: DBClients,
    now: datetime | None = None,
) -> DBCircuitSessions:
    now = localize(now)
    if now > release_deadline(session, now.tzinfo):
        raise ValidationError("Cancellation deadline passed (24hrs before class)")

    slots, waitlist, opt_outs = read_state(session)
    slot = _slot_of(slots, member.id)
    if not slot:
        raise NotFoundError("You don't have a slot in this class")

    promoted = _free_slot(slots, waitlist, slot, now)
    if member.client_type == TYPE_VIP and member.id not in opt_outs:
        opt_outs.append(member.id)

    _write_state(session, slots, waitlist, opt_outs)
    db.commit()
    db.refresh(session)

    logger.info(f"Circuit {session.id}: member {member.id} released slot {slot['slotNumber']}")
    _announce_promotion(session, promoted)
    return session


def join_waitlist(
    db: Session,
    session: DBCircuitSessions,
    member: DBClients,
    now: datetime | None = None,
) -> DBCircuitSessions:
    now = localize(now)
    if not is_circuit_member(member):
        raise ForbiddenError("Circuit access required")
    if is_banned(member, now):
        raise ForbiddenError("You are currently suspended from booking")

    slots, waitlist, opt_outs = read_state(session)
    if any(w["memberId"] == member.id for w in waitlist):
        raise ConflictError("Already on the waitlist")
    if _slot_of(slots, member.id):
        raise ConflictError("You already have a slot")

    waitlist.append({
        "memberId": member.id,
        "memberName": member.name,
        "memberType": member.client_type or "block",
        "addedAt": now.isoformat(),
    })
    _write_state(session, slots, waitlist, opt_outs)
    db.commit()
    db.refresh(session)

    logger.info(f"Circuit {session.id}: member {member.id} joined waitlist ({len(waitlist)})")
    return session


def leave_waitlist(db: Session, session: DBCircuitSessions, member_id: int) -> DBCircuitSessions:
    slots, waitlist, opt_outs = read_state(session)
    remaining = [w for w in waitlist if w["memberId"] != member_id]
    if len(remaining) == len(waitlist):
        raise NotFoundError("Not on the waitlist")

    _write_state(session, slots, remaining, opt_outs)
    db.commit()
    db.refresh(session)
    return session


# ──────────────────────────────────────────────────────────────────────────────
# Admin actions
# ──────────────────────────────────────────────────────────────────────────────

def admin_assign_slot(
    db: Session,
    session: DBCircuitSessions,
    member: DBClients,
    slot_number: int,
    now: datetime | None = None,
) -> DBCircuitSessions:
    """Put a member into a free slot; no deadline or ban applies."""
    now = localize(now)
    slots, waitlist, opt_outs = read_state(session)

    slot = _find_slot(slots, slot_number)
    if slot["status"] != SLOT_AVAILABLE:
        raise ConflictError("Slot is not available")
    if _slot_of(slots, member.id):
        raise ConflictError(f"{member.name} already has a slot")

    slots[slots.index(slot)] = _confirmed_slot(
        slot_number, member.id, member.name, member.client_type or "block", now
    )
    waitlist = [w for w in waitlist if w["memberId"] != member.id]
    opt_outs = [m for m in opt_outs if m != member.id]

    _write_state(session, slots, waitlist, opt_outs)
    db.commit()
    db.refresh(session)

    logger.info(f"Circuit {session.id}: admin added member {member.id} to slot {slot_number}")
    return session


def admin_remove_from_slot(
    db: Session,
    session: DBCircuitSessions,
    slot_number: int,
    now: datetime | None = None,
) -> DBCircuitSessions:
    """Clear a slot, promoting the waitlist head. VIPs removed stay out for that date."""
    now = localize(now)
    slots, waitlist, opt_outs = read_state(session)

    slot = _find_slot(slots, slot_number)
    if slot["status"] != SLOT_CONFIRMED:
        raise ValidationError(f"Slot {slot_number} is already empty")

    if slot.get("memberType") == TYPE_VIP and slot["memberId"] not in opt_outs:
        opt_outs.append(slot["memberId"])
    promoted = _free_slot(slots, waitlist, slot, now)

    _write_state(session, slots, waitlist, opt_outs)
    db.commit()
    db.refresh(session)

    logger.info(f"Circuit {session.id}: admin cleared slot {slot_number}")
    _announce_promotion(session, promoted)
    return session


def admin_remove_from_waitlist(db: Session, session: DBCircuitSessions, member_id: int) -> DBCircuitSessions:
    return leave_waitlist(db, session, member_id)


def mark_attendance(
    db: Session,
    session: DBCircuitSessions,
    slot_number: int,
    attended: bool,
    now: datetime | None = None,
) -> DBCircuitSessions:
    """
    Record attendance for a filled slot.

    A no-show adds a strike to the member; reaching STRIKE_LIMIT bans them
    until now + one calendar month and clears the strikes.
    """
    now = localize(now)
    slots, waitlist, opt_outs = read_state(session)

    slot = _find_slot(slots, slot_number)
    if slot["status"] != SLOT_CONFIRMED:
        raise ValidationError(f"Slot {slot_number} is empty")
    if "attended" in slot:
        raise ConflictError(f"Attendance already marked for slot {slot_number}")

    slot["attended"] = attended
    _write_state(session, slots, waitlist, opt_outs)

    if not attended:
        member = db.get(DBClients, slot["memberId"])
        if member:
            _add_strike(member, now)
        else:
            logger.warning(f"Circuit {session.id}: no-show for unknown member {slot['memberId']}")

    db.commit()
    db.refresh(session)
    return session


def _add_strike(member: DBClients, now: datetime) -> None:
    strikes = (member.circuit_strikes or 0) + 1
    if strikes >= STRIKE_LIMIT:
        member.circuit_ban_until = (now + BAN_LENGTH).isoformat()
        member.circuit_strikes = 0
        logger.info(f"Member {member.id} banned from circuit until {member.circuit_ban_until}")
    else:
        member.circuit_strikes = strikes
        logger.info(f"Member {member.id} strike {strikes}/{STRIKE_LIMIT}")


def reset_strikes(db: Session, member: DBClients) -> DBClients:
    member.circuit_strikes = 0
    member.circuit_ban_until = None
    db.commit()
    db.refresh(member)
    return member


def lift_ban(db: Session, member: DBClients) -> DBClients:
    member.circuit_ban_until = None
    member.circuit_strikes = 0
    db.commit()
    db.refresh(member)
    logger.info(f"Circuit ban lifted for member {member.id}")
    return member

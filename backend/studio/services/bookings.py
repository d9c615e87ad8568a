# backend/studio/services/bookings.py
"""
One-to-one booking mutations.

Every write re-reads the calendar (sessions, holidays, overrides) inside the
request's DB session and checks the slot immediately before inserting, so
the check and the write commit together.

Events (see services/events.py):
- session_booked
- session_cancelled
- reschedule_requested
- reschedule_responded
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import localize
from ..config import settings
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..models.tables import (
    BlockedTimes as DBBlockedTimes,
    Clients as DBClients,
    Holidays as DBHolidays,
    OpenedSlots as DBOpenedSlots,
    RescheduleRequests as DBRescheduleRequests,
    Sessions as DBSessions,
)
from .events import emit_event
from .schedule import (
    CLIENT_BLOCK_SCHEDULE,
    Overrides,
    Slot,
    explain_slot,
    get_available_slots_for_date,
    get_reschedule_dates,
)
from .schedule.availability import REASON_OVERLAP
from .schedule.timeutils import (
    current_time_key,
    format_date_key,
    parse_date_key,
    time_to_minutes,
    to_datetime,
)

logger = logging.getLogger(__name__)

NOTIFICATION_WINDOW_DAYS = 7

# Hours a client may move a session into
RESCHEDULE_SCHEDULE = CLIENT_BLOCK_SCHEDULE

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

REASON_MESSAGES = {
    "weekend": "The studio is closed on that day",
    "holiday": "That date is a holiday",
    "blocked": "That time has been blocked",
    "not_opened": "That time has not been opened for booking",
    "past": "That time is in the past",
    "outside_hours": "Session does not fit inside opening hours",
    "overlap": "Slot is no longer available",
}


# ──────────────────────────────────────────────────────────────────────────────
# Calendar snapshot
# ──────────────────────────────────────────────────────────────────────────────

def load_calendar(db: Session) -> tuple[list[DBSessions], set[str], Overrides]:
    """All bookings, holiday keys and overrides the availability check needs."""
    sessions = db.query(DBSessions).all()
    holidays = {h.date for h in db.query(DBHolidays).all()}
    overrides = Overrides.from_rows(
        db.query(DBBlockedTimes).all(),
        db.query(DBOpenedSlots).all(),
    )
    return sessions, holidays, overrides


def _is_completed(session: DBSessions, today: str, current_time: str) -> bool:
    if session.date < today:
        return True
    return session.date == today and session.time < current_time


def split_sessions(
    sessions: list[DBSessions],
    now: datetime | None = None,
) -> tuple[list[DBSessions], list[DBSessions]]:
    """
    Split into (upcoming, completed).

    A session counts as completed once its start minute has passed.
    Upcoming sessions are ordered soonest first, completed most recent first.
    """
    now = localize(now)
    today = format_date_key(now)
    current_time = current_time_key(now)

    upcoming, completed = [], []
    for session in sessions:
        if _is_completed(session, today, current_time):
            completed.append(session)
        else:
            upcoming.append(session)

    upcoming.sort(key=lambda s: (s.date, s.time))
    completed.sort(key=lambda s: (s.date, s.time), reverse=True)
    return upcoming, completed


def _client_sessions(db: Session, client_id: int) -> list[DBSessions]:
    return db.query(DBSessions).filter(DBSessions.client_id == client_id).all()


def remaining_sessions(db: Session, client: DBClients, now: datetime | None = None) -> int:
    """Sessions of the block not yet trained (total minus completed)."""
    _, completed = split_sessions(_client_sessions(db, client.id), now)
    return (client.total_sessions or 0) - len(completed)


def unbooked_sessions(db: Session, client: DBClients) -> int:
    """Sessions of the block not yet placed on the calendar."""
    return (client.total_sessions or 0) - len(_client_sessions(db, client.id))


def _parse_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    try:
        return parse_date_key(value)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")


def _check_time(value: str) -> str:
    try:
        minutes = time_to_minutes(value)
    except ValueError:
        raise ValidationError(f"Invalid time: {value}")
    if not 0 <= minutes < 24 * 60:
        raise ValidationError(f"Invalid time: {value}")
    return value


def _reject(reason: str) -> None:
    message = REASON_MESSAGES.get(reason, "Slot is not available")
    if reason == REASON_OVERLAP:
        raise ConflictError(message)
    raise ValidationError(message)


# ──────────────────────────────────────────────────────────────────────────────
# Book / cancel
# ──────────────────────────────────────────────────────────────────────────────

def book_session(
    db: Session,
    target_date: str | date,
    time: str,
    client: Optional[DBClients] = None,
    client_name: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    now: datetime | None = None,
) -> DBSessions:
    """
    Place a one-to-one session on the trainer's calendar.

    Args:
        db: Database session
        target_date: Date key or date of the session
        time: "HH:MM" start
        client: Named client; their block must still have sessions to place
        client_name: Display name for sessions without a client record
        duration_minutes: Defaults to the client's session length

    Raises:
        ValidationError: no sessions left, or the slot fails a schedule check
        ConflictError: the slot overlaps an existing booking
    """
    now = localize(now)
    target = _parse_date(target_date)
    _check_time(time)

    if client is not None:
        # Serialises concurrent bookings for the same block
        client = (
            db.query(DBClients)
            .filter(DBClients.id == client.id)
            .with_for_update()
            .one()
        )
        duration_minutes = duration_minutes or client.session_duration
        if unbooked_sessions(db, client) <= 0:
            raise ValidationError(f"{client.name} has no sessions remaining")
        client_name = client.name
    duration_minutes = duration_minutes or settings.default_session_minutes

    sessions, holidays, overrides = load_calendar(db)
    reason = explain_slot(
        target,
        time,
        duration_minutes,
        sessions,
        holidays,
        overrides=overrides,
        now=now,
    )
    if reason:
        _reject(reason)

    booking = DBSessions(
        date=format_date_key(target),
        time=time,
        duration_minutes=duration_minutes,
        client_id=client.id if client is not None else None,
        client_name=client_name,
        created_at=now.isoformat(),
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)

    logger.info(
        f"Session booked: id={booking.id}, client_id={booking.client_id}, "
        f"time={booking.date} {booking.time} ({duration_minutes}min)"
    )

    emit_event("session_booked", {
        "session_id": booking.id,
        "client_id": booking.client_id,
        "date": booking.date,
        "time": booking.time,
    })
    return booking


def cancel_session(db: Session, session_id: int) -> None:
    booking = db.get(DBSessions, session_id)
    if not booking:
        raise NotFoundError("Session not found")

    payload = {
        "session_id": booking.id,
        "client_id": booking.client_id,
        "date": booking.date,
        "time": booking.time,
    }
    db.delete(booking)
    db.commit()

    logger.info(f"Session cancelled: id={session_id}")
    emit_event("session_cancelled", payload)


# ──────────────────────────────────────────────────────────────────────────────
# Reschedule
# ──────────────────────────────────────────────────────────────────────────────

def _pending_request(db: Session, session_id: int) -> Optional[DBRescheduleRequests]:
    return (
        db.query(DBRescheduleRequests)
        .filter(DBRescheduleRequests.session_id == session_id)
        .filter(DBRescheduleRequests.status == STATUS_PENDING)
        .first()
    )


def reschedule_options(
    db: Session,
    client: DBClients,
    now: datetime | None = None,
) -> list[date]:
    """Dates the client may move a session to."""
    now = localize(now)
    holidays = {h.date for h in db.query(DBHolidays).all()}
    block_end = parse_date_key(client.block_end_date) if client.block_end_date else None
    return get_reschedule_dates(now.date(), block_end, holidays)


def reschedule_slots(
    db: Session,
    client: DBClients,
    session_id: int,
    target_date: str | date,
    now: datetime | None = None,
) -> list[Slot]:
    """Open block-hour slots a client's session could move to on one date."""
    now = localize(now)
    booking = db.get(DBSessions, session_id)
    if not booking:
        raise NotFoundError("Session not found")
    if booking.client_id != client.id:
        raise ForbiddenError("Not your session")

    target = _parse_date(target_date)
    if target not in reschedule_options(db, client, now):
        return []

    sessions, holidays, overrides = load_calendar(db)
    return get_available_slots_for_date(
        target,
        booking.duration_minutes,
        sessions,
        holidays,
        exclude_booking_id=booking.id,
        overrides=overrides,
        schedule=RESCHEDULE_SCHEDULE,
        now=now,
    )


def request_reschedule(
    db: Session,
    client: DBClients,
    session_id: int,
    requested_date: str | date,
    requested_time: str,
    now: datetime | None = None,
) -> DBRescheduleRequests:
    """
    Ask the trainer to move one of the client's upcoming sessions.

    The requested slot must fall between tomorrow and the end of the client's
    block and pass the availability check with the session itself ignored.
    """
    now = localize(now)
    booking = db.get(DBSessions, session_id)
    if not booking:
        raise NotFoundError("Session not found")
    if booking.client_id != client.id:
        raise ForbiddenError("Not your session")

    if _pending_request(db, booking.id):
        raise ConflictError("A reschedule request for this session is already pending")

    target = _parse_date(requested_date)
    _check_time(requested_time)
    date_key = format_date_key(target)

    if date_key == booking.date and requested_time == booking.time:
        raise ValidationError("Requested slot is the session's current slot")

    if target not in reschedule_options(db, client, now):
        raise ValidationError("Requested date is outside the reschedule window")

    sessions, holidays, overrides = load_calendar(db)
    reason = explain_slot(
        target,
        requested_time,
        booking.duration_minutes,
        sessions,
        holidays,
        exclude_booking_id=booking.id,
        overrides=overrides,
        schedule=RESCHEDULE_SCHEDULE,
        now=now,
    )
    if reason:
        _reject(reason)

    request = DBRescheduleRequests(
        session_id=booking.id,
        client_id=client.id,
        client_name=client.name,
        original_date=booking.date,
        original_time=booking.time,
        requested_date=date_key,
        requested_time=requested_time,
        duration_minutes=booking.duration_minutes,
        status=STATUS_PENDING,
        created_at=now.isoformat(),
    )
    db.add(request)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("A reschedule request for this session is already pending")
    db.refresh(request)

    logger.info(
        f"Reschedule requested: id={request.id}, session={booking.id}, "
        f"{booking.date} {booking.time} → {date_key} {requested_time}"
    )
    emit_event("reschedule_requested", {
        "request_id": request.id,
        "client_id": client.id,
    })
    return request


def respond_to_reschedule(
    db: Session,
    request_id: int,
    approve: bool,
    now: datetime | None = None,
) -> DBRescheduleRequests:
    """
    Approve or reject a pending request.

    Approval moves the session after checking the requested slot again, since
    the calendar may have changed since the client asked.
    """
    now = localize(now)
    request = db.get(DBRescheduleRequests, request_id)
    if not request:
        raise NotFoundError("Reschedule request not found")
    if request.status != STATUS_PENDING:
        raise ConflictError(f"Request already {request.status}")

    if approve:
        booking = db.get(DBSessions, request.session_id)
        if not booking:
            raise NotFoundError("Session not found")

        sessions, holidays, overrides = load_calendar(db)
        reason = explain_slot(
            parse_date_key(request.requested_date),
            request.requested_time,
            booking.duration_minutes,
            sessions,
            holidays,
            exclude_booking_id=booking.id,
            overrides=overrides,
            now=now,
        )
        if reason:
            _reject(reason)

        booking.date = request.requested_date
        booking.time = request.requested_time
        request.status = STATUS_APPROVED
    else:
        request.status = STATUS_REJECTED

    request.responded_at = now.isoformat()
    db.commit()
    db.refresh(request)

    logger.info(f"Reschedule request {request.id} {request.status}")
    emit_event("reschedule_responded", {
        "request_id": request.id,
        "client_id": request.client_id,
        "status": request.status,
    })
    return request


def list_pending_requests(db: Session) -> list[DBRescheduleRequests]:
    return (
        db.query(DBRescheduleRequests)
        .filter(DBRescheduleRequests.status == STATUS_PENDING)
        .order_by(DBRescheduleRequests.created_at)
        .all()
    )


def list_reschedule_notifications(
    db: Session,
    client_id: int,
    now: datetime | None = None,
) -> list[DBRescheduleRequests]:
    """Answered, undismissed requests of the last week, newest first."""
    now = localize(now)
    cutoff = now - timedelta(days=NOTIFICATION_WINDOW_DAYS)

    requests = (
        db.query(DBRescheduleRequests)
        .filter(DBRescheduleRequests.client_id == client_id)
        .filter(DBRescheduleRequests.status != STATUS_PENDING)
        .filter(DBRescheduleRequests.dismissed == 0)
        .all()
    )

    recent = []
    for request in requests:
        responded_at = _responded_at(request)
        if responded_at is not None and responded_at > cutoff:
            recent.append((responded_at, request))

    recent.sort(key=lambda pair: pair[0], reverse=True)
    return [request for _, request in recent]


def _responded_at(request: DBRescheduleRequests) -> Optional[datetime]:
    try:
        return to_datetime(request.responded_at, settings.tz)
    except (TypeError, ValueError):
        logger.warning(f"Unreadable responded_at on request {request.id}")
        return None


def dismiss_notification(db: Session, client_id: int, request_id: int) -> DBRescheduleRequests:
    request = db.get(DBRescheduleRequests, request_id)
    if not request:
        raise NotFoundError("Reschedule request not found")
    if request.client_id != client_id:
        raise ForbiddenError("Not your request")

    request.dismissed = 1
    db.commit()
    db.refresh(request)
    return request


# ──────────────────────────────────────────────────────────────────────────────
# Holidays and overrides
# ──────────────────────────────────────────────────────────────────────────────

def add_holiday(db: Session, holiday_date: str | date) -> DBHolidays:
    date_key = format_date_key(_parse_date(holiday_date))

    if db.query(DBHolidays).filter(DBHolidays.date == date_key).first():
        raise ValidationError(f"{date_key} is already a holiday")

    holiday = DBHolidays(date=date_key)
    db.add(holiday)
    db.commit()
    db.refresh(holiday)

    logger.info(f"Holiday added: {date_key}")
    return holiday


def remove_holiday(db: Session, holiday_id: int) -> None:
    holiday = db.get(DBHolidays, holiday_id)
    if not holiday:
        raise NotFoundError("Holiday not found")
    date_key = holiday.date
    db.delete(holiday)
    db.commit()
    logger.info(f"Holiday removed: {date_key}")


def _add_override(db: Session, model, target_date: str | date, time: str, label: str):
    date_key = format_date_key(_parse_date(target_date))
    _check_time(time)

    exists = (
        db.query(model)
        .filter(model.date == date_key)
        .filter(model.time == time)
        .first()
    )
    if exists:
        raise ValidationError(f"{date_key} {time} is already {label}")

    row = model(date=date_key, time=time)
    db.add(row)
    db.commit()
    db.refresh(row)

    logger.info(f"Override added: {label} {date_key} {time}")
    return row


def _remove_override(db: Session, model, target_date: str | date, time: str) -> None:
    date_key = format_date_key(_parse_date(target_date))
    row = (
        db.query(model)
        .filter(model.date == date_key)
        .filter(model.time == time)
        .first()
    )
    if not row:
        raise NotFoundError("Override not found")
    db.delete(row)
    db.commit()


def block_time(db: Session, target_date: str | date, time: str) -> DBBlockedTimes:
    return _add_override(db, DBBlockedTimes, target_date, time, "blocked")


def unblock_time(db: Session, target_date: str | date, time: str) -> None:
    _remove_override(db, DBBlockedTimes, target_date, time)


def open_slot(db: Session, target_date: str | date, time: str) -> DBOpenedSlots:
    return _add_override(db, DBOpenedSlots, target_date, time, "opened")


def close_slot(db: Session, target_date: str | date, time: str) -> None:
    _remove_override(db, DBOpenedSlots, target_date, time)

# backend/studio/routers/availability.py
"""
Availability API endpoints.

GET /availability/day   - open slots for one date
GET /availability/week  - open slots Monday..Friday
GET /availability/check - why a single slot is or isn't bookable
GET /availability/reschedule-dates - dates the signed-in client may move to
GET /availability/reschedule-slots - block-hour slots for moving one of their sessions
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import current_client
from ..config import settings
from ..database import get_db
from ..models.tables import Clients as DBClients
from ..schemas.availability import (
    DayAvailability,
    RescheduleDates,
    SlotCheck,
    SlotRead,
    WeekAvailability,
)
from ..services.bookings import load_calendar, reschedule_options, reschedule_slots
from ..services.schedule import (
    Slot,
    explain_slot,
    get_available_slots_for_date,
    get_week_availability,
)
from ..services.schedule.timeutils import TIME_PATTERN, format_time, get_week_dates, parse_date_key

router = APIRouter(prefix="/availability", tags=["availability"])


def _slot_read(slot: Slot) -> SlotRead:
    return SlotRead(time=slot.time, period=slot.period, label=format_time(slot.time))


def _duration(duration: int | None) -> int:
    return duration or settings.default_session_minutes


@router.get("/day", response_model=DayAvailability)
def get_day(
    target_date: date = Query(..., alias="date"),
    duration: int | None = Query(None, gt=0, le=240),
    exclude_session_id: int | None = None,
    db: Session = Depends(get_db),
):
    """Open slots for a date; exclude_session_id ignores that booking (reschedule)."""
    sessions, holidays, overrides = load_calendar(db)
    slots = get_available_slots_for_date(
        target_date,
        _duration(duration),
        sessions,
        holidays,
        exclude_booking_id=exclude_session_id,
        overrides=overrides,
    )
    return DayAvailability(date=target_date, slots=[_slot_read(s) for s in slots])


@router.get("/week", response_model=WeekAvailability)
def get_week(
    week_of: date,
    duration: int | None = Query(None, gt=0, le=240),
    db: Session = Depends(get_db),
):
    sessions, holidays, overrides = load_calendar(db)
    week = get_week_availability(
        week_of,
        _duration(duration),
        sessions,
        holidays,
        overrides=overrides,
    )
    return WeekAvailability(
        week_of=get_week_dates(week_of)[0],
        duration_minutes=_duration(duration),
        days=[
            DayAvailability(date=parse_date_key(key), slots=[_slot_read(s) for s in slots])
            for key, slots in week.items()
        ],
    )


@router.get("/check", response_model=SlotCheck)
def check_slot(
    target_date: date = Query(..., alias="date"),
    time: str = Query(..., pattern=TIME_PATTERN),
    duration: int | None = Query(None, gt=0, le=240),
    exclude_session_id: int | None = None,
    db: Session = Depends(get_db),
):
    sessions, holidays, overrides = load_calendar(db)
    reason = explain_slot(
        target_date,
        time,
        _duration(duration),
        sessions,
        holidays,
        exclude_booking_id=exclude_session_id,
        overrides=overrides,
    )
    return SlotCheck(
        date=target_date,
        time=time,
        duration_minutes=_duration(duration),
        available=reason is None,
        reason=reason,
    )


@router.get("/reschedule-dates", response_model=RescheduleDates)
def reschedule_dates(
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    return RescheduleDates(dates=reschedule_options(db, client))


@router.get("/reschedule-slots", response_model=DayAvailability)
def get_reschedule_slots(
    session_id: int,
    target_date: date = Query(..., alias="date"),
    client: DBClients = Depends(current_client),
    db: Session = Depends(get_db),
):
    slots = reschedule_slots(db, client, session_id, target_date)
    return DayAvailability(date=target_date, slots=[_slot_read(s) for s in slots])

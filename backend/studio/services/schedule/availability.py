# backend/studio/services/schedule/availability.py
"""
Slot availability.

A candidate (date, time, duration) is checked in this order, cheapest first;
the first failing check rejects:

1. weekday has no schedule entry (weekend)       -> "weekend"
2. date is a holiday                              -> "holiday"
3. overrides for the day:
   default-blocked day: every tick must be opened -> "not_opened"
   normal day: no tick may be blocked             -> "blocked"
4. start is in the past                           -> "past"
5. [start, end) fits inside ONE open interval     -> "outside_hours"
6. no overlap with bookings on that date          -> "overlap"

Bookings, holidays and overrides are passed in as plain collections; this
module never touches the database.
"""

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, NamedTuple, Optional

from ...clock import localize
from .slots import Slot, generate_time_slots_for_day, ticks_spanned
from .table import WeeklySchedule, get_weekly_schedule
from .timeutils import (
    current_time_key,
    format_date_key,
    get_day_name,
    get_week_dates,
    is_weekday,
    time_to_minutes,
)

DEFAULT_BOOKING_MINUTES = 45

REASON_WEEKEND = "weekend"
REASON_HOLIDAY = "holiday"
REASON_BLOCKED = "blocked"
REASON_NOT_OPENED = "not_opened"
REASON_PAST = "past"
REASON_OUTSIDE_HOURS = "outside_hours"
REASON_OVERLAP = "overlap"


class BookingSpan(NamedTuple):
    """Minimal booking shape the overlap check needs."""
    id: Any
    date: str
    time: str
    duration_minutes: Optional[int] = DEFAULT_BOOKING_MINUTES


@dataclass
class Overrides:
    """
    Per-date exceptions to the weekly table.

    blocked: (date_key, "HH:MM") ticks removed on normal days
    opened:  (date_key, "HH:MM") ticks added on default-blocked days
    """
    blocked: set[tuple[str, str]] = field(default_factory=set)
    opened: set[tuple[str, str]] = field(default_factory=set)

    @classmethod
    def from_rows(cls, blocked_rows: Iterable = (), opened_rows: Iterable = ()) -> "Overrides":
        return cls(
            blocked={(row.date, row.time) for row in blocked_rows},
            opened={(row.date, row.time) for row in opened_rows},
        )


def explain_slot(
    target_date: date,
    time: str,
    duration_minutes: int,
    bookings: Iterable,
    holidays: Collection[str],
    exclude_booking_id: Any = None,
    overrides: Overrides | None = None,
    schedule: WeeklySchedule | None = None,
    now: datetime | None = None,
) -> str | None:
    """
    Reason a slot cannot be booked, or None when it can.

    Args:
        target_date: Local calendar date of the slot
        time: "HH:MM" start
        duration_minutes: Length of the session to place
        bookings: Existing bookings (any objects with id/date/time/duration_minutes)
        holidays: Holiday date keys
        exclude_booking_id: Booking ignored by the overlap check (reschedule)
        overrides: Blocked / opened ticks
        schedule: Weekly table; defaults to the configured one
        now: Current instant; defaults to the studio wall clock
    """
    schedule = schedule or get_weekly_schedule()
    overrides = overrides or Overrides()

    day = schedule.for_day(get_day_name(target_date))
    if day is None:
        return REASON_WEEKEND

    date_key = format_date_key(target_date)

    if date_key in holidays:
        return REASON_HOLIDAY

    start = time_to_minutes(time)
    ticks = ticks_spanned(start, duration_minutes, schedule.slot_step_minutes)

    if day.default_blocked:
        if any((date_key, tick) not in overrides.opened for tick in ticks):
            return REASON_NOT_OPENED
    elif any((date_key, tick) in overrides.blocked for tick in ticks):
        return REASON_BLOCKED

    now = localize(now)
    today = format_date_key(now)
    if date_key < today:
        return REASON_PAST
    if date_key == today and time < current_time_key(now):
        return REASON_PAST

    end = start + duration_minutes
    containing = [
        interval for _, interval in day.intervals()
        if interval.contains_start(start)
    ]
    if not containing or end > containing[0].end_minutes:
        return REASON_OUTSIDE_HOURS

    for booking in bookings:
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if booking.date != date_key:
            continue

        booking_start = time_to_minutes(booking.time)
        booking_end = booking_start + (booking.duration_minutes or DEFAULT_BOOKING_MINUTES)

        if start < booking_end and end > booking_start:
            return REASON_OVERLAP

    return None


def is_slot_available(
    target_date: date,
    time: str,
    duration_minutes: int,
    bookings: Iterable,
    holidays: Collection[str],
    exclude_booking_id: Any = None,
    overrides: Overrides | None = None,
    schedule: WeeklySchedule | None = None,
    now: datetime | None = None,
) -> bool:
    return explain_slot(
        target_date,
        time,
        duration_minutes,
        bookings,
        holidays,
        exclude_booking_id=exclude_booking_id,
        overrides=overrides,
        schedule=schedule,
        now=now,
    ) is None


def get_available_slots_for_date(
    target_date: date,
    duration_minutes: int,
    bookings: Iterable,
    holidays: Collection[str],
    exclude_booking_id: Any = None,
    overrides: Overrides | None = None,
    schedule: WeeklySchedule | None = None,
    now: datetime | None = None,
) -> list[Slot]:
    """Slots of the day that pass every availability check."""
    schedule = schedule or get_weekly_schedule()
    bookings = list(bookings)
    now = localize(now)

    return [
        slot
        for slot in generate_time_slots_for_day(get_day_name(target_date), schedule)
        if is_slot_available(
            target_date,
            slot.time,
            duration_minutes,
            bookings,
            holidays,
            exclude_booking_id=exclude_booking_id,
            overrides=overrides,
            schedule=schedule,
            now=now,
        )
    ]


def get_week_availability(
    week_of: date,
    duration_minutes: int,
    bookings: Iterable,
    holidays: Collection[str],
    overrides: Overrides | None = None,
    schedule: WeeklySchedule | None = None,
    now: datetime | None = None,
) -> dict[str, list[Slot]]:
    """Available slots for Monday..Friday of the week containing week_of."""
    bookings = list(bookings)
    return {
        format_date_key(day): get_available_slots_for_date(
            day,
            duration_minutes,
            bookings,
            holidays,
            overrides=overrides,
            schedule=schedule,
            now=now,
        )
        for day in get_week_dates(week_of)
    }


def get_reschedule_dates(
    today: date,
    block_end: date | None,
    holidays: Collection[str],
) -> list[date]:
    """
    Dates a client may move a session to.

    Tomorrow through the end of their block, weekdays only, holidays removed.
    """
    if block_end is None:
        return []

    dates = []
    current = today + timedelta(days=1)
    while current <= block_end:
        if is_weekday(current) and format_date_key(current) not in holidays:
            dates.append(current)
        current += timedelta(days=1)
    return dates

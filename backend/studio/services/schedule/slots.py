# backend/studio/services/schedule/slots.py
"""
Slot generation: bookable start times for one weekday.

Walks each open interval from start (inclusive) to end (exclusive) in
fixed steps. Pure; does not look at bookings, overrides or the clock.
"""

from dataclasses import dataclass

from .table import WeeklySchedule, get_weekly_schedule
from .timeutils import minutes_to_time


@dataclass(frozen=True)
class Slot:
    time: str    # "HH:MM"
    period: str  # "morning" / "afternoon"


def generate_time_slots_for_day(
    day_name: str | None,
    schedule: WeeklySchedule | None = None,
) -> list[Slot]:
    """
    Ordered slots for a weekday.

    Returns:
        Morning slots then afternoon slots. Empty for unknown or closed days.
    """
    schedule = schedule or get_weekly_schedule()
    day = schedule.for_day(day_name) if day_name else None
    if day is None:
        return []

    step = schedule.slot_step_minutes
    slots: list[Slot] = []

    for period, interval in day.intervals():
        t = interval.start_minutes
        while t < interval.end_minutes:
            slots.append(Slot(time=minutes_to_time(t), period=period))
            t += step

    return slots


def ticks_spanned(start_minutes: int, duration_minutes: int, step: int) -> list[str]:
    """
    Grid ticks covered by [start, start + duration).

    A 45-minute session at 09:15 spans 09:15, 09:30 and 09:45. Off-grid
    starts count from the tick they fall in: 09:07 for 45 minutes spans
    09:00, 09:15, 09:30 and 09:45.
    """
    first = start_minutes - start_minutes % step
    end = start_minutes + duration_minutes
    return [minutes_to_time(t) for t in range(first, end, step)]

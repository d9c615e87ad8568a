# backend/studio/services/schedule/__init__.py
"""
Session scheduling engine.

timeutils    - "HH:MM" / date-key arithmetic
table        - weekly opening hours, default-blocked days
slots        - bookable start times per weekday
availability - the six-step slot check and its compositions
"""

from .availability import (
    BookingSpan,
    Overrides,
    explain_slot,
    get_available_slots_for_date,
    get_reschedule_dates,
    get_week_availability,
    is_slot_available,
)
from .slots import Slot, generate_time_slots_for_day
from .table import (
    CLIENT_BLOCK_SCHEDULE,
    TRAINER_SCHEDULE,
    DaySchedule,
    Interval,
    WeeklySchedule,
    get_weekly_schedule,
)

__all__ = [
    "BookingSpan",
    "Overrides",
    "explain_slot",
    "get_available_slots_for_date",
    "get_reschedule_dates",
    "get_week_availability",
    "is_slot_available",
    "Slot",
    "generate_time_slots_for_day",
    "CLIENT_BLOCK_SCHEDULE",
    "TRAINER_SCHEDULE",
    "DaySchedule",
    "Interval",
    "WeeklySchedule",
    "get_weekly_schedule",
]

# backend/studio/services/schedule/table.py
"""
Weekly schedule table.

Each weekday has up to two open intervals (morning / afternoon) and a
default_blocked flag. On a default-blocked day nothing is bookable unless
the admin explicitly opens the 15-minute ticks; on a normal day everything
inside the intervals is bookable unless explicitly blocked.
"""

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from ...config import settings
from .timeutils import DAY_NAMES, time_to_minutes

logger = logging.getLogger(__name__)

PERIODS = ("morning", "afternoon")


@dataclass(frozen=True)
class Interval:
    start: str  # "HH:MM", inclusive
    end: str    # "HH:MM", exclusive

    def __post_init__(self):
        if time_to_minutes(self.start) >= time_to_minutes(self.end):
            raise ValueError(f"Interval start {self.start} must be before end {self.end}")

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end)

    def contains_start(self, minutes: int) -> bool:
        return self.start_minutes <= minutes < self.end_minutes


@dataclass(frozen=True)
class DaySchedule:
    morning: Optional[Interval] = None
    afternoon: Optional[Interval] = None
    default_blocked: bool = False

    def intervals(self) -> list[tuple[str, Interval]]:
        """Present intervals tagged with their period, in day order."""
        result = []
        for period in PERIODS:
            interval = getattr(self, period)
            if interval is not None:
                result.append((period, interval))
        return result


@dataclass(frozen=True)
class WeeklySchedule:
    """
    Weekly opening hours.

    Attributes:
        days: day name ("monday".."sunday") -> DaySchedule; absent = closed
        slot_step_minutes: grid step for slot generation and override ticks
    """
    days: dict[str, DaySchedule] = field(default_factory=dict)
    slot_step_minutes: int = 15

    def __post_init__(self):
        if self.slot_step_minutes not in (5, 10, 15, 30, 60):
            raise ValueError(f"slot_step_minutes must divide an hour, got {self.slot_step_minutes}")
        unknown = set(self.days) - set(DAY_NAMES)
        if unknown:
            raise ValueError(f"Unknown day names: {sorted(unknown)}")

    def for_day(self, day_name: str) -> Optional[DaySchedule]:
        return self.days.get(day_name)

    @classmethod
    def from_dict(cls, data: dict, slot_step_minutes: int = 15) -> "WeeklySchedule":
        """
        Build from the JSON shape used in settings:

            {"friday": {"morning": {"start": "06:15", "end": "12:00"},
                        "afternoon": null,
                        "defaultBlocked": true}}
        """
        days = {}
        for day_name, day_data in data.items():
            if not day_data:
                continue
            day_name = day_name.lower()
            intervals = {}
            for period in PERIODS:
                raw = day_data.get(period)
                if raw:
                    intervals[period] = Interval(raw["start"], raw["end"])
            default_blocked = bool(day_data.get("defaultBlocked", day_data.get("default_blocked", False)))
            days[day_name] = DaySchedule(default_blocked=default_blocked, **intervals)
        return cls(days=days, slot_step_minutes=slot_step_minutes)

    def to_dict(self) -> dict:
        result = {}
        for day_name in DAY_NAMES:
            day = self.days.get(day_name)
            if day is None:
                continue
            entry = {"defaultBlocked": day.default_blocked}
            for period in PERIODS:
                interval = getattr(day, period)
                entry[period] = {"start": interval.start, "end": interval.end} if interval else None
            result[day_name] = entry
        return result


_WEEKDAY = DaySchedule(
    morning=Interval("06:15", "12:00"),
    afternoon=Interval("15:00", "20:00"),
)

# Published trainer availability; Friday is reserved unless opened
TRAINER_SCHEDULE = WeeklySchedule(days={
    "monday": _WEEKDAY,
    "tuesday": _WEEKDAY,
    "wednesday": _WEEKDAY,
    "thursday": _WEEKDAY,
    "friday": DaySchedule(
        morning=Interval("06:15", "12:00"),
        afternoon=Interval("12:00", "17:00"),
        default_blocked=True,
    ),
})

# Hours offered to block clients rescheduling from their portal
CLIENT_BLOCK_SCHEDULE = WeeklySchedule(days={
    "monday": _WEEKDAY,
    "tuesday": _WEEKDAY,
    "wednesday": _WEEKDAY,
    "thursday": _WEEKDAY,
    "friday": DaySchedule(morning=Interval("08:00", "10:00")),
})


@lru_cache
def get_weekly_schedule() -> WeeklySchedule:
    """
    Active weekly table (singleton).

    settings.weekly_schedule (JSON) overrides the trainer preset.
    """
    if settings.weekly_schedule:
        try:
            return WeeklySchedule.from_dict(json.loads(settings.weekly_schedule))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.exception("Invalid WEEKLY_SCHEDULE, falling back to trainer preset")
    return TRAINER_SCHEDULE

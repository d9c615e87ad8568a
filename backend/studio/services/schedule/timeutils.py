# backend/studio/services/schedule/timeutils.py
"""
Time helpers shared by the booking engine.

Times are "HH:MM" strings on the studio wall clock, dates are "YYYY-MM-DD"
keys. format_date_key is the only place a date key is produced.
"""

import re
from datetime import date, datetime, timedelta, tzinfo

from ...config import settings

MINUTES_PER_DAY = 24 * 60

# Wall-clock start time, 00:00..23:59
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def time_to_minutes(time_str: str) -> int:
    """
    Convert "HH:MM" to minutes since midnight.

    "24:00" is accepted as an end bound.
    """
    match = _TIME_RE.match(time_str or "")
    if not match:
        raise ValueError(f"Invalid time: {time_str!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes >= 60 or hours * 60 + minutes > MINUTES_PER_DAY:
        raise ValueError(f"Invalid time: {time_str!r}")
    return hours * 60 + minutes


def minutes_to_time(total_minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def add_minutes_to_time(time_str: str, minutes: int) -> str:
    """
    Add a duration to a wall-clock time.

    "24:00" is allowed as an end bound; anything past midnight raises,
    since a session never spans two dates.
    """
    total = time_to_minutes(time_str) + minutes
    if total < 0 or total > MINUTES_PER_DAY:
        raise ValueError(f"{time_str} + {minutes}min leaves the day")
    return minutes_to_time(total)


def format_time(time_str: str) -> str:
    """12-hour display form: "15:30" -> "3:30pm"."""
    hours, minutes = time_str.split(":")
    hour = int(hours)
    suffix = "pm" if hour >= 12 else "am"
    if hour > 12:
        display_hour = hour - 12
    elif hour == 0:
        display_hour = 12
    else:
        display_hour = hour
    return f"{display_hour}:{minutes}{suffix}"


def format_date_key(value: date | datetime, tz: tzinfo | None = None) -> str:
    """
    Local calendar date as "YYYY-MM-DD".

    Aware datetimes are moved into tz (default: the studio zone) first so
    that a session at 00:30 local time is not filed under the previous UTC day.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz or settings.tz)
        value = value.date()
    return value.isoformat()


def parse_date_key(date_key: str) -> date:
    return date.fromisoformat(date_key)


def current_time_key(now: datetime) -> str:
    """Wall-clock "HH:MM" of an already-localised datetime."""
    return f"{now.hour:02d}:{now.minute:02d}"


def to_datetime(value, tz: tzinfo | None = None) -> datetime | None:
    """
    Normalise a stored instant into a datetime.

    Accepts datetime, date, ISO string (with or without "Z") or epoch seconds.
    Naive results are tagged with tz when one is given.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime.combine(value, datetime.min.time())
    elif isinstance(value, (int, float)):
        result = datetime.fromtimestamp(value, tz)
    elif isinstance(value, str):
        result = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported instant type: {type(value).__name__}")

    if result.tzinfo is None and tz is not None:
        result = result.replace(tzinfo=tz)
    return result


def get_day_name(value: date) -> str:
    return DAY_NAMES[value.weekday()]


def is_weekday(value: date) -> bool:
    return value.weekday() < 5


def get_week_dates(value: date) -> list[date]:
    """Monday..Friday of the week containing value."""
    monday = value - timedelta(days=value.weekday())
    return [monday + timedelta(days=i) for i in range(5)]


def combine_local(date_key: str, time_str: str, tz: tzinfo | None = None) -> datetime:
    """Build the instant of a date key + "HH:MM" on the studio clock."""
    minutes = time_to_minutes(time_str)
    result = datetime.combine(parse_date_key(date_key), datetime.min.time()) + timedelta(minutes=minutes)
    if tz is not None:
        result = result.replace(tzinfo=tz)
    return result

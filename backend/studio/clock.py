"""
Studio wall clock.

Services take an optional `now` argument and fall back to studio_now(), so
tests pass fixed instants instead of reading real time.
"""

from datetime import datetime

from .config import settings


def studio_now() -> datetime:
    return datetime.now(settings.tz)


def localize(now: datetime | None) -> datetime:
    """Current instant on the studio clock; naive values are taken as local."""
    if now is None:
        return studio_now()
    if now.tzinfo is not None:
        return now.astimezone(settings.tz)
    return now

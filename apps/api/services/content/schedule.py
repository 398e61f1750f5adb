"""Pure schedule helpers for deriving fixture kick-off times from a reference clock."""

from datetime import datetime, timedelta

MONDAY, TUESDAY, WEDNESDAY, THURSDAY, FRIDAY, SATURDAY, SUNDAY = range(7)


def at_time(day: datetime, hour: int, minute: int = 0) -> datetime:
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def next_weekday_at(now: datetime, weekday: int, hour: int, minute: int = 0) -> datetime:
    """Kick-off on the next ``weekday`` (today counts) at ``hour:minute``."""
    days_ahead = (weekday - now.weekday()) % 7
    return at_time(now + timedelta(days=days_ahead), hour, minute)


def tomorrow_at(now: datetime, hour: int, minute: int = 0) -> datetime:
    return at_time(now + timedelta(days=1), hour, minute)


def add_hours(value: datetime, hours: float) -> datetime:
    return value + timedelta(hours=hours)


def is_currently_airing(start: datetime, now: datetime, duration_hours: float = 3) -> bool:
    return start <= now <= add_hours(start, duration_hours)

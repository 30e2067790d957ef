"""Time parsing and slot arithmetic.

Schedule and booking times are provider-local wall-clock values in the
configured APP_TIMEZONE. Nothing stores an offset; the zone is applied only
when a booking has to be compared with "now" (cancellation window).
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ...config import APP_TIMEZONE
from ...models import WEEKDAYS

TIME_OF_DAY_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_time_of_day(value: str) -> time:
    """Parse 'H:MM' or 'HH:MM' into a time. Raises ValueError otherwise."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    match = TIME_OF_DAY_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError("Valid time format is required (HH:MM)")
    return time(int(match.group(1)), int(match.group(2)))


def format_time_of_day(value: Optional[time]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%H:%M")


def weekday_name(day: date) -> str:
    """Lowercase English weekday name, matching schedule keys"""
    return WEEKDAYS[day.weekday()]


def add_minutes(value: time, minutes: int) -> Optional[time]:
    """Shift a time of day; None when the result would cross midnight"""
    shifted = datetime.combine(date.min, value) + timedelta(minutes=minutes)
    if shifted.date() != date.min:
        return None
    return shifted.time()


def iter_slot_starts(start: time, end: time, step_minutes: int) -> list[time]:
    """Slot start times from start (inclusive) to end (exclusive)"""
    if step_minutes <= 0:
        raise ValueError("Slot duration must be positive")

    slots = []
    current: Optional[time] = start
    while current is not None and current < end:
        slots.append(current)
        current = add_minutes(current, step_minutes)
    return slots


def get_timezone() -> ZoneInfo:
    return ZoneInfo(APP_TIMEZONE)


def local_now() -> datetime:
    """Current wall-clock time in the provider timezone"""
    return datetime.now(get_timezone())


def utc_now() -> datetime:
    """Current UTC time as the naive value audit columns store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def localize(day: date, value: time) -> datetime:
    """Attach the provider timezone to a booked date and time"""
    return datetime.combine(day, value, tzinfo=get_timezone())

"""Appointment status state machine and cancellation window"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from ...config import CANCELLATION_NOTICE_HOURS
from .time_calculator import local_now, localize

ALLOWED_TRANSITIONS: dict[str, frozenset] = {
    "pending": frozenset({"confirmed", "cancelled", "no-show"}),
    "confirmed": frozenset({"completed", "cancelled", "no-show"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
    "no-show": frozenset(),
}

CANCELLABLE_STATUSES = frozenset({"pending", "confirmed"})
LOCKED_STATUSES = frozenset({"completed", "cancelled"})


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def is_terminal(status: str) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)


def time_until(day: date, slot_time: time, now: Optional[datetime] = None) -> timedelta:
    """Time left before a booked slot, measured in the provider timezone"""
    now = now or local_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=localize(day, slot_time).tzinfo)
    return localize(day, slot_time) - now


def can_be_cancelled(
    status: str, day: date, slot_time: time, now: Optional[datetime] = None
) -> bool:
    """Live bookings can be cancelled until CANCELLATION_NOTICE_HOURS before"""
    if status not in CANCELLABLE_STATUSES:
        return False
    return time_until(day, slot_time, now) > timedelta(hours=CANCELLATION_NOTICE_HOURS)

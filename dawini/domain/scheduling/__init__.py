"""
Scheduling Domain

Slot availability, booking admission and the appointment lifecycle.

Structure:
- time_calculator.py      # Time parsing, weekday lookup, slot stepping
- repository.py           # Booking ledger queries
- availability_service.py # Free slots and the booking guard
- lifecycle.py            # Status transitions, cancellation window

Slots are exact start times: a booking at (doctor, date, time) occupies that
time only, and the ledger enforces one live booking per doctor slot and per
patient slot with partial unique indexes (see models.Appointment).
"""

from .availability_service import (
    AvailabilityService,
    BookingDecision,
    DayWindow,
    RejectionReason,
    check_schedule,
    compute_free_slots,
    get_day_window,
)
from .lifecycle import (
    ALLOWED_TRANSITIONS,
    can_be_cancelled,
    can_transition,
)

__all__ = [
    "AvailabilityService",
    "BookingDecision",
    "DayWindow",
    "RejectionReason",
    "check_schedule",
    "compute_free_slots",
    "get_day_window",
    "ALLOWED_TRANSITIONS",
    "can_be_cancelled",
    "can_transition",
]

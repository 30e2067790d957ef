"""Availability calculator and booking guard.

The pure functions at the top work on plain schedule dicts and lists of
booked times so they can be reasoned about without a database. The
AvailabilityService below feeds them from the ledger.
"""

import logging
from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...config import DEFAULT_CONSULTATION_MINUTES
from ...models import Doctor
from .repository import LedgerRepository
from .time_calculator import format_time_of_day, iter_slot_starts, parse_time_of_day, weekday_name

logger = logging.getLogger(__name__)


class RejectionReason(str, Enum):
    PROVIDER_NOT_FOUND = "provider_not_found"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    CLOSED_DAY = "closed_day"
    OUTSIDE_HOURS = "outside_hours"
    SLOT_TAKEN = "slot_taken"
    REQUESTER_CONFLICT = "requester_conflict"


REJECTION_MESSAGES = {
    RejectionReason.PROVIDER_NOT_FOUND: "Doctor not found",
    RejectionReason.PROVIDER_UNAVAILABLE: "Doctor is not available for appointments",
    RejectionReason.CLOSED_DAY: "Doctor does not work on this day",
    RejectionReason.OUTSIDE_HOURS: "Requested time is outside doctor's working hours",
    RejectionReason.SLOT_TAKEN: "This time slot is already booked",
    RejectionReason.REQUESTER_CONFLICT: "You already have an appointment at this time",
}

# not found -> 404, conflict -> 409, everything else is an invalid request
REJECTION_STATUS_CODES = {
    RejectionReason.PROVIDER_NOT_FOUND: 404,
    RejectionReason.PROVIDER_UNAVAILABLE: 400,
    RejectionReason.CLOSED_DAY: 400,
    RejectionReason.OUTSIDE_HOURS: 400,
    RejectionReason.SLOT_TAKEN: 409,
    RejectionReason.REQUESTER_CONFLICT: 409,
}


@dataclass(frozen=True)
class DayWindow:
    start: time
    end: time

    def contains(self, value: time) -> bool:
        return self.start <= value < self.end

    def to_dict(self) -> dict:
        return {
            "start": format_time_of_day(self.start),
            "end": format_time_of_day(self.end),
            "isOpen": True,
        }


@dataclass(frozen=True)
class BookingDecision:
    admitted: bool
    reason: Optional[RejectionReason] = None

    @classmethod
    def admit(cls) -> "BookingDecision":
        return cls(admitted=True)

    @classmethod
    def reject(cls, reason: RejectionReason) -> "BookingDecision":
        return cls(admitted=False, reason=reason)

    @property
    def message(self) -> Optional[str]:
        return REJECTION_MESSAGES[self.reason] if self.reason else None

    @property
    def status_code(self) -> int:
        return REJECTION_STATUS_CODES[self.reason] if self.reason else 200

    def to_detail(self) -> dict:
        return {"code": self.reason.value if self.reason else None, "message": self.message}


def get_day_window(schedule: Optional[dict], day: date) -> Optional[DayWindow]:
    """Open interval for the weekday of `day`, or None when closed"""
    entry = (schedule or {}).get(weekday_name(day))
    if not entry:
        return None
    is_open = entry.get("isOpen", entry.get("isWorking", False))
    if not is_open or not entry.get("start") or not entry.get("end"):
        return None
    return DayWindow(parse_time_of_day(entry["start"]), parse_time_of_day(entry["end"]))


def compute_free_slots(
    window: Optional[DayWindow], booked_times: Iterable[time], duration_minutes: int
) -> list[time]:
    """Slot starts inside the window that no live booking holds"""
    if window is None:
        return []
    booked = set(booked_times)
    return [
        slot
        for slot in iter_slot_starts(window.start, window.end, duration_minutes)
        if slot not in booked
    ]


def check_schedule(schedule: Optional[dict], day: date, slot_time: time) -> BookingDecision:
    """Working day and open-interval checks of the booking guard"""
    window = get_day_window(schedule, day)
    if window is None:
        return BookingDecision.reject(RejectionReason.CLOSED_DAY)
    if not window.contains(slot_time):
        return BookingDecision.reject(RejectionReason.OUTSIDE_HOURS)
    return BookingDecision.admit()


def check_provider(doctor: Optional[Doctor]) -> BookingDecision:
    if doctor is None:
        return BookingDecision.reject(RejectionReason.PROVIDER_NOT_FOUND)
    if not doctor.is_available or not doctor.is_verified:
        return BookingDecision.reject(RejectionReason.PROVIDER_UNAVAILABLE)
    return BookingDecision.admit()


class AvailabilityService:
    """Ledger-backed availability and booking admission"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LedgerRepository()

    def get_doctor(self, doctor_id: int) -> Optional[Doctor]:
        return self.repo.get_doctor(self.db, doctor_id)

    def get_free_slots(self, doctor: Doctor, day: date) -> list[time]:
        window = get_day_window(doctor.working_hours, day)
        if window is None:
            return []
        booked = self.repo.get_booked_times(self.db, doctor.id, day)
        duration = doctor.consultation_duration or DEFAULT_CONSULTATION_MINUTES
        return compute_free_slots(window, booked, duration)

    def get_booked_times(self, doctor: Doctor, day: date) -> list[time]:
        return self.repo.get_booked_times(self.db, doctor.id, day)

    def check_slot(self, doctor: Doctor, day: date, slot_time: time) -> BookingDecision:
        """Is one provider time bookable, ignoring who asks"""
        decision = check_schedule(doctor.working_hours, day, slot_time)
        if not decision.admitted:
            return decision
        if self.repo.find_doctor_booking(self.db, doctor.id, day, slot_time):
            return BookingDecision.reject(RejectionReason.SLOT_TAKEN)
        return BookingDecision.admit()

    def evaluate_booking(
        self,
        doctor_id: int,
        patient_id: int,
        day: date,
        slot_time: time,
        exclude_appointment_id: Optional[int] = None,
        require_available: bool = True,
    ) -> BookingDecision:
        """Run the guard checks in order; the first failure wins.

        `exclude_appointment_id` lets a reschedule ignore the booking being
        moved. A doctor rescheduling their own booking skips the
        availability flag (`require_available=False`).
        """
        doctor = self.repo.get_doctor(self.db, doctor_id)
        if require_available:
            decision = check_provider(doctor)
        elif doctor is None:
            decision = BookingDecision.reject(RejectionReason.PROVIDER_NOT_FOUND)
        else:
            decision = BookingDecision.admit()
        if not decision.admitted:
            return self._log_rejection(decision, doctor_id, patient_id, day, slot_time)

        decision = check_schedule(doctor.working_hours, day, slot_time)
        if not decision.admitted:
            return self._log_rejection(decision, doctor_id, patient_id, day, slot_time)

        if self.repo.find_doctor_booking(
            self.db, doctor_id, day, slot_time, exclude_appointment_id
        ):
            decision = BookingDecision.reject(RejectionReason.SLOT_TAKEN)
            return self._log_rejection(decision, doctor_id, patient_id, day, slot_time)

        if self.repo.find_requester_booking(
            self.db, patient_id, day, slot_time, exclude_appointment_id
        ):
            decision = BookingDecision.reject(RejectionReason.REQUESTER_CONFLICT)
            return self._log_rejection(decision, doctor_id, patient_id, day, slot_time)

        return BookingDecision.admit()

    @staticmethod
    def _log_rejection(
        decision: BookingDecision, doctor_id: int, patient_id: int, day: date, slot_time: time
    ) -> BookingDecision:
        logger.info(
            f"Booking rejected ({decision.reason.value}) doctor={doctor_id} patient={patient_id} "
            f"at {day.isoformat()} {format_time_of_day(slot_time)}"
        )
        return decision

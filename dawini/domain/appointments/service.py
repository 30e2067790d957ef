"""Appointment service - Booking, listing, updates and cancellation"""

import logging
from datetime import date, datetime, time
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import DEFAULT_CONSULTATION_MINUTES
from ...models import Appointment, Doctor, User
from ...shared.validators import validate_iso_date
from ...utils.sanitization import sanitize_string
from ..scheduling import (
    AvailabilityService,
    BookingDecision,
    RejectionReason,
    can_be_cancelled,
    can_transition,
    get_day_window,
)
from ..scheduling.lifecycle import CANCELLABLE_STATUSES, LOCKED_STATUSES
from ..scheduling.repository import LedgerRepository
from ..scheduling.time_calculator import (
    format_time_of_day,
    parse_time_of_day,
    utc_now,
    weekday_name,
)
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate

logger = logging.getLogger(__name__)

PATIENT_FIELDS = ("reason", "patientNotes")
DOCTOR_FIELDS = ("status", "appointmentDate", "appointmentTime", "appointmentType", "doctorNotes")


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.availability = AvailabilityService(db)

    # ========================================================================
    # AVAILABILITY
    # ========================================================================

    def get_availability(
        self, doctor_id: int, date_str: str, time_str: Optional[str] = None
    ) -> dict:
        """Free slots for a doctor on a date, optionally checking one time"""
        try:
            day = validate_iso_date(date_str)
            requested = parse_time_of_day(time_str) if time_str else None
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        doctor = self.availability.get_doctor(doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")

        if not doctor.is_available or not doctor.is_verified:
            decision = BookingDecision.reject(RejectionReason.PROVIDER_UNAVAILABLE)
            raise HTTPException(status_code=decision.status_code, detail=decision.to_detail())

        window = get_day_window(doctor.working_hours, day)
        booked = self.availability.get_booked_times(doctor, day)
        free = self.availability.get_free_slots(doctor, day)

        result = {
            "doctorId": doctor.id,
            "date": day,
            "dayOfWeek": weekday_name(day),
            "available": bool(free),
            "reason": None,
            "message": None,
            "workingHours": window.to_dict() if window else None,
            "consultationDuration": doctor.consultation_duration or DEFAULT_CONSULTATION_MINUTES,
            "availableTimeSlots": [format_time_of_day(t) for t in free],
            "bookedTimes": [format_time_of_day(t) for t in booked],
            "requestedTime": format_time_of_day(requested),
        }

        if window is None:
            decision = BookingDecision.reject(RejectionReason.CLOSED_DAY)
            result["reason"] = decision.reason.value
            result["message"] = decision.message
        elif requested is not None:
            decision = self.availability.check_slot(doctor, day, requested)
            result["available"] = decision.admitted
            if not decision.admitted:
                result["reason"] = decision.reason.value
                result["message"] = decision.message

        return result

    # ========================================================================
    # BOOKING
    # ========================================================================

    def book(self, data: AppointmentCreate, user: User) -> Appointment:
        """Run the booking guard and insert the booking"""
        patient_id = self._resolve_patient(data.patientId, user)

        decision = self.availability.evaluate_booking(
            data.doctorId, patient_id, data.appointmentDate, data.appointmentTime
        )
        if not decision.admitted:
            raise HTTPException(status_code=decision.status_code, detail=decision.to_detail())

        doctor = self.availability.get_doctor(data.doctorId)
        appointment_data = {
            "doctor_id": doctor.id,
            "patient_id": patient_id,
            "appointment_date": data.appointmentDate,
            "appointment_time": data.appointmentTime,
            "duration": doctor.consultation_duration or DEFAULT_CONSULTATION_MINUTES,
            "appointment_type": data.appointmentType,
            "status": "pending",
            "reason": sanitize_string(data.reason),
            "patient_notes": sanitize_string(data.patientNotes),
            "payment_amount": doctor.consultation_fee or 0,
            "payment_currency": "DA",
            "payment_status": "pending",
        }

        try:
            appointment = self.repo.create(self.db, **appointment_data)
        except IntegrityError as e:
            self.db.rollback()
            raise self._conflict_from_integrity_error(
                doctor.id, patient_id, data.appointmentDate, data.appointmentTime, e
            ) from e

        logger.info(
            f"Booked appointment {appointment.id}: doctor={doctor.id} patient={patient_id} "
            f"at {appointment.appointment_date.isoformat()} "
            f"{format_time_of_day(appointment.appointment_time)}"
        )
        return appointment

    def _resolve_patient(self, requested_patient_id: Optional[int], user: User) -> int:
        if user.user_type != "admin":
            if requested_patient_id is not None and requested_patient_id != user.id:
                raise HTTPException(
                    status_code=403, detail="You can only book appointments for yourself"
                )
            return user.id

        if requested_patient_id is None:
            raise HTTPException(status_code=400, detail="patientId is required")
        patient = self.db.query(User).filter(User.id == requested_patient_id).first()
        if not patient or patient.user_type != "patient":
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient.id

    def _conflict_from_integrity_error(
        self, doctor_id: int, patient_id: int, day: date, slot_time: time, error: Exception
    ) -> HTTPException:
        """Map a lost insert race onto the guard's conflict reasons"""
        if LedgerRepository.find_doctor_booking(self.db, doctor_id, day, slot_time):
            reason = RejectionReason.SLOT_TAKEN
        else:
            reason = RejectionReason.REQUESTER_CONFLICT
        logger.warning(
            f"Booking race lost ({reason.value}) doctor={doctor_id} patient={patient_id}: {error}"
        )
        decision = BookingDecision.reject(reason)
        return HTTPException(status_code=decision.status_code, detail=decision.to_detail())

    # ========================================================================
    # READS
    # ========================================================================

    def list_appointments(
        self,
        user: User,
        status: Optional[str] = None,
        date_str: Optional[str] = None,
        appointment_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Appointment], int]:
        """Role-scoped listing: patients see theirs, doctors see their profile's"""
        day = None
        if date_str:
            try:
                day = validate_iso_date(date_str)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e

        filters = {}
        if user.user_type == "patient":
            filters["patient_id"] = user.id
        elif user.user_type == "doctor":
            doctor = self._get_doctor_profile(user)
            filters["doctor_id"] = doctor.id
        elif user.user_type != "admin":
            raise HTTPException(status_code=403, detail="Access denied")

        return self.repo.list_appointments(
            self.db,
            status=status,
            day=day,
            appointment_type=appointment_type,
            page=page,
            limit=limit,
            **filters,
        )

    def get_appointment(self, appointment_id: int, user: User) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        if user.user_type != "admin" and self._role_in(appointment, user) is None:
            raise HTTPException(status_code=403, detail="Access denied")
        return appointment

    # ========================================================================
    # UPDATES
    # ========================================================================

    def update_appointment(
        self, appointment_id: int, data: AppointmentUpdate, user: User
    ) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        role = self._role_in(appointment, user)
        if role is None:
            raise HTTPException(status_code=403, detail="Access denied")

        if appointment.status in LOCKED_STATUSES:
            raise HTTPException(
                status_code=400, detail="Cannot modify completed or cancelled appointments"
            )

        provided = data.model_dump(exclude_none=True)
        provided.pop("cancellationReason", None)
        allowed = PATIENT_FIELDS if role == "patient" else DOCTOR_FIELDS
        forbidden = sorted(field for field in provided if field not in allowed)
        if forbidden:
            raise HTTPException(
                status_code=403,
                detail=f"{role.capitalize()} cannot update: {', '.join(forbidden)}",
            )

        if role == "patient":
            if data.reason is not None:
                appointment.reason = sanitize_string(data.reason)
            if data.patientNotes is not None:
                appointment.patient_notes = sanitize_string(data.patientNotes)
            return self._save(appointment)

        rescheduling = data.appointmentDate is not None or data.appointmentTime is not None
        if rescheduling and data.status == "cancelled":
            # The notice window is measured against the booked slot
            raise HTTPException(
                status_code=400,
                detail="Cannot reschedule and cancel an appointment in the same request",
            )

        if rescheduling:
            self._reschedule(
                appointment,
                data.appointmentDate or appointment.appointment_date,
                data.appointmentTime or appointment.appointment_time,
            )

        if data.appointmentType is not None:
            appointment.appointment_type = data.appointmentType
        if data.doctorNotes is not None:
            appointment.doctor_notes = sanitize_string(data.doctorNotes)

        if data.status is not None and data.status != appointment.status:
            if data.status == "cancelled":
                self._apply_cancellation(appointment, "doctor", data.cancellationReason)
            elif can_transition(appointment.status, data.status):
                logger.info(
                    f"Appointment {appointment.id} status {appointment.status} -> {data.status}"
                )
                appointment.status = data.status
            else:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid status transition from {appointment.status} to {data.status}",
                )

        return self._save(appointment)

    def _reschedule(self, appointment: Appointment, new_date: date, new_time: time) -> None:
        """Move a booking, re-running the guard with the booking itself excluded"""
        if new_date == appointment.appointment_date and new_time == appointment.appointment_time:
            return

        decision = self.availability.evaluate_booking(
            appointment.doctor_id,
            appointment.patient_id,
            new_date,
            new_time,
            exclude_appointment_id=appointment.id,
            require_available=False,
        )
        if not decision.admitted:
            raise HTTPException(status_code=decision.status_code, detail=decision.to_detail())

        logger.info(
            f"Rescheduling appointment {appointment.id} to "
            f"{new_date.isoformat()} {format_time_of_day(new_time)}"
        )
        appointment.appointment_date = new_date
        appointment.appointment_time = new_time

    # ========================================================================
    # CANCELLATION
    # ========================================================================

    def cancel_appointment(
        self, appointment_id: int, user: User, reason: Optional[str] = None
    ) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        role = self._role_in(appointment, user)
        if role is None:
            raise HTTPException(status_code=403, detail="Access denied")

        self._apply_cancellation(appointment, role, reason)
        return self._save(appointment)

    def _apply_cancellation(
        self,
        appointment: Appointment,
        cancelled_by: str,
        reason: Optional[str],
        now: Optional[datetime] = None,
    ) -> None:
        if appointment.status not in CANCELLABLE_STATUSES:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot cancel an appointment that is {appointment.status}",
            )

        if not can_be_cancelled(
            appointment.status, appointment.appointment_date, appointment.appointment_time, now
        ):
            raise HTTPException(
                status_code=400,
                detail="Appointments can only be cancelled more than 24 hours in advance",
            )

        appointment.status = "cancelled"
        appointment.cancelled_by = cancelled_by
        appointment.cancelled_at = utc_now()
        appointment.cancellation_reason = sanitize_string(reason)
        logger.info(f"Appointment {appointment.id} cancelled by {cancelled_by}")

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _get_or_404(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def _get_doctor_profile(self, user: User) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.user_id == user.id).first()
        if not doctor:
            raise HTTPException(status_code=403, detail="Doctor profile not found")
        return doctor

    @staticmethod
    def _role_in(appointment: Appointment, user: User) -> Optional[str]:
        """'patient' or 'doctor' when the user is a party to the booking"""
        if appointment.patient_id == user.id:
            return "patient"
        if appointment.doctor is not None and appointment.doctor.user_id == user.id:
            return "doctor"
        return None

    def _save(self, appointment: Appointment) -> Appointment:
        # Rollback expires the instance, so keep the attempted slot
        slot = (
            appointment.doctor_id,
            appointment.patient_id,
            appointment.appointment_date,
            appointment.appointment_time,
        )
        try:
            return self.repo.save(self.db, appointment)
        except IntegrityError as e:
            self.db.rollback()
            raise self._conflict_from_integrity_error(*slot, e) from e

"""Prescription service - Issue, fill, verify and expire prescriptions"""

import logging
import math
from datetime import datetime, time, timezone
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Appointment, Doctor, Pharmacy, Prescription, User
from ...shared.validators import validate_iso_date
from ...utils.sanitization import sanitize_dict, sanitize_string
from ..scheduling.time_calculator import utc_now
from .repository import PrescriptionRepository
from .schemas import PrescriptionCreate, PrescriptionFill, PrescriptionUpdate, PrescriptionVerify

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def is_expired(prescription: Prescription, now: Optional[datetime] = None) -> bool:
    now = now or utc_now()
    return prescription.status == "expired" or prescription.expiry_date < now


def days_until_expiry(prescription: Prescription, now: Optional[datetime] = None) -> int:
    now = now or utc_now()
    remaining = (prescription.expiry_date - now).total_seconds()
    return max(0, math.ceil(remaining / SECONDS_PER_DAY))


class PrescriptionService:
    """Service layer for prescription business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PrescriptionRepository()

    def create_prescription(self, data: PrescriptionCreate, user: User) -> Prescription:
        doctor = self._get_doctor_profile(user)

        patient = self.db.query(User).filter(User.id == data.patientId).first()
        if not patient or patient.user_type != "patient":
            raise HTTPException(status_code=404, detail="Patient not found")

        if data.appointmentId is not None:
            appointment = (
                self.db.query(Appointment).filter(Appointment.id == data.appointmentId).first()
            )
            if (
                not appointment
                or appointment.doctor_id != doctor.id
                or appointment.patient_id != patient.id
            ):
                raise HTTPException(
                    status_code=400, detail="Appointment does not match this doctor and patient"
                )

        now = utc_now()
        expiry = to_naive_utc(data.expiryDate)
        if expiry <= now:
            raise HTTPException(status_code=400, detail="Expiry date must be in the future")

        prescription = self.repo.create(
            self.db,
            doctor_id=doctor.id,
            patient_id=patient.id,
            appointment_id=data.appointmentId,
            issue_date=now,
            expiry_date=expiry,
            status="active",
            medications=[sanitize_dict(m.model_dump()) for m in data.medications],
            diagnosis=sanitize_string(data.diagnosis),
            instructions=sanitize_string(data.instructions),
            special_instructions=[sanitize_string(s) for s in data.specialInstructions],
        )
        logger.info(
            f"Prescription {prescription.prescription_code} issued by doctor {doctor.id} "
            f"for patient {patient.id}"
        )
        return prescription

    def list_prescriptions(
        self,
        user: User,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Prescription], int]:
        """Role-scoped listing: patient, issuing doctor or filling pharmacy"""
        start = end = None
        try:
            if date_from:
                start = datetime.combine(validate_iso_date(date_from), time.min)
            if date_to:
                end = datetime.combine(validate_iso_date(date_to), time.max)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        filters = {}
        if user.user_type == "patient":
            filters["patient_id"] = user.id
        elif user.user_type == "doctor":
            filters["doctor_id"] = self._get_doctor_profile(user).id
        elif user.user_type == "pharmacist":
            filters["pharmacy_id"] = self._get_pharmacy_profile(user).id
        elif user.user_type != "admin":
            raise HTTPException(status_code=403, detail="Access denied")

        return self.repo.list_prescriptions(
            self.db, status=status, date_from=start, date_to=end, page=page, limit=limit, **filters
        )

    def get_prescription(self, prescription_id: int, user: User) -> Prescription:
        prescription = self._get_or_404(prescription_id)
        if not self._can_view(prescription, user):
            raise HTTPException(status_code=403, detail="Access denied")
        return prescription

    def update_prescription(
        self, prescription_id: int, data: PrescriptionUpdate, user: User
    ) -> Prescription:
        prescription = self._get_issued_by(prescription_id, user)

        if prescription.status == "filled":
            raise HTTPException(status_code=400, detail="Cannot modify a filled prescription")

        if data.medications is not None:
            prescription.medications = [sanitize_dict(m.model_dump()) for m in data.medications]
        if data.diagnosis is not None:
            prescription.diagnosis = sanitize_string(data.diagnosis)
        if data.instructions is not None:
            prescription.instructions = sanitize_string(data.instructions)
        if data.specialInstructions is not None:
            prescription.special_instructions = [
                sanitize_string(s) for s in data.specialInstructions
            ]
        if data.status is not None and data.status != prescription.status:
            if data.status == "active" and is_expired(prescription):
                raise HTTPException(status_code=400, detail="Prescription has expired")
            logger.info(
                f"Prescription {prescription.id} status {prescription.status} -> {data.status}"
            )
            prescription.status = data.status

        return self.repo.save(self.db, prescription)

    def fill_prescription(
        self, prescription_id: int, data: PrescriptionFill, user: User
    ) -> Prescription:
        pharmacy = self._get_pharmacy_profile(user)
        prescription = self._get_or_404(prescription_id)

        if prescription.status != "active":
            raise HTTPException(
                status_code=400, detail=f"Prescription is {prescription.status}, not active"
            )
        if is_expired(prescription):
            raise HTTPException(status_code=400, detail="Prescription has expired")

        filled = self.repo.mark_filled(
            self.db,
            prescription.id,
            pharmacy_id=pharmacy.id,
            filled_at=utc_now(),
            filled_by=sanitize_string(data.filledBy) or user.full_name or pharmacy.pharmacy_name,
            fill_notes=sanitize_string(data.notes),
        )
        if not filled:
            logger.warning(f"Prescription {prescription.id} was filled concurrently")
            raise HTTPException(status_code=409, detail="Prescription has already been filled")

        logger.info(f"Prescription {prescription.id} filled by pharmacy {pharmacy.id}")
        self.db.refresh(prescription)
        return prescription

    def verify_prescription(
        self, prescription_id: int, data: PrescriptionVerify, user: User
    ) -> Prescription:
        pharmacy = self._get_pharmacy_profile(user)
        prescription = self._get_or_404(prescription_id)

        if prescription.status == "cancelled":
            raise HTTPException(status_code=400, detail="Cannot verify a cancelled prescription")

        prescription.verification_status = data.status
        prescription.verified_by = pharmacy.id
        prescription.verified_at = utc_now()
        prescription.verification_notes = sanitize_string(data.notes)
        logger.info(f"Prescription {prescription.id} {data.status} by pharmacy {pharmacy.id}")
        return self.repo.save(self.db, prescription)

    def delete_prescription(self, prescription_id: int, user: User) -> dict:
        prescription = self._get_issued_by(prescription_id, user)

        if prescription.status == "filled":
            raise HTTPException(status_code=400, detail="Cannot delete a filled prescription")

        logger.info(f"Deleting prescription {prescription.id}")
        self.repo.delete(self.db, prescription)
        return {"message": "Prescription deleted successfully"}

    def expire_overdue(self, now: Optional[datetime] = None) -> int:
        count = self.repo.expire_overdue(self.db, now or utc_now())
        if count:
            logger.info(f"Expired {count} overdue prescriptions")
        return count

    # Helpers

    def _get_or_404(self, prescription_id: int) -> Prescription:
        prescription = self.repo.get_by_id(self.db, prescription_id)
        if not prescription:
            raise HTTPException(status_code=404, detail="Prescription not found")
        return prescription

    def _get_issued_by(self, prescription_id: int, user: User) -> Prescription:
        prescription = self._get_or_404(prescription_id)
        if prescription.doctor is None or prescription.doctor.user_id != user.id:
            raise HTTPException(
                status_code=403, detail="Only the issuing doctor can change this prescription"
            )
        return prescription

    def _get_doctor_profile(self, user: User) -> Doctor:
        if user.user_type != "doctor":
            raise HTTPException(status_code=403, detail="Access denied. Insufficient permissions.")
        doctor = self.db.query(Doctor).filter(Doctor.user_id == user.id).first()
        if not doctor:
            raise HTTPException(status_code=403, detail="Doctor profile not found")
        return doctor

    def _get_pharmacy_profile(self, user: User) -> Pharmacy:
        if user.user_type != "pharmacist":
            raise HTTPException(status_code=403, detail="Access denied. Insufficient permissions.")
        pharmacy = self.db.query(Pharmacy).filter(Pharmacy.user_id == user.id).first()
        if not pharmacy:
            raise HTTPException(status_code=403, detail="Pharmacy profile not found")
        return pharmacy

    def _can_view(self, prescription: Prescription, user: User) -> bool:
        if user.user_type == "admin":
            return True
        if prescription.patient_id == user.id:
            return True
        if prescription.doctor is not None and prescription.doctor.user_id == user.id:
            return True
        if user.user_type == "pharmacist":
            pharmacy = self.db.query(Pharmacy).filter(Pharmacy.user_id == user.id).first()
            if pharmacy is None:
                return False
            # Pharmacists see what they filled and anything still fillable
            return prescription.pharmacy_id == pharmacy.id or prescription.status == "active"
        return False

"""Provider service - Business logic for the doctor and pharmacy directory"""

import logging
import math
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Doctor, Pharmacy, User
from ...utils.sanitization import sanitize_string
from ..scheduling import get_day_window
from ..scheduling.time_calculator import get_timezone, local_now
from .repository import ProviderRepository
from .schemas import DoctorCreate, DoctorUpdate, PharmacyCreate, PharmacyUpdate

logger = logging.getLogger(__name__)


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class ProviderService:
    """Service layer for provider business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProviderRepository()

    # ========================================================================
    # DOCTORS
    # ========================================================================

    def get_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.repo.get_doctor_by_id(self.db, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail="Doctor not found")
        return doctor

    def search_doctors(self, **filters) -> tuple[list[Doctor], int]:
        return self.repo.search_doctors(self.db, **filters)

    def create_doctor(self, data: DoctorCreate, user: User) -> Doctor:
        logger.info(f"Creating doctor profile for user_id: {user.id}")

        if self.repo.get_doctor_by_user_id(self.db, user.id):
            raise HTTPException(status_code=409, detail="Doctor profile already exists")

        if self.repo.get_doctor_by_n_ordre(self.db, data.nOrdre):
            raise HTTPException(status_code=409, detail="Order number already registered")

        doctor_data = {
            "n_ordre": data.nOrdre.strip(),
            "full_name": sanitize_string(data.fullName),
            "specialization": sanitize_string(data.specialization),
            "biography": sanitize_string(data.biography),
            "languages": list(data.languages),
            "night_service": data.services.nightService,
            "home_visit": data.services.homeVisit,
            "video_consultation": data.services.videoConsultation,
            "wilaya": data.wilaya,
            "commune": data.commune,
            "address": sanitize_string(data.address),
            "phone": data.phone,
            "consultation_duration": data.consultationDuration,
            "consultation_fee": data.consultationFee,
            "is_available": data.isAvailable,
            "max_patients_per_day": data.maxPatientsPerDay,
        }
        if data.workingHours is not None:
            doctor_data["working_hours"] = data.workingHours

        try:
            return self.repo.create_doctor(self.db, user.id, **doctor_data)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Duplicate doctor profile for user {user.id}: {e}")
            raise HTTPException(status_code=409, detail="Doctor profile already exists") from e

    def update_doctor(self, doctor_id: int, data: DoctorUpdate, user: User) -> Doctor:
        """Update a doctor profile; only its owner (or an admin) may do so"""
        doctor = self.get_doctor(doctor_id)
        self._check_owner(doctor.user_id, user)

        updates = {}
        if data.fullName is not None:
            updates["full_name"] = sanitize_string(data.fullName)
        if data.specialization is not None:
            updates["specialization"] = sanitize_string(data.specialization)
        if data.biography is not None:
            updates["biography"] = sanitize_string(data.biography)
        if data.languages is not None:
            updates["languages"] = list(data.languages)
        if data.services is not None:
            updates["night_service"] = data.services.nightService
            updates["home_visit"] = data.services.homeVisit
            updates["video_consultation"] = data.services.videoConsultation
        if data.wilaya is not None:
            updates["wilaya"] = data.wilaya
        if data.commune is not None:
            updates["commune"] = data.commune
        if data.address is not None:
            updates["address"] = sanitize_string(data.address)
        if data.phone is not None:
            updates["phone"] = data.phone
        if data.workingHours is not None:
            # Whole-week replacement; JSON columns need a new object to be flagged dirty
            updates["working_hours"] = dict(data.workingHours)
        if data.consultationDuration is not None:
            updates["consultation_duration"] = data.consultationDuration
        if data.consultationFee is not None:
            updates["consultation_fee"] = data.consultationFee
        if data.isAvailable is not None:
            updates["is_available"] = data.isAvailable
        if data.maxPatientsPerDay is not None:
            updates["max_patients_per_day"] = data.maxPatientsPerDay

        logger.info(f"Updating doctor {doctor.id}: {sorted(updates)}")
        return self.repo.update_doctor(self.db, doctor, **updates)

    def set_doctor_verification(self, doctor_id: int, is_verified: bool, user: User) -> Doctor:
        doctor = self.get_doctor(doctor_id)
        logger.info(f"Admin {user.id} set doctor {doctor.id} verified={is_verified}")
        doctor.is_verified = is_verified
        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    # ========================================================================
    # PHARMACIES
    # ========================================================================

    def get_pharmacy(self, pharmacy_id: int) -> Pharmacy:
        pharmacy = self.repo.get_pharmacy_by_id(self.db, pharmacy_id)
        if not pharmacy:
            raise HTTPException(status_code=404, detail="Pharmacy not found")
        return pharmacy

    def search_pharmacies(
        self,
        wilaya: Optional[str] = None,
        commune: Optional[str] = None,
        night_service: Optional[bool] = None,
        open_now: bool = False,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Pharmacy], int]:
        pharmacies = self.repo.search_pharmacies(self.db, wilaya, commune, night_service)

        if open_now:
            now = local_now()
            pharmacies = [p for p in pharmacies if self.is_open_at(p, now)]

        total = len(pharmacies)
        start = (page - 1) * limit
        return pharmacies[start : start + limit], total

    @staticmethod
    def is_open_at(pharmacy: Pharmacy, at: datetime) -> bool:
        if not pharmacy.is_available:
            return False
        window = get_day_window(pharmacy.operating_hours, at.date())
        if window is None:
            return False
        return window.contains(at.time().replace(second=0, microsecond=0))

    def check_pharmacy_open(self, pharmacy_id: int, at: Optional[datetime] = None) -> dict:
        pharmacy = self.get_pharmacy(pharmacy_id)
        if at is None:
            at = local_now()
        elif at.tzinfo is None:
            at = at.replace(tzinfo=get_timezone())
        else:
            at = at.astimezone(get_timezone())

        window = get_day_window(pharmacy.operating_hours, at.date())
        return {
            "pharmacyId": pharmacy.id,
            "at": at,
            "open": self.is_open_at(pharmacy, at),
            "hours": window.to_dict() if window else None,
        }

    def create_pharmacy(self, data: PharmacyCreate, user: User) -> Pharmacy:
        logger.info(f"Creating pharmacy profile for user_id: {user.id}")

        if self.repo.get_pharmacy_by_user_id(self.db, user.id):
            raise HTTPException(status_code=409, detail="Pharmacy profile already exists")

        if self.repo.get_pharmacy_by_license(self.db, data.licenseNumber):
            raise HTTPException(status_code=409, detail="License number already registered")

        pharmacy_data = {
            "pharmacy_name": sanitize_string(data.pharmacyName),
            "license_number": data.licenseNumber.strip(),
            "wilaya": data.wilaya,
            "commune": data.commune,
            "address": sanitize_string(data.address),
            "phone": data.phone,
            "night_service": data.nightService,
            "is_available": data.isAvailable,
        }
        if data.operatingHours is not None:
            pharmacy_data["operating_hours"] = data.operatingHours

        try:
            return self.repo.create_pharmacy(self.db, user.id, **pharmacy_data)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Duplicate pharmacy profile for user {user.id}: {e}")
            raise HTTPException(status_code=409, detail="Pharmacy profile already exists") from e

    def update_pharmacy(self, pharmacy_id: int, data: PharmacyUpdate, user: User) -> Pharmacy:
        pharmacy = self.get_pharmacy(pharmacy_id)
        self._check_owner(pharmacy.user_id, user)

        updates = {}
        if data.pharmacyName is not None:
            updates["pharmacy_name"] = sanitize_string(data.pharmacyName)
        if data.wilaya is not None:
            updates["wilaya"] = data.wilaya
        if data.commune is not None:
            updates["commune"] = data.commune
        if data.address is not None:
            updates["address"] = sanitize_string(data.address)
        if data.phone is not None:
            updates["phone"] = data.phone
        if data.operatingHours is not None:
            updates["operating_hours"] = dict(data.operatingHours)
        if data.nightService is not None:
            updates["night_service"] = data.nightService
        if data.isAvailable is not None:
            updates["is_available"] = data.isAvailable

        logger.info(f"Updating pharmacy {pharmacy.id}: {sorted(updates)}")
        return self.repo.update_pharmacy(self.db, pharmacy, **updates)

    def set_pharmacy_verification(
        self, pharmacy_id: int, is_verified: bool, user: User
    ) -> Pharmacy:
        pharmacy = self.get_pharmacy(pharmacy_id)
        logger.info(f"Admin {user.id} set pharmacy {pharmacy.id} verified={is_verified}")
        pharmacy.is_verified = is_verified
        self.db.commit()
        self.db.refresh(pharmacy)
        return pharmacy

    @staticmethod
    def _check_owner(owner_user_id: int, user: User) -> None:
        if owner_user_id != user.id and user.user_type != "admin":
            raise HTTPException(status_code=403, detail="Access denied")

"""Provider repository - Database operations for doctors and pharmacies"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Doctor, Pharmacy

DOCTOR_SORT_FIELDS = {
    "fullName": Doctor.full_name,
    "consultationFee": Doctor.consultation_fee,
    "createdAt": Doctor.created_at,
}

DOCTOR_SERVICE_COLUMNS = {
    "nightService": Doctor.night_service,
    "homeVisit": Doctor.home_visit,
    "videoConsultation": Doctor.video_consultation,
}


class ProviderRepository:
    """Repository for doctor and pharmacy database operations"""

    # Doctor Methods
    @staticmethod
    def get_doctor_by_id(db: Session, doctor_id: int) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id).first()

    @staticmethod
    def get_doctor_by_user_id(db: Session, user_id: int) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.user_id == user_id).first()

    @staticmethod
    def get_doctor_by_n_ordre(db: Session, n_ordre: str) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.n_ordre == n_ordre).first()

    @staticmethod
    def search_doctors(
        db: Session,
        specialization: Optional[str] = None,
        wilaya: Optional[str] = None,
        commune: Optional[str] = None,
        available_only: bool = False,
        service: Optional[str] = None,
        sort_by: str = "fullName",
        sort_order: str = "asc",
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Doctor], int]:
        """Search verified doctors. Returns (page_of_doctors, total_count)"""
        query = db.query(Doctor).filter(Doctor.is_verified.is_(True))

        if specialization:
            query = query.filter(Doctor.specialization.ilike(f"%{specialization}%"))

        if wilaya:
            query = query.filter(Doctor.wilaya.ilike(wilaya))

        if commune:
            query = query.filter(Doctor.commune.ilike(commune))

        if available_only:
            query = query.filter(Doctor.is_available.is_(True))

        if service:
            query = query.filter(DOCTOR_SERVICE_COLUMNS[service].is_(True))

        total = query.count()

        column = DOCTOR_SORT_FIELDS.get(sort_by, Doctor.full_name)
        order = column.desc() if sort_order == "desc" else column.asc()
        doctors = query.order_by(order, Doctor.id.asc()).offset((page - 1) * limit).limit(limit).all()
        return doctors, total

    @staticmethod
    def create_doctor(db: Session, user_id: int, **doctor_data) -> Doctor:
        doctor = Doctor(user_id=user_id, **doctor_data)
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    @staticmethod
    def update_doctor(db: Session, doctor: Doctor, **updates) -> Doctor:
        """Update a doctor with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(doctor, key):
                setattr(doctor, key, value)

        db.commit()
        db.refresh(doctor)
        return doctor

    # Pharmacy Methods
    @staticmethod
    def get_pharmacy_by_id(db: Session, pharmacy_id: int) -> Optional[Pharmacy]:
        return db.query(Pharmacy).filter(Pharmacy.id == pharmacy_id).first()

    @staticmethod
    def get_pharmacy_by_user_id(db: Session, user_id: int) -> Optional[Pharmacy]:
        return db.query(Pharmacy).filter(Pharmacy.user_id == user_id).first()

    @staticmethod
    def get_pharmacy_by_license(db: Session, license_number: str) -> Optional[Pharmacy]:
        return db.query(Pharmacy).filter(Pharmacy.license_number == license_number).first()

    @staticmethod
    def search_pharmacies(
        db: Session,
        wilaya: Optional[str] = None,
        commune: Optional[str] = None,
        night_service: Optional[bool] = None,
    ) -> list[Pharmacy]:
        """Verified, available pharmacies matching the filters, by name"""
        query = db.query(Pharmacy).filter(
            Pharmacy.is_verified.is_(True), Pharmacy.is_available.is_(True)
        )

        if wilaya:
            query = query.filter(Pharmacy.wilaya.ilike(wilaya))

        if commune:
            query = query.filter(Pharmacy.commune.ilike(commune))

        if night_service is not None:
            query = query.filter(Pharmacy.night_service.is_(night_service))

        return query.order_by(Pharmacy.pharmacy_name.asc(), Pharmacy.id.asc()).all()

    @staticmethod
    def create_pharmacy(db: Session, user_id: int, **pharmacy_data) -> Pharmacy:
        pharmacy = Pharmacy(user_id=user_id, **pharmacy_data)
        db.add(pharmacy)
        db.commit()
        db.refresh(pharmacy)
        return pharmacy

    @staticmethod
    def update_pharmacy(db: Session, pharmacy: Pharmacy, **updates) -> Pharmacy:
        """Update a pharmacy with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(pharmacy, key):
                setattr(pharmacy, key, value)

        db.commit()
        db.refresh(pharmacy)
        return pharmacy

"""Prescription repository - Database operations for prescriptions"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Prescription


class PrescriptionRepository:
    """Repository for prescription database operations"""

    @staticmethod
    def get_by_id(db: Session, prescription_id: int) -> Optional[Prescription]:
        return (
            db.query(Prescription)
            .options(
                joinedload(Prescription.doctor),
                joinedload(Prescription.patient),
                joinedload(Prescription.pharmacy),
            )
            .filter(Prescription.id == prescription_id)
            .first()
        )

    @staticmethod
    def list_prescriptions(
        db: Session,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        pharmacy_id: Optional[int] = None,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Prescription], int]:
        """Filtered prescriptions, newest first. Returns (page_of_prescriptions, total_count)"""
        query = db.query(Prescription).options(
            joinedload(Prescription.doctor),
            joinedload(Prescription.patient),
            joinedload(Prescription.pharmacy),
        )

        if patient_id is not None:
            query = query.filter(Prescription.patient_id == patient_id)

        if doctor_id is not None:
            query = query.filter(Prescription.doctor_id == doctor_id)

        if pharmacy_id is not None:
            query = query.filter(Prescription.pharmacy_id == pharmacy_id)

        if status:
            query = query.filter(Prescription.status == status)

        if date_from:
            query = query.filter(Prescription.issue_date >= date_from)

        if date_to:
            query = query.filter(Prescription.issue_date <= date_to)

        total = query.count()
        prescriptions = (
            query.order_by(Prescription.issue_date.desc(), Prescription.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return prescriptions, total

    @staticmethod
    def create(db: Session, **prescription_data) -> Prescription:
        prescription = Prescription(**prescription_data)
        db.add(prescription)
        db.commit()
        db.refresh(prescription)
        return prescription

    @staticmethod
    def save(db: Session, prescription: Prescription) -> Prescription:
        db.commit()
        db.refresh(prescription)
        return prescription

    @staticmethod
    def mark_filled(db: Session, prescription_id: int, **fill_data) -> bool:
        """Fill an active prescription. False when another pharmacy got there first"""
        updated = (
            db.query(Prescription)
            .filter(Prescription.id == prescription_id, Prescription.status == "active")
            .update({"status": "filled", **fill_data}, synchronize_session=False)
        )
        db.commit()
        return updated == 1

    @staticmethod
    def expire_overdue(db: Session, now: datetime) -> int:
        """Mark active prescriptions past their expiry as expired. Returns the count"""
        updated = (
            db.query(Prescription)
            .filter(Prescription.status == "active", Prescription.expiry_date < now)
            .update({"status": "expired"}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def delete(db: Session, prescription: Prescription) -> None:
        db.delete(prescription)
        db.commit()

"""Appointment repository - Database operations for bookings"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.doctor), joinedload(Appointment.patient))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def list_appointments(
        db: Session,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
        status: Optional[str] = None,
        day: Optional[date] = None,
        appointment_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Appointment], int]:
        """Filtered bookings, soonest first. Returns (page_of_appointments, total_count)"""
        query = db.query(Appointment).options(
            joinedload(Appointment.doctor), joinedload(Appointment.patient)
        )

        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)

        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)

        if status:
            query = query.filter(Appointment.status == status)

        if day:
            query = query.filter(Appointment.appointment_date == day)

        if appointment_type:
            query = query.filter(Appointment.appointment_type == appointment_type)

        total = query.count()
        appointments = (
            query.order_by(
                Appointment.appointment_date.asc(),
                Appointment.appointment_time.asc(),
                Appointment.id.asc(),
            )
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return appointments, total

    @staticmethod
    def create(db: Session, **appointment_data) -> Appointment:
        """Insert a booking; the caller handles IntegrityError from the slot indexes"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def save(db: Session, appointment: Appointment) -> Appointment:
        db.commit()
        db.refresh(appointment)
        return appointment

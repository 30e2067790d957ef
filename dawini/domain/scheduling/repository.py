"""Booking ledger queries used by availability and the booking guard"""

from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from ...models import SLOT_RELEASING_STATUS, Appointment, Doctor


class LedgerRepository:
    """Read-only queries over the appointments ledger"""

    @staticmethod
    def get_doctor(db: Session, doctor_id: int) -> Optional[Doctor]:
        return db.query(Doctor).filter(Doctor.id == doctor_id).first()

    @staticmethod
    def get_booked_times(
        db: Session, doctor_id: int, day: date, exclude_appointment_id: Optional[int] = None
    ) -> list[time]:
        """Times on a day held by the doctor's non-cancelled bookings"""
        query = db.query(Appointment.appointment_time).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == day,
            Appointment.status != SLOT_RELEASING_STATUS,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return sorted(row[0] for row in query.all())

    @staticmethod
    def find_doctor_booking(
        db: Session,
        doctor_id: int,
        day: date,
        slot_time: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        query = db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == day,
            Appointment.appointment_time == slot_time,
            Appointment.status != SLOT_RELEASING_STATUS,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.first()

    @staticmethod
    def find_requester_booking(
        db: Session,
        patient_id: int,
        day: date,
        slot_time: time,
        exclude_appointment_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        query = db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
            Appointment.appointment_date == day,
            Appointment.appointment_time == slot_time,
            Appointment.status != SLOT_RELEASING_STATUS,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.first()

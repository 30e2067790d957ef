import secrets
import time

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

# Statuses that hold a slot in the ledger; only cancellation frees it
SLOT_RELEASING_STATUS = "cancelled"
ACTIVE_SLOT_CLAUSE = text("status != 'cancelled'")


def default_working_hours() -> dict:
    """Doctors work weekdays 08:00-17:00 unless they say otherwise"""
    return {
        day: {"start": "08:00", "end": "17:00", "isOpen": day not in ("saturday", "sunday")}
        for day in WEEKDAYS
    }


def default_operating_hours() -> dict:
    """Pharmacies open weekdays 08:00-20:00 unless they say otherwise"""
    return {
        day: {"start": "08:00", "end": "20:00", "isOpen": day not in ("saturday", "sunday")}
        for day in WEEKDAYS
    }


def _to_base36(number: int) -> str:
    alphabet = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(alphabet[rem])
    return "".join(reversed(digits))


def generate_prescription_code() -> str:
    """Human-readable prescription code, e.g. PRES-LXYZ12AB-4K9QZ"""
    timestamp = _to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice("0123456789abcdefghijklmnopqrstuvwxyz") for _ in range(5))
    return f"PRES-{timestamp}-{random_part}".upper()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_uid = Column(String(255), unique=True, index=True, nullable=False)  # Token subject
    email = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    user_type = Column(String(20), nullable=False, default="patient")  # patient, doctor, pharmacist, admin
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    doctor_profile = relationship("Doctor", back_populates="user", uselist=False)
    pharmacy_profile = relationship("Pharmacy", back_populates="user", uselist=False)


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    n_ordre = Column(String(50), unique=True, nullable=False)  # Medical order registration number
    full_name = Column(Text, nullable=False)
    specialization = Column(Text, nullable=False, index=True)
    biography = Column(Text, nullable=True)
    languages = Column(JSON, default=list)  # fr, en, ar, kabyle, other
    # Services offered
    night_service = Column(Boolean, default=False, nullable=False)
    home_visit = Column(Boolean, default=False, nullable=False)
    video_consultation = Column(Boolean, default=False, nullable=False)
    wilaya = Column(String(100), nullable=True, index=True)
    commune = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    working_hours = Column(JSON, nullable=False, default=default_working_hours)
    consultation_duration = Column(Integer, default=30, nullable=False)  # minutes
    consultation_fee = Column(Float, nullable=True)  # DA
    is_available = Column(Boolean, default=True, nullable=False)
    max_patients_per_day = Column(Integer, default=20, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="doctor_profile")
    appointments = relationship("Appointment", back_populates="doctor")


class Pharmacy(Base):
    __tablename__ = "pharmacies"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    pharmacy_name = Column(Text, nullable=False)
    license_number = Column(String(100), unique=True, nullable=False)
    wilaya = Column(String(100), nullable=True, index=True)
    commune = Column(String(100), nullable=True)
    address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    operating_hours = Column(JSON, nullable=False, default=default_operating_hours)
    night_service = Column(Boolean, default=False, nullable=False)  # Pharmacie de garde
    is_available = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="pharmacy_profile")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # One live booking per doctor slot and per patient slot
        Index(
            "uq_appointments_doctor_slot",
            "doctor_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=ACTIVE_SLOT_CLAUSE,
            postgresql_where=ACTIVE_SLOT_CLAUSE,
        ),
        Index(
            "uq_appointments_patient_slot",
            "patient_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=ACTIVE_SLOT_CLAUSE,
            postgresql_where=ACTIVE_SLOT_CLAUSE,
        ),
        Index("ix_appointments_status_date", "status", "appointment_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)  # Provider-local wall clock
    duration = Column(Integer, default=30, nullable=False)  # minutes
    appointment_type = Column(String(20), default="consultation", nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, confirmed, completed, cancelled, no-show
    reason = Column(Text, nullable=True)
    patient_notes = Column(Text, nullable=True)
    doctor_notes = Column(Text, nullable=True)

    # Cancellation record
    cancelled_by = Column(String(20), nullable=True)  # patient, doctor, system
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Payment snapshot taken at booking time
    payment_amount = Column(Float, default=0)
    payment_currency = Column(String(10), default="DA")
    payment_status = Column(String(20), default="pending")  # pending, paid, refunded

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("Doctor", back_populates="appointments")
    patient = relationship("User")


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    prescription_code = Column(
        String(50), unique=True, nullable=False, default=generate_prescription_code
    )
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True)
    issue_date = Column(DateTime, nullable=False)
    expiry_date = Column(DateTime, nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, filled, expired, cancelled
    medications = Column(JSON, nullable=False, default=list)
    diagnosis = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    special_instructions = Column(JSON, default=list)

    # Fulfilment, by exactly one pharmacy
    pharmacy_id = Column(Integer, ForeignKey("pharmacies.id"), nullable=True, index=True)
    filled_at = Column(DateTime, nullable=True)
    filled_by = Column(Text, nullable=True)
    fill_notes = Column(Text, nullable=True)

    # Pharmacist verification
    verification_status = Column(String(20), nullable=True)  # verified, rejected
    verified_by = Column(Integer, ForeignKey("pharmacies.id"), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    verification_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("Doctor")
    patient = relationship("User")
    pharmacy = relationship("Pharmacy", foreign_keys=[pharmacy_id])

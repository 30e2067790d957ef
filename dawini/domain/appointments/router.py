"""Appointment router - FastAPI endpoints for availability and bookings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_user_type
from ...database import get_db
from ...models import Appointment, User
from ...rate_limiter import booking_rate_limiter
from ..scheduling import can_be_cancelled
from ..scheduling.time_calculator import format_time_of_day
from .schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
    AvailabilityResponse,
    PaymentInfo,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def appointment_response(appointment: Appointment) -> AppointmentResponse:
    doctor = appointment.doctor
    patient = appointment.patient
    return AppointmentResponse(
        id=appointment.id,
        doctorId=appointment.doctor_id,
        doctorName=doctor.full_name if doctor else None,
        specialization=doctor.specialization if doctor else None,
        patientId=appointment.patient_id,
        patientName=patient.full_name if patient else None,
        appointmentDate=appointment.appointment_date,
        appointmentTime=format_time_of_day(appointment.appointment_time),
        duration=appointment.duration,
        appointmentType=appointment.appointment_type,
        status=appointment.status,
        reason=appointment.reason,
        patientNotes=appointment.patient_notes,
        doctorNotes=appointment.doctor_notes,
        cancelledBy=appointment.cancelled_by,
        cancelledAt=appointment.cancelled_at,
        cancellationReason=appointment.cancellation_reason,
        payment=PaymentInfo(
            amount=appointment.payment_amount or 0,
            currency=appointment.payment_currency or "DA",
            status=appointment.payment_status or "pending",
        ),
        canBeCancelled=can_be_cancelled(
            appointment.status, appointment.appointment_date, appointment.appointment_time
        ),
        createdAt=appointment.created_at,
    )


@router.get("/doctor/{doctor_id}/availability", response_model=AvailabilityResponse)
async def get_doctor_availability(
    doctor_id: int,
    date: str = Query(..., description="YYYY-MM-DD"),
    time: Optional[str] = Query(None, description="HH:MM, checks a single slot"),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free slots of a doctor on a date"""
    return service.get_availability(doctor_id, date, time)


@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    _: None = Depends(booking_rate_limiter),
    current_user: User = Depends(require_user_type("patient", "admin")),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Attempt a booking; rejected attempts carry a reason code"""
    return appointment_response(service.book(data, current_user))


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    type: Optional[AppointmentType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Bookings visible to the caller"""
    appointments, total = service.list_appointments(
        current_user, status=status, date_str=date, appointment_type=type, page=page, limit=limit
    )
    return AppointmentListResponse(
        appointments=[appointment_response(a) for a in appointments],
        total=total,
        page=page,
        limit=limit,
        pages=(total + limit - 1) // limit,
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Get a booking the caller is party to"""
    return appointment_response(service.get_appointment(appointment_id, current_user))


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Update notes, change status or reschedule"""
    return appointment_response(service.update_appointment(appointment_id, data, current_user))


@router.delete("/{appointment_id}", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    reason: Optional[str] = Query(None, max_length=500),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Cancel a booking at least 24 hours ahead"""
    return appointment_response(service.cancel_appointment(appointment_id, current_user, reason))

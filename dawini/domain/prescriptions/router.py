"""Prescription router - FastAPI endpoints for prescriptions"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_user_type
from ...database import get_db
from ...models import Prescription, User
from .schemas import (
    PrescriptionCreate,
    PrescriptionFill,
    PrescriptionListResponse,
    PrescriptionResponse,
    PrescriptionUpdate,
    PrescriptionVerify,
)
from .service import PrescriptionService, days_until_expiry, is_expired

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])


def get_prescription_service(db: Session = Depends(get_db)) -> PrescriptionService:
    """Dependency injection for PrescriptionService"""
    return PrescriptionService(db)


def prescription_response(prescription: Prescription) -> PrescriptionResponse:
    return PrescriptionResponse(
        id=prescription.id,
        prescriptionCode=prescription.prescription_code,
        doctorId=prescription.doctor_id,
        doctorName=prescription.doctor.full_name if prescription.doctor else None,
        patientId=prescription.patient_id,
        patientName=prescription.patient.full_name if prescription.patient else None,
        appointmentId=prescription.appointment_id,
        issueDate=prescription.issue_date,
        expiryDate=prescription.expiry_date,
        status=prescription.status,
        medications=prescription.medications or [],
        diagnosis=prescription.diagnosis,
        instructions=prescription.instructions,
        specialInstructions=prescription.special_instructions or [],
        pharmacyId=prescription.pharmacy_id,
        pharmacyName=prescription.pharmacy.pharmacy_name if prescription.pharmacy else None,
        filledAt=prescription.filled_at,
        filledBy=prescription.filled_by,
        fillNotes=prescription.fill_notes,
        verificationStatus=prescription.verification_status,
        verifiedBy=prescription.verified_by,
        verifiedAt=prescription.verified_at,
        verificationNotes=prescription.verification_notes,
        isExpired=is_expired(prescription),
        daysUntilExpiry=days_until_expiry(prescription),
        createdAt=prescription.created_at,
    )


@router.get("", response_model=PrescriptionListResponse)
async def list_prescriptions(
    status: Optional[Literal["active", "filled", "expired", "cancelled"]] = Query(None),
    dateFrom: Optional[str] = Query(None, description="YYYY-MM-DD"),
    dateTo: Optional[str] = Query(None, description="YYYY-MM-DD"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Prescriptions visible to the caller, newest first"""
    prescriptions, total = service.list_prescriptions(
        current_user, status=status, date_from=dateFrom, date_to=dateTo, page=page, limit=limit
    )
    return PrescriptionListResponse(
        prescriptions=[prescription_response(p) for p in prescriptions],
        total=total,
        page=page,
        limit=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("", response_model=PrescriptionResponse, status_code=201)
async def create_prescription(
    data: PrescriptionCreate,
    current_user: User = Depends(require_user_type("doctor")),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Issue a prescription"""
    return prescription_response(service.create_prescription(data, current_user))


@router.get("/{prescription_id}", response_model=PrescriptionResponse)
async def get_prescription(
    prescription_id: int,
    current_user: User = Depends(get_current_user),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Get a prescription"""
    return prescription_response(service.get_prescription(prescription_id, current_user))


@router.put("/{prescription_id}", response_model=PrescriptionResponse)
async def update_prescription(
    prescription_id: int,
    data: PrescriptionUpdate,
    current_user: User = Depends(require_user_type("doctor")),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Edit an unfilled prescription"""
    return prescription_response(service.update_prescription(prescription_id, data, current_user))


@router.delete("/{prescription_id}")
async def delete_prescription(
    prescription_id: int,
    current_user: User = Depends(require_user_type("doctor")),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Delete an unfilled prescription"""
    return service.delete_prescription(prescription_id, current_user)


@router.post("/{prescription_id}/fill", response_model=PrescriptionResponse)
async def fill_prescription(
    prescription_id: int,
    data: PrescriptionFill,
    current_user: User = Depends(require_user_type("pharmacist")),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Fill an active prescription at the caller's pharmacy"""
    return prescription_response(service.fill_prescription(prescription_id, data, current_user))


@router.post("/{prescription_id}/verify", response_model=PrescriptionResponse)
async def verify_prescription(
    prescription_id: int,
    data: PrescriptionVerify,
    current_user: User = Depends(require_user_type("pharmacist")),
    service: PrescriptionService = Depends(get_prescription_service),
):
    """Record a pharmacist's verification"""
    return prescription_response(service.verify_prescription(prescription_id, data, current_user))

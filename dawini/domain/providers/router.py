"""Provider router - FastAPI endpoints for the doctor and pharmacy directory"""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_user_type
from ...database import get_db
from ...models import Doctor, Pharmacy, User
from .schemas import (
    DoctorCreate,
    DoctorListResponse,
    DoctorResponse,
    DoctorServices,
    DoctorUpdate,
    PharmacyCreate,
    PharmacyListResponse,
    PharmacyOpenResponse,
    PharmacyResponse,
    PharmacyUpdate,
    VerificationUpdate,
)
from .service import ProviderService, page_count

logger = logging.getLogger(__name__)

doctors_router = APIRouter(prefix="/doctors", tags=["Doctors"])
pharmacies_router = APIRouter(prefix="/pharmacies", tags=["Pharmacies"])


def get_provider_service(db: Session = Depends(get_db)) -> ProviderService:
    """Dependency injection for ProviderService"""
    return ProviderService(db)


def doctor_response(doctor: Doctor) -> DoctorResponse:
    return DoctorResponse(
        id=doctor.id,
        userId=doctor.user_id,
        nOrdre=doctor.n_ordre,
        fullName=doctor.full_name,
        specialization=doctor.specialization,
        biography=doctor.biography,
        languages=doctor.languages or [],
        services=DoctorServices(
            nightService=doctor.night_service,
            homeVisit=doctor.home_visit,
            videoConsultation=doctor.video_consultation,
        ),
        wilaya=doctor.wilaya,
        commune=doctor.commune,
        address=doctor.address,
        phone=doctor.phone,
        workingHours=doctor.working_hours or {},
        consultationDuration=doctor.consultation_duration,
        consultationFee=doctor.consultation_fee,
        isAvailable=doctor.is_available,
        maxPatientsPerDay=doctor.max_patients_per_day,
        isVerified=doctor.is_verified,
        createdAt=doctor.created_at,
    )


def pharmacy_response(pharmacy: Pharmacy) -> PharmacyResponse:
    return PharmacyResponse(
        id=pharmacy.id,
        userId=pharmacy.user_id,
        pharmacyName=pharmacy.pharmacy_name,
        licenseNumber=pharmacy.license_number,
        wilaya=pharmacy.wilaya,
        commune=pharmacy.commune,
        address=pharmacy.address,
        phone=pharmacy.phone,
        operatingHours=pharmacy.operating_hours or {},
        nightService=pharmacy.night_service,
        isAvailable=pharmacy.is_available,
        isVerified=pharmacy.is_verified,
        createdAt=pharmacy.created_at,
    )


# ============================================================================
# DOCTORS
# ============================================================================


@doctors_router.get("", response_model=DoctorListResponse)
async def search_doctors(
    specialization: Optional[str] = Query(None),
    wilaya: Optional[str] = Query(None),
    commune: Optional[str] = Query(None),
    available: bool = Query(False, description="Only doctors accepting appointments"),
    service: Optional[Literal["nightService", "homeVisit", "videoConsultation"]] = Query(None),
    sortBy: Literal["fullName", "consultationFee", "createdAt"] = Query("fullName"),
    sortOrder: Literal["asc", "desc"] = Query("asc"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    provider_service: ProviderService = Depends(get_provider_service),
):
    """Search verified doctors"""
    doctors, total = provider_service.search_doctors(
        specialization=specialization,
        wilaya=wilaya,
        commune=commune,
        available_only=available,
        service=service,
        sort_by=sortBy,
        sort_order=sortOrder,
        page=page,
        limit=limit,
    )
    return DoctorListResponse(
        doctors=[doctor_response(d) for d in doctors],
        total=total,
        page=page,
        limit=limit,
        pages=page_count(total, limit),
    )


@doctors_router.post("", response_model=DoctorResponse, status_code=201)
async def create_doctor(
    data: DoctorCreate,
    current_user: User = Depends(require_user_type("doctor")),
    service: ProviderService = Depends(get_provider_service),
):
    """Create the caller's doctor profile"""
    return doctor_response(service.create_doctor(data, current_user))


@doctors_router.get("/{doctor_id}", response_model=DoctorResponse)
async def get_doctor(
    doctor_id: int,
    service: ProviderService = Depends(get_provider_service),
):
    """Get a doctor profile"""
    return doctor_response(service.get_doctor(doctor_id))


@doctors_router.put("/{doctor_id}/profile", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: int,
    data: DoctorUpdate,
    current_user: User = Depends(require_user_type("doctor", "admin")),
    service: ProviderService = Depends(get_provider_service),
):
    """Update a doctor profile, including its working hours"""
    return doctor_response(service.update_doctor(doctor_id, data, current_user))


@doctors_router.patch("/{doctor_id}/verification", response_model=DoctorResponse)
async def verify_doctor(
    doctor_id: int,
    data: VerificationUpdate,
    current_user: User = Depends(require_user_type("admin")),
    service: ProviderService = Depends(get_provider_service),
):
    """Admin: mark a doctor as verified or not"""
    return doctor_response(service.set_doctor_verification(doctor_id, data.isVerified, current_user))


# ============================================================================
# PHARMACIES
# ============================================================================


@pharmacies_router.get("", response_model=PharmacyListResponse)
async def search_pharmacies(
    wilaya: Optional[str] = Query(None),
    commune: Optional[str] = Query(None),
    nightService: Optional[bool] = Query(None),
    openNow: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    service: ProviderService = Depends(get_provider_service),
):
    """Search verified, available pharmacies"""
    pharmacies, total = service.search_pharmacies(
        wilaya=wilaya,
        commune=commune,
        night_service=nightService,
        open_now=openNow,
        page=page,
        limit=limit,
    )
    return PharmacyListResponse(
        pharmacies=[pharmacy_response(p) for p in pharmacies],
        total=total,
        page=page,
        limit=limit,
        pages=page_count(total, limit),
    )


@pharmacies_router.post("", response_model=PharmacyResponse, status_code=201)
async def create_pharmacy(
    data: PharmacyCreate,
    current_user: User = Depends(require_user_type("pharmacist")),
    service: ProviderService = Depends(get_provider_service),
):
    """Create the caller's pharmacy profile"""
    return pharmacy_response(service.create_pharmacy(data, current_user))


@pharmacies_router.get("/{pharmacy_id}", response_model=PharmacyResponse)
async def get_pharmacy(
    pharmacy_id: int,
    service: ProviderService = Depends(get_provider_service),
):
    """Get a pharmacy profile"""
    return pharmacy_response(service.get_pharmacy(pharmacy_id))


@pharmacies_router.get("/{pharmacy_id}/open", response_model=PharmacyOpenResponse)
async def is_pharmacy_open(
    pharmacy_id: int,
    at: Optional[datetime] = Query(None, description="ISO datetime, defaults to now"),
    service: ProviderService = Depends(get_provider_service),
):
    """Is the pharmacy open at a given moment"""
    return service.check_pharmacy_open(pharmacy_id, at)


@pharmacies_router.put("/{pharmacy_id}/profile", response_model=PharmacyResponse)
async def update_pharmacy(
    pharmacy_id: int,
    data: PharmacyUpdate,
    current_user: User = Depends(require_user_type("pharmacist", "admin")),
    service: ProviderService = Depends(get_provider_service),
):
    """Update a pharmacy profile, including its operating hours"""
    return pharmacy_response(service.update_pharmacy(pharmacy_id, data, current_user))


@pharmacies_router.patch("/{pharmacy_id}/verification", response_model=PharmacyResponse)
async def verify_pharmacy(
    pharmacy_id: int,
    data: VerificationUpdate,
    current_user: User = Depends(require_user_type("admin")),
    service: ProviderService = Depends(get_provider_service),
):
    """Admin: mark a pharmacy as verified or not"""
    return pharmacy_response(
        service.set_pharmacy_verification(pharmacy_id, data.isVerified, current_user)
    )

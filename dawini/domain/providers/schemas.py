"""Provider domain schemas - Pydantic models for doctors and pharmacies"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ...shared.validators import normalize_week_schedule, validate_dz_phone

Language = Literal["fr", "en", "ar", "kabyle", "other"]


class DaySchedule(BaseModel):
    """Opening interval for one weekday"""

    start: Optional[str] = None  # HH:MM
    end: Optional[str] = None  # HH:MM
    isOpen: bool = Field(default=False, validation_alias=AliasChoices("isOpen", "isWorking"))


class DoctorServices(BaseModel):
    nightService: bool = False
    homeVisit: bool = False
    videoConsultation: bool = False


def _validate_schedule(v):
    if v is None:
        return v
    return normalize_week_schedule({day: entry.model_dump() for day, entry in v.items()})


def _validate_phone(v):
    if v:
        return validate_dz_phone(v)
    return v


class DoctorCreate(BaseModel):
    """Schema for creating the caller's doctor profile"""

    nOrdre: str = Field(min_length=1, max_length=50)
    fullName: str = Field(min_length=2, max_length=255)
    specialization: str = Field(min_length=2, max_length=100)
    biography: Optional[str] = Field(default=None, max_length=1000)
    languages: list[Language] = []
    services: DoctorServices = DoctorServices()
    wilaya: Optional[str] = None
    commune: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    workingHours: Optional[dict[str, DaySchedule]] = None
    consultationDuration: int = Field(default=30, ge=15, le=120)
    consultationFee: Optional[float] = Field(default=None, ge=0)
    isAvailable: bool = True
    maxPatientsPerDay: int = Field(default=20, ge=1, le=50)

    @field_validator("workingHours")
    @classmethod
    def validate_schedule(cls, v):
        return _validate_schedule(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class DoctorUpdate(BaseModel):
    """Schema for updating the caller's doctor profile"""

    fullName: Optional[str] = Field(default=None, min_length=2, max_length=255)
    specialization: Optional[str] = Field(default=None, min_length=2, max_length=100)
    biography: Optional[str] = Field(default=None, max_length=1000)
    languages: Optional[list[Language]] = None
    services: Optional[DoctorServices] = None
    wilaya: Optional[str] = None
    commune: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    workingHours: Optional[dict[str, DaySchedule]] = None
    consultationDuration: Optional[int] = Field(default=None, ge=15, le=120)
    consultationFee: Optional[float] = Field(default=None, ge=0)
    isAvailable: Optional[bool] = None
    maxPatientsPerDay: Optional[int] = Field(default=None, ge=1, le=50)

    @field_validator("workingHours")
    @classmethod
    def validate_schedule(cls, v):
        return _validate_schedule(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class DoctorResponse(BaseModel):
    """Schema for doctor response"""

    id: int
    userId: int
    nOrdre: str
    fullName: str
    specialization: str
    biography: Optional[str]
    languages: list[str]
    services: DoctorServices
    wilaya: Optional[str]
    commune: Optional[str]
    address: Optional[str]
    phone: Optional[str]
    workingHours: dict
    consultationDuration: int
    consultationFee: Optional[float]
    isAvailable: bool
    maxPatientsPerDay: int
    isVerified: bool
    createdAt: Optional[datetime] = None


class DoctorListResponse(BaseModel):
    doctors: list[DoctorResponse]
    total: int
    page: int
    limit: int
    pages: int


class PharmacyCreate(BaseModel):
    """Schema for creating the caller's pharmacy profile"""

    pharmacyName: str = Field(min_length=2, max_length=255)
    licenseNumber: str = Field(min_length=1, max_length=100)
    wilaya: Optional[str] = None
    commune: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    operatingHours: Optional[dict[str, DaySchedule]] = None
    nightService: bool = False
    isAvailable: bool = True

    @field_validator("operatingHours")
    @classmethod
    def validate_schedule(cls, v):
        return _validate_schedule(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class PharmacyUpdate(BaseModel):
    """Schema for updating the caller's pharmacy profile"""

    pharmacyName: Optional[str] = Field(default=None, min_length=2, max_length=255)
    wilaya: Optional[str] = None
    commune: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    operatingHours: Optional[dict[str, DaySchedule]] = None
    nightService: Optional[bool] = None
    isAvailable: Optional[bool] = None

    @field_validator("operatingHours")
    @classmethod
    def validate_schedule(cls, v):
        return _validate_schedule(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class PharmacyResponse(BaseModel):
    """Schema for pharmacy response"""

    id: int
    userId: int
    pharmacyName: str
    licenseNumber: str
    wilaya: Optional[str]
    commune: Optional[str]
    address: Optional[str]
    phone: Optional[str]
    operatingHours: dict
    nightService: bool
    isAvailable: bool
    isVerified: bool
    createdAt: Optional[datetime] = None


class PharmacyListResponse(BaseModel):
    pharmacies: list[PharmacyResponse]
    total: int
    page: int
    limit: int
    pages: int


class PharmacyOpenResponse(BaseModel):
    pharmacyId: int
    at: datetime
    open: bool
    hours: Optional[dict] = None


class VerificationUpdate(BaseModel):
    """Schema for admin verification of a provider"""

    isVerified: bool

"""Prescription domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Medication(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    dosage: Optional[str] = Field(default=None, max_length=100)
    frequency: Optional[str] = Field(default=None, max_length=100)
    duration: Optional[str] = Field(default=None, max_length=100)
    quantity: Optional[int] = Field(default=None, ge=1)
    instructions: Optional[str] = Field(default=None, max_length=500)


class PrescriptionCreate(BaseModel):
    """Schema for issuing a prescription"""

    patientId: int
    appointmentId: Optional[int] = None
    expiryDate: datetime
    medications: list[Medication] = Field(min_length=1)
    diagnosis: Optional[str] = Field(default=None, max_length=1000)
    instructions: Optional[str] = Field(default=None, max_length=1000)
    specialInstructions: list[str] = []


class PrescriptionUpdate(BaseModel):
    """Schema for editing an unfilled prescription"""

    medications: Optional[list[Medication]] = Field(default=None, min_length=1)
    diagnosis: Optional[str] = Field(default=None, max_length=1000)
    instructions: Optional[str] = Field(default=None, max_length=1000)
    specialInstructions: Optional[list[str]] = None
    status: Optional[Literal["active", "cancelled"]] = None


class PrescriptionFill(BaseModel):
    filledBy: Optional[str] = Field(default=None, max_length=255)  # Pharmacist name
    notes: Optional[str] = Field(default=None, max_length=1000)


class PrescriptionVerify(BaseModel):
    status: Literal["verified", "rejected"]
    notes: Optional[str] = Field(default=None, max_length=1000)


class PrescriptionResponse(BaseModel):
    """Schema for prescription response"""

    id: int
    prescriptionCode: str
    doctorId: int
    doctorName: Optional[str] = None
    patientId: int
    patientName: Optional[str] = None
    appointmentId: Optional[int] = None
    issueDate: datetime
    expiryDate: datetime
    status: str
    medications: list[dict]
    diagnosis: Optional[str] = None
    instructions: Optional[str] = None
    specialInstructions: list[str] = []
    pharmacyId: Optional[int] = None
    pharmacyName: Optional[str] = None
    filledAt: Optional[datetime] = None
    filledBy: Optional[str] = None
    fillNotes: Optional[str] = None
    verificationStatus: Optional[str] = None
    verifiedBy: Optional[int] = None
    verifiedAt: Optional[datetime] = None
    verificationNotes: Optional[str] = None
    isExpired: bool
    daysUntilExpiry: int
    createdAt: Optional[datetime] = None


class PrescriptionListResponse(BaseModel):
    prescriptions: list[PrescriptionResponse]
    total: int
    page: int
    limit: int
    pages: int

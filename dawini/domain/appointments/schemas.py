"""Appointment domain schemas - Pydantic models for booking requests and responses"""

from datetime import date, datetime, time
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..scheduling.time_calculator import parse_time_of_day

AppointmentType = Literal["consultation", "follow-up", "emergency", "home-visit", "video"]
AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled", "no-show"]


class AppointmentCreate(BaseModel):
    """Schema for a booking attempt"""

    doctorId: int
    patientId: Optional[int] = None  # Admins book on behalf of a patient
    appointmentDate: date
    appointmentTime: time
    appointmentType: AppointmentType = "consultation"
    reason: Optional[str] = Field(default=None, max_length=500)
    patientNotes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("appointmentTime", mode="before")
    @classmethod
    def validate_time(cls, v):
        return parse_time_of_day(v)


class AppointmentUpdate(BaseModel):
    """Schema for updating a booking.

    Patients may change reason and patientNotes. The doctor may change
    status, date, time, type and doctorNotes.
    """

    status: Optional[AppointmentStatus] = None
    appointmentDate: Optional[date] = None
    appointmentTime: Optional[time] = None
    appointmentType: Optional[AppointmentType] = None
    reason: Optional[str] = Field(default=None, max_length=500)
    patientNotes: Optional[str] = Field(default=None, max_length=1000)
    doctorNotes: Optional[str] = Field(default=None, max_length=1000)
    cancellationReason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("appointmentTime", mode="before")
    @classmethod
    def validate_time(cls, v):
        if v is None:
            return v
        return parse_time_of_day(v)


class PaymentInfo(BaseModel):
    amount: float
    currency: str
    status: str


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    doctorId: int
    doctorName: Optional[str] = None
    specialization: Optional[str] = None
    patientId: int
    patientName: Optional[str] = None
    appointmentDate: date
    appointmentTime: str  # HH:MM
    duration: int
    appointmentType: str
    status: str
    reason: Optional[str] = None
    patientNotes: Optional[str] = None
    doctorNotes: Optional[str] = None
    cancelledBy: Optional[str] = None
    cancelledAt: Optional[datetime] = None
    cancellationReason: Optional[str] = None
    payment: PaymentInfo
    canBeCancelled: bool
    createdAt: Optional[datetime] = None


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    total: int
    page: int
    limit: int
    pages: int


class AvailabilityResponse(BaseModel):
    """Free slots of a doctor on one date"""

    doctorId: int
    date: date
    dayOfWeek: str
    available: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    workingHours: Optional[dict] = None
    consultationDuration: int
    availableTimeSlots: list[str]
    bookedTimes: list[str]
    requestedTime: Optional[str] = None

"""
Appointments Domain

Booking attempts, role-scoped listing, status changes and cancellation.
Admission rules live in the scheduling domain.
"""

from .router import router

__all__ = ["router"]

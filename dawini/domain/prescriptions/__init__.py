"""
Prescriptions Domain

Issued by doctors, filled by exactly one pharmacy, expired by the worker.
"""

from .router import router

__all__ = ["router"]

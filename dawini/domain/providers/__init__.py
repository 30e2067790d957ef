"""
Providers Domain

Doctor and pharmacy profiles, directory search and opening hours.
"""

from .router import doctors_router, pharmacies_router

__all__ = ["doctors_router", "pharmacies_router"]

# src/donotghostme/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .companies import router as companies_router
from .public import router as public_router
from .reports import router as reports_router
from .security import router as security_router
from .system import router as system_router

__all__ = [
    "admin_router",
    "companies_router",
    "public_router",
    "reports_router",
    "security_router",
    "system_router",
]

# src/donotghostme/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    companies_router,
    public_router,
    reports_router,
    security_router,
    system_router,
)

__all__ = [
    "admin_router",
    "companies_router",
    "public_router",
    "reports_router",
    "security_router",
    "system_router",
]

# src/donotghostme/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .company_intel import CompanyIntelRequest, CompanyIntelResponse, CompanyIntelSignals
from .moderation import AdminReportResponse, ModerationAction, ModerationResult
from .report import (
    CompanySuggestion,
    ReportCreate,
    ReportCreatedResponse,
    ReportStatsResponse,
)

__all__ = [
    "CompanyIntelRequest", "CompanyIntelResponse", "CompanyIntelSignals",
    "AdminReportResponse", "ModerationAction", "ModerationResult",
    "CompanySuggestion", "ReportCreate", "ReportCreatedResponse", "ReportStatsResponse",
]

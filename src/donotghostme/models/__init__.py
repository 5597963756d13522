# src/donotghostme/models/__init__.py
"""SQLAlchemy models for the Do Not Ghost Me service."""

from .company import Company, Report
from .enums import JobLevel, PositionCategory, ReportStatus, Stage
from .rate_limit import AdminLoginRateLimit, ReportIpCompanyLimit, ReportIpDailyLimit

__all__ = [
    "Company", "Report",
    "JobLevel", "PositionCategory", "ReportStatus", "Stage",
    "AdminLoginRateLimit", "ReportIpCompanyLimit", "ReportIpDailyLimit",
]

# src/donotghostme/services/__init__.py
"""Admission controls, admin security and report business logic."""

from .admin_session import AdminSessionTokenService
from .company_intel import CompanyIntelAggregator
from .csrf import CsrfTokenService
from .login_limiter import DatabaseLoginAttemptLimiter, MemoryLoginAttemptLimiter
from .moderation import ModerationService
from .report_quota import ReportQuotaEngine
from .sliding_window import PublicRateLimiter, SlidingWindowStore

__all__ = [
    "AdminSessionTokenService",
    "CompanyIntelAggregator",
    "CsrfTokenService",
    "DatabaseLoginAttemptLimiter",
    "MemoryLoginAttemptLimiter",
    "ModerationService",
    "PublicRateLimiter",
    "ReportQuotaEngine",
    "SlidingWindowStore",
]

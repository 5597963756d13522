# src/donotghostme/api/v1/dependencies.py
"""Shared API dependencies for client identification, limiters and admin auth."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from donotghostme.core.correlation import get_correlation_id
from donotghostme.core.errors import ConfigurationError
from donotghostme.core.security import IpHasher, get_ip_hasher
from donotghostme.core.settings import settings
from donotghostme.db.session import get_db
from donotghostme.services.admin_session import (
    AdminSessionPayload,
    AdminSessionTokenService,
    cookie_policy,
    get_admin_session_service,
    is_allowed_admin_host,
)
from donotghostme.services.company_intel import CompanyIntelAggregator, get_company_intel_aggregator
from donotghostme.services.csrf import CsrfTokenService, get_csrf_service
from donotghostme.services.login_limiter import LoginAttemptLimiter, get_login_limiter
from donotghostme.services.report_quota import ReportQuotaEngine, get_report_quota_engine
from donotghostme.services.sliding_window import PublicRateLimiter, get_public_rate_limiter

logger = logging.getLogger(__name__)

HOST_FORBIDDEN_MESSAGE = "Admin access is not allowed from this host."

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _first_non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def get_client_ip(request: Request) -> str | None:
    """Return the client address in a proxy-aware way.

    Tries the first entry of ``X-Forwarded-For``, then ``X-Real-IP``, then the
    socket peer. Proxies in front of the service are trusted to set these.

    Args:
        request: Incoming request

    Returns:
        Trimmed address, or None when nothing usable is available
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded is not None:
        first = _first_non_empty(forwarded.split(",", 1)[0])
        if first is not None:
            return first

    real_ip = _first_non_empty(request.headers.get("x-real-ip"))
    if real_ip is not None:
        return real_ip

    if request.client is not None:
        return _first_non_empty(request.client.host)
    return None


def get_ip_hasher_dep() -> IpHasher:
    """Get IpHasher dependency for dependency injection."""
    return get_ip_hasher()


def get_public_limiter_dep() -> PublicRateLimiter:
    """Get PublicRateLimiter dependency for dependency injection."""
    return get_public_rate_limiter()


def get_login_limiter_dep() -> LoginAttemptLimiter:
    """Get LoginAttemptLimiter dependency for dependency injection."""
    return get_login_limiter()


def get_report_quota_engine_dep() -> ReportQuotaEngine:
    """Get ReportQuotaEngine dependency for dependency injection."""
    return get_report_quota_engine()


def get_company_intel_dep() -> CompanyIntelAggregator:
    """Get CompanyIntelAggregator dependency for dependency injection."""
    return get_company_intel_aggregator()


def get_csrf_service_dep() -> CsrfTokenService:
    """Get CsrfTokenService dependency for dependency injection."""
    return get_csrf_service()


def get_admin_session_service_dep() -> AdminSessionTokenService:
    """Get AdminSessionTokenService dependency, or 503 when admin is not configured."""
    try:
        return get_admin_session_service()
    except ConfigurationError as err:
        logger.error("Admin surface requested but not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin is not configured",
        ) from err


ClientIpDep = Annotated[str | None, Depends(get_client_ip)]
CorrelationIdDep = Annotated[str, Depends(get_correlation_id)]
IpHasherDep = Annotated[IpHasher, Depends(get_ip_hasher_dep)]
PublicLimiterDep = Annotated[PublicRateLimiter, Depends(get_public_limiter_dep)]
LoginLimiterDep = Annotated[LoginAttemptLimiter, Depends(get_login_limiter_dep)]
ReportQuotaEngineDep = Annotated[ReportQuotaEngine, Depends(get_report_quota_engine_dep)]
CompanyIntelDep = Annotated[CompanyIntelAggregator, Depends(get_company_intel_dep)]
CsrfServiceDep = Annotated[CsrfTokenService, Depends(get_csrf_service_dep)]
AdminSessionServiceDep = Annotated[AdminSessionTokenService, Depends(get_admin_session_service_dep)]


def require_admin_host(request: Request) -> None:
    """Reject admin requests whose Host header is not ADMIN_ALLOWED_HOST.

    Raises:
        HTTPException: 403 when the host is not allowed
    """
    host = request.headers.get("host")
    if not is_allowed_admin_host(host):
        logger.warning("Blocked admin request from disallowed host", extra={"host": host})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=HOST_FORBIDDEN_MESSAGE)


def get_current_admin(
    request: Request,
    sessions: AdminSessionServiceDep,
) -> AdminSessionPayload:
    """Return the verified admin session carried by the request cookie.

    Args:
        request: Incoming request
        sessions: Session token service

    Returns:
        Verified session payload

    Raises:
        HTTPException: 403 for a disallowed host, 401 for a missing or invalid session
    """
    require_admin_host(request)
    policy = cookie_policy(settings.is_production)
    token = request.cookies.get(policy.name)
    session = sessions.verify(token)
    if session is None:
        logger.warning(
            "Blocked admin request with missing or invalid session",
            extra={"has_cookie": token is not None, "path": request.url.path},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid admin session.",
        )
    return session


AdminHostDep = Annotated[None, Depends(require_admin_host)]
CurrentAdminDep = Annotated[AdminSessionPayload, Depends(get_current_admin)]

# src/donotghostme/api/v1/endpoints/admin.py
"""Admin login, logout and report moderation endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Form, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse

from donotghostme.api.v1.dependencies import (
    HOST_FORBIDDEN_MESSAGE,
    AdminHostDep,
    AdminSessionServiceDep,
    ClientIpDep,
    CsrfServiceDep,
    CurrentAdminDep,
    IpHasherDep,
    LoginLimiterDep,
    SessionDep,
)
from donotghostme.core.errors import AdmissionDeniedError, LoginLockedError, RateLimitReason
from donotghostme.core.security import IpHasher, is_missing_ip
from donotghostme.core.settings import settings
from donotghostme.db.time import now_ms
from donotghostme.models import ReportStatus
from donotghostme.schemas.moderation import AdminReportResponse, ModerationAction
from donotghostme.services.admin_session import (
    cookie_policy,
    is_allowed_admin_host,
    is_origin_allowed,
    verify_admin_password,
)
from donotghostme.services.csrf import CsrfPurpose
from donotghostme.services.moderation import ModerationService, ReportNotFoundError

logger = logging.getLogger(__name__)

LOGIN_PAGE = "/admin/login"
LOGIN_ERROR_PAGE = "/admin/login?error=1"
DASHBOARD_PAGE = "/admin"
LOCKED_MESSAGE = "Too many admin login attempts from this IP. Please try again later."
MISSING_IP_MESSAGE = "We could not determine your IP address."

router = APIRouter(prefix="/admin", tags=["admin"])


def _login_identifier(hasher: IpHasher, client_ip: str | None) -> str:
    """Return the limiter key for ``client_ip``.

    Raises:
        AdmissionDeniedError: When the address is missing, since an
            unidentified caller could never be locked out.
    """
    if client_ip is None or is_missing_ip(client_ip):
        logger.warning("Rejected admin login without client address")
        raise AdmissionDeniedError(MISSING_IP_MESSAGE, RateLimitReason.MISSING_IP)
    return hasher.hash(client_ip)


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/csrf")
def issue_csrf_token(
    request: Request,
    response: Response,
    csrf: CsrfServiceDep,
    sessions: AdminSessionServiceDep,
    _host: AdminHostDep,
    purpose: CsrfPurpose = Query(CsrfPurpose.ADMIN_LOGIN),
) -> dict[str, str]:
    """Mint a CSRF token for an admin form.

    Moderation tokens are only handed to callers holding a valid session.
    """
    if purpose is CsrfPurpose.ADMIN_MODERATION:
        token = request.cookies.get(cookie_policy(settings.is_production).name)
        if sessions.verify(token) is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing or invalid admin session.",
            )
    response.headers["Cache-Control"] = "no-store"
    return {"token": csrf.create(purpose), "purpose": purpose.value}


@router.post("/login")
def login(
    request: Request,
    sessions: AdminSessionServiceDep,
    csrf: CsrfServiceDep,
    limiter: LoginLimiterDep,
    hasher: IpHasherDep,
    client_ip: ClientIpDep,
    password: str = Form(""),
    csrf_token: str = Form("", alias="_csrf"),
) -> RedirectResponse:
    """Authenticate the administrator from an HTML form post.

    Args:
        request: Incoming request, used for host and origin checks
        sessions: Session token service
        csrf: CSRF token service
        limiter: Failed-login limiter
        hasher: Hasher turning the client address into the limiter key
        client_ip: Proxy-aware client address
        password: Submitted password
        csrf_token: Token minted for the ``admin-login`` purpose

    Returns:
        303 to the dashboard with the session cookie, or back to the login page

    Raises:
        HTTPException: 403 for a disallowed host or cross-origin post
        AdmissionDeniedError: When the client address is missing
        LoginLockedError: While the client address is locked out
    """
    host = request.headers.get("host")
    expected_origin_host = settings.admin_allowed_host or host
    if not is_allowed_admin_host(host) or not is_origin_allowed(
        request.headers.get("origin"), expected_origin_host
    ):
        logger.warning("Blocked admin login from disallowed host or origin", extra={"host": host})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=HOST_FORBIDDEN_MESSAGE)

    identifier = _login_identifier(hasher, client_ip)
    now = now_ms()
    if limiter.is_locked(identifier, now):
        raise LoginLockedError(LOCKED_MESSAGE)

    failure: str | None = None
    if not csrf.verify(CsrfPurpose.ADMIN_LOGIN, csrf_token):
        failure = "csrf"
    elif not password.strip():
        failure = "empty-password"
    elif not verify_admin_password(password.strip()):
        failure = "password"

    if failure is not None:
        logger.warning(
            "Admin login failed",
            extra={"check": failure, "ip_hash": identifier, "strategy": limiter.strategy},
        )
        limiter.register_failure(identifier, now)
        return _redirect(LOGIN_ERROR_PAGE)

    limiter.reset(identifier)

    policy = cookie_policy(settings.is_production)
    response = _redirect(DASHBOARD_PAGE)
    response.set_cookie(
        key=policy.name,
        value=sessions.create(),
        max_age=policy.max_age,
        path=policy.path,
        secure=policy.secure,
        httponly=policy.http_only,
        samesite=policy.same_site,
    )
    logger.info("Admin logged in", extra={"ip_hash": identifier})
    return response


@router.post("/logout")
def logout(_host: AdminHostDep) -> RedirectResponse:
    """Clear the admin session cookie and return to the login page."""
    policy = cookie_policy(settings.is_production)
    response = _redirect(LOGIN_PAGE)
    response.delete_cookie(
        key=policy.name,
        path=policy.path,
        secure=policy.secure,
        httponly=policy.http_only,
        samesite=policy.same_site,
    )
    return response


@router.get("/reports", response_model=list[AdminReportResponse])
def list_reports(
    response: Response,
    db: SessionDep,
    _admin: CurrentAdminDep,
    report_status: ReportStatus | None = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
) -> list[AdminReportResponse]:
    """List the newest reports for the moderation dashboard."""
    response.headers["Cache-Control"] = "no-store"
    reports = ModerationService.list_reports(db, status=report_status, limit=limit)
    return [AdminReportResponse.model_validate(report) for report in reports]


@router.post("/reports/{report_id}")
def moderate_report(
    report_id: str,
    db: SessionDep,
    csrf: CsrfServiceDep,
    _admin: CurrentAdminDep,
    action: str | None = Form(None),
    reason: str | None = Form(None),
    csrf_token: str | None = Form(None, alias="_csrf"),
) -> RedirectResponse:
    """Apply a moderation action and redirect back to the dashboard.

    Raises:
        HTTPException: 400 for a missing or unknown action, 403 for a bad
            CSRF token, 404 when the report does not exist
    """
    report_id = report_id.strip()
    if not report_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing or invalid report id")

    if action is None or not action.strip():
        logger.warning("Moderation request without action", extra={"report_id": report_id})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing moderation action")

    try:
        parsed_action = ModerationAction(action.strip())
    except ValueError as err:
        logger.warning("Unknown moderation action", extra={"report_id": report_id, "action": action})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown moderation action") from err

    if not csrf.verify(CsrfPurpose.ADMIN_MODERATION, csrf_token):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid CSRF token")

    try:
        ModerationService.apply(db, report_id, parsed_action, reason)
    except ReportNotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found") from err
    return _redirect(DASHBOARD_PAGE)

# src/donotghostme/api/v1/endpoints/system.py
"""Liveness endpoint for load balancers and uptime checks."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from donotghostme.api.v1.dependencies import ClientIpDep, CorrelationIdDep, PublicLimiterDep
from donotghostme.core.errors import PublicRateLimitError
from donotghostme.core.security import is_missing_ip
from donotghostme.core.settings import settings

logger = logging.getLogger(__name__)

HEALTH_SCOPE = "health"
FALLBACK_IDENTITY = "0.0.0.0"
NO_STORE = {"Cache-Control": "no-store", "X-Content-Type-Options": "nosniff"}

router = APIRouter(tags=["system"])


@router.api_route("/health", methods=["GET", "HEAD"])
def health(
    limiter: PublicLimiterDep,
    client_ip: ClientIpDep,
    correlation_id: CorrelationIdDep,
) -> JSONResponse:
    """Report that the service is up.

    Callers without an address share one bucket. Limiter denials are
    returned as-is; any other limiter failure is logged and the check still
    answers ``ok``.
    """
    identity = FALLBACK_IDENTITY if is_missing_ip(client_ip) else client_ip
    try:
        limiter.enforce(
            identity,
            HEALTH_SCOPE,
            max_requests=settings.health_max_requests,
            window_ms=settings.health_window_ms,
        )
    except PublicRateLimitError as err:
        headers = dict(NO_STORE)
        if err.retry_after_seconds is not None:
            headers["Retry-After"] = str(err.retry_after_seconds)
        return JSONResponse(
            {"error": "Too many requests", "reason": err.reason.value},
            status_code=err.status_code,
            headers=headers,
        )
    except Exception:
        logger.error(
            "Health check limiter failed; answering ok",
            extra={"correlation_id": correlation_id},
            exc_info=True,
        )

    return JSONResponse({"status": "ok"}, headers=NO_STORE)

# src/donotghostme/api/v1/endpoints/companies.py
"""Company autocomplete endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Query, Response

from donotghostme.api.v1.dependencies import ClientIpDep, PublicLimiterDep, SessionDep
from donotghostme.core.settings import settings
from donotghostme.schemas.report import CompanySuggestion
from donotghostme.services.report_service import search_companies

SEARCH_SCOPE = "company-search"

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("/search", response_model=list[CompanySuggestion])
def search(
    response: Response,
    db: SessionDep,
    limiter: PublicLimiterDep,
    client_ip: ClientIpDep,
    q: str | None = Query(None, description="Company name prefix"),
) -> list[CompanySuggestion]:
    """Suggest up to ten companies whose name starts with ``q``.

    Args:
        response: Outgoing response, used for cache headers
        db: Database session
        limiter: Public limiter, applied before any lookup
        client_ip: Proxy-aware client address
        q: Search prefix; blank returns an empty list

    Returns:
        Matching companies ordered by name
    """
    limiter.enforce(
        client_ip,
        SEARCH_SCOPE,
        max_requests=settings.company_search_max_requests,
        window_ms=settings.company_search_window_ms,
    )
    response.headers["Cache-Control"] = "no-store"
    return [CompanySuggestion.model_validate(company) for company in search_companies(db, q)]

"""Tests for k-anonymous company intel aggregation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy.orm import Session

from donotghostme.models import Company, Report, ReportStatus
from donotghostme.schemas.company_intel import CompanyIntelRequest, IntelSource, normalize_domain_host
from donotghostme.services.company_intel import (
    CompanyIntel,
    CompanyIntelAggregator,
    InsufficientData,
    derive_confidence,
    derive_domain_label,
    derive_normalized_company_key,
)

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=UTC)


def _request(source: str, key: str) -> CompanyIntelRequest:
    return CompanyIntelRequest.model_validate({"source": source, "key": key})


class TestCompanyIntelRequest:
    def test_domain_keys_are_normalized(self) -> None:
        request = _request(" DOMAIN ", "https://www.Acme.co.uk:443/careers")
        assert request.source is IntelSource.DOMAIN
        assert request.key == "acme.co.uk"

    def test_slug_keys_are_lowercased(self) -> None:
        assert _request("linkedin", "Acme-Corp").key == "acme-corp"

    @pytest.mark.parametrize(
        ("source", "key"),
        [
            ("domain", "192.168.0.1"),
            ("domain", "localhost"),
            ("domain", "-bad-.com"),
            ("linkedin", "acme corp"),
            ("linkedin", "a" * 161),
            ("linkedin", "   "),
            ("myspace", "acme"),
        ],
    )
    def test_invalid_requests(self, source: str, key: str) -> None:
        with pytest.raises(ValidationError):
            _request(source, key)

    def test_normalize_domain_host(self) -> None:
        assert normalize_domain_host("HTTP://www.example.com./path") == "example.com"


@pytest.mark.parametrize(
    ("host", "label"),
    [("acme.com", "acme"), ("jobs.acme.com", "acme"), ("acme.co.uk", "acme"), ("localhost", None)],
)
def test_derive_domain_label(host: str, label: str | None) -> None:
    assert derive_domain_label(host) == label


def test_derive_normalized_company_key() -> None:
    assert derive_normalized_company_key(_request("domain", "jobs.acme-corp.com")) == "acmecorp"
    assert derive_normalized_company_key(_request("workable", "acme_corp")) == "acmecorp"
    assert derive_normalized_company_key(_request("linkedin", "---")) is None


@pytest.mark.parametrize(
    ("total", "recent", "expected"),
    [(30, 0, "high"), (5, 15, "high"), (15, 0, "medium"), (5, 5, "medium"), (14, 4, "low")],
)
def test_derive_confidence(total: int, recent: int, expected: str) -> None:
    assert derive_confidence(total, recent).value == expected


class TestCompanyIntelAggregator:
    def test_below_k_is_insufficient(
        self,
        db_session: Session,
        make_company: Callable[..., Company],
        make_report: Callable[..., Report],
    ) -> None:
        company = make_company("Acme")
        for _ in range(4):
            make_report(company)

        result = CompanyIntelAggregator(k_anonymity=5).fetch(db_session, _request("linkedin", "acme"), NOW)
        assert isinstance(result, InsufficientData)

    def test_unknown_company_is_insufficient(self, db_session: Session) -> None:
        result = CompanyIntelAggregator().fetch(db_session, _request("glassdoor", "nobody"), NOW)
        assert isinstance(result, InsufficientData)

    def test_only_active_reports_count_toward_k(
        self,
        db_session: Session,
        make_company: Callable[..., Company],
        make_report: Callable[..., Report],
    ) -> None:
        company = make_company("Acme")
        for _ in range(4):
            make_report(company)
        make_report(company, status=ReportStatus.FLAGGED)
        make_report(company, status=ReportStatus.DELETED)

        result = CompanyIntelAggregator(k_anonymity=5).fetch(db_session, _request("linkedin", "acme"), NOW)
        assert isinstance(result, InsufficientData)

    def test_at_k_releases_counts(
        self,
        db_session: Session,
        make_company: Callable[..., Company],
        make_report: Callable[..., Report],
    ) -> None:
        company = make_company("Acme")
        for _ in range(3):
            make_report(company, created_at=NOW - timedelta(days=10))
        for _ in range(2):
            make_report(company, created_at=NOW - timedelta(days=200))

        result = CompanyIntelAggregator(k_anonymity=5).fetch(
            db_session,
            _request("domain", "careers.acme.com"),
            NOW,
        )
        assert isinstance(result, CompanyIntel)
        assert result.company_id == company.id
        assert result.display_name == "Acme"
        assert result.report_count_total == 5
        assert result.report_count_90d == 3
        assert result.risk_score is None
        assert result.confidence.value == "low"
        assert result.updated_at == NOW

    def test_picks_company_with_most_reports_across_countries(
        self,
        db_session: Session,
        make_company: Callable[..., Company],
        make_report: Callable[..., Report],
    ) -> None:
        german = make_company("Acme", country="DE")
        french = make_company("ACME", country="FR")
        for _ in range(2):
            make_report(german)
        for _ in range(6):
            make_report(french)

        result = CompanyIntelAggregator(k_anonymity=5).fetch(db_session, _request("indeed", "acme"), NOW)
        assert isinstance(result, CompanyIntel)
        assert result.company_id == french.id
        assert result.report_count_total == 6

    def test_gate_cannot_be_disabled(self) -> None:
        with pytest.raises(ValueError):
            CompanyIntelAggregator(k_anonymity=0)

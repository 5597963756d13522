"""Tests for the public company intel endpoint."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import status
from fastapi.testclient import TestClient

from donotghostme.core.settings import settings
from donotghostme.models import Company, Report

CLIENT_IP = "203.0.113.7"
INTEL_URL = "/api/v1/public/company-intel"
CACHEABLE = "public, s-maxage=120, stale-while-revalidate=600"


def test_insufficient_data_below_k(
    client: TestClient,
    make_company: Callable[..., Company],
    make_report: Callable[..., Report],
) -> None:
    company = make_company("Acme")
    for _ in range(settings.company_intel_k_anonymity - 1):
        make_report(company)

    response = client.get(
        INTEL_URL,
        params={"source": "linkedin", "key": "acme"},
        headers={"X-Forwarded-For": CLIENT_IP},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "insufficient_data"}
    assert response.headers["cache-control"] == CACHEABLE


def test_signals_released_at_k(
    client: TestClient,
    make_company: Callable[..., Company],
    make_report: Callable[..., Report],
) -> None:
    company = make_company("Acme")
    for _ in range(settings.company_intel_k_anonymity):
        make_report(company)

    response = client.get(
        INTEL_URL,
        params={"source": "domain", "key": "https://www.acme.com/jobs"},
        headers={"X-Forwarded-For": CLIENT_IP},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["cache-control"] == CACHEABLE
    data = response.json()
    assert data["company"] == {"canonicalId": company.id, "displayName": "Acme"}
    assert data["signals"]["reportCountTotal"] == settings.company_intel_k_anonymity
    assert data["signals"]["reportCount90d"] == settings.company_intel_k_anonymity
    assert data["signals"]["riskScore"] is None
    assert data["signals"]["confidence"] == "medium"
    assert "updatedAt" in data


def test_invalid_input(client: TestClient) -> None:
    response = client.get(
        INTEL_URL,
        params={"source": "domain", "key": "127.0.0.1"},
        headers={"X-Forwarded-For": CLIENT_IP},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid input"}
    assert response.headers["cache-control"] == "no-store"


def test_missing_parameters(client: TestClient) -> None:
    response = client.get(INTEL_URL, headers={"X-Forwarded-For": CLIENT_IP})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_invalid_requests_count_against_limit(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "public_max_requests", 2)
    headers = {"X-Forwarded-For": CLIENT_IP}

    for _ in range(2):
        response = client.get(INTEL_URL, params={"source": "nope", "key": "acme"}, headers=headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.get(INTEL_URL, params={"source": "linkedin", "key": "acme"}, headers=headers)
    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert response.json()["reason"] == "window-exceeded"
    assert "retry-after" in response.headers

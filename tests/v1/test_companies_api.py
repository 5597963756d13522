"""Tests for the company autocomplete endpoint."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import status
from fastapi.testclient import TestClient

from donotghostme.models import Company

CLIENT_IP = "203.0.113.7"
SEARCH_URL = "/api/v1/companies/search"


def test_search_by_prefix(client: TestClient, make_company: Callable[..., Company]) -> None:
    acme = make_company("Acme")
    make_company("Globex")

    response = client.get(SEARCH_URL, params={"q": "ac"}, headers={"X-Forwarded-For": CLIENT_IP})

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["cache-control"] == "no-store"
    assert response.json() == [{"id": acme.id, "name": "Acme", "country": "DE"}]


def test_blank_query(client: TestClient, make_company: Callable[..., Company]) -> None:
    make_company("Acme")
    response = client.get(SEARCH_URL, headers={"X-Forwarded-For": CLIENT_IP})
    assert response.json() == []


def test_unparseable_client_address(client: TestClient) -> None:
    # Without forwarding headers the test transport reports "testclient" as peer.
    response = client.get(SEARCH_URL, params={"q": "ac"})

    assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert response.json()["reason"] == "invalid-ip"


def test_real_ip_header_is_used(client: TestClient) -> None:
    response = client.get(SEARCH_URL, params={"q": "ac"}, headers={"X-Real-IP": CLIENT_IP})
    assert response.status_code == status.HTTP_200_OK

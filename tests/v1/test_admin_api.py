"""Tests for admin login, logout and moderation endpoints."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from donotghostme.core.settings import settings
from donotghostme.models import Company, Report, ReportStatus

CLIENT_IP = "203.0.113.7"
ADMIN_PASSWORD = "correct-horse-battery"
ADMIN_URL = "/api/v1/admin"
IP_HEADERS = {"X-Forwarded-For": CLIENT_IP}


def _csrf_token(client: TestClient, purpose: str = "admin-login") -> str:
    response = client.get(f"{ADMIN_URL}/csrf", params={"purpose": purpose}, headers=IP_HEADERS)
    assert response.status_code == status.HTTP_200_OK
    return response.json()["token"]


def _login(client: TestClient, password: str = ADMIN_PASSWORD, token: str | None = None):
    return client.post(
        f"{ADMIN_URL}/login",
        data={"password": password, "_csrf": token if token is not None else _csrf_token(client)},
        headers=IP_HEADERS,
        follow_redirects=False,
    )


@pytest.fixture()
def admin_client(client: TestClient) -> TestClient:
    response = _login(client)
    assert response.status_code == status.HTTP_303_SEE_OTHER
    return client


@pytest.fixture()
def report(make_company: Callable[..., Company], make_report: Callable[..., Report]) -> Report:
    return make_report(make_company())


class TestCsrfIssuance:
    def test_login_token(self, client: TestClient) -> None:
        response = client.get(f"{ADMIN_URL}/csrf", headers=IP_HEADERS)

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["cache-control"] == "no-store"
        data = response.json()
        assert data["purpose"] == "admin-login"
        assert data["token"]

    def test_moderation_token_requires_session(self, client: TestClient) -> None:
        response = client.get(
            f"{ADMIN_URL}/csrf",
            params={"purpose": "admin-moderation"},
            headers=IP_HEADERS,
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unknown_purpose(self, client: TestClient) -> None:
        response = client.get(f"{ADMIN_URL}/csrf", params={"purpose": "other"}, headers=IP_HEADERS)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestLogin:
    def test_success_sets_session_cookie(self, client: TestClient) -> None:
        response = _login(client)

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/admin"
        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("dg_admin=")
        assert "HttpOnly" in set_cookie
        assert "samesite=strict" in set_cookie.lower()

    def test_wrong_password(self, client: TestClient) -> None:
        response = _login(client, password="wrong-password")

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/admin/login?error=1"
        assert "set-cookie" not in response.headers

    def test_empty_password(self, client: TestClient) -> None:
        response = _login(client, password="   ")
        assert response.headers["location"] == "/admin/login?error=1"

    def test_invalid_csrf_token(self, client: TestClient) -> None:
        response = _login(client, token="not-a-token")

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/admin/login?error=1"

    def test_moderation_token_is_not_accepted_for_login(self, admin_client: TestClient) -> None:
        token = _csrf_token(admin_client, "admin-moderation")
        response = _login(admin_client, token=token)
        assert response.headers["location"] == "/admin/login?error=1"

    def test_lockout_after_repeated_failures(self, client: TestClient) -> None:
        for _ in range(settings.admin_login_max_attempts):
            assert _login(client, password="wrong-password").status_code == status.HTTP_303_SEE_OTHER

        response = _login(client)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.json() == {
            "error": "Too many admin login attempts from this IP. Please try again later.",
            "reason": "login-locked",
        }

    def test_success_clears_failures(self, client: TestClient) -> None:
        for _ in range(settings.admin_login_max_attempts - 1):
            _login(client, password="wrong-password")
        assert _login(client).headers["location"] == "/admin"

        for _ in range(settings.admin_login_max_attempts - 1):
            _login(client, password="wrong-password")
        assert _login(client).headers["location"] == "/admin"

    @pytest.mark.parametrize("forwarded", ["unknown", "UNKNOWN, 203.0.113.9"])
    def test_unidentified_caller_cannot_guess_passwords(self, client: TestClient, forwarded: str) -> None:
        codes = set()
        for password in ("wrong-password", "also-wrong", ADMIN_PASSWORD):
            response = client.post(
                f"{ADMIN_URL}/login",
                data={"password": password, "_csrf": _csrf_token(client)},
                headers={"X-Forwarded-For": forwarded},
                follow_redirects=False,
            )
            codes.add(response.status_code)
            assert response.json()["reason"] == "missing-ip"
            assert "set-cookie" not in response.headers

        assert codes == {status.HTTP_429_TOO_MANY_REQUESTS}

    def test_cross_origin_post_is_forbidden(self, client: TestClient) -> None:
        response = client.post(
            f"{ADMIN_URL}/login",
            data={"password": ADMIN_PASSWORD, "_csrf": _csrf_token(client)},
            headers={**IP_HEADERS, "Origin": "https://evil.example"},
            follow_redirects=False,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_same_origin_post_is_allowed(self, client: TestClient) -> None:
        response = client.post(
            f"{ADMIN_URL}/login",
            data={"password": ADMIN_PASSWORD, "_csrf": _csrf_token(client)},
            headers={**IP_HEADERS, "Origin": "http://test"},
            follow_redirects=False,
        )
        assert response.headers["location"] == "/admin"

    def test_disallowed_host(self, client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings, "admin_allowed_host", "admin.example.com")

        assert client.get(f"{ADMIN_URL}/csrf", headers=IP_HEADERS).status_code == status.HTTP_403_FORBIDDEN
        response = client.post(
            f"{ADMIN_URL}/login",
            data={"password": ADMIN_PASSWORD, "_csrf": "x"},
            headers=IP_HEADERS,
            follow_redirects=False,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


def test_logout_clears_cookie(admin_client: TestClient) -> None:
    response = admin_client.post(f"{ADMIN_URL}/logout", headers=IP_HEADERS, follow_redirects=False)

    assert response.status_code == status.HTTP_303_SEE_OTHER
    assert response.headers["location"] == "/admin/login"
    assert response.headers["set-cookie"].startswith("dg_admin=")
    assert admin_client.get(f"{ADMIN_URL}/reports", headers=IP_HEADERS).status_code == (
        status.HTTP_401_UNAUTHORIZED
    )


class TestModeration:
    def test_listing_requires_session(self, client: TestClient) -> None:
        response = client.get(f"{ADMIN_URL}/reports", headers=IP_HEADERS)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_forged_cookie_is_rejected(self, client: TestClient) -> None:
        client.cookies.set("dg_admin", "eyJzdWIiOiJhZG1pbiJ9.forged")
        response = client.get(f"{ADMIN_URL}/reports", headers=IP_HEADERS)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list_reports(self, admin_client: TestClient, report: Report) -> None:
        response = admin_client.get(f"{ADMIN_URL}/reports", headers=IP_HEADERS)

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["cache-control"] == "no-store"
        assert [row["id"] for row in response.json()] == [report.id]

    def test_flag_report(self, admin_client: TestClient, report: Report, db_session: Session) -> None:
        token = _csrf_token(admin_client, "admin-moderation")
        response = admin_client.post(
            f"{ADMIN_URL}/reports/{report.id}",
            data={"action": "flag", "reason": "spam", "_csrf": token},
            headers=IP_HEADERS,
            follow_redirects=False,
        )

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/admin"
        db_session.refresh(report)
        assert report.status is ReportStatus.FLAGGED
        assert report.flagged_reason == "spam"

        listed = admin_client.get(
            f"{ADMIN_URL}/reports",
            params={"status": "FLAGGED"},
            headers=IP_HEADERS,
        )
        assert [row["id"] for row in listed.json()] == [report.id]

    def test_missing_csrf_token(self, admin_client: TestClient, report: Report) -> None:
        response = admin_client.post(
            f"{ADMIN_URL}/reports/{report.id}",
            data={"action": "delete"},
            headers=IP_HEADERS,
            follow_redirects=False,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_login_token_is_not_accepted_for_moderation(self, admin_client: TestClient, report: Report) -> None:
        response = admin_client.post(
            f"{ADMIN_URL}/reports/{report.id}",
            data={"action": "delete", "_csrf": _csrf_token(admin_client)},
            headers=IP_HEADERS,
            follow_redirects=False,
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.parametrize("action", ["", "archive"])
    def test_bad_action(self, admin_client: TestClient, report: Report, action: str) -> None:
        response = admin_client.post(
            f"{ADMIN_URL}/reports/{report.id}",
            data={"action": action, "_csrf": _csrf_token(admin_client, "admin-moderation")},
            headers=IP_HEADERS,
            follow_redirects=False,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_report(self, admin_client: TestClient) -> None:
        response = admin_client.post(
            f"{ADMIN_URL}/reports/does-not-exist",
            data={"action": "flag", "_csrf": _csrf_token(admin_client, "admin-moderation")},
            headers=IP_HEADERS,
            follow_redirects=False,
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

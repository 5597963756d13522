# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Generator, Iterator
from datetime import datetime
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="donotghostme-tests-"))

# A file-backed database so worker threads get separate, real connections.
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB_DIR / 'test.db'}"
os.environ["APP_ENV"] = "test"
os.environ.setdefault("RATE_LIMIT_IP_SALT", "test-salt-0123456789abcdef0123456789abcdef")
os.environ.setdefault("ADMIN_PASSWORD", "correct-horse-battery")
os.environ.setdefault("ADMIN_SESSION_SECRET", "test-session-secret-0123456789abcdef0123")
os.environ.setdefault("ADMIN_CSRF_SECRET", "test-csrf-secret-0123456789abcdef01234567")
os.environ.setdefault("ADMIN_LOGIN_RATE_LIMIT_STRATEGY", "memory")

from donotghostme.core.security import get_ip_hasher  # noqa: E402
from donotghostme.db.session import Base, SessionLocal, create_tables, drop_tables  # noqa: E402
from donotghostme.db.session import engine as app_engine  # noqa: E402
from donotghostme.db.session import get_db as app_get_session  # noqa: E402
from donotghostme.main import app as fastapi_app  # noqa: E402
from donotghostme.models import Company, Report, ReportStatus  # noqa: E402
from donotghostme.models.enums import JobLevel, PositionCategory, Stage  # noqa: E402
from donotghostme.services.admin_session import get_admin_session_service  # noqa: E402
from donotghostme.services.company_intel import get_company_intel_aggregator  # noqa: E402
from donotghostme.services.csrf import get_csrf_service  # noqa: E402
from donotghostme.services.login_limiter import reset_login_limiter  # noqa: E402
from donotghostme.services.report_quota import get_report_quota_engine  # noqa: E402
from donotghostme.services.sliding_window import reset_sliding_window_store  # noqa: E402
from donotghostme.utils.normalization import normalize_company_name  # noqa: E402


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    create_tables()
    try:
        yield app_engine
    finally:
        drop_tables()
        app_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    try:
        yield SessionLocal
    finally:
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(
    app: FastAPI,
    session_factory: sessionmaker[Session],
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_process_state() -> Iterator[None]:
    """Give every test fresh limiter stores and service singletons."""
    caches = (
        get_ip_hasher,
        get_report_quota_engine,
        get_csrf_service,
        get_admin_session_service,
        get_company_intel_aggregator,
    )
    reset_sliding_window_store()
    reset_login_limiter()
    for cached in caches:
        cached.cache_clear()
    yield
    reset_sliding_window_store()
    reset_login_limiter()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_company(db_session: Session) -> Callable[..., Company]:
    def _make(name: str = "Acme Corp", country: str = "DE") -> Company:
        company = Company(name=name, normalized_name=normalize_company_name(name), country=country)
        db_session.add(company)
        db_session.commit()
        return company

    return _make


@pytest.fixture()
def make_report(db_session: Session) -> Callable[..., Report]:
    def _make(
        company: Company,
        *,
        status: ReportStatus = ReportStatus.ACTIVE,
        created_at: datetime | None = None,
        position_detail: str = "Backend developer",
    ) -> Report:
        report = Report(
            company_id=company.id,
            stage=Stage.TECHNICAL,
            job_level=JobLevel.MID,
            position_category=PositionCategory.IT,
            position_detail=position_detail,
            status=status,
        )
        if created_at is not None:
            report.created_at = created_at
        db_session.add(report)
        db_session.commit()
        return report

    return _make

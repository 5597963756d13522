"""Application settings and configuration.

This module defines all configuration options for the Do Not Ghost Me service.
Settings are loaded from environment variables with sensible defaults and are
validated once at import time so that misconfiguration fails fast.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_LENGTH = 32
PLACEHOLDER_SALT_MARKER = "replace-with"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Do Not Ghost Me", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    app_env: Literal["development", "test", "production"] = Field(
        default="development",
        alias="APP_ENV",
    )
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./donotghostme.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Salt for one-way hashing of client addresses
    rate_limit_ip_salt: str | None = Field(default=None, alias="RATE_LIMIT_IP_SALT")

    # Report submission quotas
    max_reports_per_company_per_ip: int = Field(
        default=3,
        ge=1,
        le=5,
        alias="RATE_LIMIT_MAX_REPORTS_PER_COMPANY_PER_IP",
    )
    max_reports_per_ip_per_day: int = Field(
        default=10,
        ge=1,
        le=20,
        alias="RATE_LIMIT_MAX_REPORTS_PER_IP_PER_DAY",
    )

    # Public read-only endpoint limits (fixed window, per hashed IP and scope)
    public_max_requests: int = Field(default=20, ge=1, alias="RATE_LIMIT_PUBLIC_MAX_REQUESTS")
    public_window_ms: int = Field(default=60_000, ge=1_000, alias="RATE_LIMIT_PUBLIC_WINDOW_MS")
    public_max_store_size: int = Field(
        default=10_000,
        ge=1,
        alias="RATE_LIMIT_PUBLIC_MAX_STORE_SIZE",
    )
    company_search_max_requests: int = Field(
        default=60,
        ge=10,
        le=200,
        alias="RATE_LIMIT_COMPANY_SEARCH_MAX_REQUESTS",
    )
    company_search_window_ms: int = Field(
        default=60_000,
        ge=10_000,
        le=300_000,
        alias="RATE_LIMIT_COMPANY_SEARCH_WINDOW_MS",
    )
    reports_stats_max_requests: int = Field(
        default=30,
        ge=5,
        le=100,
        alias="RATE_LIMIT_REPORTS_STATS_MAX_REQUESTS",
    )
    reports_stats_window_ms: int = Field(
        default=60_000,
        ge=10_000,
        le=300_000,
        alias="RATE_LIMIT_REPORTS_STATS_WINDOW_MS",
    )
    health_max_requests: int = Field(default=60, ge=1, alias="RATE_LIMIT_HEALTH_MAX_REQUESTS")
    health_window_ms: int = Field(default=60_000, ge=1_000, alias="RATE_LIMIT_HEALTH_WINDOW_MS")

    # Admin login attempt limiter
    admin_login_rate_limit_strategy: Literal["memory", "db"] = Field(
        default="memory",
        alias="ADMIN_LOGIN_RATE_LIMIT_STRATEGY",
    )
    admin_login_max_attempts: int = Field(default=5, ge=1, alias="ADMIN_LOGIN_MAX_ATTEMPTS")
    admin_login_window_ms: int = Field(
        default=5 * 60 * 1000,
        ge=1_000,
        alias="ADMIN_LOGIN_WINDOW_MS",
    )
    admin_login_lock_ms: int = Field(
        default=15 * 60 * 1000,
        ge=1_000,
        alias="ADMIN_LOGIN_LOCK_MS",
    )

    # Admin authentication and signed tokens
    admin_password: str | None = Field(default=None, min_length=8, alias="ADMIN_PASSWORD")
    admin_session_secret: str | None = Field(
        default=None,
        min_length=MIN_SECRET_LENGTH,
        alias="ADMIN_SESSION_SECRET",
    )
    admin_csrf_secret: str | None = Field(
        default=None,
        min_length=MIN_SECRET_LENGTH,
        alias="ADMIN_CSRF_SECRET",
    )
    admin_allowed_host: str | None = Field(default=None, alias="ADMIN_ALLOWED_HOST")
    admin_session_max_age_seconds: int | None = Field(
        default=None,
        ge=60,
        alias="ADMIN_SESSION_MAX_AGE_SECONDS",
    )
    csrf_token_ttl_ms: int = Field(default=60 * 60 * 1000, ge=1_000, alias="CSRF_TOKEN_TTL_MS")

    # Public company intel
    company_intel_k_anonymity: int = Field(
        default=5,
        ge=2,
        le=50,
        alias="COMPANY_INTEL_K_ANONYMITY",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "HEAD", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _check_invariants(self) -> Settings:
        """Enforce cross-field invariants that single-field validation cannot express."""
        has_password = bool(self.admin_password)
        has_session_secret = bool(self.admin_session_secret)

        if has_password != has_session_secret:
            raise ValueError(
                "ADMIN_PASSWORD and ADMIN_SESSION_SECRET must either both be set or both be omitted."
            )

        if has_password and has_session_secret and not self.admin_csrf_secret:
            raise ValueError(
                "ADMIN_CSRF_SECRET must be set when ADMIN_PASSWORD/ADMIN_SESSION_SECRET are configured."
            )

        if self.is_production:
            salt = self.rate_limit_ip_salt or ""
            if len(salt) < MIN_SECRET_LENGTH:
                raise ValueError(
                    f"RATE_LIMIT_IP_SALT must be at least {MIN_SECRET_LENGTH} characters in production."
                )
            if PLACEHOLDER_SALT_MARKER in salt.lower():
                raise ValueError(
                    "RATE_LIMIT_IP_SALT must be a strong random value in production "
                    "(not the example placeholder)."
                )

        return self

    @property
    def is_production(self) -> bool:
        """Return True when running with production hardening enabled."""
        return self.app_env == "production"

    @property
    def admin_enabled(self) -> bool:
        """Return True when the admin surface is fully configured."""
        return bool(self.admin_password and self.admin_session_secret)

    @property
    def admin_session_max_age(self) -> int:
        """Return the admin session lifetime in seconds.

        Production sessions last one hour, everything else thirty minutes,
        unless overridden explicitly.
        """
        if self.admin_session_max_age_seconds is not None:
            return self.admin_session_max_age_seconds
        return 60 * 60 if self.is_production else 60 * 30

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]

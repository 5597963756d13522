# src/donotghostme/core/errors.py
"""Exception types shared by the admission and trust-boundary services."""

from __future__ import annotations

from enum import StrEnum


class RateLimitReason(StrEnum):
    """Machine-readable reason attached to every admission denial."""

    MISSING_IP = "missing-ip"
    INVALID_IP = "invalid-ip"
    DAILY_IP_LIMIT = "daily-ip-limit"
    COMPANY_POSITION_LIMIT = "company-position-limit"
    WINDOW_EXCEEDED = "window-exceeded"
    CAPACITY_EXHAUSTED = "capacity-exhausted"
    LOGIN_LOCKED = "login-locked"
    INVALID_SCOPE = "invalid-scope"


class AdmissionDeniedError(Exception):
    """Base class for requests refused by an admission control.

    Attributes:
        message: Human readable explanation safe to show to clients.
        reason: Machine-readable denial reason.
        status_code: HTTP status the API layer maps the denial to.
    """

    def __init__(
        self,
        message: str,
        reason: RateLimitReason,
        status_code: int = 429,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class ReportRateLimitError(AdmissionDeniedError):
    """Raised when a report submission exceeds a quota."""


class PublicRateLimitError(AdmissionDeniedError):
    """Raised when a public endpoint caller exceeds its request window."""

    def __init__(
        self,
        message: str,
        reason: RateLimitReason,
        status_code: int = 429,
        retry_after_seconds: int | None = None,
    ) -> None:
        super().__init__(message, reason, status_code)
        self.retry_after_seconds = retry_after_seconds


class RateLimitCapacityError(PublicRateLimitError):
    """Raised when the in-memory window store cannot track another caller."""

    def __init__(self, message: str = "Rate limiter capacity exhausted") -> None:
        super().__init__(message, RateLimitReason.CAPACITY_EXHAUSTED, status_code=503)


class LoginLockedError(AdmissionDeniedError):
    """Raised when an address is temporarily locked out of admin login."""

    def __init__(self, message: str = "Too many login attempts") -> None:
        super().__init__(message, RateLimitReason.LOGIN_LOCKED)


class MissingIdentifierError(ValueError):
    """Raised when a client address required for hashing is empty."""


class ConfigurationError(RuntimeError):
    """Raised when a required secret is missing in a hardened environment."""

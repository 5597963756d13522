# src/donotghostme/services/admin_session.py
"""Admin authentication: session tokens, cookie policy and request checks.

Session tokens have the form ``<payload>.<signature>`` where ``payload`` is
the base64url JSON ``{"sub": "admin", "iat": <s>, "exp": <s>}`` and
``signature`` is the base64url HMAC-SHA256 of the encoded payload.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlsplit

from donotghostme.core.errors import ConfigurationError
from donotghostme.core.settings import settings

logger = logging.getLogger(__name__)

ADMIN_SUBJECT = "admin"
SESSION_COOKIE_NAME = "dg_admin"
SECURE_SESSION_COOKIE_NAME = "__Host-dg_admin"


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _epoch_seconds() -> int:
    return int(time.time())


@dataclass(frozen=True)
class AdminSessionPayload:
    """Claims carried by an admin session token (epoch seconds)."""

    sub: str
    iat: int
    exp: int


class AdminSessionTokenService:
    """Issue and verify signed admin session tokens."""

    def __init__(
        self,
        secret: str,
        max_age_seconds: int,
        clock: Callable[[], int] = _epoch_seconds,
    ) -> None:
        if not secret:
            raise ConfigurationError("ADMIN_SESSION_SECRET is not set; admin sessions are unavailable")
        if max_age_seconds <= 0:
            raise ValueError("max_age_seconds must be positive")
        self._secret = secret.encode("utf-8")
        self.max_age_seconds = max_age_seconds
        self._clock = clock

    def _sign(self, encoded_payload: str) -> str:
        digest = hmac.new(self._secret, encoded_payload.encode("ascii"), hashlib.sha256).digest()
        return _b64url_encode(digest)

    def create(self) -> str:
        """Return a new session token valid for ``max_age_seconds``."""
        now = self._clock()
        payload = {"sub": ADMIN_SUBJECT, "iat": now, "exp": now + self.max_age_seconds}
        encoded = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        return f"{encoded}.{self._sign(encoded)}"

    def verify(self, token: str | None) -> AdminSessionPayload | None:
        """Return the payload of a valid token, otherwise None.

        Every rejection is logged with the failed check. The caller only sees
        None so the failing check is never revealed to the client.
        """
        if not token:
            return None

        parts = token.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            logger.warning("Rejected admin session token: malformed", extra={"token_length": len(token)})
            return None
        encoded_payload, signature = parts

        try:
            expected = self._sign(encoded_payload)
        except UnicodeEncodeError:
            logger.warning("Rejected admin session token: non-ascii payload", extra={"token_length": len(token)})
            return None

        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("Rejected admin session token: signature mismatch", extra={"token_length": len(token)})
            return None

        try:
            claims = json.loads(_b64url_decode(encoded_payload).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            logger.warning("Rejected admin session token: undecodable payload", extra={"token_length": len(token)})
            return None

        if not isinstance(claims, dict):
            logger.warning("Rejected admin session token: payload is not an object")
            return None

        sub, iat, exp = claims.get("sub"), claims.get("iat"), claims.get("exp")
        if sub != ADMIN_SUBJECT:
            logger.warning("Rejected admin session token: invalid subject")
            return None
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in (iat, exp)):
            logger.warning("Rejected admin session token: invalid timestamps")
            return None

        now = self._clock()
        if exp <= now:
            logger.warning("Rejected admin session token: expired", extra={"exp": exp, "now": now})
            return None

        return AdminSessionPayload(sub=sub, iat=iat, exp=exp)


@dataclass(frozen=True)
class SessionCookiePolicy:
    """Attributes the HTTP layer applies to the admin session cookie."""

    name: str
    http_only: bool
    secure: bool
    same_site: str
    path: str
    max_age: int


def cookie_policy(is_production: bool, max_age: int | None = None) -> SessionCookiePolicy:
    """Return the cookie policy for the current environment.

    The ``__Host-`` prefix requires ``Secure``, so it is only used when the
    cookie is marked secure.
    """
    return SessionCookiePolicy(
        name=SECURE_SESSION_COOKIE_NAME if is_production else SESSION_COOKIE_NAME,
        http_only=True,
        secure=is_production,
        same_site="strict",
        path="/",
        max_age=max_age if max_age is not None else settings.admin_session_max_age,
    )


def verify_admin_password(candidate: str, configured: str | None = None) -> bool:
    """Compare ``candidate`` against the configured admin password in constant time."""
    expected = configured if configured is not None else settings.admin_password
    if not expected:
        logger.error("ADMIN_PASSWORD is not set; rejecting admin login")
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def is_allowed_admin_host(host: str | None, allowed_host: str | None = None) -> bool:
    """Return True when ``host`` matches ADMIN_ALLOWED_HOST (or no restriction is set)."""
    required = allowed_host if allowed_host is not None else settings.admin_allowed_host
    if not required:
        return True
    return (host or "").strip().lower() == required.strip().lower()


def is_origin_allowed(origin: str | None, host: str | None) -> bool:
    """Return True when a present Origin header points at the requested host."""
    if origin is None:
        return True
    if not host:
        return False
    parsed = urlsplit(origin)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    return parsed.netloc.lower() == host.strip().lower()


@lru_cache(maxsize=1)
def get_admin_session_service() -> AdminSessionTokenService:
    """Return the process-wide session service.

    Raises:
        ConfigurationError: If the admin surface is not configured.
    """
    return AdminSessionTokenService(
        secret=settings.admin_session_secret or "",
        max_age_seconds=settings.admin_session_max_age,
    )

# src/donotghostme/services/csrf.py
"""Stateless, purpose-bound CSRF tokens.

A token is the base64url encoding of a small JSON document::

    {"v": 1, "p": "<purpose>", "iat": <ms>, "n": "<nonce>", "s": "<signature>"}

where ``s`` is the HMAC-SHA256 of ``"<purpose>:<iat>:<nonce>"``. Signing over
the purpose means a token minted for one form can never be replayed against
another. Nothing is stored server side; tokens die by TTL or secret rotation.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import secrets
from collections.abc import Callable
from enum import StrEnum
from functools import lru_cache
from typing import Any

from donotghostme.core.errors import ConfigurationError
from donotghostme.core.settings import Settings, settings
from donotghostme.db.time import now_ms

logger = logging.getLogger(__name__)

CSRF_TOKEN_VERSION = 1
DEFAULT_CSRF_TTL_MS = 60 * 60 * 1000
DEV_FALLBACK_CSRF_SECRET = "dev-only-admin-csrf-secret-never-use-in-production"


class CsrfPurpose(StrEnum):
    """Forms protected by CSRF tokens."""

    ADMIN_LOGIN = "admin-login"
    ADMIN_MODERATION = "admin-moderation"


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def resolve_csrf_secret(config: Settings) -> str:
    """Return the CSRF signing secret for ``config``.

    Raises:
        ConfigurationError: If no secret is configured in production.
    """
    configured = (config.admin_csrf_secret or "").strip()
    if configured:
        return configured
    if config.is_production:
        raise ConfigurationError("ADMIN_CSRF_SECRET must be set in production.")
    return DEV_FALLBACK_CSRF_SECRET


class CsrfTokenService:
    """Mint and verify CSRF tokens signed with a shared secret."""

    def __init__(
        self,
        secret: str,
        ttl_ms: int = DEFAULT_CSRF_TTL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if not secret:
            raise ConfigurationError("CSRF secret must not be empty")
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._secret = secret.encode("utf-8")
        self._ttl_ms = ttl_ms
        self._clock = clock

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def _sign(self, purpose: str, issued_at: int, nonce: str) -> str:
        message = f"{purpose}:{issued_at}:{nonce}".encode()
        return _b64url_encode(hmac.new(self._secret, message, hashlib.sha256).digest())

    def create(self, purpose: CsrfPurpose | str) -> str:
        """Return a new token bound to ``purpose``.

        Raises:
            ValueError: If the purpose is blank.
        """
        trimmed = str(purpose).strip()
        if not trimmed:
            raise ValueError("CSRF purpose must be a non-empty string")

        issued_at = self._clock()
        nonce = secrets.token_urlsafe(16)
        payload = {
            "v": CSRF_TOKEN_VERSION,
            "p": trimmed,
            "iat": issued_at,
            "n": nonce,
            "s": self._sign(trimmed, issued_at, nonce),
        }
        return _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))

    def verify(self, purpose: CsrfPurpose | str, token: str | None) -> bool:
        """Return True only for an intact, unexpired token minted for ``purpose``.

        The signature is recomputed and compared in constant time on every
        call that yields a decodable payload, whichever check fails first.
        Callers only learn the boolean outcome.
        """
        if token is None or not token.strip():
            return False

        payload = self._decode(token.strip())
        if payload is None:
            logger.warning("Rejected CSRF token: undecodable payload")
            return False

        expected_purpose = str(purpose).strip()
        version = payload.get("v")
        token_purpose = payload.get("p")
        issued_at = payload.get("iat")
        nonce = payload.get("n")
        signature = payload.get("s")

        structurally_valid = (
            isinstance(token_purpose, str)
            and isinstance(issued_at, int)
            and not isinstance(issued_at, bool)
            and isinstance(nonce, str)
            and bool(nonce)
            and isinstance(signature, str)
            and bool(signature)
        )

        expected_signature = self._sign(
            token_purpose if isinstance(token_purpose, str) else "",
            issued_at if isinstance(issued_at, int) else 0,
            nonce if isinstance(nonce, str) else "",
        )
        signature_ok = hmac.compare_digest(
            (signature if isinstance(signature, str) else "").encode("utf-8"),
            expected_signature.encode("utf-8"),
        )

        failure: str | None = None
        if version != CSRF_TOKEN_VERSION:
            failure = "version"
        elif not structurally_valid:
            failure = "structure"
        elif token_purpose != expected_purpose:
            failure = "purpose"
        else:
            now = self._clock()
            if issued_at > now:
                failure = "issued-in-future"
            elif now - issued_at >= self._ttl_ms:
                failure = "expired"
            elif not signature_ok:
                failure = "signature"

        if failure is not None:
            logger.warning("Rejected CSRF token", extra={"check": failure, "purpose": expected_purpose})
            return False
        return True

    @staticmethod
    def _decode(token: str) -> dict[str, Any] | None:
        try:
            decoded = json.loads(_b64url_decode(token).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return None
        return decoded if isinstance(decoded, dict) else None


@lru_cache(maxsize=1)
def get_csrf_service() -> CsrfTokenService:
    """Return the process-wide CSRF service."""
    return CsrfTokenService(resolve_csrf_secret(settings), ttl_ms=settings.csrf_token_ttl_ms)

# src/donotghostme/core/security.py
"""Salted one-way hashing of client addresses.

No component of the service stores or logs a raw client address. Every
limiter and quota table is keyed by the HMAC produced here instead.
"""

from __future__ import annotations

import hashlib
import hmac
import ipaddress
import logging
from functools import lru_cache

from donotghostme.core.errors import ConfigurationError, MissingIdentifierError
from donotghostme.core.settings import MIN_SECRET_LENGTH, Settings, settings

logger = logging.getLogger(__name__)

# Only ever used outside production so that local runs do not crash.
DEV_FALLBACK_IP_SALT = "dev-only-ip-salt-never-use-in-production-000000"

UNKNOWN_IP_SENTINEL = "unknown"


def hash_ip(raw_address: str, salt: str) -> str:
    """Return the hex HMAC-SHA256 of a trimmed client address.

    Args:
        raw_address: Client address as extracted by the HTTP layer.
        salt: Secret salt shared by every instance of the service.

    Returns:
        A 64-character lowercase hex digest.

    Raises:
        MissingIdentifierError: If the address is empty after trimming.
    """
    trimmed = raw_address.strip()
    if not trimmed:
        raise MissingIdentifierError("Client address is empty")
    return hmac.new(salt.encode("utf-8"), trimmed.encode("utf-8"), hashlib.sha256).hexdigest()


def resolve_ip_salt(config: Settings) -> str:
    """Return the salt to hash addresses with for the given configuration.

    Raises:
        ConfigurationError: If no usable salt is configured in production.
    """
    configured = (config.rate_limit_ip_salt or "").strip()
    if len(configured) >= MIN_SECRET_LENGTH:
        return configured

    if config.is_production:
        raise ConfigurationError(
            f"RATE_LIMIT_IP_SALT must be at least {MIN_SECRET_LENGTH} characters in production."
        )

    logger.warning(
        "RATE_LIMIT_IP_SALT is missing or too short; using the development fallback salt",
        extra={"app_env": config.app_env},
    )
    return DEV_FALLBACK_IP_SALT


def is_missing_ip(raw_address: str | None) -> bool:
    """Return True for absent, blank or sentinel client addresses."""
    if raw_address is None:
        return True
    trimmed = raw_address.strip()
    return not trimmed or trimmed.lower() == UNKNOWN_IP_SENTINEL


def parse_ip(raw_address: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Parse a client address, returning None when it is not a valid IP literal."""
    try:
        return ipaddress.ip_address(raw_address.strip())
    except ValueError:
        return None


class IpHasher:
    """Callable wrapper binding :func:`hash_ip` to a fixed salt."""

    def __init__(self, salt: str) -> None:
        if not salt:
            raise ConfigurationError("IP hashing salt must not be empty")
        self._salt = salt

    def hash(self, raw_address: str) -> str:
        """Hash a raw client address into an opaque identifier."""
        return hash_ip(raw_address, self._salt)


@lru_cache(maxsize=1)
def get_ip_hasher() -> IpHasher:
    """Return the process-wide hasher built from settings."""
    return IpHasher(resolve_ip_salt(settings))

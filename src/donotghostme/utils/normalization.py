# src/donotghostme/utils/normalization.py
"""Canonical forms used for uniqueness and lookups."""

from __future__ import annotations

import unicodedata


def normalize_company_name(raw: str) -> str:
    """Return the canonical company key: NFKC, lower-case, letters and digits only.

    ``"  ACME   Corp "``, ``"Acme-Corp"`` and ``"ACME/CORP"`` all map to
    ``"acmecorp"``. An empty string is returned when nothing usable remains.
    """
    trimmed = raw.strip()
    if not trimmed:
        return ""
    lowered = unicodedata.normalize("NFKC", trimmed).lower()
    return "".join(ch for ch in lowered if unicodedata.category(ch)[0] in "LN")


def normalize_country(raw: str) -> str:
    """Return an upper-case ISO 3166-1 alpha-2 code."""
    return raw.strip().upper()

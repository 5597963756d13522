"""Tests for company name and country normalization."""

from __future__ import annotations

import pytest

from donotghostme.utils.normalization import normalize_company_name, normalize_country


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  ACME   Corp ", "acmecorp"),
        ("Acme-Corp", "acmecorp"),
        ("ACME/CORP", "acmecorp"),
        ("Ｆｕｌｌｗｉｄｔｈ", "fullwidth"),
        ("Zürich Versicherung", "zürichversicherung"),
        ("3M", "3m"),
        ("   ", ""),
        ("&&&", ""),
    ],
)
def test_normalize_company_name(raw: str, expected: str) -> None:
    assert normalize_company_name(raw) == expected


def test_normalize_country() -> None:
    assert normalize_country(" de ") == "DE"

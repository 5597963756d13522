"""Tests for correlation ID derivation."""

from __future__ import annotations

import uuid

import pytest

from donotghostme.core.correlation import derive_correlation_id

VALID_ID = "3f2b8c1e-9d4a-4b7e-8f60-1a2b3c4d5e6f"


def test_valid_id_is_kept() -> None:
    assert derive_correlation_id(VALID_ID) == VALID_ID


def test_uppercase_id_is_lowercased() -> None:
    assert derive_correlation_id(VALID_ID.upper()) == VALID_ID


@pytest.mark.parametrize(
    "value",
    [
        None,
        "",
        f" {VALID_ID}",
        f"{VALID_ID}\n",
        f"{VALID_ID},{VALID_ID}",
        "3f2b8c1e-9d4a-1b7e-8f60-1a2b3c4d5e6f",  # version 1
        "3f2b8c1e9d4a4b7e8f601a2b3c4d5e6f",
    ],
)
def test_unacceptable_values_are_replaced(value: str | None) -> None:
    derived = derive_correlation_id(value)

    assert derived != value
    assert uuid.UUID(derived).version == 4

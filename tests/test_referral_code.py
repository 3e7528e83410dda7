"""Unit tests for student referral code generation."""

import re

import pytest

from app.referrals.codes import generate_referral_code, normalize_referral_code


def test_referral_code_format() -> None:
    """Code must be 8 uppercase alphanumeric characters."""
    code = generate_referral_code()
    assert len(code) == 8
    assert re.match(r"^[A-Z0-9]{8}$", code)


def test_custom_length() -> None:
    assert len(generate_referral_code(12)) == 12


def test_non_positive_length_rejected() -> None:
    with pytest.raises(ValueError):
        generate_referral_code(0)


def test_referral_code_uniqueness_random_part() -> None:
    """Multiple calls produce different codes."""
    codes = {generate_referral_code() for _ in range(20)}
    # 36^8 possibilities; 20 calls should never all collide
    assert len(codes) >= 19


def test_normalize_strips_and_uppercases() -> None:
    assert normalize_referral_code("  abc123 ") == "ABC123"
    assert normalize_referral_code("") == ""
    assert normalize_referral_code(None) == ""

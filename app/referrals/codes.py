"""
Student referral code generation.
Unique per student; 8 uppercase alphanumeric characters, e.g. K7QX2M9A.
"""

import secrets
import string

REFERRAL_CODE_LENGTH = 8
REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    """
    Generate a random referral code.

    Uniqueness is enforced by the referrals table; callers retry on collision.
    Production-safe: uses secrets for the random part.
    """
    if length < 1:
        raise ValueError("Referral code length must be positive")
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def normalize_referral_code(code: str) -> str:
    return (code or "").strip().upper()

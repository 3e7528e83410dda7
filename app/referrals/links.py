from typing import Optional

from app.core.config import settings


def format_referral_link(referral_code: str, base_url: Optional[str] = None) -> str:
    """
    Build the shareable registration URL for a referral code.

    Falls back to the configured FRONTEND_URL when no base URL is given.
    An empty code is not rejected; callers supply a valid one.
    """
    base = (base_url or settings.frontend_url).rstrip("/")
    return f"{base}/register?ref={referral_code or ''}"

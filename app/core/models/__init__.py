from app.core.models.referral import Referral
from app.core.models.referral_usage import ReferralUsage

__all__ = [
    "Referral",
    "ReferralUsage",
]

"""
One row per referral event (an application registered with a referral code).
Status moves PENDING -> SUCCESSFUL | FAILED exactly once.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from app.core.enums import ReferralStatus
from app.db.session import Base


class ReferralUsage(Base):
    """
    Records that an application was submitted using a student's referral code.
    One application can appear only once.
    """

    __tablename__ = "referral_usage"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    referral_id = Column(Uuid(as_uuid=True), ForeignKey("referrals.id", ondelete="CASCADE"), nullable=False, index=True)
    referral_code = Column(String(20), nullable=False, index=True)
    application_id = Column(Uuid(as_uuid=True), nullable=False, unique=True)
    referred_student_id = Column(Uuid(as_uuid=True), nullable=True)
    referred_name = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=ReferralStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    referral = relationship("Referral", back_populates="usages")

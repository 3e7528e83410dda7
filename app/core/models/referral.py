"""
Referral ledger: one row per referring student.
Counters are only changed through the ledger transitions in app.referrals.ledger.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import relationship, validates

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Referral(Base):
    """
    Aggregate referral counters and earnings for one student.
    failed_referrals is derived, never stored.
    """

    __tablename__ = "referrals"
    __table_args__ = (
        Index("ix_referrals_total_earnings", "total_earnings"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), nullable=False, unique=True)
    referral_code = Column(String(20), nullable=False, unique=True)
    total_referrals = Column(Integer, nullable=False, default=0)
    pending_referrals = Column(Integer, nullable=False, default=0)
    successful_referrals = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    last_referral_date = Column(DateTime(timezone=True), nullable=True)
    # Optimistic concurrency: bumped on every UPDATE, stale writes raise StaleDataError
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    usages = relationship("ReferralUsage", back_populates="referral", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}

    @validates("referral_code")
    def _normalize_code(self, key, value):
        return value.strip().upper() if value else value

    @property
    def failed_referrals(self) -> int:
        return (self.total_referrals or 0) - (self.pending_referrals or 0) - (self.successful_referrals or 0)

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import ApplicationOutcome, ReferralStatus


class ReferralResponse(BaseModel):
    id: UUID
    student_id: UUID
    referral_code: str
    referral_link: str
    total_referrals: int
    pending_referrals: int
    successful_referrals: int
    failed_referrals: int
    total_earnings: int
    is_active: bool
    last_referral_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class RecentReferral(BaseModel):
    application_id: UUID
    name: str
    status: ReferralStatus
    date: datetime


class ReferralSummaryResponse(ReferralResponse):
    recent_referrals: List[RecentReferral] = Field(default_factory=list)


class TrackReferralRequest(BaseModel):
    """Sent by the registration workflow when an application carries a referral code."""

    referral_code: str = Field(..., min_length=1, max_length=20)
    application_id: UUID
    referred_student_id: Optional[UUID] = None
    referred_name: Optional[str] = Field(None, max_length=255)


class TrackReferralResponse(BaseModel):
    tracked: bool
    referral_code: str
    application_id: UUID
    status: Optional[ReferralStatus] = None
    message: str


class UpdateReferralStatusRequest(BaseModel):
    """Final enrollment decision for a referred application."""

    application_id: UUID
    new_status: ApplicationOutcome = Field(..., description="ENROLLED credits the referrer; REJECTED fails the referral")


class UpdateReferralStatusResponse(BaseModel):
    referral_code: str
    application_id: UUID
    new_status: ReferralStatus
    total_earnings: int


class ReferralActiveUpdate(BaseModel):
    is_active: bool


class TopReferrer(BaseModel):
    student_id: UUID
    referral_code: str
    successful_referrals: int
    total_earnings: int


class ReferralStatsResponse(BaseModel):
    total_referrers: int
    total_successful: int
    total_earnings: int
    top_referrers: List[TopReferrer]

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import require_admin, require_student
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    ReferralActiveUpdate,
    ReferralResponse,
    ReferralStatsResponse,
    ReferralSummaryResponse,
    TrackReferralRequest,
    TrackReferralResponse,
    UpdateReferralStatusRequest,
    UpdateReferralStatusResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/referrals", tags=["referrals"])


# ----- Student -----

@router.post("/code", response_model=ReferralResponse)
async def generate_referral_code(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_student),
) -> ReferralResponse:
    """Return the caller's referral code, issuing one on first use."""
    try:
        return await service.get_referral_code(db, current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/me", response_model=ReferralSummaryResponse)
async def get_referral_data(
    recent_limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_student),
) -> ReferralSummaryResponse:
    """Referral counters, earnings, shareable link and recent referrals for the caller."""
    try:
        return await service.get_referral_summary(db, current_user.id, recent_limit=recent_limit)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Registration / verification workflows -----

@router.post("/track", response_model=TrackReferralResponse)
async def track_referral(
    payload: TrackReferralRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> TrackReferralResponse:
    """Count a new application against the referrer owning the code (status PENDING)."""
    try:
        return await service.track_referral(
            db,
            payload.referral_code,
            payload.application_id,
            referred_student_id=payload.referred_student_id,
            referred_name=payload.referred_name,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/status", response_model=UpdateReferralStatusResponse)
async def update_referral_status(
    payload: UpdateReferralStatusRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> UpdateReferralStatusResponse:
    """Resolve a referred application: ENROLLED credits the referrer, REJECTED fails the referral."""
    try:
        return await service.resolve_referral(db, payload.application_id, payload.new_status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Admin -----

@router.patch("/{student_id}/active", response_model=ReferralResponse)
async def set_referral_active(
    student_id: UUID,
    payload: ReferralActiveUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> ReferralResponse:
    try:
        return await service.set_referral_active(db, student_id, payload.is_active)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/stats", response_model=ReferralStatsResponse)
async def get_referral_stats(
    top_limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> ReferralStatsResponse:
    """Platform-wide referral totals and top earners."""
    try:
        return await service.get_referral_stats(db, top_limit=top_limit)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

"""Referral ledger service: code issuance, event tracking, outcome resolution and stats."""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ApplicationOutcome, ReferralStatus
from app.core.exceptions import DuplicateReferralError, InvalidTransitionError, NotFoundError, StorageError
from app.core.models import Referral
from app.referrals import ledger
from app.referrals.codes import generate_referral_code, normalize_referral_code
from app.referrals.ledger import LedgerEffect, LedgerState, LedgerTransition
from app.referrals.links import format_referral_link
from app.referrals.store import ReferralStore

from .schemas import (
    RecentReferral,
    ReferralResponse,
    ReferralStatsResponse,
    ReferralSummaryResponse,
    TopReferrer,
    TrackReferralResponse,
    UpdateReferralStatusResponse,
)

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5

OUTCOME_TO_STATUS = {
    ApplicationOutcome.ENROLLED: ReferralStatus.SUCCESSFUL,
    ApplicationOutcome.REJECTED: ReferralStatus.FAILED,
}


def _referral_to_response(r: Referral) -> ReferralResponse:
    return ReferralResponse(
        id=r.id,
        student_id=r.student_id,
        referral_code=r.referral_code,
        referral_link=format_referral_link(r.referral_code),
        total_referrals=r.total_referrals,
        pending_referrals=r.pending_referrals,
        successful_referrals=r.successful_referrals,
        failed_referrals=r.failed_referrals,
        total_earnings=r.total_earnings,
        is_active=r.is_active,
        last_referral_date=r.last_referral_date,
    )


async def _commit_transition(db: AsyncSession, record: Referral, transition: LedgerTransition) -> Referral:
    transition.state.apply_to(record)
    code = record.referral_code
    saved = record
    if LedgerEffect.PERSIST in transition.effects:
        saved = await ReferralStore(db).save(record)
    if LedgerEffect.REWARD_CREDITED in transition.effects:
        logger.info("Referral reward of %s credited to %s", ledger.REFERRAL_REWARD, code)
    if LedgerEffect.REFERRAL_FAILED in transition.effects:
        logger.info("Pending referral for %s resolved as failed", code)
    return saved


# ----- Ledger operations -----

async def add_referral(
    db: AsyncSession,
    record: Referral,
    status: ReferralStatus = ReferralStatus.PENDING,
) -> Referral:
    """
    Record one new referral event on the referrer's ledger and persist it.
    Not complete until the save succeeds; StorageError propagates to the caller.
    Callers must not call this twice for the same referral event.
    """
    transition = ledger.add_referral(LedgerState.from_record(record), status)
    return await _commit_transition(db, record, transition)


async def update_referral_status(
    db: AsyncSession,
    record: Referral,
    old_status: ReferralStatus,
    new_status: ReferralStatus,
) -> Referral:
    """
    Apply a status change to the ledger and persist it.
    Unrecognized pairs change nothing but are still saved.
    """
    if not ledger.is_recognized_transition(old_status, new_status):
        logger.warning(
            "Ignoring referral transition %s -> %s for %s",
            getattr(old_status, "value", old_status),
            getattr(new_status, "value", new_status),
            record.referral_code,
        )
    transition = ledger.update_referral_status(LedgerState.from_record(record), old_status, new_status)
    return await _commit_transition(db, record, transition)


# ----- Student-facing -----

async def get_or_create_referral(db: AsyncSession, student_id: UUID) -> Referral:
    """Return the student's ledger, issuing a fresh referral code on first use."""
    store = ReferralStore(db)
    record = await store.find_by_student_id(student_id)
    if record is not None:
        return record

    for attempt in range(MAX_CODE_ATTEMPTS):
        try:
            record = await store.create(student_id, generate_referral_code())
        except IntegrityError:
            # Either the code collided or another request created this student's ledger
            existing = await store.find_by_student_id(student_id)
            if existing is not None:
                return existing
            logger.info("Referral code collision for student %s (attempt %d)", student_id, attempt + 1)
            continue
        logger.info("Issued referral code %s to student %s", record.referral_code, student_id)
        return record

    raise StorageError("Could not generate unique referral code after retries")


async def get_referral_code(db: AsyncSession, student_id: UUID) -> ReferralResponse:
    return _referral_to_response(await get_or_create_referral(db, student_id))


async def get_referral_summary(
    db: AsyncSession,
    student_id: UUID,
    recent_limit: int = 10,
) -> ReferralSummaryResponse:
    """Ledger counters, shareable link and the most recent referral events."""
    record = await get_or_create_referral(db, student_id)
    usages = await ReferralStore(db).recent_usages(record, limit=recent_limit)
    base = _referral_to_response(record)
    return ReferralSummaryResponse(
        **base.model_dump(),
        recent_referrals=[
            RecentReferral(
                application_id=u.application_id,
                name=u.referred_name or "N/A",
                status=ReferralStatus(u.status),
                date=u.created_at,
            )
            for u in usages
        ],
    )


# ----- Registration / verification workflows -----

async def track_referral(
    db: AsyncSession,
    referral_code: str,
    application_id: UUID,
    *,
    referred_student_id: Optional[UUID] = None,
    referred_name: Optional[str] = None,
) -> TrackReferralResponse:
    """
    Link a new application to the referrer owning referral_code and count it as PENDING.
    Raises NotFoundError for an unknown code. An inactive ledger is treated as "no referrer".
    """
    code = normalize_referral_code(referral_code)
    store = ReferralStore(db)
    record = await store.get_by_referral_code(code)

    if not record.is_active:
        logger.info("Referral code %s is inactive; application %s not credited", code, application_id)
        return TrackReferralResponse(
            tracked=False,
            referral_code=code,
            application_id=application_id,
            message="Referral code is no longer active",
        )

    if await store.find_usage_by_application(application_id) is not None:
        raise DuplicateReferralError()

    store.add_usage(
        record,
        application_id,
        referred_student_id=referred_student_id,
        referred_name=referred_name,
    )
    try:
        await add_referral(db, record, ReferralStatus.PENDING)
    except IntegrityError:
        # Another request linked this application between the check above and the insert
        logger.info("Application %s was linked to a referral concurrently", application_id)
        raise DuplicateReferralError()
    logger.info("Tracked referral %s for application %s", code, application_id)
    return TrackReferralResponse(
        tracked=True,
        referral_code=code,
        application_id=application_id,
        status=ReferralStatus.PENDING,
        message="Referral tracked successfully",
    )


async def resolve_referral(
    db: AsyncSession,
    application_id: UUID,
    outcome: ApplicationOutcome,
) -> UpdateReferralStatusResponse:
    """
    Apply the final enrollment decision for a referred application.
    The stored event status is the old status, so a referral resolves at most once.
    A deactivated ledger is never credited: only the REJECTED outcome is accepted for it.
    """
    try:
        outcome = ApplicationOutcome(outcome)
    except ValueError:
        raise InvalidTransitionError(f"Unsupported application status: {outcome!r}")
    new_status = OUTCOME_TO_STATUS[outcome]

    store = ReferralStore(db)
    usage = await store.find_usage_by_application(application_id)
    if usage is None:
        raise NotFoundError("Application not found or not referred")
    old_status = ReferralStatus(usage.status)
    if not ledger.is_recognized_transition(old_status, new_status):
        raise InvalidTransitionError(
            f"Referral for this application is already {old_status.value}"
        )

    record = await store.get_by_referral_code(usage.referral_code)
    if not record.is_active and new_status == ReferralStatus.SUCCESSFUL:
        logger.info("Referral code %s is inactive; enrollment of %s not credited", record.referral_code, application_id)
        raise InvalidTransitionError(
            "Referral code is no longer active; the referral can only be rejected"
        )
    usage.status = new_status.value
    usage.resolved_at = datetime.now(timezone.utc)
    record = await update_referral_status(db, record, old_status, new_status)
    return UpdateReferralStatusResponse(
        referral_code=record.referral_code,
        application_id=application_id,
        new_status=new_status,
        total_earnings=record.total_earnings,
    )


# ----- Admin -----

async def set_referral_active(db: AsyncSession, student_id: UUID, is_active: bool) -> ReferralResponse:
    """Soft (de)activation; an inactive ledger receives no new referral events."""
    store = ReferralStore(db)
    record = await store.get_by_student_id(student_id)
    record.is_active = is_active
    record = await store.save(record)
    logger.info("Referral %s active=%s", record.referral_code, is_active)
    return _referral_to_response(record)


async def get_referral_stats(db: AsyncSession, top_limit: int = 10) -> ReferralStatsResponse:
    store = ReferralStore(db)
    count, successful, earnings = await store.totals()
    top = await store.top_earners(limit=top_limit)
    return ReferralStatsResponse(
        total_referrers=count,
        total_successful=successful,
        total_earnings=earnings,
        top_referrers=[
            TopReferrer(
                student_id=r.student_id,
                referral_code=r.referral_code,
                successful_referrals=r.successful_referrals,
                total_earnings=r.total_earnings,
            )
            for r in top
        ],
    )

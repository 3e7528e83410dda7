"""Persistence boundary for referral ledgers and referral events."""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.enums import ReferralStatus
from app.core.exceptions import ConcurrentUpdateError, NotFoundError, StorageError
from app.core.models import Referral, ReferralUsage
from app.referrals.codes import normalize_referral_code

logger = logging.getLogger(__name__)


class ReferralStore:
    """Keyed access to Referral rows by student and by code, plus referral events."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_student_id(self, student_id: UUID) -> Optional[Referral]:
        result = await self.db.execute(select(Referral).where(Referral.student_id == student_id))
        return result.scalar_one_or_none()

    async def find_by_referral_code(self, referral_code: str) -> Optional[Referral]:
        code = normalize_referral_code(referral_code)
        if not code:
            return None
        result = await self.db.execute(select(Referral).where(Referral.referral_code == code))
        return result.scalar_one_or_none()

    async def get_by_student_id(self, student_id: UUID) -> Referral:
        record = await self.find_by_student_id(student_id)
        if record is None:
            raise NotFoundError("No referral record for this student")
        return record

    async def get_by_referral_code(self, referral_code: str) -> Referral:
        record = await self.find_by_referral_code(referral_code)
        if record is None:
            raise NotFoundError("Invalid referral code")
        return record

    async def create(self, student_id: UUID, referral_code: str) -> Referral:
        """
        Insert a fresh ledger with zeroed counters.
        IntegrityError (code or student already taken) is left to the caller, which retries.
        """
        record = Referral(
            student_id=student_id,
            referral_code=referral_code,
            total_referrals=0,
            pending_referrals=0,
            successful_referrals=0,
            total_earnings=0,
            is_active=True,
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to create referral record for student %s", student_id)
            raise StorageError(f"Failed to create referral record: {e}") from e
        await self.db.refresh(record)
        return record

    async def save(self, record: Referral) -> Referral:
        """Commit pending changes on the record (and anything else in the session)."""
        # rollback expires the instance, so capture the key up front
        record_id = record.id
        self.db.add(record)
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning("Concurrent update detected on referral %s", record_id)
            raise ConcurrentUpdateError() from e
        except IntegrityError:
            # Unique key clash on a staged row; callers map it to their own conflict error
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to save referral %s", record_id)
            raise StorageError(f"Failed to persist referral record: {e}") from e
        await self.db.refresh(record)
        return record

    # ----- Referral events -----

    async def find_usage_by_application(self, application_id: UUID) -> Optional[ReferralUsage]:
        result = await self.db.execute(
            select(ReferralUsage).where(ReferralUsage.application_id == application_id)
        )
        return result.scalar_one_or_none()

    def add_usage(
        self,
        record: Referral,
        application_id: UUID,
        *,
        referred_student_id: Optional[UUID] = None,
        referred_name: Optional[str] = None,
        status: ReferralStatus = ReferralStatus.PENDING,
    ) -> ReferralUsage:
        """Stage a referral event row. Written by the next save()."""
        usage = ReferralUsage(
            referral_id=record.id,
            referral_code=record.referral_code,
            application_id=application_id,
            referred_student_id=referred_student_id,
            referred_name=referred_name,
            status=status.value,
        )
        self.db.add(usage)
        return usage

    async def recent_usages(self, record: Referral, limit: int = 10) -> List[ReferralUsage]:
        result = await self.db.execute(
            select(ReferralUsage)
            .where(ReferralUsage.referral_id == record.id)
            .order_by(ReferralUsage.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ----- Reporting -----

    async def top_earners(self, limit: int = 10) -> List[Referral]:
        result = await self.db.execute(
            select(Referral)
            .order_by(Referral.total_earnings.desc(), Referral.successful_referrals.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def totals(self) -> Tuple[int, int, int]:
        """Return (ledger count, sum of successful referrals, sum of earnings)."""
        result = await self.db.execute(
            select(
                func.count(Referral.id),
                func.coalesce(func.sum(Referral.successful_referrals), 0),
                func.coalesce(func.sum(Referral.total_earnings), 0),
            )
        )
        count, successful, earnings = result.one()
        return int(count), int(successful), int(earnings)

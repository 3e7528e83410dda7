"""
Referral ledger transitions.

Pure functions over an immutable LedgerState. Each transition returns the new
state plus the effects the caller must carry out (persisting the record is
always one of them). Nothing here touches the database.

Recognized transitions:
    add_referral(PENDING)            total +1, pending +1
    add_referral(SUCCESSFUL)         total +1, successful +1, earnings +REFERRAL_REWARD
    PENDING -> SUCCESSFUL            pending -1, successful +1, earnings +REFERRAL_REWARD
    PENDING -> FAILED                pending -1
Any other status pair passed to update_referral_status leaves the counters
untouched but is still persisted.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Tuple

from app.core.enums import ReferralStatus
from app.core.exceptions import InvalidTransitionError

# Currency units credited once per referral reaching SUCCESSFUL
REFERRAL_REWARD = 500

INITIAL_STATUSES = (ReferralStatus.PENDING, ReferralStatus.SUCCESSFUL)

RECOGNIZED_TRANSITIONS = {
    (ReferralStatus.PENDING, ReferralStatus.SUCCESSFUL),
    (ReferralStatus.PENDING, ReferralStatus.FAILED),
}


class LedgerEffect(str, Enum):
    PERSIST = "PERSIST"
    REWARD_CREDITED = "REWARD_CREDITED"
    REFERRAL_FAILED = "REFERRAL_FAILED"


@dataclass(frozen=True)
class LedgerState:
    total_referrals: int = 0
    pending_referrals: int = 0
    successful_referrals: int = 0
    total_earnings: int = 0
    last_referral_date: Optional[datetime] = None

    @property
    def failed_referrals(self) -> int:
        return self.total_referrals - self.pending_referrals - self.successful_referrals

    @classmethod
    def from_record(cls, record: Any) -> "LedgerState":
        """Snapshot the counters of a Referral ORM row (or any object with the same attributes)."""
        return cls(
            total_referrals=record.total_referrals or 0,
            pending_referrals=record.pending_referrals or 0,
            successful_referrals=record.successful_referrals or 0,
            total_earnings=record.total_earnings or 0,
            last_referral_date=_as_utc(record.last_referral_date),
        )

    def apply_to(self, record: Any) -> None:
        """Write the counters back onto a Referral ORM row."""
        record.total_referrals = self.total_referrals
        record.pending_referrals = self.pending_referrals
        record.successful_referrals = self.successful_referrals
        record.total_earnings = self.total_earnings
        record.last_referral_date = self.last_referral_date


@dataclass(frozen=True)
class LedgerTransition:
    state: LedgerState
    effects: Tuple[LedgerEffect, ...]

    @property
    def credited(self) -> bool:
        return LedgerEffect.REWARD_CREDITED in self.effects


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; they were written as UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _coerce_status(value) -> ReferralStatus:
    try:
        return ReferralStatus(value)
    except ValueError:
        raise InvalidTransitionError(f"Unknown referral status: {value!r}")


def is_recognized_transition(old_status, new_status) -> bool:
    """True when update_referral_status would change the counters for this pair."""
    return (_coerce_status(old_status), _coerce_status(new_status)) in RECOGNIZED_TRANSITIONS


def add_referral(
    state: LedgerState,
    status: ReferralStatus = ReferralStatus.PENDING,
    now: Optional[datetime] = None,
) -> LedgerTransition:
    """Record one new referral event. The only path that increases total_referrals."""
    status = _coerce_status(status)
    if status not in INITIAL_STATUSES:
        raise InvalidTransitionError(f"A new referral cannot start as {status.value}")

    now = _as_utc(now) or datetime.now(timezone.utc)
    if state.last_referral_date is not None and now < state.last_referral_date:
        now = state.last_referral_date

    effects = [LedgerEffect.PERSIST]
    new_state = replace(state, total_referrals=state.total_referrals + 1, last_referral_date=now)
    if status == ReferralStatus.PENDING:
        new_state = replace(new_state, pending_referrals=new_state.pending_referrals + 1)
    else:
        new_state = replace(
            new_state,
            successful_referrals=new_state.successful_referrals + 1,
            total_earnings=new_state.total_earnings + REFERRAL_REWARD,
        )
        effects.append(LedgerEffect.REWARD_CREDITED)
    return LedgerTransition(state=new_state, effects=tuple(effects))


def update_referral_status(state: LedgerState, old_status, new_status) -> LedgerTransition:
    """
    Resolve a pending referral. Callers must pass the referral's true current status
    as old_status; the counters alone cannot verify it.
    """
    old_status = _coerce_status(old_status)
    new_status = _coerce_status(new_status)

    if old_status == ReferralStatus.PENDING and new_status == ReferralStatus.SUCCESSFUL:
        new_state = replace(
            state,
            pending_referrals=state.pending_referrals - 1,
            successful_referrals=state.successful_referrals + 1,
            total_earnings=state.total_earnings + REFERRAL_REWARD,
        )
        return LedgerTransition(new_state, (LedgerEffect.PERSIST, LedgerEffect.REWARD_CREDITED))

    if old_status == ReferralStatus.PENDING and new_status == ReferralStatus.FAILED:
        new_state = replace(state, pending_referrals=state.pending_referrals - 1)
        return LedgerTransition(new_state, (LedgerEffect.PERSIST, LedgerEffect.REFERRAL_FAILED))

    return LedgerTransition(state, (LedgerEffect.PERSIST,))

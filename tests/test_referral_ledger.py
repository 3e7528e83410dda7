"""Unit tests for the pure referral ledger transitions."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.core.enums import ReferralStatus
from app.core.exceptions import InvalidTransitionError
from app.referrals import ledger
from app.referrals.ledger import REFERRAL_REWARD, LedgerEffect, LedgerState

PENDING = ReferralStatus.PENDING
SUCCESSFUL = ReferralStatus.SUCCESSFUL
FAILED = ReferralStatus.FAILED


def _counters(state: LedgerState):
    return (
        state.total_referrals,
        state.pending_referrals,
        state.successful_referrals,
        state.total_earnings,
    )


@pytest.mark.parametrize("n", [1, 3, 10])
def test_pending_referrals_accumulate(n: int) -> None:
    state = LedgerState()
    for _ in range(n):
        state = ledger.add_referral(state, PENDING).state
    assert _counters(state) == (n, n, 0, 0)


def test_direct_success_credits_reward() -> None:
    start = LedgerState(total_referrals=2, pending_referrals=1, successful_referrals=1, total_earnings=500)
    transition = ledger.add_referral(start, SUCCESSFUL)
    assert transition.state.total_earnings == start.total_earnings + REFERRAL_REWARD
    assert transition.state.successful_referrals == start.successful_referrals + 1
    assert transition.state.pending_referrals == start.pending_referrals
    assert transition.credited
    assert LedgerEffect.PERSIST in transition.effects


def test_add_referral_defaults_to_pending() -> None:
    transition = ledger.add_referral(LedgerState())
    assert _counters(transition.state) == (1, 1, 0, 0)
    assert transition.effects == (LedgerEffect.PERSIST,)


def test_failed_is_not_a_valid_initial_status() -> None:
    with pytest.raises(InvalidTransitionError):
        ledger.add_referral(LedgerState(), FAILED)


def test_unknown_status_string_rejected() -> None:
    with pytest.raises(InvalidTransitionError):
        ledger.add_referral(LedgerState(), "ENROLLED")


def test_pending_to_successful() -> None:
    start = LedgerState(total_referrals=1, pending_referrals=1)
    transition = ledger.update_referral_status(start, PENDING, SUCCESSFUL)
    assert transition.state.pending_referrals == 0
    assert transition.state.successful_referrals == 1
    assert transition.state.total_earnings == 500
    assert transition.effects == (LedgerEffect.PERSIST, LedgerEffect.REWARD_CREDITED)


def test_pending_to_failed() -> None:
    start = LedgerState(total_referrals=1, pending_referrals=1)
    transition = ledger.update_referral_status(start, PENDING, FAILED)
    assert transition.state.pending_referrals == 0
    assert transition.state.successful_referrals == 0
    assert transition.state.total_earnings == 0
    assert transition.state.failed_referrals == 1
    assert transition.effects == (LedgerEffect.PERSIST, LedgerEffect.REFERRAL_FAILED)


@pytest.mark.parametrize(
    "old, new",
    [
        (SUCCESSFUL, PENDING),
        (SUCCESSFUL, FAILED),
        (FAILED, SUCCESSFUL),
        (PENDING, PENDING),
        (SUCCESSFUL, SUCCESSFUL),
    ],
)
def test_unrecognized_transition_is_noop_but_persisted(old, new) -> None:
    start = LedgerState(total_referrals=3, pending_referrals=1, successful_referrals=1, total_earnings=500)
    transition = ledger.update_referral_status(start, old, new)
    assert transition.state == start
    assert transition.effects == (LedgerEffect.PERSIST,)
    assert not ledger.is_recognized_transition(old, new)


def test_status_strings_are_accepted() -> None:
    transition = ledger.update_referral_status(LedgerState(1, 1, 0, 0), "PENDING", "SUCCESSFUL")
    assert transition.state.successful_referrals == 1


def test_add_referral_sets_timestamp() -> None:
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    state = ledger.add_referral(LedgerState(), PENDING, now=now).state
    assert state.last_referral_date == now

    later = now + timedelta(minutes=5)
    assert ledger.add_referral(state, PENDING, now=later).state.last_referral_date == later


def test_timestamp_never_moves_backwards() -> None:
    previous = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    state = LedgerState(last_referral_date=previous)
    earlier = previous - timedelta(hours=1)
    assert ledger.add_referral(state, PENDING, now=earlier).state.last_referral_date >= previous


def test_timestamp_defaults_to_now() -> None:
    before = datetime.now(timezone.utc)
    state = ledger.add_referral(LedgerState(), PENDING).state
    assert state.last_referral_date >= before


def test_input_state_is_not_mutated() -> None:
    start = LedgerState()
    ledger.add_referral(start, SUCCESSFUL)
    assert _counters(start) == (0, 0, 0, 0)


def test_lifecycle_scenario() -> None:
    state = LedgerState()
    state = ledger.add_referral(state, PENDING).state
    assert _counters(state) == (1, 1, 0, 0)
    state = ledger.update_referral_status(state, PENDING, SUCCESSFUL).state
    assert _counters(state) == (1, 0, 1, 500)
    state = ledger.add_referral(state, PENDING).state
    assert _counters(state) == (2, 1, 1, 500)
    state = ledger.update_referral_status(state, PENDING, FAILED).state
    assert _counters(state) == (2, 0, 1, 500)
    assert state.failed_referrals == 1
    assert state.total_referrals == state.pending_referrals + state.successful_referrals + state.failed_referrals


def test_state_round_trips_through_record() -> None:
    naive = datetime(2026, 1, 2, 3, 4, 5)
    record = SimpleNamespace(
        total_referrals=4,
        pending_referrals=2,
        successful_referrals=1,
        total_earnings=500,
        last_referral_date=naive,
    )
    state = LedgerState.from_record(record)
    # naive values from the database are read as UTC
    assert state.last_referral_date == naive.replace(tzinfo=timezone.utc)

    new_state = ledger.update_referral_status(state, PENDING, SUCCESSFUL).state
    new_state.apply_to(record)
    assert (record.pending_referrals, record.successful_referrals, record.total_earnings) == (1, 2, 1000)

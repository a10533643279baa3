"""Token services that call back into the ledger during a payout."""

from __future__ import annotations

import pytest

from counter_ledger.errors import ExternalTransferFailure, TransferError, Underflow
from counter_ledger.ledger import EV_COUNTER_INCREMENTED, EV_REWARD_CLAIMED


@pytest.fixture
def funded(make_ledger, reentrant_token, admin, alice):
    ledger = make_ledger(0, token_service=reentrant_token, approve=1000)
    ledger.reset(admin, 1000)
    ledger.increment(alice)
    reentrant_token.ledger = ledger
    return ledger


def test_callback_sees_cleared_escrow(funded, reentrant_token, bob):
    reentrant_token.callback = lambda l: (l.get_counter(), l.get_reward_amount(), l.in_operation)

    funded.decrement(bob)

    assert reentrant_token.observed == [(0, 0, True)]
    assert reentrant_token.balance_of(bob) == 1000


def test_reentrant_decrement_cannot_claim_twice(funded, reentrant_token, bob):
    reentrant_token.callback = lambda l: l.decrement(bob)

    assert funded.decrement(bob) == 0

    assert len(reentrant_token.errors) == 1
    assert isinstance(reentrant_token.errors[0], Underflow)
    assert reentrant_token.balance_of(bob) == 1000
    assert reentrant_token.balance_of(funded.address) == 0
    assert [e.name for e in funded.events].count(EV_REWARD_CLAIMED) == 1


def test_reentrant_error_escaping_fails_the_outer_call(funded, reentrant_token, bob):
    reentrant_token.callback = lambda l: l.decrement(bob)
    reentrant_token.swallow = False

    with pytest.raises(ExternalTransferFailure) as ei:
        funded.decrement(bob)

    assert isinstance(ei.value.__cause__, Underflow)
    assert funded.get_counter() == 1
    assert funded.get_reward_amount() == 1000
    assert reentrant_token.balance_of(bob) == 0


def test_reentrant_increment_commits_with_outer_call(funded, reentrant_token, bob):
    published = len(funded.events)
    reentrant_token.callback = lambda l: (l.increment(bob), len(l.events))

    funded.decrement(bob)

    # Nothing is published while the outer call is still running.
    assert reentrant_token.observed == [(1, published)]
    assert funded.get_counter() == 1
    names = [e.name for e in funded.events[published:]]
    assert EV_COUNTER_INCREMENTED in names
    assert names[-1] == EV_REWARD_CLAIMED


def test_reentrant_increment_rolls_back_with_outer_failure(funded, reentrant_token, bob):
    published = len(funded.events)

    def bump_then_fail(l):
        l.increment(bob)
        raise TransferError("callback gave up")

    reentrant_token.callback = bump_then_fail

    with pytest.raises(ExternalTransferFailure) as ei:
        funded.decrement(bob)

    assert ei.value.data["reason"] == "callback gave up"
    assert funded.get_counter() == 1
    assert funded.get_reward_amount() == 1000
    assert len(funded.events) == published
    assert not funded.in_operation

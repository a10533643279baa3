"""Property checks over random call sequences."""

from __future__ import annotations

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from counter_ledger import (CounterLedger, InMemoryTokenService, LedgerError,
                            derive_address)
from counter_ledger.config import U32_MAX

ADMIN = derive_address("admin")
PLAYERS = [derive_address(n) for n in ("alice", "bob", "carol")]
FUNDS = 10_000

_settings = settings(max_examples=75, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])

op = st.one_of(
    st.tuples(st.just("increment"), st.sampled_from(PLAYERS)),
    st.tuples(st.just("decrement"), st.sampled_from(PLAYERS)),
    st.tuples(st.just("reset"), st.integers(min_value=0, max_value=2_000)),
)


def _fresh(initial_value=0):
    token = InMemoryTokenService({ADMIN: FUNDS})
    ledger = CounterLedger(ADMIN, token, initial_value=initial_value)
    token.approve(ADMIN, ledger.address, FUNDS)
    return ledger, token


@_settings
@given(st.integers(min_value=1, max_value=U32_MAX))
def test_decrement_then_increment_restores(c):
    ledger, _ = _fresh(c)
    ledger.decrement(PLAYERS[0])
    ledger.increment(PLAYERS[0])
    assert ledger.get_counter() == c


@_settings
@given(st.lists(op, max_size=40))
def test_value_is_conserved_and_state_stays_in_range(ops):
    ledger, token = _fresh(2)
    for name, arg in ops:
        before = (ledger.get_counter(), ledger.get_reward_amount(), len(ledger.events))
        try:
            if name == "reset":
                ledger.reset(ADMIN, arg)
            else:
                getattr(ledger, name)(arg)
        except LedgerError:
            # A failed call leaves no trace.
            assert (ledger.get_counter(), ledger.get_reward_amount(), len(ledger.events)) == before
        assert 0 <= ledger.get_counter() <= U32_MAX
        assert not ledger.in_operation

    assert token.total_supply() == FUNDS
    # Custody always covers the live escrow.
    assert token.balance_of(ledger.address) >= ledger.get_reward_amount()
    paid = sum(token.balance_of(p) for p in PLAYERS)
    assert paid + token.balance_of(ledger.address) + token.balance_of(ADMIN) == FUNDS

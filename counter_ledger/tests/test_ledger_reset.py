from __future__ import annotations

import pytest

from counter_ledger import Phase
from counter_ledger.config import U256_MAX
from counter_ledger.errors import ExternalTransferFailure, InvalidAmount, Unauthorized
from counter_ledger.ledger import EV_CONTRACT_FUNDED, EV_COUNTER_RESET

from .doubles import ADMIN_FUNDS, state_of


def test_reset_funds_escrow_and_zeroes_counter(make_ledger, token, admin):
    ledger = make_ledger(5, approve=1000)

    assert ledger.reset(admin, 1000) is None

    assert ledger.get_counter() == 0
    assert ledger.get_reward_amount() == 1000
    assert ledger.phase is Phase.FUNDED
    assert token.balance_of(admin) == ADMIN_FUNDS - 1000
    assert token.balance_of(ledger.address) == 1000
    assert token.allowance(admin, ledger.address) == 0
    assert [(e.name, e.args) for e in ledger.events] == [
        (EV_COUNTER_RESET, {"value": 0}),
        (EV_CONTRACT_FUNDED, {"amount": 1000}),
    ]


def test_reset_by_non_admin_is_unauthorized(make_ledger, token, admin, alice):
    ledger = make_ledger(5, approve=1000)
    before = state_of(ledger)

    with pytest.raises(Unauthorized) as ei:
        ledger.reset(alice, 1000)

    assert str(ei.value) == "Only admin can reset"
    assert ei.value.code == "UNAUTHORIZED"
    assert ei.value.data == {"caller": "0x" + alice.hex()}
    assert state_of(ledger) == before
    assert token.balance_of(admin) == ADMIN_FUNDS


def test_authorization_is_checked_before_amount(ledger, alice):
    with pytest.raises(Unauthorized):
        ledger.reset(alice, 0)


@pytest.mark.parametrize("amount", [0, -1, True, 1.5, "10"])
def test_reset_rejects_bad_amounts(make_ledger, admin, amount):
    ledger = make_ledger(5, approve=1000)
    before = state_of(ledger)

    with pytest.raises(InvalidAmount) as ei:
        ledger.reset(admin, amount)

    assert ei.value.code == "INVALID_AMOUNT"
    assert state_of(ledger) == before


def test_reset_rejects_amount_beyond_u256(ledger, admin):
    with pytest.raises(InvalidAmount, match="256-bit"):
        ledger.reset(admin, U256_MAX + 1)


def test_reset_without_allowance_fails_and_changes_nothing(make_ledger, token, admin):
    ledger = make_ledger(5)
    before = state_of(ledger)

    with pytest.raises(ExternalTransferFailure) as ei:
        ledger.reset(admin, 1000)

    assert ei.value.data["leg"] == "transfer_from"
    assert ei.value.data["reason"] == "insufficient allowance"
    assert state_of(ledger) == before
    assert token.balance_of(admin) == ADMIN_FUNDS
    assert token.balance_of(ledger.address) == 0


def test_reset_beyond_admin_balance_fails(make_ledger, token, admin):
    ledger = make_ledger(5, approve=ADMIN_FUNDS + 1)

    with pytest.raises(ExternalTransferFailure) as ei:
        ledger.reset(admin, ADMIN_FUNDS + 1)

    assert ei.value.data["reason"] == "insufficient balance"
    assert ledger.get_reward_amount() == 0
    assert ledger.get_counter() == 5


def test_refunding_overwrites_unclaimed_escrow(make_ledger, token, admin):
    ledger = make_ledger(0, approve=1500)
    ledger.reset(admin, 1000)
    ledger.reset(admin, 500)

    assert ledger.get_reward_amount() == 500
    # Both pulls landed in custody; only the latest is claimable.
    assert token.balance_of(ledger.address) == 1500
    funded = [e.args["amount"] for e in ledger.events if e.name == EV_CONTRACT_FUNDED]
    assert funded == [1000, 500]


def test_reset_accepts_hex_admin(make_ledger, admin):
    ledger = make_ledger(3, approve=10)
    ledger.reset("0x" + admin.hex(), 10)
    assert ledger.get_reward_amount() == 10

"""
counter_ledger.ledger — the counter/escrow state machine.

State
-----
- counter        u32, never negative (decrement at zero is rejected)
- admin          immutable identity; the only principal allowed to reset
- reward_amount  u256 escrow paid to whoever decrements the counter to zero

Phases: Idle (reward_amount == 0) and Funded (reward_amount > 0).

Public entrypoints
------------------
- increment(caller=None) -> int
- decrement(caller) -> int
- reset(caller, amount) -> None
- get_counter() -> int
- get_reward_amount() -> int

Records
-------
- b"CounterIncremented" {value}
- b"CounterDecremented" {value}
- b"CounterReset"       {value}
- b"RewardClaimed"      {winner, amount}
- b"ContractFunded"     {amount}

Every state-changing entrypoint runs inside a journal checkpoint: slot writes
and records are staged and only become visible in the committed state/log
when the whole call (including the token call) succeeded. Any exception
reverts the checkpoint. The escrow is cleared before the payout transfer, so
a token that calls back into the ledger sees reward_amount == 0.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional

from .config import U32_MAX, U256_MAX, LedgerConfig, load_config
from .errors import (ExternalTransferFailure, InvalidAmount, Overflow,
                     Unauthorized, Underflow)
from .runtime.context import AddressLike, derive_address, normalize_address, to_hex
from .runtime.events_api import Event, EventSink
from .runtime.journal import Journal
from .token import TokenService

log = logging.getLogger(__name__)

# ---- slots & record names ---------------------------------------------------

SLOT_COUNTER = "counter"
SLOT_REWARD = "reward_amount"

EV_COUNTER_INCREMENTED = b"CounterIncremented"
EV_COUNTER_DECREMENTED = b"CounterDecremented"
EV_COUNTER_RESET = b"CounterReset"
EV_REWARD_CLAIMED = b"RewardClaimed"
EV_CONTRACT_FUNDED = b"ContractFunded"


class Phase(str, Enum):
    IDLE = "Idle"
    FUNDED = "Funded"


def _require_uint(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class CounterLedger:
    """
    Counter with an admin-funded reward for whoever brings it back to zero.

    Parameters
    ----------
    admin : bytes | str
        Identity allowed to call `reset`. Fixed for the ledger's lifetime.
    token : TokenService
        Collaborator used to pull funding from the admin and pay winners.
    initial_value : int, optional
        Starting counter (0..2**32-1). Defaults to the configured value.
        A non-int raises TypeError, a negative value Underflow and a value
        above the range Overflow.
    address : bytes | str, optional
        The ledger's own custody identity. Defaults to the configured address,
        else one derived from the admin.
    config : LedgerConfig, optional
        Overrides `load_config()`.
    """

    def __init__(
        self,
        admin: AddressLike,
        token: TokenService,
        *,
        initial_value: Optional[int] = None,
        address: Optional[AddressLike] = None,
        config: Optional[LedgerConfig] = None,
    ) -> None:
        cfg = config or load_config()
        if not isinstance(token, TokenService):
            raise TypeError("token must provide transfer(...) and transfer_from(...)")

        if initial_value is None:
            initial_value = cfg.initial_value
        if isinstance(initial_value, bool) or not isinstance(initial_value, int):
            raise TypeError(f"initial_value must be an int, got {type(initial_value).__name__}")
        if initial_value < 0:
            raise Underflow("initial value must be non-negative", data={"initial_value": initial_value})
        if initial_value > U32_MAX:
            raise Overflow(data={"initial_value": initial_value})

        self._admin = normalize_address(admin)
        if address is None:
            address = cfg.address or derive_address(b"ledger|" + self._admin)
        self._address = normalize_address(address)
        self._token = token

        self._state: Dict[str, int] = {SLOT_COUNTER: initial_value, SLOT_REWARD: 0}
        self._journal = Journal(self._state)
        self._sink = EventSink(max_events=cfg.max_events)
        log.debug(
            "ledger created address=%s admin=%s counter=%d",
            self._address.hex(), self._admin.hex(), initial_value,
        )

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_counter(self) -> int:
        return self._journal.get(SLOT_COUNTER)

    def get_reward_amount(self) -> int:
        return self._journal.get(SLOT_REWARD)

    @property
    def admin(self) -> bytes:
        return self._admin

    @property
    def address(self) -> bytes:
        return self._address

    @property
    def phase(self) -> Phase:
        return Phase.FUNDED if self.get_reward_amount() > 0 else Phase.IDLE

    @property
    def events(self) -> List[Event]:
        """Committed records, oldest first."""
        return self._sink.committed()

    @property
    def in_operation(self) -> bool:
        return self._journal.depth() > 0

    def snapshot(self) -> Dict[str, Any]:
        return {
            "address": to_hex(self._address),
            "admin": to_hex(self._admin),
            "counter": self.get_counter(),
            "reward_amount": self.get_reward_amount(),
            "phase": self.phase.value,
        }

    # ------------------------------------------------------------------ #
    # Entrypoints
    # ------------------------------------------------------------------ #

    def increment(self, caller: Optional[AddressLike] = None) -> int:
        """Add one to the counter. Raises Overflow past 2**32-1."""
        with self._operation():
            current = self._journal.get(SLOT_COUNTER)
            if current >= U32_MAX:
                raise Overflow(data={"counter": current})
            new_value = current + 1
            self._journal.set(SLOT_COUNTER, new_value)
            self._sink.emit(EV_COUNTER_INCREMENTED, {"value": new_value})
        log.debug("increment -> %d", new_value)
        return new_value

    def decrement(self, caller: AddressLike) -> int:
        """
        Subtract one from the counter. Reaching zero while Funded pays the
        whole escrow to `caller`; a failed payout fails the whole call.
        """
        winner = normalize_address(caller)
        payout = 0
        with self._operation():
            current = self._journal.get(SLOT_COUNTER)
            if current == 0:
                raise Underflow()
            new_value = current - 1
            self._journal.set(SLOT_COUNTER, new_value)
            self._sink.emit(EV_COUNTER_DECREMENTED, {"value": new_value})

            if new_value == 0 and self._journal.get(SLOT_REWARD) > 0:
                payout = self._journal.get(SLOT_REWARD)
                # Effects before interaction.
                self._journal.set(SLOT_REWARD, 0)
                self._call_token("transfer", self._token.transfer, self._address, winner, payout)
                self._sink.emit(EV_REWARD_CLAIMED, {"winner": winner, "amount": payout})

        if payout:
            log.info("reward claimed winner=%s amount=%d", winner.hex(), payout)
        log.debug("decrement -> %d", new_value)
        return new_value

    def reset(self, caller: AddressLike, amount: int) -> None:
        """
        Admin only: pull `amount` from the admin into the ledger's custody, set
        it as the escrow (overwriting any unclaimed one) and zero the counter.
        """
        sender = normalize_address(caller)
        if sender != self._admin:
            raise Unauthorized(data={"caller": to_hex(sender)})
        if not _require_uint(amount) or amount == 0:
            raise InvalidAmount(data={"amount": repr(amount)})
        if amount > U256_MAX:
            raise InvalidAmount("Amount exceeds 256-bit limit", data={"amount": repr(amount)})

        with self._operation():
            self._call_token(
                "transfer_from", self._token.transfer_from, self._address, self._admin, self._address, amount
            )
            previous = self._journal.get(SLOT_REWARD)
            self._journal.set(SLOT_REWARD, amount)
            self._journal.set(SLOT_COUNTER, 0)
            self._sink.emit(EV_COUNTER_RESET, {"value": 0})
            self._sink.emit(EV_CONTRACT_FUNDED, {"amount": amount})

        if previous:
            log.info("escrow of %d replaced by reset", previous)
        log.info("ledger funded amount=%d", amount)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    @contextmanager
    def _operation(self) -> Iterator[None]:
        """
        One all-or-nothing call. Nested (reentrant) calls stage into the outer
        checkpoint; records are published only when the outermost call commits.
        """
        outermost = self._journal.depth() == 0
        mark = self._sink.mark()
        try:
            with self._journal.atomic():
                yield
        except BaseException:
            self._sink.truncate(mark)
            raise
        if outermost:
            self._sink.publish()

    def _call_token(self, leg: str, fn: Callable[..., Any], *args: Any) -> None:
        try:
            ok = fn(*args)
        except Exception as e:
            log.warning("token %s failed: %s", leg, e)
            raise ExternalTransferFailure(leg=leg, reason=str(e) or type(e).__name__) from e
        if ok is False:
            log.warning("token %s returned false", leg)
            raise ExternalTransferFailure(leg=leg, reason="token returned false")

    def __repr__(self) -> str:
        return (
            f"CounterLedger(address={to_hex(self._address)}, counter={self.get_counter()}, "
            f"reward_amount={self.get_reward_amount()})"
        )


__all__ = [
    "CounterLedger",
    "Phase",
    "SLOT_COUNTER",
    "SLOT_REWARD",
    "EV_COUNTER_INCREMENTED",
    "EV_COUNTER_DECREMENTED",
    "EV_COUNTER_RESET",
    "EV_REWARD_CLAIMED",
    "EV_CONTRACT_FUNDED",
]

"""
counter_ledger.token — the value-transfer collaborator.

The ledger never moves funds itself. It talks to a `TokenService` through two
operations, passing its own identity explicitly as `caller` (no ambient
msg.sender):

- transfer_from(caller, owner, to, amount)  # pull; needs allowance owner → caller
- transfer(caller, to, amount)              # push from caller's custody

A service signals failure by raising (preferably `TransferError`). A service
that follows the "return bool" convention and returns False is treated as a
failure by the ledger as well.

`InMemoryTokenService` is a simulation-grade fungible ledger for local runs,
the CLI and tests. It is not a production token.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .config import U256_MAX
from .errors import TransferError
from .runtime.context import AddressLike, normalize_address

log = logging.getLogger(__name__)


@runtime_checkable
class TokenService(Protocol):
    """Minimal interface the ledger needs from a token."""

    def transfer_from(self, caller: bytes, owner: bytes, to: bytes, amount: int) -> Any: ...
    def transfer(self, caller: bytes, to: bytes, amount: int) -> Any: ...


@dataclass(frozen=True)
class TransferRecord:
    kind: str  # "transfer" | "transfer_from" | "mint"
    frm: Optional[bytes]
    to: bytes
    amount: int


def _check_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TransferError("amount must be int", code="BAD_AMOUNT")
    if amount < 0:
        raise TransferError("amount must be non-negative", code="BAD_AMOUNT")
    if amount > U256_MAX:
        raise TransferError("amount exceeds 256-bit limit", code="BAD_AMOUNT")
    return amount


def _add_checked(a: int, b: int) -> int:
    c = a + b
    if c > U256_MAX:
        raise TransferError("balance overflow", code="OVERFLOW")
    return c


class InMemoryTokenService:
    """
    Deterministic balances + allowances. Each call is atomic: balances are only
    written after every check passed.
    """

    def __init__(self, balances: Optional[Dict[AddressLike, int]] = None) -> None:
        self._lock = threading.RLock()
        self._balances: Dict[bytes, int] = {}
        self._allowances: Dict[Tuple[bytes, bytes], int] = {}
        self.transfers: List[TransferRecord] = []
        for addr, amount in (balances or {}).items():
            self.mint(addr, amount)

    # ----------------------------- reads ------------------------------ #

    def balance_of(self, addr: AddressLike) -> int:
        with self._lock:
            return self._balances.get(normalize_address(addr), 0)

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        key = (normalize_address(owner), normalize_address(spender))
        with self._lock:
            return self._allowances.get(key, 0)

    def total_supply(self) -> int:
        with self._lock:
            return sum(self._balances.values())

    # ------------------------- host/test helpers ----------------------- #

    def mint(self, to: AddressLike, amount: int) -> None:
        bto = normalize_address(to)
        _check_amount(amount)
        with self._lock:
            self._balances[bto] = _add_checked(self._balances.get(bto, 0), amount)
            self.transfers.append(TransferRecord("mint", None, bto, amount))

    def approve(self, owner: AddressLike, spender: AddressLike, amount: int) -> None:
        """Set (not add to) the allowance owner → spender."""
        key = (normalize_address(owner), normalize_address(spender))
        _check_amount(amount)
        with self._lock:
            self._allowances[key] = amount

    # ----------------------- TokenService surface --------------------- #

    def _move(self, frm: bytes, to: bytes, amount: int) -> None:
        cur_from = self._balances.get(frm, 0)
        if amount > cur_from:
            raise TransferError("insufficient balance", code="INSUFFICIENT_BALANCE")
        if frm == to:
            return
        new_to = _add_checked(self._balances.get(to, 0), amount)
        self._balances[frm] = cur_from - amount
        self._balances[to] = new_to

    def transfer(self, caller: AddressLike, to: AddressLike, amount: int) -> bool:
        """Debit `caller`, credit `to`."""
        bfrm = normalize_address(caller)
        bto = normalize_address(to)
        _check_amount(amount)
        with self._lock:
            self._move(bfrm, bto, amount)
            self.transfers.append(TransferRecord("transfer", bfrm, bto, amount))
        log.debug("transfer %s -> %s amount=%d", bfrm.hex(), bto.hex(), amount)
        return True

    def transfer_from(self, caller: AddressLike, owner: AddressLike, to: AddressLike, amount: int) -> bool:
        """Spend `caller`'s allowance from `owner` to move funds owner → to."""
        spender = normalize_address(caller)
        bowner = normalize_address(owner)
        bto = normalize_address(to)
        _check_amount(amount)
        with self._lock:
            allowed = self._allowances.get((bowner, spender), 0)
            if amount > allowed:
                raise TransferError("insufficient allowance", code="INSUFFICIENT_ALLOWANCE")
            self._move(bowner, bto, amount)
            self._allowances[(bowner, spender)] = allowed - amount
            self.transfers.append(TransferRecord("transfer_from", bowner, bto, amount))
        log.debug("transfer_from %s -> %s amount=%d (spender %s)", bowner.hex(), bto.hex(), amount, spender.hex())
        return True


__all__ = ["TokenService", "TransferRecord", "InMemoryTokenService"]

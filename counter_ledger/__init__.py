"""
counter_ledger — a counter with an admin-funded reward escrow.

A `CounterLedger` tracks a u32 counter, an immutable admin identity and an
escrowed reward. The admin funds the escrow through `reset`, pulling tokens
from their own balance via an injected `TokenService`; whoever decrements the
counter to zero while the escrow is funded receives the whole escrow.

Typical usage:

    from counter_ledger import CounterLedger, InMemoryTokenService

    token = InMemoryTokenService({admin: 5_000})
    ledger = CounterLedger(admin, token, initial_value=10)
    token.approve(admin, ledger.address, 1_000)
    ledger.reset(admin, 1_000)
    ledger.increment()
    ledger.decrement(player)
"""

from __future__ import annotations

from .version import __version__
from .config import CFG, LedgerConfig, load_config
from .errors import (AddressError, ExternalTransferFailure, InvalidAmount,
                     JournalError, LedgerError, Overflow, TransferError,
                     Unauthorized, Underflow)
from .ledger import CounterLedger, Phase
from .runtime import Event, derive_address, events_for_receipt
from .token import InMemoryTokenService, TokenService, TransferRecord


def version() -> str:
    """Return the counter_ledger version string."""
    return __version__


__all__ = [
    "__version__",
    "version",
    "CFG",
    "LedgerConfig",
    "load_config",
    "CounterLedger",
    "Phase",
    "TokenService",
    "InMemoryTokenService",
    "TransferRecord",
    "Event",
    "derive_address",
    "events_for_receipt",
    "LedgerError",
    "Underflow",
    "Overflow",
    "Unauthorized",
    "InvalidAmount",
    "ExternalTransferFailure",
    "AddressError",
    "JournalError",
    "TransferError",
]

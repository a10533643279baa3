"""
counter_ledger.errors — typed failures for ledger operations.

Every failure of a ledger operation is terminal for the invoking call: the
operation is aborted, staged state is reverted and no record is emitted.
Each kind carries a stable machine code and a fixed human message so callers
and tests can match on it deterministically.

Hierarchy
---------
LedgerError (base)
 ├─ Underflow               : decrement at zero
 ├─ Overflow                : counter would leave the u32 range
 ├─ Unauthorized            : reset by someone other than the admin
 ├─ InvalidAmount           : zero or out-of-range funding amount
 ├─ ExternalTransferFailure : the token service rejected a pull or payout
 ├─ AddressError            : malformed identity at the API boundary
 └─ JournalError            : checkpoint misuse (commit/revert without begin)

TransferError is raised *by token services*; the ledger converts it into
ExternalTransferFailure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class LedgerError(Exception):
    """
    Base ledger error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'COUNTER_UNDERFLOW').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "ledger error"
    code: str = "LEDGER_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for CLI output and logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


class Underflow(LedgerError):
    """Decrement attempted while the counter is already zero."""
    def __init__(self, message: str = "Counter cannot be negative", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="COUNTER_UNDERFLOW", data=data)


class Overflow(LedgerError):
    """Counter would exceed the unsigned 32-bit range."""
    def __init__(self, message: str = "Counter overflow", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="COUNTER_OVERFLOW", data=data)


class Unauthorized(LedgerError):
    def __init__(self, message: str = "Only admin can reset", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="UNAUTHORIZED", data=data)


class InvalidAmount(LedgerError):
    def __init__(self, message: str = "Amount must be positive", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_AMOUNT", data=data)


class ExternalTransferFailure(LedgerError):
    """
    The token service failed a `transfer_from` (funding pull) or `transfer`
    (reward payout).

    Optional fields:
        leg:    "transfer_from" or "transfer".
        reason: The service's own failure message, if any.
    """
    def __init__(
        self,
        message: str = "Token transfer failed",
        *,
        leg: Optional[str] = None,
        reason: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if leg is not None:
            d.setdefault("leg", leg)
        if reason is not None:
            d.setdefault("reason", reason)
        super().__init__(message=message, code="EXTERNAL_TRANSFER_FAILED", data=d or None)


class AddressError(LedgerError):
    def __init__(self, message: str = "invalid address", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="BAD_ADDRESS", data=data)


class JournalError(LedgerError):
    def __init__(self, message: str = "journal misuse", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="JOURNAL_ERROR", data=data)


class TransferError(Exception):
    """
    Raised by a token service when a transfer cannot be performed
    (insufficient balance, insufficient allowance, bad amount).
    """

    def __init__(self, message: str = "transfer failed", *, code: str = "TRANSFER_FAILED") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


__all__ = [
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

"""
counter_ledger.runtime.context — identity normalization helpers.

Identities (admin, callers, the ledger itself) are opaque byte strings. At the
API boundary they may be given as bytes-like objects or hex strings (with or
without "0x"); everything is normalized to immutable `bytes` before it reaches
ledger state.
"""

from __future__ import annotations

import hashlib
from typing import Union

from ..errors import AddressError

AddressLike = Union[bytes, bytearray, memoryview, str]

MAX_ADDRESS_BYTES = 64

# Domain tag for derived identities.
_DERIVE_TAG = b"counter-ledger|"


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_bytes(value: AddressLike) -> bytes:
    """
    Coerce `value` to bytes.
    - If str, interpret as hex (with or without '0x'); odd-length hex is rejected.
    - If a bytes-like object, copy to immutable bytes.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise AddressError(f"hex string must have even length, got {len(h)}")
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise AddressError(f"invalid hex string: {value!r}") from e
    raise AddressError(f"cannot convert type {type(value).__name__} to bytes")


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def normalize_address(value: AddressLike) -> bytes:
    """Normalize an identity; rejects empty and oversized values."""
    b = to_bytes(value)
    if len(b) == 0:
        raise AddressError("address must be non-empty")
    if len(b) > MAX_ADDRESS_BYTES:
        raise AddressError(
            f"address too long (>{MAX_ADDRESS_BYTES} bytes)",
            data={"len": len(b)},
        )
    return b


def derive_address(label: Union[str, bytes]) -> bytes:
    """
    Deterministic 32-byte identity from a label:
        sha3_256("counter-ledger|" || label)
    Used for the ledger's own custody address and for named test accounts.
    """
    raw = label.encode("utf-8") if isinstance(label, str) else bytes(label)
    return hashlib.sha3_256(_DERIVE_TAG + raw).digest()


__all__ = [
    "AddressLike",
    "MAX_ADDRESS_BYTES",
    "to_bytes",
    "to_hex",
    "normalize_address",
    "derive_address",
]

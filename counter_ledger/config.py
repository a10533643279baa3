"""
counter_ledger.config — defaults for new ledgers and numeric caps.

Configuration precedence:
  1) Explicit constructor / CLI arguments (handled by callers)
  2) Environment variables (COUNTER_LEDGER_*)
  3) Hardcoded safe defaults below

Key env vars:
  - COUNTER_LEDGER_INITIAL_VALUE  (int)    default: 0
  - COUNTER_LEDGER_ADMIN          (hex)    default: unset
  - COUNTER_LEDGER_ADDRESS        (hex)    default: derived from the admin
  - COUNTER_LEDGER_MAX_EVENTS     (int)    default: 100_000
  - COUNTER_LEDGER_LOG_LEVEL      (str)    default: WARNING

Usage:
    from counter_ledger.config import load_config
    CFG = load_config()
    ledger = CounterLedger(CFG.admin, token, initial_value=CFG.initial_value)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)

# Numeric domains of the ledger state.
U32_MAX = (1 << 32) - 1
U256_MAX = (1 << 256) - 1

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ----------------------------- helpers ---------------------------------------


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = int(raw.strip(), 0)
    except ValueError:
        log.warning("ignoring unparsable %s=%r", name, raw)
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_hex(name: str) -> Optional[bytes]:
    raw = os.getenv(name)
    if not raw or not raw.strip():
        return None
    h = raw.strip()
    h = h[2:] if h.startswith(("0x", "0X")) else h
    try:
        b = bytes.fromhex(h)
    except ValueError:
        log.warning("ignoring non-hex %s=%r", name, raw)
        return None
    return b or None


def _env_level(name: str, default: str) -> str:
    raw = (os.getenv(name) or "").strip().upper()
    return raw if raw in _LOG_LEVELS else default


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    # Defaults for newly constructed ledgers
    initial_value: int
    admin: Optional[bytes]
    address: Optional[bytes]

    # Caps
    max_events: int

    # Ambient
    log_level: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "initial_value": self.initial_value,
            "admin": "0x" + self.admin.hex() if self.admin else None,
            "address": "0x" + self.address.hex() if self.address else None,
            "max_events": self.max_events,
            "log_level": self.log_level,
        }


@lru_cache(maxsize=1)
def load_config() -> LedgerConfig:
    """
    Build and cache a LedgerConfig from environment + safe defaults.
    """
    return LedgerConfig(
        initial_value=_env_int("COUNTER_LEDGER_INITIAL_VALUE", 0, min_v=0, max_v=U32_MAX),
        admin=_env_hex("COUNTER_LEDGER_ADMIN"),
        address=_env_hex("COUNTER_LEDGER_ADDRESS"),
        max_events=_env_int("COUNTER_LEDGER_MAX_EVENTS", 100_000, min_v=16, max_v=10_000_000),
        log_level=_env_level("COUNTER_LEDGER_LOG_LEVEL", "WARNING"),
    )


# Module-level singleton for convenience; load_config() stays the canonical
# accessor (call load_config.cache_clear() after changing the environment).
CFG: LedgerConfig = load_config()

__all__ = ["LedgerConfig", "load_config", "CFG", "U32_MAX", "U256_MAX"]

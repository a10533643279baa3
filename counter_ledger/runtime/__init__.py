"""
counter_ledger.runtime — state journaling, record sink and identity helpers.

Convenience re-exports:

    from counter_ledger.runtime import Journal, EventSink, Event
"""

from __future__ import annotations

from .context import derive_address, normalize_address, to_bytes, to_hex
from .events_api import Event, EventError, EventSink, events_for_receipt
from .journal import Journal

__all__ = [
    "derive_address",
    "normalize_address",
    "to_bytes",
    "to_hex",
    "Event",
    "EventError",
    "EventSink",
    "events_for_receipt",
    "Journal",
]

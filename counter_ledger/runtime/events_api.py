"""
counter_ledger.runtime.events_api — ledger records and the two-stage sink.

A record is a byte-string name plus a small mapping of identifier keys to
bytes, int (at most 256 bits) or bool values. The ledger emits records into an
`EventSink` while an operation runs; they stay pending until the outermost
operation commits and are dropped if it fails.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional, Union

from ..errors import LedgerError

MAX_EVENT_NAME_BYTES = 64
MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_INT_BITS = 256

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

ArgValue = Union[bytes, int, bool]


class EventError(LedgerError):
    def __init__(self, message: str, *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="EVENT_INVALID", data=data)


@dataclass(frozen=True)
class Event:
    """One emitted record, e.g. Event(b"CounterIncremented", {"value": 12})."""

    name: bytes
    args: Dict[str, ArgValue]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name.decode("ascii", errors="replace"),
            "args": {k: _hex(v) if isinstance(v, bytes) else v for k, v in self.args.items()},
        }


def _hex(b: bytes) -> str:
    return "0x" + b.hex()


def _name(raw: Any) -> bytes:
    if not isinstance(raw, (bytes, bytearray)):
        raise EventError("event name must be bytes", data={"where": "name_type"})
    if not raw:
        raise EventError("event name must be non-empty", data={"where": "name_empty"})
    if len(raw) > MAX_EVENT_NAME_BYTES:
        raise EventError("event name too long", data={"where": "name_length", "len": len(raw)})
    return bytes(raw)


def _key(raw: Any) -> str:
    if not isinstance(raw, str) or not raw:
        raise EventError("event key must be a non-empty str", data={"where": "key_type"})
    if len(raw) > MAX_KEY_LEN or not _IDENT.fullmatch(raw):
        raise EventError("event key is not a short identifier", data={"where": "key_grammar", "key": raw[:MAX_KEY_LEN]})
    return raw


def _value(raw: Any) -> ArgValue:
    # bool first: it is an int subclass but keeps its own receipt tag.
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        if raw.bit_length() > MAX_INT_BITS:
            raise EventError("event int arg out of range", data={"where": "value_int_bits", "bits": raw.bit_length()})
        return int(raw)
    if isinstance(raw, (bytes, bytearray)):
        if len(raw) > MAX_BYTES_LEN:
            raise EventError("event bytes arg too long", data={"where": "value_bytes_length", "len": len(raw)})
        return bytes(raw)
    raise EventError("unsupported event arg type", data={"where": "value_type", "py_type": type(raw).__name__})


class EventSink:
    """
    Two-stage record log.

    Records emitted during an operation land in a *pending* buffer. When the
    outermost operation commits, `publish()` moves them to the committed log;
    when any operation fails, `truncate(mark)` drops everything it emitted.
    The committed log is append-only and keeps the latest `max_events` records.
    """

    def __init__(self, max_events: int = 100_000) -> None:
        self._pending: List[Event] = []
        self._committed: Deque[Event] = deque(maxlen=max_events)
        self._published = 0

    def emit(self, name: bytes, args: Mapping[str, Any]) -> Event:
        bname = _name(name)
        if not isinstance(args, Mapping):
            raise EventError("event args must be a mapping", data={"where": "args_type"})
        ev = Event(bname, {_key(k): _value(v) for k, v in args.items()})
        self._pending.append(ev)
        return ev

    def mark(self) -> int:
        """Position in the pending buffer; pass it to truncate() on failure."""
        return len(self._pending)

    def truncate(self, mark: int) -> None:
        del self._pending[mark:]

    def publish(self) -> int:
        """Move pending records to the committed log. Returns how many moved."""
        moved, self._pending = self._pending, []
        self._committed.extend(moved)
        self._published += len(moved)
        return len(moved)

    def pending(self) -> List[Event]:
        return list(self._pending)

    def committed(self) -> List[Event]:
        return list(self._committed)

    @property
    def published_total(self) -> int:
        """Records ever published, including ones evicted by the retention cap."""
        return self._published


def _receipt_arg(key: str, v: ArgValue) -> Dict[str, Any]:
    if isinstance(v, bytes):
        return {"k": key, "t": "b", "v": _hex(v)}
    if isinstance(v, bool):
        return {"k": key, "t": "z", "v": v}
    return {"k": key, "t": "i", "v": int(v)}


def events_for_receipt(events: Iterable[Event]) -> List[Dict[str, Any]]:
    """
    Canonical JSON-friendly encoding, argument order preserved:

        {"name": "0x<hex name>", "args": [{"k": key, "t": tag, "v": value}, ...]}

    Tags: "b" bytes (0x-hex), "i" integer, "z" boolean.
    """
    return [
        {"name": _hex(ev.name), "args": [_receipt_arg(k, v) for k, v in ev.args.items()]}
        for ev in events
    ]


__all__ = [
    "Event",
    "EventError",
    "EventSink",
    "events_for_receipt",
    "MAX_EVENT_NAME_BYTES",
    "MAX_KEY_LEN",
    "MAX_BYTES_LEN",
    "MAX_INT_BITS",
]

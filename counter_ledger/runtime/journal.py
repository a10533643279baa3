"""
counter_ledger.runtime.journal — staged slot writes with nested checkpoints.

The ledger keeps its mutable state in a small mapping of named slots
(`counter`, `reward_amount`). Writes never touch that mapping directly: they go
to the top overlay of a checkpoint stack and reach the base only when the
outermost checkpoint commits.

- `begin()` pushes an overlay; `commit()` merges the top overlay into its
  parent (or into the base when it is the last one); `revert()` discards it.
- Reads consult overlays top → bottom, then the base.
- Writes outside an open checkpoint are rejected.

Intended usage
--------------
    j = Journal({"counter": 0})
    with j.atomic():
        j.set("counter", j.get("counter") + 1)
        call_something_that_may_raise()
    # committed on normal exit, reverted (and re-raised) on any exception

Nested `atomic()` blocks stack: an inner commit only merges into the outer
overlay, so an outer revert still discards everything the inner block wrote.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, MutableMapping

from ..errors import JournalError

_MISSING = object()


class Journal:
    """
    A copy-on-write slot journal with nested checkpoints.

    Parameters
    ----------
    base : MutableMapping[str, Any]
        The committed slot mapping. Only `commit()` of the last overlay writes it.
    """

    def __init__(self, base: MutableMapping[str, Any]) -> None:
        self._base = base
        self._layers: List[Dict[str, Any]] = []

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of open overlays (0 when nothing is staged)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth."""
        self._layers.append({})
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or into the base if it is the last."""
        if not self._layers:
            raise JournalError("commit without an open checkpoint")
        top = self._layers.pop()
        target = self._layers[-1] if self._layers else self._base
        target.update(top)

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise JournalError("revert without an open checkpoint")
        self._layers.pop()

    def checkpoint(self) -> int:
        """Marker for the current depth; pass it to commit_to/revert_to."""
        return len(self._layers)

    def commit_to(self, marker: int) -> None:
        """Commit repeatedly until the current depth equals `marker`."""
        if marker < 0 or marker > len(self._layers):
            raise JournalError("bad checkpoint marker", data={"marker": marker, "depth": len(self._layers)})
        while len(self._layers) > marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        """Revert repeatedly until the current depth equals `marker`."""
        if marker < 0 or marker > len(self._layers):
            raise JournalError("bad checkpoint marker", data={"marker": marker, "depth": len(self._layers)})
        while len(self._layers) > marker:
            self.revert()

    @contextmanager
    def atomic(self) -> Iterator[int]:
        """
        Open a checkpoint for the duration of the block. Commits on normal exit;
        reverts and re-raises on any exception.
        """
        marker = self.checkpoint()
        self.begin()
        try:
            yield marker
        except BaseException:
            self.revert_to(marker)
            raise
        self.commit_to(marker)

    # --------------------------------------------------------------------- #
    # Slots
    # --------------------------------------------------------------------- #

    def get(self, key: str, default: Any = None) -> Any:
        for layer in reversed(self._layers):
            v = layer.get(key, _MISSING)
            if v is not _MISSING:
                return v
        return self._base.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if not self._layers:
            raise JournalError("write outside a checkpoint", data={"key": key})
        self._layers[-1][key] = value

    def pending(self) -> Dict[str, Any]:
        """Flattened view of all staged writes (bottom → top, last wins)."""
        out: Dict[str, Any] = {}
        for layer in self._layers:
            out.update(layer)
        return out

    def view(self) -> Dict[str, Any]:
        """Visible slot values: base overlaid with staged writes."""
        out = dict(self._base)
        out.update(self.pending())
        return out


__all__ = ["Journal"]

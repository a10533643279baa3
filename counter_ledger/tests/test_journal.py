from __future__ import annotations

import pytest

from counter_ledger.errors import JournalError
from counter_ledger.runtime.journal import Journal


def test_writes_stay_staged_until_outermost_commit():
    base = {"counter": 1}
    j = Journal(base)

    j.begin()
    j.set("counter", 2)
    j.begin()
    j.set("counter", 3)
    assert j.get("counter") == 3
    assert j.pending() == {"counter": 3}

    j.commit()
    assert base == {"counter": 1}
    assert j.depth() == 1

    j.commit()
    assert base == {"counter": 3}
    assert j.depth() == 0


def test_revert_discards_only_the_top_overlay():
    j = Journal({"counter": 1})
    j.begin()
    j.set("counter", 2)
    j.begin()
    j.set("counter", 3)
    j.revert()
    assert j.get("counter") == 2
    j.revert()
    assert j.get("counter") == 1


def test_atomic_commits_on_success():
    base = {"counter": 0, "reward_amount": 0}
    j = Journal(base)
    with j.atomic() as marker:
        assert marker == 0
        j.set("counter", 5)
    assert base["counter"] == 5


def test_atomic_reverts_and_reraises():
    base = {"counter": 0}
    j = Journal(base)
    with pytest.raises(RuntimeError):
        with j.atomic():
            j.set("counter", 9)
            raise RuntimeError("boom")
    assert base == {"counter": 0}
    assert j.depth() == 0


def test_outer_failure_discards_committed_inner_block():
    base = {"counter": 0}
    j = Journal(base)
    with pytest.raises(KeyError):
        with j.atomic():
            with j.atomic():
                j.set("counter", 1)
            assert j.get("counter") == 1
            raise KeyError("outer")
    assert base == {"counter": 0}


def test_inner_failure_keeps_outer_writes():
    base = {"counter": 0, "reward_amount": 0}
    j = Journal(base)
    with j.atomic():
        j.set("reward_amount", 7)
        with pytest.raises(ValueError):
            with j.atomic():
                j.set("counter", 1)
                raise ValueError
    assert base == {"counter": 0, "reward_amount": 7}


def test_misuse_is_rejected():
    j = Journal({})
    with pytest.raises(JournalError):
        j.commit()
    with pytest.raises(JournalError):
        j.revert()
    with pytest.raises(JournalError):
        j.set("counter", 1)
    with pytest.raises(JournalError):
        j.revert_to(1)
    with pytest.raises(JournalError):
        j.commit_to(-1)


def test_view_overlays_staged_writes():
    j = Journal({"counter": 1, "reward_amount": 2})
    j.begin()
    j.set("counter", 4)
    assert j.view() == {"counter": 4, "reward_amount": 2}
    assert j.get("missing", "d") == "d"

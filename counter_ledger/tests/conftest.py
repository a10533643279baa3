"""
Pytest fixtures for the counter ledger.

- Stable named identities derived from labels (admin, alice, bob, carol).
- A funded in-memory token and a ledger factory.
- A clean COUNTER_LEDGER_* environment and config cache per test.
"""

from __future__ import annotations

import os
from typing import Any, Callable

import pytest

from counter_ledger import CounterLedger, InMemoryTokenService, derive_address
from counter_ledger.config import load_config

from .doubles import ADMIN_FUNDS, ReentrantToken


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch: pytest.MonkeyPatch):
    for k in [k for k in os.environ if k.startswith("COUNTER_LEDGER_")]:
        monkeypatch.delenv(k, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def admin() -> bytes:
    return derive_address("admin")


@pytest.fixture
def alice() -> bytes:
    return derive_address("alice")


@pytest.fixture
def bob() -> bytes:
    return derive_address("bob")


@pytest.fixture
def carol() -> bytes:
    return derive_address("carol")


@pytest.fixture
def token(admin: bytes) -> InMemoryTokenService:
    return InMemoryTokenService({admin: ADMIN_FUNDS})


@pytest.fixture
def make_ledger(admin: bytes, token: InMemoryTokenService) -> Callable[..., CounterLedger]:
    def _make(initial_value: int = 0, *, token_service: Any = None, approve: int = 0) -> CounterLedger:
        svc = token_service if token_service is not None else token
        ledger = CounterLedger(admin, svc, initial_value=initial_value)
        if approve:
            svc.approve(admin, ledger.address, approve)
        return ledger

    return _make


@pytest.fixture
def ledger(make_ledger) -> CounterLedger:
    return make_ledger(10)


@pytest.fixture
def reentrant_token(admin: bytes) -> ReentrantToken:
    return ReentrantToken({admin: ADMIN_FUNDS})

"""
counter_ledger.scenario — drive a ledger from a declarative call script.

A scenario is a JSON-friendly mapping:

    {
      "admin": "admin",
      "initial_value": 10,
      "balances": {"admin": 5000},
      "accounts": {"carol": "0xc0ffee"},
      "steps": [
        {"op": "approve", "owner": "admin", "amount": 1000},
        {"op": "reset", "caller": "admin", "amount": 1000},
        {"op": "increment", "caller": "alice"},
        {"op": "decrement", "caller": "bob"},
        {"op": "get_counter"}
      ]
    }

Account references are resolved in order: the reserved name "ledger" (the
ledger's own address), an entry in "accounts", a 0x-prefixed hex literal, and
finally `derive_address(name)`.

Each step yields a result row; a failing step records the error and the run
continues unless `stop_on_error` is set. Ledger failures never leave partial
state behind, so later steps see exactly the state before the failed one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .config import LedgerConfig
from .errors import LedgerError, TransferError
from .ledger import CounterLedger
from .runtime.context import derive_address, normalize_address, to_hex
from .runtime.events_api import events_for_receipt
from .token import InMemoryTokenService

log = logging.getLogger(__name__)

LEDGER_REF = "ledger"

OPS = ("increment", "decrement", "reset", "approve", "mint", "get_counter", "get_reward_amount")


class ScenarioError(ValueError):
    """Malformed scenario document."""


@dataclass
class StepResult:
    index: int
    op: str
    caller: Optional[str]
    ok: bool
    result: Any = None
    error: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"index": self.index, "op": self.op, "caller": self.caller, "ok": self.ok}
        if self.ok:
            out["result"] = self.result
        else:
            out["error"] = self.error
        return out


@dataclass
class ScenarioRun:
    ledger: CounterLedger
    token: InMemoryTokenService
    resolve: "_Resolver" = field(repr=False)
    steps: List[StepResult] = field(default_factory=list)

    @property
    def names(self) -> Dict[str, bytes]:
        return self.resolve.names

    @property
    def failed(self) -> List[StepResult]:
        return [s for s in self.steps if not s.ok]

    def balances(self) -> Dict[str, int]:
        return {name: self.token.balance_of(addr) for name, addr in sorted(self.names.items())}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.ledger.snapshot(),
            "steps": [s.to_dict() for s in self.steps],
            "events": [e.to_dict() for e in self.ledger.events],
            "receipt_events": events_for_receipt(self.ledger.events),
            "balances": self.balances(),
            "accounts": {name: to_hex(addr) for name, addr in sorted(self.names.items())},
        }


class _Resolver:
    def __init__(self, accounts: Mapping[str, Any]) -> None:
        if LEDGER_REF in accounts:
            raise ScenarioError(f"{LEDGER_REF!r} is reserved for the ledger's own address")
        self._accounts = {str(k): normalize_address(v) for k, v in accounts.items()}
        self.names: Dict[str, bytes] = dict(self._accounts)
        self.ledger_address: Optional[bytes] = None

    def __call__(self, ref: Any) -> bytes:
        if not isinstance(ref, str) or not ref:
            raise ScenarioError(f"account reference must be a non-empty string, got {ref!r}")
        if ref == LEDGER_REF:
            if self.ledger_address is None:
                raise ScenarioError("'ledger' is not available before the ledger exists")
            return self.ledger_address
        if ref in self._accounts:
            return self._accounts[ref]
        if ref.startswith(("0x", "0X")):
            return normalize_address(ref)
        addr = derive_address(ref)
        self.names.setdefault(ref, addr)
        return addr


def _mapping(scenario: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    v = scenario.get(key)
    if v is None:
        return {}
    if not isinstance(v, Mapping):
        raise ScenarioError(f"'{key}' must be an object")
    return v


def _require_int(step: Mapping[str, Any], key: str) -> int:
    v = step.get(key)
    if isinstance(v, bool) or not isinstance(v, int):
        raise ScenarioError(f"step {step.get('op')!r} needs integer {key!r}")
    return v


def build(scenario: Mapping[str, Any], *, config: Optional[LedgerConfig] = None) -> ScenarioRun:
    """Create the token, fund balances and construct the ledger."""
    if not isinstance(scenario, Mapping):
        raise ScenarioError("scenario must be a JSON object")
    resolve = _Resolver(_mapping(scenario, "accounts"))

    admin_ref = scenario.get("admin")
    if admin_ref is None and config is not None and config.admin:
        admin = config.admin
    elif admin_ref is None:
        raise ScenarioError("scenario needs an 'admin'")
    else:
        admin = resolve(admin_ref)

    token = InMemoryTokenService()
    for ref, amount in _mapping(scenario, "balances").items():
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ScenarioError(f"balance for {ref!r} must be a non-negative integer")
        token.mint(resolve(ref), amount)

    initial_value = scenario.get("initial_value")
    if initial_value is not None and (isinstance(initial_value, bool) or not isinstance(initial_value, int)):
        raise ScenarioError("'initial_value' must be an integer")

    kwargs: Dict[str, Any] = {"config": config}
    if initial_value is not None:
        kwargs["initial_value"] = initial_value
    if scenario.get("address"):
        kwargs["address"] = scenario["address"]
    ledger = CounterLedger(admin, token, **kwargs)
    resolve.ledger_address = ledger.address
    resolve.names[LEDGER_REF] = ledger.address
    return ScenarioRun(ledger=ledger, token=token, resolve=resolve)


def _apply(run: ScenarioRun, step: Mapping[str, Any]) -> Any:
    op = step.get("op")
    resolve = run.resolve
    ledger = run.ledger
    if op == "increment":
        caller = step.get("caller")
        return ledger.increment(resolve(caller) if caller is not None else None)
    if op == "decrement":
        return ledger.decrement(resolve(step.get("caller")))
    if op == "reset":
        ledger.reset(resolve(step.get("caller")), _require_int(step, "amount"))
        return None
    if op == "approve":
        spender = resolve(step.get("spender", LEDGER_REF))
        run.token.approve(resolve(step.get("owner")), spender, _require_int(step, "amount"))
        return None
    if op == "mint":
        run.token.mint(resolve(step.get("to")), _require_int(step, "amount"))
        return None
    if op == "get_counter":
        return ledger.get_counter()
    if op == "get_reward_amount":
        return ledger.get_reward_amount()
    raise ScenarioError(f"unknown op {op!r} (expected one of {', '.join(OPS)})")


def run_scenario(
    scenario: Mapping[str, Any],
    *,
    config: Optional[LedgerConfig] = None,
    stop_on_error: bool = False,
) -> ScenarioRun:
    """
    Build a ledger from `scenario` and execute its steps in order.

    ScenarioError (malformed document) always propagates. Ledger and token
    failures are recorded on the step.
    """
    run = build(scenario, config=config)

    steps = scenario.get("steps") or []
    if not isinstance(steps, list):
        raise ScenarioError("'steps' must be a list")

    for i, step in enumerate(steps):
        if not isinstance(step, Mapping):
            raise ScenarioError(f"step {i} must be an object")
        caller = step.get("owner") if step.get("op") == "approve" else step.get("caller")
        try:
            result = _apply(run, step)
        except LedgerError as e:
            log.info("step %d (%s) failed: %s", i, step.get("op"), e.code)
            run.steps.append(StepResult(i, str(step.get("op")), caller, False, error=e.to_dict()))
            if stop_on_error:
                break
            continue
        except TransferError as e:
            run.steps.append(
                StepResult(i, str(step.get("op")), caller, False, error={"code": e.code, "message": e.message})
            )
            if stop_on_error:
                break
            continue
        run.steps.append(StepResult(i, str(step.get("op")), caller, True, result=result))
    return run


__all__ = ["LEDGER_REF", "OPS", "ScenarioError", "StepResult", "ScenarioRun", "build", "run_scenario"]

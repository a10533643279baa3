"""
counter-ledger — local simulator for the counter/escrow ledger.

Commands:
  counter-ledger run SCENARIO.json [--json] [--strict]
      Build a ledger backed by an in-memory token, execute the scenario's
      steps and print the per-step results, final state, records and balances.
  counter-ledger config
      Print the effective configuration (COUNTER_LEDGER_* env vars) as JSON.
  counter-ledger version
      Print the package version.

Examples:
  counter-ledger run examples/reward_cycle.json
  counter-ledger run examples/reward_cycle.json --json | jq .state
  COUNTER_LEDGER_LOG_LEVEL=DEBUG counter-ledger run examples/reward_cycle.json

Exit codes:
  0 on success, 1 when --strict and a step failed, 2 for unreadable or
  malformed scenarios.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .config import load_config
from .errors import LedgerError
from .scenario import ScenarioError, ScenarioRun, run_scenario
from .version import __version__

log = logging.getLogger("counter_ledger.cli")

app = typer.Typer(
    name="counter-ledger",
    help="Simulate a counter ledger with an admin-funded reward escrow",
    no_args_is_help=True,
    add_completion=False,
)


def _configure_logging(level: str) -> None:
    # Only configure if the embedding application hasn't.
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, level.upper(), logging.WARNING),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _pretty(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def _load_scenario(path: Path) -> Dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        typer.echo(f"Error: cannot read {path}: {e}", err=True)
        raise typer.Exit(2)
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {path} is not valid JSON: {e}", err=True)
        raise typer.Exit(2)


def _human_report(console: Console, run: ScenarioRun) -> None:
    steps = Table(title="Steps", box=box.SIMPLE)
    steps.add_column("#", justify="right")
    steps.add_column("Op")
    steps.add_column("Caller")
    steps.add_column("Outcome")
    for s in run.steps:
        if s.ok:
            outcome = "ok" if s.result is None else f"ok → {s.result}"
        else:
            outcome = f"[red]{s.error.get('code')}[/red]: {s.error.get('message')}"
        steps.add_row(str(s.index), s.op, s.caller or "-", outcome)
    console.print(steps)

    state = run.ledger.snapshot()
    summary = Table.grid(padding=(0, 2))
    for key in ("counter", "reward_amount", "phase", "admin", "address"):
        summary.add_row(key, str(state[key]))
    console.print(summary)

    records = Table(title="Records", box=box.SIMPLE)
    records.add_column("Name")
    records.add_column("Args")
    for ev in run.ledger.events:
        d = ev.to_dict()
        records.add_row(d["name"], ", ".join(f"{k}={v}" for k, v in d["args"].items()))
    console.print(records)

    balances = Table(title="Balances", box=box.SIMPLE)
    balances.add_column("Account")
    balances.add_column("Balance", justify="right")
    for name, amount in run.balances().items():
        balances.add_row(name, str(amount))
    console.print(balances)


@app.command()
def run(
    scenario_path: Path = typer.Argument(..., help="Scenario JSON file"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON instead of tables"),
    strict: bool = typer.Option(False, "--strict", help="Stop at the first failing step and exit 1"),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to COUNTER_LEDGER_LOG_LEVEL)",
    ),
) -> None:
    """Execute a scenario against a fresh ledger and in-memory token."""
    cfg = load_config()
    _configure_logging(log_level or cfg.log_level)

    scenario = _load_scenario(scenario_path)
    try:
        result = run_scenario(scenario, config=cfg, stop_on_error=strict)
    except ScenarioError as e:
        typer.echo(f"Error: bad scenario: {e}", err=True)
        raise typer.Exit(2)
    except LedgerError as e:
        typer.echo(f"Error: cannot build ledger: {e.code}: {e.message}", err=True)
        raise typer.Exit(2)

    if json_output:
        typer.echo(_pretty(result.to_dict()))
    else:
        _human_report(Console(), result)

    if strict and result.failed:
        log.warning("scenario stopped at step %d", result.failed[0].index)
        raise typer.Exit(1)


@app.command()
def config() -> None:
    """Print the effective configuration as JSON."""
    typer.echo(_pretty(load_config().as_dict()))


@app.command()
def version() -> None:
    """Print the package version."""
    typer.echo(__version__)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

"""counter_ledger.version — where `__version__` comes from.

Lookup order:
  1) COUNTER_LEDGER_VERSION, used verbatim (release tooling, reproducible runs)
  2) the installed `counter-ledger` distribution
  3) BASE_VERSION with a "+dev" local tag for source checkouts
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata
from typing import Optional

# Bump when ledger semantics (operations, records, error codes) change.
BASE_VERSION = "0.1.0"

DIST_NAME = "counter-ledger"


def _installed_version() -> Optional[str]:
    try:
        found = metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return None
    # Some editable installs report a placeholder.
    return None if found in ("", "0.0.0") else found


@lru_cache(maxsize=1)
def compute_version() -> str:
    override = os.getenv("COUNTER_LEDGER_VERSION")
    if override:
        return override
    return _installed_version() or BASE_VERSION + "+dev"


__version__ = compute_version()

__all__ = ["__version__", "BASE_VERSION", "DIST_NAME", "compute_version"]

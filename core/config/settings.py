"""
DocFlow Core Config — Settings
==============================
Where data lives and how each counter numbers documents.

Settings are plain frozen data. They come from code (tests, wiring) or
from the environment:

    DOCFLOW_DATA_DIR              collection + counter files (default ./data)
    DOCFLOW_NUMBERING_<COUNTER>   MONOTONIC | GAP_FILLING, e.g.
                                  DOCFLOW_NUMBERING_ORDER=GAP_FILLING
    DOCFLOW_QUARANTINE_CORRUPT    "0" disables copying malformed files aside
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from core.numbering.models import (
    DEFAULT_FLOORS,
    POLICY_MONOTONIC,
    VALID_POLICIES,
    CounterSpec,
)

# ── Paths ─────────────────────────────────────────────────────
# Relative to the working directory, as the data/ folder always was.
DEFAULT_DATA_DIR_NAME = "data"

ENV_DATA_DIR = "DOCFLOW_DATA_DIR"
ENV_NUMBERING_PREFIX = "DOCFLOW_NUMBERING_"
ENV_QUARANTINE = "DOCFLOW_QUARANTINE_CORRUPT"

# ── Collection files ──────────────────────────────────────────
ORDERS_FILE = "orders.json"
PURCHASE_ORDERS_FILE = "purchase_orders.json"
RMAS_FILE = "rmas.json"
CORRECTION_TICKETS_FILE = "sfcs.json"
INVENTORY_FILE = "inventory.json"


@dataclass(frozen=True)
class DocFlowSettings:
    """
    Runtime settings for stores and counters.

    Fields:
        data_dir:           directory holding every collection and counter file
        counter_floors:     {counter name: floor}
        numbering_policies: {counter name: MONOTONIC | GAP_FILLING}
        quarantine_corrupt_files: copy malformed files to `<name>.corrupt`
    """

    data_dir: Path = field(default_factory=lambda: Path.cwd() / DEFAULT_DATA_DIR_NAME)
    counter_floors: Mapping[str, int] = field(
        default_factory=lambda: dict(DEFAULT_FLOORS)
    )
    numbering_policies: Mapping[str, str] = field(default_factory=dict)
    quarantine_corrupt_files: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "data_dir", Path(self.data_dir))
        for name, policy in self.numbering_policies.items():
            if name not in self.counter_floors:
                raise ValueError(f"Unknown counter '{name}' in numbering_policies.")
            if policy not in VALID_POLICIES:
                raise ValueError(
                    f"Numbering policy '{policy}' for counter '{name}' is not "
                    f"valid. Must be one of: {sorted(VALID_POLICIES)}"
                )
        for name, floor in self.counter_floors.items():
            if not isinstance(floor, int) or floor < 0:
                raise ValueError(f"Floor for counter '{name}' must be int >= 0.")

    def policy_for(self, counter_name: str) -> str:
        return self.numbering_policies.get(counter_name, POLICY_MONOTONIC)

    def counter_specs(self) -> Tuple[CounterSpec, ...]:
        return tuple(
            CounterSpec(name=name, floor=floor, policy=self.policy_for(name))
            for name, floor in sorted(self.counter_floors.items())
        )

    def path_for(self, file_name: str) -> Path:
        return self.data_dir / file_name

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DocFlowSettings":
        env = os.environ if environ is None else environ

        data_dir_raw = env.get(ENV_DATA_DIR, "").strip()
        data_dir = Path(data_dir_raw) if data_dir_raw else Path.cwd() / DEFAULT_DATA_DIR_NAME

        policies: Dict[str, str] = {}
        for name in DEFAULT_FLOORS:
            raw = env.get(ENV_NUMBERING_PREFIX + name.upper(), "").strip()
            if raw:
                policies[name] = raw.upper()

        quarantine_raw = env.get(ENV_QUARANTINE, "1").strip().lower()
        quarantine = quarantine_raw not in ("0", "false", "no", "off")

        return cls(
            data_dir=data_dir,
            numbering_policies=policies,
            quarantine_corrupt_files=quarantine,
        )

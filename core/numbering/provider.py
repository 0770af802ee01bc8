"""
DocFlow Numbering — Sequence Registry
=====================================
Owns one sequence generator per counter and creates them lazily.

Doctrine:
- Registry is a dependency injection point (testable, swappable).
- Each counter is serialized by its own lock; the registry lock only
  guards lazy creation.
- Gap-filling counters need a supplier of currently stored numbers,
  registered by the engine that owns the document type.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Protocol

from core.numbering.counter import FileCounter
from core.numbering.gap_filling import GapFillingSequence, NumberSupplier
from core.numbering.models import POLICY_GAP_FILLING, CounterSpec

logger = logging.getLogger("docflow.numbering")


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class SequenceGenerator(Protocol):
    def next(self) -> int:
        """Issue the next number; never the same value twice in-process."""
        ...

    def release(self, value: int) -> None:
        """Signal that an issued value is persisted or abandoned."""
        ...

    def current(self) -> int:
        ...


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class SequenceRegistry:
    """
    Thread-safe registry of counters under one data directory.

    Specs are registered at construction time; generators are built on
    first use.
    """

    def __init__(self, data_dir: Path, specs: tuple[CounterSpec, ...] = ()):
        self._data_dir = Path(data_dir)
        self._lock = threading.Lock()
        self._specs: Dict[str, CounterSpec] = {}
        self._suppliers: Dict[str, NumberSupplier] = {}
        self._generators: Dict[str, SequenceGenerator] = {}
        for spec in specs:
            self._specs[spec.name] = spec

    def register_spec(self, spec: CounterSpec) -> None:
        """Register or replace a counter spec (before first use)."""
        with self._lock:
            if spec.name in self._generators:
                raise ValueError(
                    f"Counter '{spec.name}' is already in use; cannot replace its spec."
                )
            self._specs[spec.name] = spec

    def register_supplier(self, name: str, supplier: NumberSupplier) -> None:
        """Source of stored numbers for a gap-filling counter."""
        with self._lock:
            self._suppliers[name] = supplier

    def spec(self, name: str) -> CounterSpec:
        with self._lock:
            spec = self._specs.get(name)
        if spec is None:
            raise KeyError(f"Counter '{name}' is not registered.")
        return spec

    def generator(self, name: str) -> SequenceGenerator:
        with self._lock:
            existing = self._generators.get(name)
            if existing is not None:
                return existing
            spec = self._specs.get(name)
            if spec is None:
                raise KeyError(f"Counter '{name}' is not registered.")
            generator = self._build(spec)
            self._generators[name] = generator
            logger.info(
                f"Counter '{name}' ready (policy={spec.policy}, floor={spec.floor})"
            )
            return generator

    def _build(self, spec: CounterSpec) -> SequenceGenerator:
        if spec.policy == POLICY_GAP_FILLING:
            supplier = self._suppliers.get(spec.name)
            if supplier is None:
                raise ValueError(
                    f"Gap-filling counter '{spec.name}' has no number supplier."
                )
            return GapFillingSequence(spec, supplier)
        return FileCounter(spec, self._data_dir / spec.file_name)

    def next(self, name: str) -> int:
        return self.generator(name).next()

    def next_number(self, name: str) -> str:
        """Issue and format in one step (for numbers not stored on a document)."""
        generator = self.generator(name)
        value = generator.next()
        generator.release(value)
        return self.spec(name).format_number(value)

    @contextmanager
    def reserve(self, name: str) -> Iterator[str]:
        """
        Issue a formatted number for a document about to be persisted.

        The reservation is released when the block exits, whether the
        document was saved or not.
        """
        generator = self.generator(name)
        value = generator.next()
        try:
            yield self.spec(name).format_number(value)
        finally:
            generator.release(value)

    def current(self, name: str) -> Optional[int]:
        return self.generator(name).current()

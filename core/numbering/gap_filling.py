"""
DocFlow Numbering — Gap-Filling Sequence
========================================
Issues the smallest unused integer ≥ floor among the numbers currently
stored for one document type. Numbers freed by deletion are reused.

The sequence keeps no file of its own: its state IS the stored
documents. A number handed out is held in a reservation set until the
caller releases it (after persisting the document, or on failure), so
two concurrent callers never observe the same value.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional, Set

from core.numbering.models import CounterSpec

logger = logging.getLogger("docflow.numbering")

NumberSupplier = Callable[[], Iterable[Optional[str]]]


def smallest_unused(used: Iterable[int], floor: int) -> int:
    """
    Smallest integer ≥ floor not in `used`.

    Equals max(used) + 1 when every value from floor to max is taken.
    """
    taken = {value for value in used if value >= floor}
    candidate = floor
    while candidate in taken:
        candidate += 1
    return candidate


def coerce_numbers(raw: Iterable[Optional[str]]) -> Set[int]:
    """Integers parsed from stored numbers; blank or non-numeric are skipped."""
    numbers: Set[int] = set()
    for value in raw:
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        try:
            numbers.add(int(text))
        except ValueError:
            logger.debug(f"Ignoring non-numeric document number {text!r}")
    return numbers


class GapFillingSequence:
    """Gap-aware sequence over the numbers returned by `supplier`."""

    def __init__(self, spec: CounterSpec, supplier: NumberSupplier):
        self._spec = spec
        self._supplier = supplier
        self._lock = threading.Lock()
        self._reserved: Set[int] = set()

    @property
    def spec(self) -> CounterSpec:
        return self._spec

    def next(self) -> int:
        with self._lock:
            used = coerce_numbers(self._supplier()) | self._reserved
            issued = smallest_unused(used, self._spec.floor)
            self._reserved.add(issued)
            logger.info(f"Generated {self._spec.name} number: {issued} (gap-filling)")
            return issued

    def release(self, value: int) -> None:
        """Drop a reservation once the number is persisted or abandoned."""
        with self._lock:
            self._reserved.discard(value)

    def current(self) -> int:
        with self._lock:
            used = coerce_numbers(self._supplier())
            above = [value for value in used if value >= self._spec.floor]
            return max(above) if above else self._spec.floor

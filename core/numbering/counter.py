"""
DocFlow Numbering — Monotonic File Counter
==========================================
Durable counter holding the last issued value as one plain-text integer.

Rules:
- next() is read → increment → persist → return, as one critical section.
- Missing, empty, non-numeric or below-floor content self-heals to the
  floor (rewritten, logged at WARNING). It is never raised.
- The first issued value is floor + 1.
- A failed write raises PersistenceError and the value is NOT returned.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from core.numbering.models import CounterSpec
from core.store import medium
from core.store.errors import PersistenceError

logger = logging.getLogger("docflow.numbering")


class FileCounter:
    """Monotonic sequence backed by `<data_dir>/<name>_counter.txt`."""

    def __init__(self, spec: CounterSpec, path: Path):
        self._spec = spec
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def spec(self) -> CounterSpec:
        return self._spec

    @property
    def path(self) -> Path:
        return self._path

    def next(self) -> int:
        with self._lock:
            current = self._read()
            issued = current + 1
            self._write(issued)
            logger.info(
                f"Generated {self._spec.name} number: {issued} "
                f"(counter updated from {current} to {issued})"
            )
            return issued

    def release(self, value: int) -> None:
        """Monotonic numbers are consumed on issue; nothing to release."""

    def current(self) -> int:
        """Last issued value (the floor if nothing has been issued)."""
        with self._lock:
            return self._read()

    # ── Internals (caller holds the lock) ────────────────────

    def _read(self) -> int:
        floor = self._spec.floor
        try:
            content = medium.read_text(self._path)
        except UnicodeDecodeError as exc:
            self._write(floor)
            logger.warning(
                f"{self._spec.name} counter file is not valid UTF-8 ({exc}), "
                f"resetting to initial value: {floor}"
            )
            return floor
        if content is None:
            self._write(floor)
            logger.info(
                f"Initialized {self._spec.name} counter file with value: {floor}"
            )
            return floor

        text = content.strip()
        if not text:
            self._write(floor)
            logger.warning(
                f"{self._spec.name} counter file was empty, "
                f"initialized with value: {floor}"
            )
            return floor

        try:
            value = int(text)
        except ValueError:
            self._write(floor)
            logger.warning(
                f"{self._spec.name} counter file contains invalid data "
                f"{text!r}, resetting to initial value: {floor}"
            )
            return floor

        if value < floor:
            self._write(floor)
            logger.warning(
                f"{self._spec.name} counter value {value} was below initial "
                f"value, reset to: {floor}"
            )
            return floor
        return value

    def _write(self, value: int) -> None:
        try:
            medium.write_text_atomic(self._path, str(value))
        except OSError as exc:
            logger.error(
                f"Error writing {self._spec.name} counter to {self._path}: {exc}",
                exc_info=True,
            )
            raise PersistenceError(
                f"{self._spec.name} counter", self._path, exc
            ) from exc

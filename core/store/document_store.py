"""
DocFlow Store — Generic Document Store
======================================
One store per entity type, one JSON array file per store.

Contract:
- find_by_id / find_all / find_where return defensive copies.
  Mutating a returned entity never changes the store; route changes
  back through save().
- save() with a blank identity assigns a fresh UUID and appends.
  save() with an identity replaces the existing record in place,
  or raises NotFoundError.
- Named unique keys are checked against every OTHER record on save.
- Every successful mutation rewrites the whole file atomically.

Durability:
- The working set lives in memory behind one re-entrant lock.
- On construction the file is loaded. Missing / empty / unreadable /
  malformed → empty collection with a warning. A malformed file is
  copied aside first so the next rewrite does not destroy it.
- A failed write raises PersistenceError. The in-memory state is then
  ahead of the file; a reload() restores the on-disk view.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from core.store import medium
from core.store.codec import EntityCodec, IdentityAccessor
from core.store.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
)

logger = logging.getLogger("docflow.store")

T = TypeVar("T")

UniqueKey = Callable[[T], Optional[str]]


class DocumentStore(Generic[T]):
    """
    File-backed collection of entities of one type.

    Args:
        path:          backing JSON file
        entity_name:   label used in logs and errors (e.g. "orders")
        codec:         entity ⇄ dict serializer
        identity:      identity accessor (default: the `id` attribute)
        unique_keys:   {key_name: extractor}; blank values are not checked
        quarantine_corrupt: copy a malformed file to `<name>.corrupt`
    """

    def __init__(
        self,
        *,
        path: Path,
        entity_name: str,
        codec: EntityCodec[T],
        identity: Optional[IdentityAccessor[T]] = None,
        unique_keys: Optional[Dict[str, UniqueKey]] = None,
        quarantine_corrupt: bool = True,
    ):
        if not entity_name:
            raise ValueError("entity_name must be non-empty.")
        self._path = Path(path)
        self._entity_name = entity_name
        self._codec = codec
        self._identity = identity or IdentityAccessor.attribute("id")
        self._unique_keys: Dict[str, UniqueKey] = dict(unique_keys or {})
        self._quarantine_corrupt = quarantine_corrupt
        self._lock = threading.RLock()
        self._items: List[T] = []
        self._load()

    # ── Properties ────────────────────────────────────────────

    @property
    def path(self) -> Path:
        return self._path

    @property
    def entity_name(self) -> str:
        return self._entity_name

    # ── Loading ───────────────────────────────────────────────

    def _load(self) -> None:
        logger.info(f"Loading {self._entity_name} from data file: {self._path}")
        with self._lock:
            self._items = self._read_items()
            logger.info(
                f"Loaded {len(self._items)} {self._entity_name} from data file"
            )

    def _read_items(self) -> List[T]:
        try:
            content = medium.read_text(self._path)
        except UnicodeDecodeError as exc:
            logger.warning(
                f"{self._entity_name} data file {self._path} is not valid "
                f"UTF-8: {exc}. Starting with empty {self._entity_name} list."
            )
            self._quarantine()
            return []
        if content is None:
            logger.info(
                f"Data file {self._path} does not exist, starting with "
                f"empty {self._entity_name} list"
            )
            return []
        if not content.strip():
            logger.info(
                f"Data file {self._path} is empty, starting with "
                f"empty {self._entity_name} list"
            )
            return []

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as exc:
            logger.warning(
                f"Malformed {self._entity_name} data file {self._path}: {exc}. "
                f"Starting with empty {self._entity_name} list."
            )
            self._quarantine()
            return []

        if not isinstance(raw, list):
            logger.warning(
                f"{self._entity_name} data file {self._path} does not hold an "
                f"array. Starting with empty {self._entity_name} list."
            )
            self._quarantine()
            return []

        items: List[T] = []
        for position, record in enumerate(raw):
            try:
                items.append(self._codec.decode(record))
            except (ValueError, TypeError, KeyError) as exc:
                logger.warning(
                    f"Skipping malformed {self._entity_name} record "
                    f"#{position} in {self._path}: {exc}"
                )
        if len(items) != len(raw):
            self._quarantine()
        return items

    def _quarantine(self) -> None:
        if self._quarantine_corrupt:
            medium.quarantine(self._path)

    def reload(self) -> None:
        """Discard the working set and re-read the backing file."""
        self._load()

    # ── Locking ───────────────────────────────────────────────

    @contextmanager
    def atomic(self) -> Iterator["DocumentStore[T]"]:
        """
        Hold the store lock across several calls.

        Re-entrant: save() / delete_by_id() may be called inside.
        """
        with self._lock:
            yield self

    # ── Reads ─────────────────────────────────────────────────

    def find_by_id(self, identity: Optional[str]) -> Optional[T]:
        if identity is None or not str(identity).strip():
            return None
        with self._lock:
            index = self._index_of(identity)
            if index is None:
                return None
            return copy.deepcopy(self._items[index])

    def find_all(self) -> List[T]:
        with self._lock:
            logger.debug(
                f"Getting all {self._entity_name}, returning "
                f"{len(self._items)} items"
            )
            return copy.deepcopy(self._items)

    def find_where(self, predicate: Callable[[T], bool]) -> List[T]:
        with self._lock:
            return [copy.deepcopy(item) for item in self._items if predicate(item)]

    def find_one(self, predicate: Callable[[T], bool]) -> Optional[T]:
        with self._lock:
            for item in self._items:
                if predicate(item):
                    return copy.deepcopy(item)
            return None

    def find_by_key(self, key_name: str, value: Optional[str]) -> Optional[T]:
        """Lookup through a registered unique key (e.g. "number")."""
        extractor = self._unique_keys.get(key_name)
        if extractor is None:
            raise InvalidArgumentError(
                f"{self._entity_name} has no unique key '{key_name}'."
            )
        if value is None or not str(value).strip():
            return None
        return self.find_one(lambda item: extractor(item) == value)

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    # ── Writes ────────────────────────────────────────────────

    def save(self, entity: T) -> T:
        """
        Insert (blank identity) or replace (existing identity).

        Returns a copy of the stored entity.
        """
        if entity is None:
            raise InvalidArgumentError(f"{self._entity_name} cannot be None.")

        with self._lock:
            stored = copy.deepcopy(entity)
            identity = self._identity.get(stored)

            if identity is None or not str(identity).strip():
                identity = str(uuid.uuid4())
                self._identity.set(stored, identity)
                self._check_unique(stored, identity)
                self._items.append(stored)
                self._flush()
                logger.info(f"Created new {self._entity_name} with ID: {identity}")
            else:
                index = self._index_of(identity)
                if index is None:
                    raise NotFoundError(self._entity_name, identity)
                self._check_unique(stored, identity)
                self._items[index] = stored
                self._flush()
                logger.info(f"Updated {self._entity_name} with ID: {identity}")

            self._identity.set(entity, identity)
            return copy.deepcopy(stored)

    def delete_by_id(self, identity: Optional[str]) -> bool:
        """Remove a record. Absent identity is a logged no-op (returns False)."""
        if identity is None or not str(identity).strip():
            raise InvalidArgumentError(
                f"{self._entity_name} ID cannot be null or empty."
            )
        with self._lock:
            index = self._index_of(identity)
            if index is None:
                logger.warning(
                    f"Attempted to delete {self._entity_name} with ID: "
                    f"{identity}, but it was not found"
                )
                return False
            del self._items[index]
            self._flush()
            logger.info(f"Deleted {self._entity_name} with ID: {identity}")
            return True

    # ── Internals ─────────────────────────────────────────────

    def _index_of(self, identity: str) -> Optional[int]:
        for index, item in enumerate(self._items):
            if self._identity.get(item) == identity:
                return index
        return None

    def _check_unique(self, entity: T, identity: str) -> None:
        for key_name, extractor in self._unique_keys.items():
            value = extractor(entity)
            if value is None or not str(value).strip():
                continue
            for other in self._items:
                if self._identity.get(other) == identity:
                    continue
                if extractor(other) == value:
                    raise AlreadyExistsError(self._entity_name, key_name, value)

    def _flush(self) -> None:
        logger.debug(f"Saving {len(self._items)} {self._entity_name} to data file")
        try:
            payload = json.dumps(
                [self._codec.encode(item) for item in self._items],
                indent=2,
                ensure_ascii=False,
            )
            medium.write_text_atomic(self._path, payload)
        except (OSError, TypeError, ValueError) as exc:
            logger.error(
                f"Failed to save {self._entity_name} to {self._path}: {exc}",
                exc_info=True,
            )
            raise PersistenceError(self._entity_name, self._path, exc) from exc

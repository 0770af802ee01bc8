"""
DocFlow Collaborators — Location Directory
==========================================
Stock locations (warehouses) and default-location resolution.

Default location: the first active location, or when none is active,
the first location of any status. No location at all → None; engines
then skip the inventory effect with a warning.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol, Sequence


@dataclass(frozen=True)
class Location:
    location_id: str
    code: str = ""
    name: str = ""
    active: bool = True

    def __post_init__(self):
        if not self.location_id or not isinstance(self.location_id, str):
            raise ValueError("location_id must be non-empty string.")


class LocationDirectory(Protocol):
    def list_active(self) -> Sequence[Location]:
        ...

    def list_all(self) -> Sequence[Location]:
        ...


class InMemoryLocationDirectory:
    """Ordered in-memory directory used by tests and local wiring."""

    def __init__(self, locations: Iterable[Location] | None = None):
        self._locations: list[Location] = list(locations or ())

    def add(self, location: Location) -> None:
        self._locations.append(location)

    def list_active(self) -> Sequence[Location]:
        return tuple(loc for loc in self._locations if loc.active)

    def list_all(self) -> Sequence[Location]:
        return tuple(self._locations)


def resolve_default_location(directory: LocationDirectory) -> Optional[Location]:
    active = list(directory.list_active())
    if active:
        return active[0]
    every = list(directory.list_all())
    if every:
        return every[0]
    return None

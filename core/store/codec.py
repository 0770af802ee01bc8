"""
DocFlow Store — Entity Codecs
=============================
Turns entities into JSON-safe dicts and back.

Doctrine:
- Money is Decimal in memory and a string on disk ("12.50"), so the
  round trip keeps its exact scale.
- Datetimes are ISO-8601 strings on disk.
- Unknown keys in stored records are ignored on decode.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Generic, Optional, Protocol, Type, TypeVar

T = TypeVar("T")


# ══════════════════════════════════════════════════════════════
# CODEC PROTOCOL
# ══════════════════════════════════════════════════════════════

class EntityCodec(Protocol[T]):
    """Serializer injected into a DocumentStore."""

    def encode(self, entity: T) -> dict:
        ...  # pragma: no cover

    def decode(self, data: dict) -> T:
        ...  # pragma: no cover


class DictModelCodec(Generic[T]):
    """
    Codec for models exposing `to_dict()` and a `from_dict()` classmethod,
    the convention every DocFlow dataclass follows.
    """

    def __init__(self, model: Type[T]):
        self._model = model

    def encode(self, entity: T) -> dict:
        return entity.to_dict()

    def decode(self, data: dict) -> T:
        if not isinstance(data, dict):
            raise ValueError(
                f"{self._model.__name__} record must be an object, "
                f"got {type(data).__name__}."
            )
        return self._model.from_dict(data)


# ══════════════════════════════════════════════════════════════
# IDENTITY ACCESSOR
# ══════════════════════════════════════════════════════════════

class IdentityAccessor(Generic[T]):
    """Reads and assigns the identity field of an entity."""

    def __init__(
        self,
        getter: Callable[[T], Optional[str]],
        setter: Callable[[T, str], None],
    ):
        self._getter = getter
        self._setter = setter

    def get(self, entity: T) -> Optional[str]:
        return self._getter(entity)

    def set(self, entity: T, identity: str) -> None:
        self._setter(entity, identity)

    @classmethod
    def attribute(cls, name: str = "id") -> "IdentityAccessor[Any]":
        return cls(
            getter=lambda entity: getattr(entity, name),
            setter=lambda entity, value: setattr(entity, name, value),
        )


# ══════════════════════════════════════════════════════════════
# FIELD HELPERS
# ══════════════════════════════════════════════════════════════

def encode_decimal(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def decode_decimal(value: Any, field_name: str = "value") -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field_name} is not a decimal: {value!r}") from exc


def encode_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def decode_datetime(value: Any, field_name: str = "value") -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"{field_name} is not an ISO datetime: {value!r}") from exc


def decode_int(value: Any, field_name: str = "value") -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer, got bool.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} is not an integer: {value!r}") from exc

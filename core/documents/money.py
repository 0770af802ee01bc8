"""
DocFlow Documents — Money Helpers
=================================
Monetary amounts are Decimal end to end. Floats are converted through
their repr so 0.1 stays 0.1.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from core.store.errors import InvalidArgumentError

ZERO = Decimal("0")


def to_money(value: Any, field_name: str) -> Optional[Decimal]:
    """Coerce caller input to Decimal; None passes through."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, bool):
        raise InvalidArgumentError(f"{field_name} must be a decimal amount.")
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise InvalidArgumentError(
                f"{field_name} is not a decimal amount: {value!r}"
            ) from exc
    if not amount.is_finite():
        raise InvalidArgumentError(f"{field_name} must be finite.")
    return amount


def to_quantity(value: Any, field_name: str, *, allow_zero: bool = True) -> int:
    """Coerce caller input to a non-negative int quantity."""
    if isinstance(value, bool) or value is None:
        raise InvalidArgumentError(f"{field_name} must be an integer.")
    try:
        quantity = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(
            f"{field_name} is not an integer: {value!r}"
        ) from exc
    if isinstance(value, float) and value != quantity:
        raise InvalidArgumentError(f"{field_name} must be a whole number.")
    if quantity < 0 or (quantity == 0 and not allow_zero):
        raise InvalidArgumentError(
            f"{field_name} must be {'>= 0' if allow_zero else 'positive'}, "
            f"got {quantity}."
        )
    return quantity

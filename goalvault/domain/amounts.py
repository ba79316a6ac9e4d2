"""Conversions between display amounts and integer base units."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

Number = Union[str, int, Decimal]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("Amount must be numeric.")
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            raise ValueError("Amount is required.")
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Amount is not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError("Amount must be finite.")
    return result


def parse_units(value: Number, decimals: int) -> int:
    """Convert a display amount such as ``"12.5"`` to base units.

    Raises:
        ValueError: Negative, non-numeric, or more precise than ``decimals``.
    """
    amount = _to_decimal(value)
    if amount < 0:
        raise ValueError("Amount must not be negative.")
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount has more than {decimals} decimal places.")
    return int(scaled)


def format_units(value: int, decimals: int, *, places: Optional[int] = None) -> str:
    """Render base units as a display string, trimming trailing zeros."""
    amount = Decimal(int(value)).scaleb(-decimals)
    if places is not None:
        amount = amount.quantize(Decimal(1).scaleb(-places))
        return f"{amount:f}"
    text = f"{amount:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


@dataclass(frozen=True)
class AmountBounds:
    """Inclusive contribution limits expressed in display units."""

    minimum: Decimal = Decimal("1")
    maximum: Decimal = Decimal("100000")

    def validate(self, value: Number) -> Decimal:
        amount = _to_decimal(value)
        if amount <= 0:
            raise ValueError("Amount must be a positive number.")
        if amount < self.minimum:
            raise ValueError(f"Minimum contribution is {self.minimum:f}.")
        if amount > self.maximum:
            raise ValueError(f"Maximum contribution is {self.maximum:,f}.")
        return amount


__all__ = ["AmountBounds", "format_units", "parse_units"]

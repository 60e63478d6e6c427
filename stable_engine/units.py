"""Fixed-point unit conversions between human amounts and integer base units."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation


def to_base_units(amount: str | int | Decimal, decimals: int) -> int:
    """Convert a human amount into integer base units.

    Examples:
        to_base_units("1.5", 18) → 1500000000000000000
        to_base_units(2000, 8)   → 200000000000
    """
    if isinstance(amount, float):
        raise TypeError("Use str or Decimal for fractional amounts, not float")
    try:
        value = Decimal(str(amount)) * (Decimal(10) ** decimals)
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {amount!r}") from e
    if value != value.to_integral_value():
        raise ValueError(f"{amount} has more than {decimals} decimal places")
    return int(value)


def from_base_units(amount: int, decimals: int) -> Decimal:
    """Convert integer base units back to a human Decimal."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def format_amount(amount: int, decimals: int, places: int = 4) -> str:
    """Render base units with thousands separators, e.g. '20,000.0000'."""
    return f"{from_base_units(amount, decimals):,.{places}f}"

"""Conversions between smallest-unit integers and human decimal strings."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

DECIMALS = 18


def to_base_units(amount: str | int | Decimal, decimals: int = DECIMALS) -> int:
    """Parse a human decimal amount (e.g. ``"0.5"``) into smallest units.

    Raises:
        ValueError: If the amount is malformed, negative, or more precise
            than ``decimals`` allows.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc

    if not value.is_finite() or value < 0:
        raise ValueError(f"Invalid amount: {amount!r}")

    scaled = value * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount!r} has more than {decimals} decimals")
    return int(scaled)


def from_base_units(value: int | str, decimals: int = DECIMALS) -> str:
    """Format smallest units as a decimal string, always keeping one fraction digit."""
    amount = Decimal(int(value)) / (Decimal(10) ** decimals)
    text = format(amount, "f")
    if "." not in text:
        return f"{text}.0"
    whole, fraction = text.split(".")
    fraction = fraction.rstrip("0") or "0"
    return f"{whole}.{fraction}"

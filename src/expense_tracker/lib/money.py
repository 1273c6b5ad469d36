"""Conversions between dollar amounts and stored integer cents."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

__all__ = ("MAX_CENTS", "MAX_DOLLARS", "to_cents", "to_dollars")

_ONE_CENT = Decimal("1")

# Largest single amount accepted; keeps cents inside a 32-bit INTEGER column
MAX_DOLLARS = 10_000_000
MAX_CENTS = MAX_DOLLARS * 100


def to_cents(amount: float | int | Decimal) -> int:
    """Convert a dollar amount to integer cents, rounding half up.

    Raises:
        ValueError: If the amount is not a finite number that fits the cent precision
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if not value.is_finite():
            raise InvalidOperation
        return int((value * 100).quantize(_ONE_CENT, rounding=ROUND_HALF_UP))
    except (InvalidOperation, OverflowError) as e:
        msg = f"Amount {amount!r} cannot be converted to cents"
        raise ValueError(msg) from e


def to_dollars(cents: int | float) -> float:
    return cents / 100

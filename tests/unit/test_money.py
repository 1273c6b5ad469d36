from __future__ import annotations

from decimal import Decimal

import pytest

from expense_tracker.lib.money import to_cents, to_dollars


@pytest.mark.parametrize(
    ("amount", "cents"),
    [
        (4.5, 450),
        (0.01, 1),
        (19.99, 1999),
        (1.005, 101),
        (2.675, 268),
        (0.004, 0),
        (10, 1000),
        (Decimal("3.335"), 334),
    ],
)
def test_to_cents_rounds_half_up(amount: float | Decimal, cents: int) -> None:
    assert to_cents(amount) == cents


def test_to_dollars() -> None:
    assert to_dollars(450) == 4.5
    assert f"{to_dollars(1999):.2f}" == "19.99"


@pytest.mark.parametrize("amount", [float("inf"), float("nan"), 1e30, Decimal("Infinity"), Decimal("NaN"), Decimal("-sNaN")])
def test_to_cents_rejects_non_finite_and_oversized(amount: float | Decimal) -> None:
    with pytest.raises(ValueError, match="cannot be converted to cents"):
        to_cents(amount)

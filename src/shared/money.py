"""Money helpers.

Every stored amount is a two-place ``Decimal`` rounded half-up. The payment
gateway and the SQL adapters work in integer minor units (cents).
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Quantize a value to two decimal places, rounding half-up.

    Floats are converted through ``str`` so that ``25.1`` means 25.10 rather
    than its binary approximation.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> int:
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return to_money(Decimal(cents) / 100)

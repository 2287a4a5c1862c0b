"""
Money helpers.

All derived monetary values are Decimals rounded half-up to two places,
exactly once, at the point of derivation.
"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """
    Convert a value to Decimal without binary float artifacts.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not
    Decimal("0.1000000000000000055511151231257827...").
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round2(value: Decimal | int | float | str) -> Decimal:
    """
    Round to 2 decimal places using round-half-up.

    Examples:
        round2("97.745") -> Decimal("97.75")
        round2(1150 * 0.085) -> Decimal("97.75")
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal, currency_symbol: str) -> str:
    """Format an amount for user-facing messages, e.g. "₹1287.75"."""
    return f"{currency_symbol}{round2(value)}"

"""Integer paise arithmetic.

All monetary values in the engine are whole paise (1 rupee = 100 paise).
Rates are ``Decimal`` and every product is rounded half-up to the nearest
paisa at the point where it is computed.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

PAISE_PER_RUPEE = 100

_WHOLE = Decimal("1")


def round_paise(amount: Decimal) -> int:
    """Round a fractional paise amount half-up to whole paise."""
    return int(amount.quantize(_WHOLE, rounding=ROUND_HALF_UP))


def apply_rate(paise: int, rate: Decimal) -> int:
    """Multiply an amount by a rate, rounded half-up to whole paise."""
    return round_paise(Decimal(paise) * rate)


def prorate(paise: int, numerator: Decimal | int, denominator: Decimal | int) -> int:
    """Scale an amount by ``numerator / denominator``, rounded half-up.

    The division happens after the multiplication so that exact fractions
    (e.g. 15 of 30 days) never pick up a repeating-decimal error.
    """
    if denominator == 0:
        raise ZeroDivisionError("Cannot prorate over a zero denominator")
    return round_paise(Decimal(paise) * Decimal(numerator) / Decimal(denominator))


def rupees_to_paise(rupees: int | Decimal) -> int:
    """Convert a rupee amount to paise."""
    return round_paise(Decimal(rupees) * PAISE_PER_RUPEE)


def format_rupees(paise: int) -> str:
    """Render paise as a major-unit string with exactly two decimals.

    >>> format_rupees(1575050)
    '15750.50'
    >>> format_rupees(-5)
    '-0.05'
    """
    sign = "-" if paise < 0 else ""
    rupees, rem = divmod(abs(paise), PAISE_PER_RUPEE)
    return f"{sign}{rupees}.{rem:02d}"


def parse_rupees(text: str) -> int:
    """Parse a two-decimal rupee string back into paise."""
    try:
        value = Decimal(text.strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a rupee amount: {text!r}") from e
    paise = value * PAISE_PER_RUPEE
    if paise != paise.to_integral_value():
        raise ValueError(f"Rupee amount has more than two decimals: {text!r}")
    return int(paise)

"""
Money helpers.

All amounts in the ledger are signed integers in minor units (cents).
Conversions go through Decimal so no float rounding leaks into storage.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

Number = Union[int, float, str, Decimal]

_CENT = Decimal("0.01")
_AMOUNT_CLEANUP = re.compile(r"[,\s$]")


def dollars_to_cents(value: Number) -> int:
    """
    Convert a major-unit amount to integer cents.

    Args:
        value: Amount in dollars (int, float, str or Decimal)

    Returns:
        Amount in cents, rounded half up

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        # str() keeps floats like 12.34 from turning into 12.3399999...
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_dollars(cents: int) -> Decimal:
    """Return the exact two-place dollar value for an amount in cents."""
    return (Decimal(int(cents)) / 100).quantize(_CENT)


def format_currency(cents: int, symbol: str = "$") -> str:
    """
    Format cents as a currency string.

    Examples:
        123456 -> "$1,234.56"
        -1200 -> "-$12.00"
    """
    sign = "-" if cents < 0 else ""
    return f"{sign}{symbol}{abs(cents_to_dollars(cents)):,.2f}"


def parse_amount(text: str) -> int:
    """
    Parse a user-entered amount such as "1,234.56", "$12" or "-5.5" into cents.

    Raises:
        ValueError: If the text is empty or not a number
    """
    if text is None:
        raise ValueError("Amount is required")
    cleaned = _AMOUNT_CLEANUP.sub("", str(text))
    if not cleaned:
        raise ValueError("Amount is required")
    return dollars_to_cents(cleaned)

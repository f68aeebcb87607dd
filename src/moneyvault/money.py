"""Exact decimal helpers for currency values.

All sums, differences and percentages in MoneyVault go through
``decimal.Decimal``. Binary floats are only accepted at the boundary and are
converted through their shortest string representation, never summed.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .errors import InvalidAmount

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

_CURRENCY_SYMBOLS = re.compile(r"[€$£¥\s]")
_PLAIN_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a value to a finite Decimal.

    Args:
        value: Decimal, int, float or numeric string

    Returns:
        Decimal: The exact decimal value

    Raises:
        InvalidAmount: If the value is not numeric or not finite
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            result = Decimal(repr(value))
        else:
            result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmount(f"Invalid amount: {value!r}") from e

    if not result.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {value!r}")
    return result


def require_finite(value: Decimal) -> Decimal:
    """Return ``value`` unchanged or raise InvalidAmount if it is NaN/Infinity."""
    if not isinstance(value, Decimal) or not value.is_finite():
        raise InvalidAmount(f"Amount must be a finite decimal, got {value!r}")
    return value


def round_currency(amount: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return require_finite(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """Format as a signed decimal with exactly two fraction digits.

    Examples:
        >>> format_amount(Decimal("-45.5"))
        '-45.50'
        >>> format_amount(Decimal("1500"))
        '1500.00'
    """
    return f"{round_currency(amount):.2f}"


def parse_amount(text: str) -> Decimal | None:
    """Parse a user-supplied amount string.

    Strips whitespace and currency symbols and accepts a comma as decimal
    separator. Returns None instead of raising for unparseable input so import
    code can collect the failure.

    Examples:
        >>> parse_amount("€ -45,50")
        Decimal('-45.50')
        >>> parse_amount("abc") is None
        True
    """
    if text is None:
        return None

    cleaned = _CURRENCY_SYMBOLS.sub("", text.strip()).replace(",", ".")
    if not _PLAIN_NUMBER.match(cleaned):
        return None

    try:
        return to_decimal(cleaned)
    except InvalidAmount:
        return None


def percentage_of(value: Decimal, total: Decimal) -> Decimal:
    """Return ``value / total * 100``, or zero when ``total`` is zero."""
    require_finite(value)
    require_finite(total)
    if total == ZERO:
        return ZERO
    return value / total * HUNDRED

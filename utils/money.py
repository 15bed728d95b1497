"""Presentation helpers for monetary amounts."""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")

_SYMBOLS = {
    "usd": "$",
    "cad": "$",
    "aud": "$",
    "eur": "€",
    "gbp": "£",
}


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half-up. Only call this at presentation boundaries."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Convert an amount to integer cents for payment gateways."""
    return int(round_money(amount) * 100)


def format_currency(amount: Decimal, currency: str = "usd") -> str:
    """
    Format an amount for humans, e.g. format_currency(Decimal("1234.5")) -> "$1,234.50".

    Unknown currencies fall back to the upper-cased ISO code as a suffix.
    """
    rounded = round_money(amount)
    sign = "-" if rounded < 0 else ""
    symbol = _SYMBOLS.get(currency.lower())
    if symbol is None:
        return f"{sign}{abs(rounded):,.2f} {currency.upper()}"
    return f"{sign}{symbol}{abs(rounded):,.2f}"


def coerce_amount(value) -> Decimal:
    """
    Coerce form input to a non-negative Decimal.

    Anything that isn't a finite number >= 0 (None, "", "abc", NaN, -5)
    becomes Decimal(0) instead of raising. Floats go through str() so
    0.1 stays 0.1 rather than its binary expansion.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value.strip() if isinstance(value, str) else value)
    except (ArithmeticError, TypeError, ValueError):
        return Decimal(0)
    if not amount.is_finite() or amount <= 0:
        return Decimal(0)
    return amount

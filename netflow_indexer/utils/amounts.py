"""
Arbitrary-precision token amounts stored as decimal strings.

Amounts are raw token base units (no decimals applied). They are persisted as
text to avoid floating-point loss and parsed back into Python ints for
arithmetic. Subtraction is floored at zero: netflow is max(inflow - outflow, 0).
"""

from __future__ import annotations


def parse_amount(value: str | int) -> int:
    """
    Parse a non-negative decimal amount.

    Raises ValueError for negative, empty, or non-decimal input.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Amount must be non-negative: {value}")
        return value
    text = (value or "").strip()
    if not text.isdigit():
        raise ValueError(f"Invalid decimal amount: {value!r}")
    return int(text)


def add_decimal(a: str | int, b: str | int) -> str:
    """Return a + b as a decimal string."""
    return str(parse_amount(a) + parse_amount(b))


def sub_decimal(a: str | int, b: str | int) -> str:
    """Return a - b as a decimal string, floored at "0"."""
    ua = parse_amount(a)
    ub = parse_amount(b)
    if ua >= ub:
        return str(ua - ub)
    return "0"


def format_units(amount: str | int, decimals: int) -> str:
    """
    Render a raw amount with the token's decimal places, for display only.

    format_units("1500000", 6) -> "1.5"
    """
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    raw = parse_amount(amount)
    if decimals == 0:
        return str(raw)
    whole, frac = divmod(raw, 10**decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{whole}.{frac_str}" if frac_str else str(whole)

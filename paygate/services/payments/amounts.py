"""Exact conversion between human token amounts ("0.10") and integer minor units."""
import re
from decimal import Decimal

_AMOUNT_RE = re.compile(r"^(\d+)(?:\.(\d*))?$")


def to_minor_units(amount: str | int | Decimal, decimals: int) -> int:
    """
    Convert a non-negative decimal amount to minor units without floating point.
    Extra fractional digits beyond `decimals` are truncated.

    >>> to_minor_units("0.1", 6)
    100000
    >>> to_minor_units("1.0000009", 6)
    1000000
    """
    if decimals < 0:
        raise ValueError("decimals must be >= 0")
    if isinstance(amount, bool) or isinstance(amount, float):
        raise TypeError("float amounts are not accepted, pass a decimal string")
    if isinstance(amount, int):
        if amount < 0:
            raise ValueError("amount must be non-negative")
        return amount * 10 ** decimals
    text = format(amount, "f") if isinstance(amount, Decimal) else amount.strip()
    match = _AMOUNT_RE.match(text)
    if not match:
        raise ValueError(f"Invalid amount: {amount!r}")
    whole, frac = match.group(1), match.group(2) or ""
    frac = (frac + "0" * decimals)[:decimals]
    return int(whole) * 10 ** decimals + (int(frac) if frac else 0)


def format_minor_units(amount: int, decimals: int) -> str:
    """Render minor units as a decimal string, keeping at least two fraction digits."""
    if decimals == 0:
        return str(amount)
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10 ** decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0")
    frac_text = frac_text.ljust(min(2, decimals), "0")
    return f"{sign}{whole}.{frac_text}"


def parse_hex_quantity(value: str) -> int:
    """Parse an EVM hex quantity ("0x1bc16d674ec80000"); "0x" alone is 0."""
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise ValueError(f"Not a hex quantity: {value!r}")
    digits = value[2:]
    return int(digits, 16) if digits else 0

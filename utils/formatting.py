"""Scaling of raw integer token amounts into human units."""

import math

# 10**77 is the largest power of ten below 2**256, so no uint256 amount needs more.
MAX_DECIMALS = 77


class FormatError(ValueError):
    """Raised when a raw amount cannot be turned into a finite float."""


def format_units(amount: int, decimals: int) -> str:
    """Return ``amount / 10**decimals`` as an exact decimal string.

    The fractional part always carries ``decimals`` digits, so
    ``format_units(10**18, 18) == "1.000000000000000000"``.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise FormatError(f"amount must be an integer, got {amount!r}")
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise FormatError(f"decimals must be an integer, got {decimals!r}")
    if amount < 0:
        raise FormatError(f"amount must not be negative: {amount}")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise FormatError(f"decimals out of range 0..{MAX_DECIMALS}: {decimals}")

    digits = str(amount)
    if decimals == 0:
        return digits
    digits = digits.rjust(decimals + 1, "0")
    return f"{digits[:-decimals]}.{digits[-decimals:]}"


def scale_amount(amount: int, decimals: int) -> float:
    """Convert a raw token amount to a float in human units."""
    formatted = format_units(amount, decimals)
    try:
        value = float(formatted)
    except (ValueError, OverflowError) as e:
        raise FormatError(f"cannot parse {formatted!r} as float: {e}") from e
    if not math.isfinite(value):
        raise FormatError(f"scaled amount does not fit a float: {formatted[:32]}...")
    return value

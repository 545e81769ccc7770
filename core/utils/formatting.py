"""Formatting utilities for scores and percentages."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


def to_decimal(value: float | int | Decimal) -> Decimal:
    """
    Convert a number to Decimal through its shortest string form.

    ``Decimal(0.1)`` carries the binary expansion of the float; going
    through ``str`` keeps the value the caller actually wrote.
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: float | int | Decimal, decimals: int = 2) -> float:
    """
    Round a number half away from zero to a fixed number of decimals.

    Python's ``round`` uses banker's rounding (``round(0.125, 2) == 0.12``);
    scores and percentages are reported with conventional half-up rounding.

    Args:
        value: Number to round
        decimals: Number of decimal places

    Returns:
        Rounded value as float
    """
    quantum = Decimal(1).scaleb(-decimals)
    return float(to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def round_to_int(value: float | int | Decimal) -> int:
    """Round half up to the nearest integer."""
    return int(to_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percentage(part: float | int, whole: float | int, decimals: Optional[int] = None) -> float | int:
    """
    Compute ``part / whole * 100`` with half-up rounding.

    Args:
        part: Numerator
        whole: Denominator; a zero denominator yields 0
        decimals: Decimal places, or None for an integer percentage

    Returns:
        Rounded percentage
    """
    if not whole:
        return 0 if decimals is None else 0.0
    raw = to_decimal(part) / to_decimal(whole) * 100
    if decimals is None:
        return round_to_int(raw)
    return round_half_up(raw, decimals)

"""Rounding helpers shared by scoring and progress aggregation.

Percentages are computed in Decimal and rounded half-up (2.5 -> 3), not
with Python's float banker's rounding, so .5 boundaries always resolve
the same way regardless of binary float error.
"""

from decimal import ROUND_HALF_UP, Decimal


def to_decimal(value: float | int | Decimal) -> Decimal:
    """Convert a point/count value to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def ratio_percent(part: float | int, whole: float | int) -> Decimal:
    """Return ``100 * part / whole``, or 0 when ``whole`` is 0."""
    whole_d = to_decimal(whole)
    if whole_d <= 0:
        return Decimal(0)
    return Decimal(100) * to_decimal(part) / whole_d


def round_half_up(value: float | int | Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(to_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))

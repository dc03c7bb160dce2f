"""Rounding helpers shared by progress, percentages and scores."""

import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves away from negative infinity.

    Python's built-in ``round`` uses banker's rounding (``round(2.5) == 2``);
    every percentage and score in this package rounds ``x.5`` up instead.
    """
    return int(math.floor(value + 0.5))


def percent(part: int, total: int) -> int:
    """Whole-number percentage of ``part`` in ``total`` (0 when total is 0)."""
    if total <= 0:
        return 0
    return round_half_up(part / total * 100)

"""
Half-up rounding for scores and minute counts.

The built-in round() sends halves to the even neighbour (52.5 -> 52); scores
and SLA minutes always round .5 up.
"""

import math


def round_half_up(value: float) -> int:
    """52.5 -> 53, 2.5 -> 3, -0.5 -> 0."""
    return math.floor(value + 0.5)

"""
Numeric Helper Functions

Rounding and clamping shared by every score calculation.
"""

import math
from fractions import Fraction
from typing import Iterable, Union

Number = Union[int, float, Fraction]


def round_half_up(value: Number) -> int:
    """
    Round to the nearest integer, halves away from zero.

    Unlike built-in round(), 84.5 -> 85 and 85.5 -> 86. Fractions round
    exactly.
    """
    if value < 0:
        return -int(math.floor(-value + Fraction(1, 2)))
    return int(math.floor(value + Fraction(1, 2)))


def clamp(value: Number, low: Number = 0, high: Number = 100) -> Number:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def mean(values: Iterable[Number]) -> Number:
    """Arithmetic mean; 0.0 for an empty iterable."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)

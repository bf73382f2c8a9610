"""Small numeric helpers shared by the scoring components."""

from __future__ import annotations

import math

MIN_PROBABILITY = 0.01
MAX_PROBABILITY = 0.99
SCORE_EPSILON = 0.000_001


def clamp(value: float, lower: float, upper: float) -> float:
    return min(upper, max(lower, value))


def clamp_probability(value: float) -> float:
    """Keep a probability inside [0.01, 0.99]; no contract is ever certain."""

    return clamp(value, MIN_PROBABILITY, MAX_PROBABILITY)


def blend(left: float, right: float, left_weight: float) -> float:
    return left * left_weight + right * (1 - left_weight)


def round_half_up(value: float, places: int = 0) -> float:
    # Rounds .5 towards +inf on the scaled value; the builtin round() would
    # bank to even and disagree at the published boundaries.
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


def round2(value: float) -> float:
    return round_half_up(value, 2)


def round4(value: float) -> float:
    return round_half_up(value, 4)

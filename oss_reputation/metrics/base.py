"""
Shared score types and numeric helpers.
"""

import math
from typing import NamedTuple


class ScoreComponent(NamedTuple):
    """One weighted factor of a composite score."""

    name: str
    value: float
    max_value: float
    detail: str


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float, low: float = 0, high: float = 100) -> float:
    """Clamp a score into [low, high]."""
    return max(low, min(high, value))


def to_score(value: float) -> int:
    """Clamp into [0, 100] and round to an integer score."""
    return round_half_up(clamp_score(value))


def rate_score(score: int) -> str:
    """
    Map a 0-100 score to a display label.

    - 80+: Excellent
    - 60-79: Good
    - 40-59: Fair
    - <40: Low
    """
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    if score >= 40:
        return "Fair"
    return "Low"

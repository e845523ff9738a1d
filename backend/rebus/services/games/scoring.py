import math

from .guessing import MATCH_CORRECT, MATCH_PARTIAL

MAX_POINTS = 1000
MIN_POINTS = 50
PARTIAL_MULTIPLIER = 0.5


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calc_score(remaining: float, total: float, match: str, similarity: float) -> int:
    """Points for a guess made with ``remaining`` of ``total`` seconds left.

    The 50 point floor applies to the time-based value before the partial
    multiplier, so a weak partial match can still land under 50.
    """
    if match not in (MATCH_CORRECT, MATCH_PARTIAL) or total <= 0:
        return 0
    time_ratio = max(0.0, remaining) / total
    base = max(_round_half_up(MAX_POINTS * time_ratio), MIN_POINTS)
    if match == MATCH_PARTIAL:
        return _round_half_up(base * PARTIAL_MULTIPLIER * similarity)
    return base

from typing import Tuple

# Win rate reported for an identity (or pairing) with no recorded fights
NO_HISTORY_RATE = 50.0


def win_rate(wins: int, total: int) -> float:
    """Percentage of `total` fights won, 0-100."""
    if not total:
        return NO_HISTORY_RATE
    return 100.0 * wins / total


def head_to_head_rates(a_wins: int, b_wins: int) -> Tuple[float, float]:
    """
    Splits 100 between two sides by their wins against each other.
    A pairing that never met is an even (50, 50).
    """
    total = (a_wins or 0) + (b_wins or 0)
    if not total:
        return NO_HISTORY_RATE, NO_HISTORY_RATE
    rate_a = 100.0 * a_wins / total
    return rate_a, 100.0 - rate_a

"""
Guess Selector - Picks the next value to propose from a round's tally.

The value whose observed frequency is closest to the truthful fraction
(1 - liar ratio) wins. Ties go to the numerically smallest value.
"""

from typing import AbstractSet, Optional

from .aggregator import Tally
from .errors import NoCandidateError
from .logging_config import setup_logger

logger = setup_logger(__name__)

# Scores equal up to this many decimals are ties
SCORE_PRECISION = 9


def score(count: int, total: int, liar_ratio: float) -> float:
    """Distance between a value's observed frequency and the truthful fraction."""
    return abs((1.0 - liar_ratio) - count / total)


def select_guess(tally: Tally, total: Optional[int], liar_ratio: float,
                 already_tried: AbstractSet[int] = frozenset()) -> int:
    """
    Choose the untried value that best matches the expected truthful fraction.

    Args:
        tally: Values reported this round and how often
        total: Number of valid responses (defaults to the tally's total)
        liar_ratio: Known fraction of liars, in [0, 1)
        already_tried: Values proposed in previous rounds

    Returns:
        The candidate value

    Raises:
        NoCandidateError: if no untried value was reported
    """
    if total is None:
        total = tally.total

    candidates = [value for value in tally.values() if value not in already_tried]
    if not candidates or total <= 0:
        raise NoCandidateError(
            f"No untried value among {tally} (already tried: {sorted(already_tried)})"
        )

    scores = {value: round(score(tally.count(value), total, liar_ratio), SCORE_PRECISION)
              for value in candidates}
    best = min(candidates, key=lambda value: (scores[value], value))
    logger.debug(f"Selected {best} with score {scores[best]} out of {scores}")
    return best

"""
Fractional Kelly allocation.

f = (b * p - q) / b with q = 1 - p, scaled by a safety multiplier
(half-Kelly by default) and capped at a maximum allocation.
"""

import logging

from apex.core.exceptions import ApexConfigError
from apex.core.models import KellyRecommendation

logger = logging.getLogger(__name__)

KELLY_MULTIPLIER = 0.5
MAX_KELLY_ALLOCATION = 0.20


def kelly_size(
    win_probability: float,
    reward_risk: float,
    bankroll: float,
    kelly_multiplier: float = KELLY_MULTIPLIER,
    max_allocation: float = MAX_KELLY_ALLOCATION,
) -> KellyRecommendation:
    """
    Recommend a bankroll allocation.

    Args:
        win_probability: Assumed probability of a win (0-1).
        reward_risk: Payoff ratio b (average win / average loss).
        bankroll: Capital the allocation applies to.
        kelly_multiplier: Safety multiplier on the raw fraction.
        max_allocation: Cap on the allocated fraction.

    Returns:
        KellyRecommendation; ``kind`` is "NO TRADE" with zero allocation
        when the edge is not positive.

    Raises:
        ApexConfigError: Probability outside [0, 1], non-positive payoff
            ratio, negative bankroll or bad multiplier/cap.
    """
    if not 0.0 <= win_probability <= 1.0:
        raise ApexConfigError(f"win_probability must be within [0, 1], got {win_probability}")
    if reward_risk <= 0:
        raise ApexConfigError(f"reward_risk must be positive, got {reward_risk}")
    if bankroll < 0:
        raise ApexConfigError(f"bankroll must not be negative, got {bankroll}")
    if not 0.0 < kelly_multiplier <= 1.0 or not 0.0 < max_allocation <= 1.0:
        raise ApexConfigError("kelly_multiplier and max_allocation must be within (0, 1]")

    loss_probability = 1.0 - win_probability
    raw = (reward_risk * win_probability - loss_probability) / reward_risk
    fraction = min(raw * kelly_multiplier, max_allocation)

    if fraction <= 0:
        logger.debug("Kelly negative (p=%.2f, b=%.2f): no trade", win_probability, reward_risk)
        return KellyRecommendation(
            raw_kelly=raw,
            fraction=0.0,
            percentage=0.0,
            amount=0.0,
            kind="NO TRADE",
            can_trade=False,
        )

    return KellyRecommendation(
        raw_kelly=raw,
        fraction=fraction,
        percentage=round(fraction * 100, 2),
        amount=round(bankroll * fraction, 2),
        kind="Half-Kelly" if kelly_multiplier == 0.5 else f"{kelly_multiplier:g}x Kelly",
    )

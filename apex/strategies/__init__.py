"""APEX strategy scorers and selector."""

from .base import BaseStrategy
from .selector import (
    INTRADAY_STRATEGIES,
    SWING_STRATEGIES,
    StrategySelector,
    default_strategies,
    rank_signals,
)

__all__ = [
    "BaseStrategy",
    "INTRADAY_STRATEGIES",
    "SWING_STRATEGIES",
    "StrategySelector",
    "default_strategies",
    "rank_signals",
]

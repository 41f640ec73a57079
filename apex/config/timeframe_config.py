"""
Timeframe configuration for multi-timeframe consensus.

Longest timeframe carries the most weight: the daily trend decides
direction, intraday timeframes refine timing.
"""

from dataclasses import dataclass
from typing import Dict, List

from apex.core.enums import Timeframe


@dataclass
class TimeframeConfig:
    """Configuration for a single timeframe."""

    timeframe: Timeframe
    weight: float  # Share of the blended consensus score
    lookback_days: int  # History requested from the data provider
    notes: str


TIMEFRAME_CONFIGS: Dict[Timeframe, TimeframeConfig] = {
    Timeframe.M15: TimeframeConfig(
        timeframe=Timeframe.M15,
        weight=0.2,
        lookback_days=5,
        notes="Entry timing",
    ),
    Timeframe.H1: TimeframeConfig(
        timeframe=Timeframe.H1,
        weight=0.3,
        lookback_days=30,
        notes="Intraday structure",
    ),
    Timeframe.D1: TimeframeConfig(
        timeframe=Timeframe.D1,
        weight=0.5,
        lookback_days=365,
        notes="Primary trend",
    ),
}

# Consensus timeframes ordered shortest first
CONSENSUS_TIMEFRAMES: List[Timeframe] = [Timeframe.M15, Timeframe.H1, Timeframe.D1]

TIMEFRAME_WEIGHTS: Dict[str, float] = {
    tf.value: TIMEFRAME_CONFIGS[tf].weight for tf in CONSENSUS_TIMEFRAMES
}

# Intervals accepted by the backtest runner
BACKTEST_INTERVALS: List[Timeframe] = [Timeframe.M5, Timeframe.M15, Timeframe.H1, Timeframe.D1]


def get_weight(timeframe: Timeframe) -> float:
    """Get consensus weight for a timeframe (0.0 when it takes no part)."""
    config = TIMEFRAME_CONFIGS.get(timeframe)
    return config.weight if config else 0.0

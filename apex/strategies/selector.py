"""
Strategy selector: runs the scorer battery for a timeframe class and ranks
the results.
"""

import logging
from typing import Dict, List, Optional, Sequence

from apex.core.enums import TimeframeClass
from apex.core.models import IndicatorSnapshot, MarketContext, Signal
from apex.strategies.base import BaseStrategy
from apex.strategies.intraday import GoldenSetupStrategy, OpeningRangeBreakoutStrategy, VWAPBounceStrategy
from apex.strategies.session import (
    IntradayMeanReversionStrategy,
    KeltnerSqueezeStrategy,
    OrderBlockStrategy,
    ValueAreaPlayStrategy,
    VWAPReversionStrategy,
)
from apex.strategies.swing import (
    EMAMomentumConfluenceStrategy,
    InstitutionalTrendStrategy,
    PanicReversionStrategy,
    SwingPullbackStrategy,
    VolatilityBreakoutEnhancedStrategy,
    VolatilitySqueezeStrategy,
    VWAPMeanReversionStrategy,
)
from apex.strategies.volatility import GammaExposureStrategy, VIXReversionStrategy

logger = logging.getLogger(__name__)

SWING_STRATEGIES = [
    InstitutionalTrendStrategy,
    VolatilitySqueezeStrategy,
    PanicReversionStrategy,
    EMAMomentumConfluenceStrategy,
    VolatilityBreakoutEnhancedStrategy,
    VWAPMeanReversionStrategy,
    SwingPullbackStrategy,
    GammaExposureStrategy,
    VIXReversionStrategy,
]

INTRADAY_STRATEGIES = [
    OpeningRangeBreakoutStrategy,
    VWAPBounceStrategy,
    GoldenSetupStrategy,
    IntradayMeanReversionStrategy,
    VWAPReversionStrategy,
    ValueAreaPlayStrategy,
    OrderBlockStrategy,
    KeltnerSqueezeStrategy,
]

STRATEGY_REGISTRY = {
    TimeframeClass.SWING: SWING_STRATEGIES,
    TimeframeClass.INTRADAY: INTRADAY_STRATEGIES,
}


def default_strategies(timeframe_class: TimeframeClass, bankroll: Optional[float] = None) -> List[BaseStrategy]:
    """Fresh scorer instances for a timeframe class, in declaration order."""
    return [cls(bankroll=bankroll) for cls in STRATEGY_REGISTRY[TimeframeClass(timeframe_class)]]


class StrategySelector:
    """
    Evaluates scorers and ranks their Signals.

    A scorer that raises is logged and counted as a neutral 0-score
    Signal so the rest of the battery still runs.
    """

    def __init__(
        self,
        strategies: Optional[Dict[TimeframeClass, Sequence[BaseStrategy]]] = None,
        bankroll: Optional[float] = None,
    ):
        if strategies is None:
            strategies = {tc: default_strategies(tc, bankroll) for tc in TimeframeClass}
        self.strategies = {TimeframeClass(tc): list(items) for tc, items in strategies.items()}

    def evaluate_all(
        self,
        snapshot: IndicatorSnapshot,
        context: Optional[MarketContext] = None,
        timeframe_class: TimeframeClass = TimeframeClass.SWING,
    ) -> List[Signal]:
        """Every scorer's Signal in declaration order, zero scores included."""
        signals = []
        for strategy in self.strategies.get(TimeframeClass(timeframe_class), []):
            try:
                signals.append(strategy.evaluate(snapshot, context))
            except Exception as e:
                logger.error(f"Strategy {strategy.id} failed for {snapshot.symbol}: {e}")
                signals.append(
                    Signal.neutral(strategy.id, strategy.name, strategy.family, f"Scorer error: {e}")
                )
        return signals

    def select(
        self,
        snapshot: IndicatorSnapshot,
        context: Optional[MarketContext] = None,
        timeframe_class: TimeframeClass = TimeframeClass.SWING,
    ) -> List[Signal]:
        """
        Actionable Signals sorted by score, highest first.

        Ties keep declaration order (``sorted`` is stable).
        """
        return rank_signals(self.evaluate_all(snapshot, context, timeframe_class))


def rank_signals(signals: Sequence[Signal]) -> List[Signal]:
    """Drop score <= 0 and sort descending by score, stable."""
    return sorted((s for s in signals if s.score > 0), key=lambda s: s.score, reverse=True)

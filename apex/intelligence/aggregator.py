"""
APEX Multi-Timeframe Aggregator

Merges the best Signal of each timeframe into one consensus Decision:
- Weighted blend of the three best scores (daily weighted highest)
- Bullish vote count (label contains BUY, LONG or BREAKOUT)
- Decision table on votes and blended score
- Combined plan from the long plans: shortest timeframe's entry, closest
  stop, mean target
"""

import logging
import math
from datetime import datetime, timezone
from statistics import fmean
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from apex.config.timeframe_config import TIMEFRAME_WEIGHTS
from apex.core.enums import Direction, FinalSignal, MarketRegime, StrategyFamily, Timeframe
from apex.core.exceptions import ApexConfigError
from apex.core.models import Decision, Signal, TimeframeBreakdown
from apex.strategies.selector import rank_signals

logger = logging.getLogger(__name__)

NO_SIGNAL = Signal(
    id="none",
    name="No Signal",
    family=StrategyFamily.TREND,
    score=0,
    signal="NEUTRAL",
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class MultiTimeframeAggregator:
    """
    Consensus across timeframes.

    Pure: the only clock read is the default ``scanned_at`` when the
    caller does not pass one.
    """

    # (min bullish votes, min blended score, label), checked top-down
    DECISION_TABLE: List[Tuple[int, int, FinalSignal]] = [
        (3, 85, FinalSignal.STRONG_BUY),
        (2, 70, FinalSignal.BUY),
        (1, 40, FinalSignal.WATCH),
    ]

    def __init__(self, weights: Optional[Mapping[str, float]] = None):
        weights = dict(weights or TIMEFRAME_WEIGHTS)
        normalized = {self._key(tf): float(w) for tf, w in weights.items()}
        if any(w < 0 for w in normalized.values()):
            raise ApexConfigError(f"Timeframe weights must be non-negative: {normalized}")
        if not math.isclose(sum(normalized.values()), 1.0, abs_tol=1e-9):
            raise ApexConfigError(f"Timeframe weights must sum to 1.0, got {sum(normalized.values())}")
        self.weights = normalized
        # Shortest first
        self.timeframes = sorted(normalized, key=self._minutes)

    @staticmethod
    def _key(timeframe) -> str:
        return str(getattr(timeframe, "value", timeframe))

    @staticmethod
    def _minutes(key: str) -> int:
        try:
            return Timeframe(key).minutes
        except ValueError:
            return 0

    def top_signals(self, signals_by_timeframe: Mapping[str, Sequence[Signal]]) -> Dict[str, Signal]:
        """Best actionable Signal per configured timeframe, or the placeholder."""
        by_key = {self._key(tf): signals for tf, signals in signals_by_timeframe.items()}
        tops = {}
        for tf in self.timeframes:
            ranked = rank_signals(by_key.get(tf) or [])
            tops[tf] = ranked[0] if ranked else NO_SIGNAL
        return tops

    def classify(self, bullish_count: int, final_score: int) -> FinalSignal:
        for min_votes, min_score, label in self.DECISION_TABLE:
            if bullish_count >= min_votes and final_score >= min_score:
                return label
        return FinalSignal.HOLD

    def aggregate(
        self,
        symbol: str,
        signals_by_timeframe: Mapping[str, Sequence[Signal]],
        scanned_at: Optional[datetime] = None,
        regime: Optional[MarketRegime] = None,
    ) -> Decision:
        """
        Build the consensus Decision.

        Args:
            symbol: Ticker.
            signals_by_timeframe: Timeframe label (or Timeframe) to that
                timeframe's Signals, ideally already ranked.
            scanned_at: Timestamp recorded on the Decision.
            regime: Optional market regime to record.
        """
        tops = self.top_signals(signals_by_timeframe)

        blended = sum(self.weights[tf] * tops[tf].score for tf in self.timeframes)
        final_score = max(0, min(100, round_half_up(blended)))
        bullish_count = sum(1 for tf in self.timeframes if tops[tf].is_bullish)
        final_signal = self.classify(bullish_count, final_score)

        # Long plans only
        plans = [
            tops[tf].trade_plan
            for tf in self.timeframes
            if tops[tf].trade_plan is not None and tops[tf].trade_plan.direction == Direction.LONG
        ]
        entry = plans[0].entry_zone if plans else None
        stops = [p.stop_loss for p in plans]
        targets = [p.target for p in plans]

        # Ties go to the longer timeframe
        best = max(reversed([tops[tf] for tf in self.timeframes]), key=lambda s: s.score)

        decision = Decision(
            symbol=symbol,
            final_signal=final_signal,
            final_score=final_score,
            entry_price=entry,
            stop_loss=min(stops) if stops else None,
            target_price=round(fmean(targets), 4) if targets else None,
            bullish_count=bullish_count,
            timeframes={
                tf: TimeframeBreakdown(
                    timeframe=tf,
                    signal=tops[tf].signal,
                    score=tops[tf].score,
                    strategy_name=tops[tf].name,
                )
                for tf in self.timeframes
            },
            best_strategy=best,
            scanned_at=scanned_at or datetime.now(timezone.utc),
            regime=regime,
        )
        logger.debug(
            "[%s] consensus %s score=%d bullish=%d best=%s",
            symbol, final_signal.value, final_score, bullish_count, best.id,
        )
        return decision

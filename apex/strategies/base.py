"""
APEX Base Strategy

Abstract base class for all strategy scorers. Each scorer checks a handful
of independent conditions on one IndicatorSnapshot, adds up their fixed
point weights and maps the total to a label through a descending
threshold table.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from apex.config.strategy_config import DEFAULT_WIN_RATE, MIN_REWARD_RISK
from apex.core.enums import Direction, StrategyFamily
from apex.core.exceptions import ApexDataError
from apex.core.models import Criterion, IndicatorSnapshot, MarketContext, Signal, TradePlan
from apex.risk.kelly import kelly_size

logger = logging.getLogger(__name__)


class BaseStrategy(ABC):
    """
    Abstract base class for all strategy scorers.

    Subclasses set ``id``, ``name``, ``family`` and ``LABELS`` and implement
    ``_score``. ``evaluate`` never raises for data problems: a missing or
    non-finite input comes back as a neutral 0-score Signal.

    ``LABELS`` is a list of (min_score, label) from highest threshold to
    lowest; a label may contain ``{side}`` which is filled with the setup
    direction (e.g. BUY/SELL).
    """

    id: str = ""
    name: str = ""
    family: StrategyFamily = StrategyFamily.TREND
    LABELS: List[Tuple[int, str]] = []
    DEFAULT_LABEL: str = "NEUTRAL"
    assumed_win_rate: float = DEFAULT_WIN_RATE

    def __init__(self, bankroll: Optional[float] = None, settings: Any = None) -> None:
        """
        Args:
            bankroll: Capital used for the Kelly amount on trade plans.
                Defaults to the configured account size.
            settings: Optional settings object supplying account_size,
                kelly_multiplier and max_kelly_allocation.
        """
        if settings is None:
            from apex.config.settings import get_settings

            settings = get_settings()
        self.bankroll = settings.account_size if bankroll is None else bankroll
        self.kelly_multiplier = settings.kelly_multiplier
        self.max_kelly_allocation = settings.max_kelly_allocation

    def evaluate(self, snapshot: IndicatorSnapshot, context: Optional[MarketContext] = None) -> Signal:
        """
        Score a snapshot.

        Args:
            snapshot: Indicator values for one symbol/timeframe/bar.
            context: Optional market-wide context (VIX, GEX, daily bias).

        Returns:
            Exactly one Signal.
        """
        try:
            return self._score(snapshot, context or MarketContext())
        except ApexDataError as e:
            logger.debug("[%s] %s neutral: %s", snapshot.symbol, self.id, e)
            return Signal.neutral(self.id, self.name, self.family, str(e), self.DEFAULT_LABEL)

    @abstractmethod
    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        """Build the Signal; may raise ApexDataError for missing inputs."""
        pass

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def label_for(self, score: int, side: str = "") -> str:
        """Label from the threshold table."""
        for threshold, label in self.LABELS:
            if score >= threshold:
                return label.format(side=side) if "{side}" in label else label
        return self.DEFAULT_LABEL

    @staticmethod
    def check(name: str, description: str, met: bool, value: Any = "") -> Criterion:
        if isinstance(value, float):
            value = f"{value:.2f}"
        return Criterion(name=name, description=description, met=bool(met), value=str(value))

    @staticmethod
    def points(criteria: Sequence[Tuple[Criterion, int]]) -> int:
        """Sum of weights for the met criteria."""
        return sum(weight for criterion, weight in criteria if criterion.met)

    def build(
        self,
        score: int,
        criteria: Sequence[Criterion],
        side: str = "",
        trade_plan: Optional[TradePlan] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Signal:
        """Clamp the score, pick the label and assemble the Signal."""
        score = max(0, min(100, int(score)))
        return Signal(
            id=self.id,
            name=self.name,
            family=self.family,
            score=score,
            signal=self.label_for(score, side),
            trade_plan=trade_plan if score > 0 else None,
            criteria=tuple(criteria),
            details=details or {},
        )

    def plan(
        self,
        entry: float,
        stop: float,
        reward_risk: float,
        direction: Direction = Direction.LONG,
    ) -> Optional[TradePlan]:
        """
        Trade plan with the target at ``reward_risk`` times the stop distance.

        Returns None when the stop is on the wrong side of entry.
        """
        risk = entry - stop if direction == Direction.LONG else stop - entry
        if risk <= 0 or entry <= 0:
            return None

        reward_risk = max(reward_risk, MIN_REWARD_RISK)
        target = entry + reward_risk * risk if direction == Direction.LONG else entry - reward_risk * risk
        return TradePlan(
            entry_zone=round(entry, 4),
            stop_loss=round(stop, 4),
            target=round(target, 4),
            risk_reward=round(reward_risk, 2),
            direction=direction,
            kelly=kelly_size(
                self.assumed_win_rate,
                reward_risk,
                self.bankroll,
                kelly_multiplier=self.kelly_multiplier,
                max_allocation=self.max_kelly_allocation,
            ),
        )

    def percent_plan(self, price: float, risk_pct: float, reward_risk: float) -> Optional[TradePlan]:
        """Long plan with the stop ``risk_pct`` of price below entry."""
        return self.plan(price, price * (1 - risk_pct), reward_risk)

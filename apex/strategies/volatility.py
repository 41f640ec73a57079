"""
Market-context scorers: dealer gamma exposure and VIX reversion.

Both read MarketContext rather than the symbol's own indicators and go
neutral when the context is absent.
"""

import logging

import pandas as pd

from apex.config.strategy_config import GEX_SIGNIFICANT
from apex.core.enums import StrategyFamily
from apex.core.exceptions import InsufficientDataError, MalformedSnapshotError
from apex.core.models import IndicatorSnapshot, MarketContext, Signal
from apex.indicators import technical as ta
from apex.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)


class GammaExposureStrategy(BaseStrategy):
    """
    Negative dealer gamma amplifies moves; positive gamma dampens them.

    The score measures how volatile the tape is likely to be. Below the
    zero-gamma level dealers chase price, above it they absorb it.
    """

    id = "gamma-exposure"
    name = "Gamma Exposure"
    family = StrategyFamily.VOLATILITY
    LABELS = [(75, "HIGH VOLATILITY"), (50, "WATCH")]
    DEFAULT_LABEL = "NEUTRAL"

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        (price,) = snapshot.require("current_price")
        if context.gex is None:
            raise MalformedSnapshotError(["gex"])

        gex = context.gex
        flip = context.zero_gamma_level

        weighted = [
            (self.check("Negative Gamma", "Dealers short gamma", gex < 0, f"{gex:.2f}B"), 50),
            (
                self.check(
                    "Below Zero Gamma",
                    "Price under the gamma flip level",
                    flip is not None and price < flip,
                    flip if flip is not None else "N/A",
                ),
                25,
            ),
            (self.check("Significant Exposure", f"|GEX| above {GEX_SIGNIFICANT:g}B", abs(gex) > GEX_SIGNIFICANT, f"{gex:.2f}B"), 25),
        ]

        if gex > GEX_SIGNIFICANT:
            regime = "LOW VOLATILITY"
        elif gex < -GEX_SIGNIFICANT:
            regime = "HIGH VOLATILITY"
        else:
            regime = "NEUTRAL"

        plan = self.plan(price, flip, 1.5) if flip is not None and flip < price else None
        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            trade_plan=plan,
            details={"gex": gex, "zero_gamma_level": flip, "regime": regime},
        )


class VIXReversionStrategy(BaseStrategy):
    """Fade VIX stretched more than 10% from its 10-day mean."""

    id = "vix-reversion"
    name = "VIX Reversion"
    family = StrategyFamily.CONTRARIAN
    LABELS = [(60, "{side}"), (40, "WATCH")]
    DEFAULT_LABEL = "NEUTRAL"

    MIN_HISTORY = 20
    STRETCH = 0.10

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        history = context.vix_history
        if len(history) < self.MIN_HISTORY:
            raise InsufficientDataError(
                f"VIX history has {len(history)} closes, need {self.MIN_HISTORY}",
                required=self.MIN_HISTORY,
                available=len(history),
            )

        closes = pd.Series(history, dtype=float)
        current = float(closes.iloc[-1])
        mean10 = ta.last_value(ta.sma(closes, 10))
        rsi5 = ta.last_value(ta.rsi(closes, 5))
        if not mean10 or rsi5 is None:
            raise MalformedSnapshotError(["vix_history"])

        deviation = (current - mean10) / mean10
        weighted = [
            (self.check("VIX Stretch", f"More than {self.STRETCH:.0%} from 10-day mean", abs(deviation) > self.STRETCH, f"{deviation:.2%}"), 40),
            (self.check("VIX RSI Extreme", "RSI(5) above 70 or below 30", rsi5 > 70 or rsi5 < 30, rsi5), 30),
        ]
        # Fear spike is a buy for equities, complacency a sell
        side = "BUY" if deviation > 0 or rsi5 > 70 else "SELL"

        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            side=side,
            details={"vix": current, "vix_sma10": mean10, "vix_rsi5": rsi5},
        )

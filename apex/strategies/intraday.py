"""
Intraday strategy scorers: opening range breakout, VWAP bounce and the
golden setup (intraday entry aligned with the daily trend).
"""

import logging

from apex.config.strategy_config import ORB_MIN_RANGE_PCT, ORB_VOLUME_THRESHOLD, VOLUME_CONFIRMATION
from apex.core.enums import Direction, StrategyFamily
from apex.core.exceptions import InsufficientDataError
from apex.core.models import IndicatorSnapshot, MarketContext, Signal
from apex.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)


class OpeningRangeBreakoutStrategy(BaseStrategy):
    """
    Break of the 09:30-10:00 ET range with volume.

    Only scores once the range is complete; the plan targets two range
    heights beyond the breakout level.
    """

    id = "opening-range-breakout"
    name = "Opening Range Breakout"
    family = StrategyFamily.BREAKOUT
    LABELS = [(60, "{side}"), (40, "WATCH")]
    DEFAULT_LABEL = "WAIT"

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, orb_high, orb_low = snapshot.require("current_price", "opening_range_high", "opening_range_low")
        if not snapshot.opening_range_complete:
            raise InsufficientDataError("Opening range still forming")

        orb_range = orb_high - orb_low
        range_pct = orb_range / orb_low if orb_low else 0.0
        rvol = snapshot.rvol or 0.0
        above = price > orb_high
        below = price < orb_low

        weighted = [
            (self.check("Breakout", "Price above opening range high", above, orb_high), 40),
            (self.check("Breakdown", "Price below opening range low", below, orb_low), 40),
            (self.check("Volume", f"RVOL above {ORB_VOLUME_THRESHOLD}", rvol > ORB_VOLUME_THRESHOLD, rvol), 20),
            (self.check("Range Size", f"Range above {ORB_MIN_RANGE_PCT:.1%}", range_pct > ORB_MIN_RANGE_PCT, f"{range_pct:.2%}"), 10),
        ]

        side, plan = "", None
        if above:
            side, plan = "BUY", self.plan(orb_high, orb_low, 2.0)
        elif below:
            side, plan = "SELL", self.plan(orb_low, orb_high, 2.0, Direction.SHORT)

        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            side=side,
            trade_plan=plan,
            details={"orb_high": orb_high, "orb_low": orb_low, "orb_range": orb_range},
        )


class VWAPBounceStrategy(BaseStrategy):
    """Price testing VWAP on a volume spike."""

    id = "vwap-bounce"
    name = "VWAP Bounce"
    family = StrategyFamily.MEAN_REVERSION
    LABELS = [(80, "{side}"), (50, "WATCH")]
    DEFAULT_LABEL = "NEUTRAL"

    NEAR_VWAP = 0.005

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, vwap, sma20, rvol = snapshot.require("current_price", "vwap", "sma20", "rvol")
        distance = abs(price - vwap) / vwap
        near = distance < self.NEAR_VWAP
        spike = rvol > VOLUME_CONFIRMATION
        trend_up = price > sma20

        weighted = [
            (self.check("At VWAP", f"Within {self.NEAR_VWAP:.1%} of VWAP", near, f"{distance:.2%}"), 30),
            (self.check("Volume Spike", f"RVOL above {VOLUME_CONFIRMATION}", spike, rvol), 20),
            (self.check("Trend", "Price above 20 SMA", trend_up, sma20), 20),
            (self.check("Bounce Confirmation", "Volume spike at VWAP", near and spike), 30),
        ]

        if trend_up:
            side, plan = "BUY", self.plan(price, vwap * 0.99, 2.0)
        else:
            side, plan = "SELL", self.plan(price, vwap * 1.01, 2.0, Direction.SHORT)

        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            side=side,
            trade_plan=plan,
        )


class GoldenSetupStrategy(BaseStrategy):
    """Intraday pullback to VWAP in the direction of the daily trend."""

    id = "golden-setup"
    name = "Golden Setup"
    family = StrategyFamily.TREND
    LABELS = [(80, "GOLDEN {side}"), (50, "WATCH")]
    DEFAULT_LABEL = "NEUTRAL"
    assumed_win_rate = 0.60

    NEAR_VWAP = 0.008

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, vwap = snapshot.require("current_price", "vwap")
        bias = (context.daily_bias or "").upper()
        bullish = bias == "BULLISH"
        bearish = bias == "BEARISH"

        distance = abs(price - vwap) / vwap
        rvol = snapshot.rvol or 0.0
        rsi = snapshot.rsi
        if bullish:
            momentum = rsi is not None and 40 < rsi < 75
        elif bearish:
            momentum = rsi is not None and 25 < rsi < 60
        else:
            momentum = False
        near_vwap = distance < self.NEAR_VWAP
        gex = context.gex
        # Long side wants a stable (positive gamma) tape and a VWAP test
        gamma_aligned = gex is not None and ((bullish and gex > 0 and near_vwap) or (bearish and gex < 0))

        weighted = [
            (self.check("Daily Trend", "Daily bias is directional", bullish or bearish, bias or "N/A"), 30),
            (self.check("VWAP Pullback", f"Within {self.NEAR_VWAP:.1%} of VWAP", near_vwap, f"{distance:.2%}"), 20),
            (self.check("Volume", f"RVOL above {VOLUME_CONFIRMATION}", rvol > VOLUME_CONFIRMATION, rvol), 20),
            (self.check("RSI Momentum", "RSI in the trend-friendly band", momentum, rsi if rsi is not None else "N/A"), 10),
            (self.check("Gamma Aligned", "GEX supports the trend direction", gamma_aligned, gex if gex is not None else "N/A"), 20),
        ]

        side, plan = "", None
        if bullish:
            side, plan = "LONG", self.plan(price, min(price, vwap) * 0.99, 2.0)
        elif bearish:
            side, plan = "SHORT", self.plan(price, max(price, vwap) * 1.01, 2.0, Direction.SHORT)

        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            side=side,
            trade_plan=plan,
        )

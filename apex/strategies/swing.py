"""
Swing / daily strategy scorers.

Trend, squeeze, reversion and breakout checks on daily-style snapshots.
Each criterion carries a fixed weight; totals are capped at 100.
"""

import logging

from apex.config.strategy_config import (
    ADX_STRONG_TREND,
    ADX_TRENDING,
    BB_SQUEEZE_WIDTH,
    RSI_NEUTRAL_HIGH,
    RSI_NEUTRAL_LOW,
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    RSI_TREND_HIGH,
    RSI_TREND_LOW,
    VIX_PANIC,
    VOLUME_CONFIRMATION,
    VOLUME_SURGE,
)
from apex.core.enums import Direction, StrategyFamily
from apex.core.models import IndicatorSnapshot, MarketContext, Signal
from apex.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)


class InstitutionalTrendStrategy(BaseStrategy):
    """Price above the 200 SMA and VWAP with healthy RSI momentum."""

    id = "institutional-trend"
    name = "Institutional Trend"
    family = StrategyFamily.TREND
    LABELS = [(90, "STRONG BUY"), (67, "BUY"), (34, "WATCH")]
    DEFAULT_LABEL = "WAIT"

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, sma200, vwap, rsi = snapshot.require("current_price", "sma200", "vwap", "rsi")

        weighted = [
            (self.check("Above 200 SMA", "Long-term institutional trend", price > sma200, sma200), 33),
            (self.check("Above VWAP", "Buyers in control of the session", price > vwap, vwap), 34),
            (
                self.check(
                    "RSI Momentum",
                    f"RSI between {RSI_TREND_LOW} and {RSI_TREND_HIGH}",
                    RSI_TREND_LOW <= rsi <= RSI_TREND_HIGH,
                    rsi,
                ),
                33,
            ),
        ]
        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            trade_plan=self.percent_plan(price, 0.02, 2.0),
        )


class VolatilitySqueezeStrategy(BaseStrategy):
    """Bollinger squeeze with a trend forming and volume arriving."""

    id = "volatility-squeeze"
    name = "Volatility Squeeze"
    family = StrategyFamily.BREAKOUT
    LABELS = [(90, "BUY"), (67, "BUY WATCH"), (34, "WATCH")]
    DEFAULT_LABEL = "NO SIGNAL"

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, bb_width, adx, rvol = snapshot.require("current_price", "bb_width", "adx", "rvol")

        weighted = [
            (self.check("BB Squeeze", f"Band width below {BB_SQUEEZE_WIDTH:.0%}", bb_width < BB_SQUEEZE_WIDTH, bb_width), 34),
            (self.check("Trend Forming", f"ADX above {ADX_TRENDING}", adx > ADX_TRENDING, adx), 33),
            (self.check("Volume Expansion", f"RVOL above {VOLUME_CONFIRMATION}", rvol > VOLUME_CONFIRMATION, rvol), 33),
        ]
        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            trade_plan=self.percent_plan(price, 0.025, 2.0),
            details={"bb_width": bb_width},
        )


class PanicReversionStrategy(BaseStrategy):
    """Buy oversold quality names when the VIX is elevated."""

    id = "panic-reversion"
    name = "Panic Reversion"
    family = StrategyFamily.CONTRARIAN
    LABELS = [(90, "STRONG BUY"), (67, "BUY"), (34, "WATCH")]
    DEFAULT_LABEL = "NO SIGNAL"
    assumed_win_rate = 0.60

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, rsi, sma200 = snapshot.require("current_price", "rsi", "sma200")
        vix = context.vix

        weighted = [
            (
                self.check(
                    "VIX Elevated",
                    f"VIX above {VIX_PANIC}",
                    vix is not None and vix > VIX_PANIC,
                    vix if vix is not None else "N/A",
                ),
                34,
            ),
            (self.check("RSI Oversold", f"RSI below {RSI_OVERSOLD}", rsi < RSI_OVERSOLD, rsi), 33),
            (self.check("Quality Filter", "Still above the 200 SMA", price > sma200, sma200), 33),
        ]
        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            trade_plan=self.percent_plan(price, 0.03, 2.0),
        )


class EMAMomentumConfluenceStrategy(BaseStrategy):
    """Fast EMA stack with neutral RSI, volume and VWAP support."""

    id = "ema-momentum-confluence"
    name = "EMA Momentum Confluence"
    family = StrategyFamily.MOMENTUM
    LABELS = [(90, "STRONG BUY"), (75, "BUY"), (50, "WATCH")]
    DEFAULT_LABEL = "WAIT"

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, ema8, ema21, rsi, rvol, vwap = snapshot.require(
            "current_price", "ema8", "ema21", "rsi", "rvol", "vwap"
        )

        weighted = [
            (self.check("EMA Stack", "EMA 8 above EMA 21", ema8 > ema21, ema8 - ema21), 25),
            (
                self.check(
                    "RSI Room",
                    f"RSI between {RSI_NEUTRAL_LOW} and {RSI_NEUTRAL_HIGH}",
                    RSI_NEUTRAL_LOW <= rsi <= RSI_NEUTRAL_HIGH,
                    rsi,
                ),
                25,
            ),
            (self.check("Volume", f"RVOL above {VOLUME_CONFIRMATION}", rvol > VOLUME_CONFIRMATION, rvol), 25),
            (self.check("Above VWAP", "Price above VWAP", price > vwap, vwap), 25),
        ]
        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            trade_plan=self.percent_plan(price, 0.02, 2.0),
        )


class VolatilityBreakoutEnhancedStrategy(BaseStrategy):
    """Squeeze plus strong ADX, a stochastic cross and a volume surge."""

    id = "volatility-breakout-enhanced"
    name = "Volatility Breakout Enhanced"
    family = StrategyFamily.BREAKOUT
    LABELS = [(90, "BREAKOUT ALERT"), (75, "BUY"), (50, "WATCH")]
    DEFAULT_LABEL = "NO SIGNAL"

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, bb_width, adx, k, d, rvol = snapshot.require(
            "current_price", "bb_width", "adx", "stoch_k", "stoch_d", "rvol"
        )
        stoch_cross = (k < 20 and k > d) or (k > 80 and k < d)

        weighted = [
            (self.check("BB Squeeze", f"Band width below {BB_SQUEEZE_WIDTH:.0%}", bb_width < BB_SQUEEZE_WIDTH, bb_width), 25),
            (self.check("Strong Trend", f"ADX above {ADX_STRONG_TREND}", adx > ADX_STRONG_TREND, adx), 25),
            (self.check("Stochastic Cross", "%K crossing %D at an extreme", stoch_cross, f"{k:.1f}/{d:.1f}"), 25),
            (self.check("Volume Surge", f"RVOL above {VOLUME_SURGE}", rvol > VOLUME_SURGE, rvol), 25),
        ]
        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            trade_plan=self.percent_plan(price, 0.03, 2.5),
        )


class VWAPMeanReversionStrategy(BaseStrategy):
    """Stretched away from VWAP with RSI and band extremes. Long only."""

    id = "vwap-mean-reversion"
    name = "VWAP Mean Reversion"
    family = StrategyFamily.MEAN_REVERSION
    LABELS = [(90, "STRONG BUY"), (75, "BUY"), (50, "WATCH")]
    DEFAULT_LABEL = "WAIT"

    DEVIATION_THRESHOLD = 0.02

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, vwap, rsi, bb_upper, bb_lower, sma200 = snapshot.require(
            "current_price", "vwap", "rsi", "bb_upper", "bb_lower", "sma200"
        )
        deviation = (price - vwap) / vwap if vwap else 0.0

        weighted = [
            (
                self.check(
                    "VWAP Deviation",
                    f"More than {self.DEVIATION_THRESHOLD:.0%} from VWAP",
                    abs(deviation) > self.DEVIATION_THRESHOLD,
                    f"{deviation:.2%}",
                ),
                25,
            ),
            (self.check("RSI Extreme", "RSI oversold or overbought", rsi < RSI_OVERSOLD or rsi > RSI_OVERBOUGHT, rsi), 25),
            (self.check("Band Touch", "Price at or beyond a Bollinger band", price <= bb_lower or price >= bb_upper, price), 25),
            (self.check("Above 200 SMA", "Long-term uptrend intact", price > sma200, sma200), 25),
        ]

        # Stop one VWAP distance below entry, target 1.5 distances above
        distance = abs(price - vwap)
        plan = self.plan(price, price - distance, 1.5)

        return self.build(
            self.points(weighted),
            [c for c, _ in weighted],
            trade_plan=plan,
            details={"vwap_deviation": deviation},
        )


class SwingPullbackStrategy(BaseStrategy):
    """Pullback to the 20 SMA inside an established trend."""

    id = "swing-pullback"
    name = "Swing Pullback"
    family = StrategyFamily.TREND
    LABELS = [(70, "SWING {side}"), (40, "WATCH")]
    DEFAULT_LABEL = "NEUTRAL"
    assumed_win_rate = 0.58

    PULLBACK_TOLERANCE = 0.02

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, sma20, sma50, sma200, rsi, adx = snapshot.require(
            "current_price", "sma20", "sma50", "sma200", "rsi", "adx"
        )
        uptrend = price > sma50 > sma200
        downtrend = price < sma50 < sma200

        trend = self.check(
            "Trend Filter",
            "Price, 50 SMA and 200 SMA stacked",
            uptrend or downtrend,
            "UP" if uptrend else "DOWN" if downtrend else "NONE",
        )
        if not (uptrend or downtrend):
            return self.build(0, [trend])

        distance = abs(price - sma20) / sma20
        weighted = [
            (self.check("Near 20 SMA", f"Within {self.PULLBACK_TOLERANCE:.0%} of the 20 SMA", distance < self.PULLBACK_TOLERANCE, f"{distance:.2%}"), 40),
            (
                self.check(
                    "RSI Reset",
                    f"RSI between {RSI_NEUTRAL_LOW} and {RSI_NEUTRAL_HIGH}",
                    RSI_NEUTRAL_LOW < rsi < RSI_NEUTRAL_HIGH,
                    rsi,
                ),
                30,
            ),
            (self.check("Trend Strength", f"ADX above {ADX_STRONG_TREND}", adx > ADX_STRONG_TREND, adx), 30),
        ]

        if uptrend:
            side, plan = "BUY", self.plan(price, sma50, 2.0)
        else:
            side, plan = "SELL", self.plan(price, sma50, 2.0, Direction.SHORT)

        return self.build(
            self.points(weighted),
            [trend] + [c for c, _ in weighted],
            side=side,
            trade_plan=plan,
            details={"pullback_level": sma20},
        )

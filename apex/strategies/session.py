"""
Session-aware intraday scorers.

Same weighted-criteria scoring as the other scorers, plus a session
adjustment: +10 in each scorer's preferred windows, -10 during the lunch
chop and -15 outside regular hours. Snapshots without a session phase
(daily bars) get no adjustment.
"""

import logging
from typing import Tuple

from apex.config.strategy_config import (
    LUNCH_CHOP_PENALTY,
    OFF_HOURS_PENALTY,
    PREFERRED_SESSION_BONUS,
    RSI_OVERSOLD,
    VOLUME_CONFIRMATION,
)
from apex.core.enums import Direction, SessionPhase, StrategyFamily
from apex.core.models import Criterion, IndicatorSnapshot, MarketContext, Signal
from apex.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)


class SessionStrategy(BaseStrategy):
    """Base for scorers whose edge depends on time of day."""

    family = StrategyFamily.SESSION
    LABELS = [(75, "BUY"), (50, "WATCH")]
    DEFAULT_LABEL = "NEUTRAL"
    PREFERRED_PHASES: Tuple[SessionPhase, ...] = ()

    def session_adjustment(self, phase) -> Tuple[int, Criterion]:
        """Points and explanatory criterion for the bar's session phase."""
        if phase is None:
            return 0, self.check("Session", "No session context", False, "N/A")
        if phase == SessionPhase.LUNCH_CHOP:
            return LUNCH_CHOP_PENALTY, self.check("Session", "Lunch chop: thin, choppy tape", False, phase.value)
        if not phase.is_regular_hours:
            return OFF_HOURS_PENALTY, self.check("Session", "Outside regular hours", False, phase.value)
        if phase in self.PREFERRED_PHASES:
            return PREFERRED_SESSION_BONUS, self.check("Session", "Preferred session window", True, phase.value)
        return 0, self.check("Session", "Neutral session window", False, phase.value)

    def finish(self, snapshot: IndicatorSnapshot, weighted, side: str = "", trade_plan=None, details=None) -> Signal:
        bonus, session = self.session_adjustment(snapshot.session_phase)
        score = self.points(weighted) + bonus
        return self.build(
            score,
            [c for c, _ in weighted] + [session],
            side=side,
            trade_plan=trade_plan,
            details=dict(details or {}, session_adjustment=bonus),
        )


class IntradayMeanReversionStrategy(SessionStrategy):
    """Oversold stretch below the lower Bollinger band, target the mid band."""

    id = "intraday-mean-reversion"
    name = "Intraday Mean Reversion"
    PREFERRED_PHASES = (SessionPhase.MORNING_TREND, SessionPhase.AFTERNOON_SESSION)

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, bb_lower, bb_middle, rsi = snapshot.require("current_price", "bb_lower", "bb_middle", "rsi")
        stoch_k = snapshot.stoch_k
        rvol = snapshot.rvol or 0.0

        weighted = [
            (self.check("Lower Band Touch", "Price at or below the lower band", price <= bb_lower, bb_lower), 30),
            (self.check("RSI Oversold", f"RSI below {RSI_OVERSOLD}", rsi < RSI_OVERSOLD, rsi), 25),
            (self.check("Stochastic Oversold", "%K below 20", stoch_k is not None and stoch_k < 20, stoch_k if stoch_k is not None else "N/A"), 20),
            (self.check("Volume Climax", f"RVOL above {VOLUME_CONFIRMATION}", rvol > VOLUME_CONFIRMATION, rvol), 15),
        ]

        plan = None
        half_band = bb_middle - bb_lower
        if half_band > 0:
            risk = 0.5 * half_band
            plan = self.plan(price, price - risk, max(1.5, (bb_middle - price) / risk))

        return self.finish(snapshot, weighted, trade_plan=plan)


class VWAPReversionStrategy(SessionStrategy):
    """Price two standard deviations under VWAP, target VWAP."""

    id = "vwap-reversion"
    name = "VWAP Reversion"
    family = StrategyFamily.MEAN_REVERSION
    PREFERRED_PHASES = (SessionPhase.MORNING_TREND, SessionPhase.AFTERNOON_SESSION)

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, vwap, lower_1, lower_2, rsi = snapshot.require(
            "current_price", "vwap", "vwap_lower_1", "vwap_lower_2", "rsi"
        )
        rvol = snapshot.rvol or 0.0

        weighted = [
            (self.check("Below 2σ Band", "Price at or below VWAP - 2σ", price <= lower_2, lower_2), 35),
            (self.check("Below 1σ Band", "Price at or below VWAP - 1σ", price <= lower_1, lower_1), 15),
            (self.check("RSI Oversold", "RSI below 35", rsi < 35, rsi), 20),
            (self.check("Volume", "RVOL above 1.2", rvol > 1.2, rvol), 20),
        ]

        plan = None
        sigma = vwap - lower_1
        if sigma > 0:
            plan = self.plan(price, price - sigma, max(1.5, (vwap - price) / sigma))

        return self.finish(snapshot, weighted, trade_plan=plan, details={"vwap": vwap, "sigma": sigma})


class ValueAreaPlayStrategy(SessionStrategy):
    """Buy the value area low, target the point of control."""

    id = "value-area-play"
    name = "Value Area Play"
    PREFERRED_PHASES = (SessionPhase.MORNING_TREND, SessionPhase.AFTERNOON_SESSION)

    NEAR_VAL = 0.003

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, vah, val, poc = snapshot.require("current_price", "value_area_high", "value_area_low", "poc")
        rsi = snapshot.rsi
        rvol = snapshot.rvol or 0.0

        at_val = val <= price <= val * (1 + self.NEAR_VAL)
        weighted = [
            (self.check("At Value Area Low", f"Within {self.NEAR_VAL:.1%} above VAL", at_val, val), 35),
            (self.check("Room To POC", "Point of control above price", poc > price, poc), 15),
            (self.check("RSI Reset", "RSI between 35 and 55", rsi is not None and 35 <= rsi <= 55, rsi if rsi is not None else "N/A"), 20),
            (self.check("Participation", "RVOL above 1.0", rvol > 1.0, rvol), 20),
        ]

        plan = None
        height = vah - val
        if height > 0:
            stop = val - 0.25 * height
            risk = price - stop
            if risk > 0:
                plan = self.plan(price, stop, max(1.5, (poc - price) / risk))

        return self.finish(snapshot, weighted, trade_plan=plan, details={"vah": vah, "val": val, "poc": poc})


class OrderBlockStrategy(SessionStrategy):
    """Retest of the latest unmitigated bullish order block."""

    id = "order-block"
    name = "Order Block"
    PREFERRED_PHASES = (SessionPhase.OPENING_DRIVE, SessionPhase.MORNING_TREND)

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, zone_high, zone_low = snapshot.require("current_price", "order_block_high", "order_block_low")
        rsi = snapshot.rsi
        sma50 = snapshot.sma50
        rvol = snapshot.rvol or 0.0

        weighted = [
            (self.check("Inside Demand Zone", "Price inside the order block", zone_low <= price <= zone_high, f"{zone_low:.2f}-{zone_high:.2f}"), 40),
            (self.check("Volume", f"RVOL above {VOLUME_CONFIRMATION}", rvol > VOLUME_CONFIRMATION, rvol), 20),
            (self.check("RSI Discount", "RSI below 50", rsi is not None and rsi < 50, rsi if rsi is not None else "N/A"), 15),
            (self.check("Trend Support", "Price above 50 SMA", sma50 is not None and price > sma50, sma50 if sma50 is not None else "N/A"), 15),
        ]

        height = zone_high - zone_low
        if height <= 0:
            height = price * 0.001
        plan = self.plan(price, zone_low - 0.25 * height, 2.0)

        return self.finish(snapshot, weighted, trade_plan=plan, details={"zone_high": zone_high, "zone_low": zone_low})


class KeltnerSqueezeStrategy(SessionStrategy):
    """Bollinger bands inside the Keltner channel, trading the release."""

    id = "keltner-squeeze"
    name = "Keltner Squeeze"
    family = StrategyFamily.BREAKOUT
    LABELS = [(80, "{side}"), (50, "WATCH")]
    PREFERRED_PHASES = (SessionPhase.OPENING_DRIVE, SessionPhase.POWER_HOUR)

    def _score(self, snapshot: IndicatorSnapshot, context: MarketContext) -> Signal:
        price, bb_upper, bb_lower, kc_upper, kc_middle, kc_lower, adx = snapshot.require(
            "current_price", "bb_upper", "bb_lower", "keltner_upper", "keltner_middle", "keltner_lower", "adx"
        )
        rvol = snapshot.rvol or 0.0
        squeeze = bb_upper < kc_upper and bb_lower > kc_lower
        upside = price > kc_middle

        weighted = [
            (self.check("Squeeze On", "Bollinger bands inside Keltner channel", squeeze), 40),
            (self.check("Trend Building", "ADX above 20", adx > 20, adx), 20),
            (self.check("Volume", f"RVOL above {VOLUME_CONFIRMATION}", rvol > VOLUME_CONFIRMATION, rvol), 20),
            (self.check("Upside Bias", "Price above Keltner midline", upside, kc_middle), 10),
        ]

        risk = kc_upper - kc_middle
        if upside:
            side, plan = "BREAKOUT", self.plan(price, price - risk, 2.0)
        else:
            side, plan = "BREAKDOWN", self.plan(price, price + risk, 2.0, Direction.SHORT)

        return self.finish(snapshot, weighted, side=side, trade_plan=plan)

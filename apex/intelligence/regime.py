"""
APEX Regime Detector
Classifies the market regime from a daily snapshot and the VIX.

REGIMES:
- TRENDING_BULLISH: Strong ADX, price > 20 SMA > 50 SMA
- TRENDING_BEARISH: Strong ADX, price < 20 SMA < 50 SMA
- RANGING: Weak ADX; mean reversion works best
- VOLATILE: VIX above 25 overrides everything else
- UNKNOWN: Not enough data

KEY INDICATORS:
- ADX: Trend strength (>25 = strong, >20 = moderate)
- SMA Alignment: price vs 20 SMA vs 50 SMA
- VIX: Volatility level (<15 = low, >25 = high)
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import List, Optional

from apex.config.strategy_config import ADX_STRONG_TREND, ADX_TRENDING, VIX_LOW, VIX_PANIC
from apex.core.enums import MarketRegime
from apex.core.models import IndicatorSnapshot, MarketContext

logger = logging.getLogger(__name__)


@dataclass
class RegimeAnalysis:
    """Regime call with the inputs behind it."""

    regime: MarketRegime
    trend_strength: str  # "STRONG", "MODERATE", "WEAK"
    trend_direction: str  # "BULLISH", "BEARISH", "NEUTRAL"
    volatility: str  # "HIGH", "NORMAL", "LOW", "UNKNOWN"
    recommended_strategies: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def trend_bias(snapshot: IndicatorSnapshot) -> Optional[str]:
    """BULLISH or BEARISH when price and the 20/50 SMAs are stacked, else None."""
    price, sma20, sma50 = snapshot.current_price, snapshot.sma20, snapshot.sma50
    if None in (price, sma20, sma50):
        return None
    if price > sma20 > sma50:
        return "BULLISH"
    if price < sma20 < sma50:
        return "BEARISH"
    return None


class RegimeDetector:
    """Detect market regime to focus strategy selection."""

    # Strategy ids that suit each regime
    REGIME_STRATEGIES = {
        MarketRegime.TRENDING_BULLISH: [
            "institutional-trend",
            "ema-momentum-confluence",
            "swing-pullback",
            "golden-setup",
            "opening-range-breakout",
        ],
        MarketRegime.TRENDING_BEARISH: [
            "swing-pullback",
            "golden-setup",
            "opening-range-breakout",
        ],
        MarketRegime.RANGING: [
            "vwap-mean-reversion",
            "vwap-bounce",
            "intraday-mean-reversion",
            "value-area-play",
            "volatility-squeeze",
            "keltner-squeeze",
        ],
        MarketRegime.VOLATILE: [
            "panic-reversion",
            "vix-reversion",
            "gamma-exposure",
        ],
        MarketRegime.UNKNOWN: [],
    }

    def detect(self, snapshot: IndicatorSnapshot, context: Optional[MarketContext] = None) -> RegimeAnalysis:
        context = context or MarketContext()
        price, adx, sma20, sma50 = snapshot.current_price, snapshot.adx, snapshot.sma20, snapshot.sma50
        vix = context.vix

        if vix is None:
            volatility = "UNKNOWN"
        elif vix > VIX_PANIC:
            volatility = "HIGH"
        elif vix < VIX_LOW:
            volatility = "LOW"
        else:
            volatility = "NORMAL"

        if None in (price, adx, sma20, sma50):
            regime = MarketRegime.VOLATILE if volatility == "HIGH" else MarketRegime.UNKNOWN
            return RegimeAnalysis(
                regime=regime,
                trend_strength="WEAK",
                trend_direction="NEUTRAL",
                volatility=volatility,
                recommended_strategies=list(self.REGIME_STRATEGIES[regime]),
                notes=["Trend inputs missing"],
            )

        if adx > ADX_STRONG_TREND:
            strength = "STRONG"
        elif adx > ADX_TRENDING:
            strength = "MODERATE"
        else:
            strength = "WEAK"

        if price > sma20 > sma50:
            direction = "BULLISH"
        elif price < sma20 < sma50:
            direction = "BEARISH"
        else:
            direction = "NEUTRAL"

        notes = []
        if volatility == "HIGH":
            regime = MarketRegime.VOLATILE
            notes.append(f"VIX {vix:.1f} above {VIX_PANIC}: reduce size")
        elif strength != "WEAK" and direction == "BULLISH":
            regime = MarketRegime.TRENDING_BULLISH
        elif strength != "WEAK" and direction == "BEARISH":
            regime = MarketRegime.TRENDING_BEARISH
        else:
            regime = MarketRegime.RANGING

        logger.debug(
            "[%s] regime=%s adx=%.1f direction=%s vix=%s",
            snapshot.symbol, regime.value, adx, direction, vix,
        )
        return RegimeAnalysis(
            regime=regime,
            trend_strength=strength,
            trend_direction=direction,
            volatility=volatility,
            recommended_strategies=list(self.REGIME_STRATEGIES[regime]),
            notes=notes,
        )

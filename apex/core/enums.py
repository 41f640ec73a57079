"""
APEX enumerations.
"""

from enum import Enum


class Direction(str, Enum):
    """Trade direction."""

    LONG = "long"
    SHORT = "short"


class Timeframe(str, Enum):
    """Candle bucket granularity used for independent indicator calculation."""

    M5 = "5m"    # 5 minutes - backtest only
    M15 = "15m"  # 15 minutes - intraday
    H1 = "1h"    # 1 hour - intraday
    D1 = "1d"    # Daily - swing

    @property
    def minutes(self) -> int:
        """Get timeframe in minutes."""
        mapping = {
            "5m": 5,
            "15m": 15,
            "1h": 60,
            "1d": 1440,
        }
        return mapping[self.value]

    @property
    def is_intraday(self) -> bool:
        return self in Timeframe.intraday()

    @property
    def strategy_class(self) -> "TimeframeClass":
        """Which scorer battery applies to this timeframe."""
        return TimeframeClass.INTRADAY if self.is_intraday else TimeframeClass.SWING

    @classmethod
    def intraday(cls) -> list:
        """Get intraday timeframes only."""
        return [cls.M5, cls.M15, cls.H1]

    @classmethod
    def swing(cls) -> list:
        """Get swing trading timeframes."""
        return [cls.D1]


class TimeframeClass(str, Enum):
    """Scorer battery selector."""

    INTRADAY = "intraday"
    SWING = "swing"


class SessionPhase(str, Enum):
    """US equity session windows (Eastern Time)."""

    PRE_MARKET = "PRE_MARKET"
    OPENING_DRIVE = "OPENING_DRIVE"
    MORNING_TREND = "MORNING_TREND"
    LUNCH_CHOP = "LUNCH_CHOP"
    AFTERNOON_SESSION = "AFTERNOON_SESSION"
    POWER_HOUR = "POWER_HOUR"
    POST_MARKET = "POST_MARKET"
    CLOSED = "CLOSED"

    @property
    def is_regular_hours(self) -> bool:
        return self in (
            SessionPhase.OPENING_DRIVE,
            SessionPhase.MORNING_TREND,
            SessionPhase.LUNCH_CHOP,
            SessionPhase.AFTERNOON_SESSION,
            SessionPhase.POWER_HOUR,
        )


class StrategyFamily(str, Enum):
    """Tag for the scorer family that produced a Signal."""

    TREND = "trend"
    MOMENTUM = "momentum"
    BREAKOUT = "breakout"
    MEAN_REVERSION = "mean_reversion"
    CONTRARIAN = "contrarian"
    VOLATILITY = "volatility"
    SESSION = "session"


class ExitReason(str, Enum):
    """Why a simulated position was closed."""

    STOP_LOSS = "STOP_LOSS"
    TARGET = "TARGET"
    EOD = "EOD"
    END_OF_DATA = "END_OF_DATA"


class FinalSignal(str, Enum):
    """Consensus label produced by the multi-timeframe aggregator."""

    STRONG_BUY = "STRONG BUY"
    BUY = "BUY"
    WATCH = "WATCH"
    HOLD = "HOLD"


class SizingMode(str, Enum):
    """Backtest position sizing."""

    FIXED = "fixed"  # Constant unit size
    RISK = "risk"    # Percent of running balance at risk


class MarketRegime(str, Enum):
    """Market regime classification."""

    TRENDING_BULLISH = "TRENDING_BULLISH"
    TRENDING_BEARISH = "TRENDING_BEARISH"
    RANGING = "RANGING"
    VOLATILE = "VOLATILE"
    UNKNOWN = "UNKNOWN"

"""
APEX data models.

Pydantic models for values that cross component boundaries (snapshots,
signals, decisions); dataclasses for sizing results.
"""

import math
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from apex.core.enums import Direction, FinalSignal, MarketRegime, SessionPhase, StrategyFamily
from apex.core.exceptions import MalformedSnapshotError

# Label tokens that count as a bullish vote in multi-timeframe consensus
BULLISH_TOKENS = ("BUY", "LONG", "BREAKOUT")


def _is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


@dataclass
class KellyRecommendation:
    """Fractional Kelly allocation for a trade."""

    raw_kelly: float
    fraction: float  # After multiplier and cap, 0..max_allocation
    percentage: float
    amount: float
    kind: str  # "Half-Kelly" | "NO TRADE"
    can_trade: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PositionSize:
    """Result of risk-based share sizing."""

    shares: int
    risk_amount: float
    position_value: float
    risk_per_share: float
    capped: bool = False
    can_trade: bool = True
    rejection_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class IndicatorSnapshot(BaseModel):
    """
    Read-only indicator values for one symbol/timeframe at one bar.

    Any non-finite number is stored as None, so a NaN can never reach a
    score. Scorers pull the fields they need through ``require``.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    timeframe: str
    timestamp: Optional[datetime] = None
    current_price: Optional[float] = None

    # Moving averages
    sma20: Optional[float] = None
    sma50: Optional[float] = None
    sma200: Optional[float] = None
    ema8: Optional[float] = None
    ema21: Optional[float] = None

    # VWAP with standard deviation bands
    vwap: Optional[float] = None
    vwap_upper_1: Optional[float] = None
    vwap_lower_1: Optional[float] = None
    vwap_upper_2: Optional[float] = None
    vwap_lower_2: Optional[float] = None

    # Oscillators
    rsi: Optional[float] = None
    adx: Optional[float] = None
    stoch_k: Optional[float] = None
    stoch_d: Optional[float] = None

    # Volatility
    bb_upper: Optional[float] = None
    bb_middle: Optional[float] = None
    bb_lower: Optional[float] = None
    bb_width: Optional[float] = None
    atr: Optional[float] = None

    # Volume
    rvol: Optional[float] = None
    value_area_high: Optional[float] = None
    value_area_low: Optional[float] = None
    poc: Optional[float] = None

    # Session
    session_phase: Optional[SessionPhase] = None
    opening_range_high: Optional[float] = None
    opening_range_low: Optional[float] = None
    opening_range_complete: bool = False

    # Extended structure
    order_block_high: Optional[float] = None
    order_block_low: Optional[float] = None
    keltner_upper: Optional[float] = None
    keltner_middle: Optional[float] = None
    keltner_lower: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _scrub_non_finite(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: (None if isinstance(value, float) and not math.isfinite(value) else value)
                for key, value in data.items()
            }
        return data

    def require(self, *fields: str) -> Tuple[float, ...]:
        """
        Return the named values, raising MalformedSnapshotError if any is absent.

        Raises:
            MalformedSnapshotError: One or more fields missing or non-finite.
        """
        values = tuple(getattr(self, name, None) for name in fields)
        missing = [name for name, value in zip(fields, values) if not _is_finite_number(value)]
        if missing:
            raise MalformedSnapshotError(missing)
        return tuple(float(v) for v in values)


class MarketContext(BaseModel):
    """Auxiliary market state not derivable from one symbol's candles."""

    model_config = ConfigDict(frozen=True)

    vix: Optional[float] = None
    vix_history: Tuple[float, ...] = ()
    gex: Optional[float] = Field(default=None, description="Aggregate gamma exposure in billions")
    zero_gamma_level: Optional[float] = None
    daily_bias: Optional[str] = Field(default=None, description="BULLISH, BEARISH or None")

    @model_validator(mode="before")
    @classmethod
    def _scrub_non_finite(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for key in ("vix", "gex", "zero_gamma_level"):
                value = data.get(key)
                if isinstance(value, float) and not math.isfinite(value):
                    data[key] = None
            history = data.get("vix_history")
            if history is not None:
                data["vix_history"] = tuple(v for v in history if _is_finite_number(v))
        return data


class Criterion(BaseModel):
    """One named boolean check behind a score."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    met: bool
    value: str = ""


class TradePlan(BaseModel):
    """Entry, stop and target for a signal."""

    model_config = ConfigDict(frozen=True)

    entry_zone: float
    stop_loss: float
    target: float
    risk_reward: float
    direction: Direction = Direction.LONG
    kelly: Optional[KellyRecommendation] = None

    @property
    def risk_per_share(self) -> float:
        return abs(self.entry_zone - self.stop_loss)


class Signal(BaseModel):
    """
    Graded output of one scorer.

    Shared minimal interface is ``score``, ``signal`` and ``trade_plan``.
    Strategy-specific values go in ``details``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    family: StrategyFamily
    score: int = Field(ge=0, le=100)
    signal: str
    trade_plan: Optional[TradePlan] = None
    criteria: Tuple[Criterion, ...] = ()
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def neutral(
        cls,
        id: str,
        name: str,
        family: StrategyFamily,
        reason: str,
        label: str = "NEUTRAL",
    ) -> "Signal":
        """Zero-score signal with a single explanatory criterion."""
        return cls(
            id=id,
            name=name,
            family=family,
            score=0,
            signal=label,
            criteria=(Criterion(name="Data Check", description=reason, met=False, value="N/A"),),
        )

    @property
    def is_bullish(self) -> bool:
        label = self.signal.upper()
        return any(token in label for token in BULLISH_TOKENS)

    @property
    def is_actionable(self) -> bool:
        return self.score > 0


class TimeframeBreakdown(BaseModel):
    """Best signal of a single timeframe inside a Decision."""

    model_config = ConfigDict(frozen=True)

    timeframe: str
    signal: str
    score: int
    strategy_name: str


class Decision(BaseModel):
    """Multi-timeframe consensus for one symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    final_signal: FinalSignal
    final_score: int = Field(ge=0, le=100)
    entry_price: Optional[float] = None
    stop_loss: Optional[float] = None
    target_price: Optional[float] = None
    bullish_count: int = 0
    timeframes: Dict[str, TimeframeBreakdown] = Field(default_factory=dict)
    best_strategy: Signal
    scanned_at: datetime
    regime: Optional[MarketRegime] = None

    @property
    def is_actionable(self) -> bool:
        return self.final_signal in (FinalSignal.STRONG_BUY, FinalSignal.BUY)

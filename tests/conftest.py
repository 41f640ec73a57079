"""
APEX Test Configuration
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

import numpy as np
import pandas as pd
import pytest

from apex.core.enums import Direction, StrategyFamily
from apex.core.models import IndicatorSnapshot, Signal, TradePlan
from apex.strategies.base import BaseStrategy


def make_candles(
    closes: Sequence[float],
    highs: Optional[Sequence[float]] = None,
    lows: Optional[Sequence[float]] = None,
    start: str = "2024-01-02 14:30",
    freq: str = "15min",
    volume: float = 1_000_000,
) -> pd.DataFrame:
    """Candle frame from explicit closes; highs/lows default to close +/- 0.1."""
    closes = [float(c) for c in closes]
    highs = [float(h) for h in highs] if highs is not None else [c + 0.1 for c in closes]
    lows = [float(low) for low in lows] if lows is not None else [c - 0.1 for c in closes]
    return pd.DataFrame(
        {
            "timestamp": pd.date_range(start=start, periods=len(closes), freq=freq, tz="UTC"),
            "open": closes,
            "high": highs,
            "low": lows,
            "close": closes,
            "volume": [volume] * len(closes),
        }
    )


def random_walk_candles(
    n: int,
    start: str = "2023-01-03 14:30",
    freq: str = "1D",
    base: float = 100.0,
    seed: int = 7,
) -> pd.DataFrame:
    """Reproducible random-walk candles."""
    rng = np.random.RandomState(seed)
    closes = base * np.cumprod(1 + rng.normal(0.0005, 0.015, n))
    opens = np.concatenate([[base], closes[:-1]])
    highs = np.maximum(opens, closes) * (1 + rng.uniform(0, 0.01, n))
    lows = np.minimum(opens, closes) * (1 - rng.uniform(0, 0.01, n))
    return pd.DataFrame(
        {
            "timestamp": pd.date_range(start=start, periods=n, freq=freq, tz="UTC"),
            "open": opens,
            "high": highs,
            "low": lows,
            "close": closes,
            "volume": rng.randint(500_000, 5_000_000, n).astype(float),
        }
    )


def make_signal(
    score: int,
    label: str = "BUY",
    plan: Optional[tuple] = None,
    id: str = "test",
    name: str = "Test Strategy",
    direction: Direction = Direction.LONG,
) -> Signal:
    """Signal with an optional (entry, stop, target) plan, long unless told otherwise."""
    trade_plan = None
    if plan is not None:
        entry, stop, target = plan
        trade_plan = TradePlan(
            entry_zone=entry,
            stop_loss=stop,
            target=target,
            risk_reward=round((target - entry) / (entry - stop), 2),
            direction=direction,
        )
    return Signal(
        id=id,
        name=name,
        family=StrategyFamily.TREND,
        score=score,
        signal=label,
        trade_plan=trade_plan,
    )


class StaticStrategy(BaseStrategy):
    """
    Deterministic scorer for simulator tests: fixed score, long plan
    with the stop ``risk`` below the current price and target at 2R.
    """

    id = "static"
    name = "Static"
    family = StrategyFamily.TREND
    LABELS = [(50, "BUY")]

    def __init__(self, score: int = 80, risk: float = 1.0, direction: Direction = Direction.LONG):
        super().__init__(bankroll=10_000.0)
        self.fixed_score = score
        self.risk = risk
        self.direction = direction

    def _score(self, snapshot, context):
        (price,) = snapshot.require("current_price")
        if self.direction == Direction.LONG:
            plan = self.plan(price, price - self.risk, 2.0)
        else:
            plan = self.plan(price, price + self.risk, 2.0, Direction.SHORT)
        return self.build(self.fixed_score, [], trade_plan=plan)


def price_only_builder(candles: pd.DataFrame, symbol: str, timeframe: str) -> IndicatorSnapshot:
    """Snapshot factory exposing just the last close."""
    return IndicatorSnapshot(
        symbol=symbol,
        timeframe=timeframe,
        timestamp=candles["timestamp"].iloc[-1].to_pydatetime(),
        current_price=float(candles["close"].iloc[-1]),
    )


@pytest.fixture
def snapshot_factory():
    """Build snapshots with sensible defaults; keyword overrides win."""

    def _make(**overrides) -> IndicatorSnapshot:
        base = dict(
            symbol="SPY",
            timeframe="1d",
            timestamp=datetime(2024, 1, 2, 15, 0, tzinfo=timezone.utc),
            current_price=100.0,
            sma20=99.0,
            sma50=97.0,
            sma200=90.0,
            ema8=100.5,
            ema21=99.5,
            vwap=99.0,
            rsi=55.0,
            adx=28.0,
            stoch_k=50.0,
            stoch_d=50.0,
            bb_upper=104.0,
            bb_middle=100.0,
            bb_lower=96.0,
            bb_width=0.08,
            atr=1.5,
            rvol=1.2,
        )
        base.update(overrides)
        return IndicatorSnapshot(**base)

    return _make

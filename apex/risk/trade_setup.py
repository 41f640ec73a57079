"""
ATR-based trade setup for a long entry.

Stop sits below both the recent swing low (minus half an ATR) and two
ATRs under entry, whichever is lower; targets at 2R, 3R and 5R.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Optional

import pandas as pd

from apex.core.exceptions import InsufficientDataError
from apex.core.models import KellyRecommendation
from apex.indicators import technical as ta
from apex.risk.kelly import kelly_size

logger = logging.getLogger(__name__)

ATR_PERIOD = 14
SWING_LOOKBACK = 20
SETUP_WIN_RATE = 0.60
SETUP_REWARD_RISK = 2.0


@dataclass
class TradeSetup:
    """Complete long setup with share count and targets."""

    entry: float
    stop_loss: float
    atr: float
    swing_low: float
    risk_per_share: float
    shares: int
    risk_amount: float
    target_1: float  # 2R
    target_2: float  # 3R
    target_3: float  # 5R
    kelly: Optional[KellyRecommendation] = None

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_trade_setup(
    entry: float,
    candles: pd.DataFrame,
    account_size: float,
    risk_per_trade: float = 0.01,
) -> TradeSetup:
    """
    Build a long setup from recent candles.

    Args:
        entry: Planned entry price.
        candles: OHLC DataFrame, at least ATR_PERIOD + 1 rows.
        account_size: Account value used for risk and Kelly amount.
        risk_per_trade: Fraction of the account at risk.

    Raises:
        InsufficientDataError: Not enough candles for ATR.
    """
    required = ATR_PERIOD + 1
    if len(candles) < required:
        raise InsufficientDataError(
            f"Trade setup needs {required} candles, got {len(candles)}",
            required=required,
            available=len(candles),
        )

    atr_value = ta.last_value(ta.atr(candles, ATR_PERIOD)) or 0.0
    swing_low = float(candles["low"].tail(SWING_LOOKBACK).min())

    stop = min(swing_low - 0.5 * atr_value, entry - 2 * atr_value)
    risk_per_share = entry - stop
    risk_amount = account_size * risk_per_trade
    shares = math.floor(risk_amount / risk_per_share) if risk_per_share > 0 else 0

    return TradeSetup(
        entry=entry,
        stop_loss=round(stop, 2),
        atr=round(atr_value, 4),
        swing_low=swing_low,
        risk_per_share=round(risk_per_share, 4),
        shares=shares,
        risk_amount=round(risk_amount, 2),
        target_1=round(entry + 2 * risk_per_share, 2),
        target_2=round(entry + 3 * risk_per_share, 2),
        target_3=round(entry + 5 * risk_per_share, 2),
        kelly=kelly_size(SETUP_WIN_RATE, SETUP_REWARD_RISK, account_size),
    )

"""
Build an IndicatorSnapshot from a candle slice.

The builder sees only the rows it is given, so replaying ``candles[: i + 1]``
bar by bar never looks ahead.
"""

import logging
from typing import Sequence

import pandas as pd

from apex.core.enums import Timeframe
from apex.core.exceptions import InsufficientDataError
from apex.core.models import IndicatorSnapshot
from apex.indicators import technical as ta
from apex.scheduler.market_hours import ET, MarketHours

logger = logging.getLogger(__name__)


class SnapshotBuilder:
    """
    Computes every indicator the scorers read.

    Args:
        sma_periods: Simple moving average periods (three values,
            short/medium/long).
        window: Trailing bars used for calculation. Must cover the
            longest lookback.
        profile_bars: Bars in the volume profile.
        min_bars: Minimum bars before a snapshot is produced.
    """

    def __init__(
        self,
        sma_periods: Sequence[int] = (20, 50, 200),
        window: int = 400,
        profile_bars: int = 50,
        min_bars: int = 2,
    ):
        if len(sma_periods) != 3:
            raise ValueError("sma_periods needs exactly three periods")
        self.sma_periods = tuple(sma_periods)
        self.window = max(window, max(self.sma_periods))
        self.profile_bars = profile_bars
        self.min_bars = min_bars

    @property
    def lookback(self) -> int:
        """Longest indicator lookback, used as the backtest warm-up."""
        return max(self.sma_periods)

    def build(
        self,
        candles: pd.DataFrame,
        symbol: str,
        timeframe: str,
    ) -> IndicatorSnapshot:
        """
        Snapshot of the last bar in ``candles``.

        Indicators whose lookback is not filled come back as None, so the
        scorers that need them go neutral.

        Raises:
            InsufficientDataError: Fewer than ``min_bars`` candles.
        """
        if len(candles) < self.min_bars:
            raise InsufficientDataError(
                f"[{symbol}] {len(candles)} candles, need {self.min_bars}",
                required=self.min_bars,
                available=len(candles),
            )

        bars = candles.tail(self.window).reset_index(drop=True)
        close = bars["close"]
        last_ts = bars["timestamp"].iloc[-1]
        intraday = self._is_intraday(timeframe)

        short, medium, long_ = self.sma_periods
        upper, middle, lower = ta.bollinger_bands(close)
        k, d = ta.stochastic(bars)
        kc_upper, kc_middle, kc_lower = ta.keltner_channel(bars)

        if intraday:
            session_keys = pd.to_datetime(bars["timestamp"], utc=True).dt.tz_convert(ET).dt.date
            vwap_series, vwap_std = ta.vwap(bars, session_keys)
        else:
            recent = bars.tail(short)
            vwap_series, vwap_std = ta.vwap(recent)

        vwap_value = ta.last_value(vwap_series)
        std_value = ta.last_value(vwap_std)
        bb_mid = ta.last_value(middle)
        bb_up = ta.last_value(upper)
        bb_low = ta.last_value(lower)
        bb_width = (bb_up - bb_low) / bb_mid if bb_mid else None

        vah, val, poc = ta.value_area(bars.tail(self.profile_bars))
        ob_high, ob_low = ta.latest_bullish_order_block(bars)

        fields = dict(
            symbol=symbol,
            timeframe=str(timeframe),
            timestamp=pd.Timestamp(last_ts).to_pydatetime(),
            current_price=float(close.iloc[-1]),
            sma20=ta.last_value(ta.sma(close, short)),
            sma50=ta.last_value(ta.sma(close, medium)),
            sma200=ta.last_value(ta.sma(close, long_)),
            ema8=ta.last_value(ta.ema(close, 8)),
            ema21=ta.last_value(ta.ema(close, 21)),
            vwap=vwap_value,
            rsi=ta.last_value(ta.rsi(close)),
            adx=ta.last_value(ta.adx(bars)),
            stoch_k=ta.last_value(k),
            stoch_d=ta.last_value(d),
            bb_upper=bb_up,
            bb_middle=bb_mid,
            bb_lower=bb_low,
            bb_width=bb_width,
            atr=ta.last_value(ta.atr(bars)),
            rvol=ta.last_value(ta.relative_volume(bars["volume"].astype(float))),
            value_area_high=vah,
            value_area_low=val,
            poc=poc,
            order_block_high=ob_high,
            order_block_low=ob_low,
            keltner_upper=ta.last_value(kc_upper),
            keltner_middle=ta.last_value(kc_middle),
            keltner_lower=ta.last_value(kc_lower),
        )

        if vwap_value is not None and std_value is not None:
            fields.update(
                vwap_upper_1=vwap_value + std_value,
                vwap_lower_1=vwap_value - std_value,
                vwap_upper_2=vwap_value + 2 * std_value,
                vwap_lower_2=vwap_value - 2 * std_value,
            )

        if intraday:
            or_high, or_low, complete = MarketHours.opening_range(bars)
            fields.update(
                session_phase=MarketHours.get_session_phase(last_ts),
                opening_range_high=or_high,
                opening_range_low=or_low,
                opening_range_complete=complete,
            )

        return IndicatorSnapshot(**fields)

    @staticmethod
    def _is_intraday(timeframe: str) -> bool:
        try:
            return Timeframe(str(getattr(timeframe, "value", timeframe))).is_intraday
        except ValueError:
            logger.debug("Unknown timeframe %s, treating as daily", timeframe)
            return False

    def __call__(self, candles: pd.DataFrame, symbol: str, timeframe: str) -> IndicatorSnapshot:
        return self.build(candles, symbol, timeframe)

"""
Technical indicator calculations on OHLCV DataFrames.

Every function takes columns from a candle DataFrame (timestamp, open,
high, low, close, volume) and returns full series aligned to the input,
so the caller picks the last value. Early values are NaN until the
lookback is filled.
"""

import logging
from typing import Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def sma(close: pd.Series, period: int) -> pd.Series:
    return close.rolling(window=period, min_periods=period).mean()


def ema(close: pd.Series, span: int) -> pd.Series:
    return close.ewm(span=span, adjust=False, min_periods=span).mean()


def rsi(close: pd.Series, period: int = 14) -> pd.Series:
    """
    RSI = 100 - (100 / (1 + RS)), RS = avg_gain / avg_loss over period.
    """
    if close.empty:
        return pd.Series(dtype=float)
    delta = close.diff()
    gain = delta.where(delta > 0, 0.0)
    loss = (-delta).where(delta < 0, 0.0)
    avg_gain = gain.rolling(window=period, min_periods=period).mean()
    avg_loss = loss.rolling(window=period, min_periods=period).mean()
    rs = avg_gain / avg_loss.replace(0, 1e-10)
    return 100 - (100 / (1 + rs))


def true_range(bars: pd.DataFrame) -> pd.Series:
    prev_close = bars["close"].shift(1)
    tr1 = bars["high"] - bars["low"]
    tr2 = (bars["high"] - prev_close).abs()
    tr3 = (bars["low"] - prev_close).abs()
    return pd.concat([tr1, tr2, tr3], axis=1).max(axis=1)


def atr(bars: pd.DataFrame, period: int = 14) -> pd.Series:
    """
    Average True Range: rolling mean of true range over period.
    """
    return true_range(bars).rolling(window=period, min_periods=period).mean()


def adx(bars: pd.DataFrame, period: int = 14) -> pd.Series:
    """
    Average Directional Index for trend strength.
    ADX < 20 = ranging, ADX > 25 = trending.
    """
    high = bars["high"]
    low = bars["low"]
    tr = true_range(bars)

    plus_dm = high.diff()
    minus_dm = -low.diff()
    plus_dm = plus_dm.where((plus_dm > minus_dm) & (plus_dm > 0), 0.0)
    minus_dm = minus_dm.where((minus_dm > plus_dm) & (minus_dm > 0), 0.0)

    smoothed_tr = tr.ewm(span=period, adjust=False).mean()
    plus_di = 100 * (plus_dm.ewm(span=period, adjust=False).mean() / smoothed_tr)
    minus_di = 100 * (minus_dm.ewm(span=period, adjust=False).mean() / smoothed_tr)

    dx = 100 * (plus_di - minus_di).abs() / (plus_di + minus_di + 0.0001)
    result = dx.ewm(span=period, adjust=False).mean()
    # Needs two full periods before it means anything
    result.iloc[: min(len(result), period * 2 - 1)] = np.nan
    return result


def bollinger_bands(
    close: pd.Series, period: int = 20, num_std: float = 2.0
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """Returns (upper, middle, lower)."""
    middle = sma(close, period)
    std = close.rolling(window=period, min_periods=period).std(ddof=0)
    return middle + num_std * std, middle, middle - num_std * std


def stochastic(
    bars: pd.DataFrame, k_period: int = 14, d_period: int = 3
) -> Tuple[pd.Series, pd.Series]:
    """Returns (%K, %D)."""
    lowest = bars["low"].rolling(window=k_period, min_periods=k_period).min()
    highest = bars["high"].rolling(window=k_period, min_periods=k_period).max()
    span = (highest - lowest).replace(0, np.nan)
    k = 100 * (bars["close"] - lowest) / span
    d = k.rolling(window=d_period, min_periods=d_period).mean()
    return k, d


def keltner_channel(
    bars: pd.DataFrame, period: int = 20, atr_mult: float = 1.5
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """Returns (upper, middle, lower) around an EMA with ATR width."""
    middle = ema(bars["close"], period)
    width = atr(bars, period) * atr_mult
    return middle + width, middle, middle - width


def vwap(bars: pd.DataFrame, session_keys: Optional[pd.Series] = None) -> Tuple[pd.Series, pd.Series]:
    """
    Volume-weighted average price with volume-weighted standard deviation.

    Args:
        bars: Candle DataFrame.
        session_keys: Optional per-row key (e.g. trading date); the
            calculation restarts whenever the key changes. None anchors
            the whole frame.

    Returns:
        (vwap, std) series.
    """
    typical = (bars["high"] + bars["low"] + bars["close"]) / 3.0
    volume = bars["volume"].astype(float)
    if session_keys is None:
        session_keys = pd.Series(0, index=bars.index)

    groups = session_keys.values
    cum_vol = volume.groupby(groups).cumsum()
    cum_pv = (typical * volume).groupby(groups).cumsum()
    cum_pv2 = (typical * typical * volume).groupby(groups).cumsum()

    safe_vol = cum_vol.replace(0, np.nan)
    result = cum_pv / safe_vol
    variance = (cum_pv2 / safe_vol - result * result).clip(lower=0)
    return result, np.sqrt(variance)


def relative_volume(volume: pd.Series, period: int = 20) -> pd.Series:
    """Current volume divided by the mean of the previous ``period`` bars."""
    baseline = volume.shift(1).rolling(window=period, min_periods=period).mean()
    return volume / baseline.replace(0, np.nan)


def value_area(
    bars: pd.DataFrame, bins: int = 24, coverage: float = 0.70
) -> Tuple[Optional[float], Optional[float], Optional[float]]:
    """
    Volume profile value area.

    Buckets typical price by volume, takes the point of control (fullest
    bucket) and grows outward toward the heavier neighbour until
    ``coverage`` of the volume is enclosed.

    Returns:
        (value_area_high, value_area_low, poc), all None when there is no
        volume or no price range.
    """
    if bars.empty:
        return None, None, None

    low = float(bars["low"].min())
    high = float(bars["high"].max())
    total = float(bars["volume"].sum())
    if high <= low or total <= 0:
        return None, None, None

    typical = ((bars["high"] + bars["low"] + bars["close"]) / 3.0).to_numpy()
    edges = np.linspace(low, high, bins + 1)
    idx = np.clip(np.digitize(typical, edges) - 1, 0, bins - 1)
    profile = np.bincount(idx, weights=bars["volume"].to_numpy(dtype=float), minlength=bins)

    poc_idx = int(np.argmax(profile))
    lo = hi = poc_idx
    enclosed = profile[poc_idx]
    while enclosed < total * coverage and (lo > 0 or hi < bins - 1):
        below = profile[lo - 1] if lo > 0 else -1.0
        above = profile[hi + 1] if hi < bins - 1 else -1.0
        if above >= below:
            hi += 1
            enclosed += profile[hi]
        else:
            lo -= 1
            enclosed += profile[lo]

    poc = (edges[poc_idx] + edges[poc_idx + 1]) / 2.0
    return float(edges[hi + 1]), float(edges[lo]), float(poc)


def latest_bullish_order_block(
    bars: pd.DataFrame, lookback: int = 50
) -> Tuple[Optional[float], Optional[float]]:
    """
    Most recent demand zone: the last down candle before a bar that closes
    above its high. Zones the price has since closed below are ignored.

    Returns:
        (zone_high, zone_low) or (None, None).
    """
    window = bars.tail(lookback).reset_index(drop=True)
    if len(window) < 3:
        return None, None

    opens = window["open"].to_numpy()
    highs = window["high"].to_numpy()
    lows = window["low"].to_numpy()
    closes = window["close"].to_numpy()

    for j in range(len(window) - 2, -1, -1):
        if closes[j] < opens[j] and closes[j + 1] > highs[j]:
            if (closes[j + 1:] < lows[j]).any():
                continue
            return float(highs[j]), float(lows[j])
    return None, None


def last_value(series: pd.Series) -> Optional[float]:
    """Last element as float, None for empty or NaN."""
    if series is None or series.empty:
        return None
    value = series.iloc[-1]
    if pd.isna(value):
        return None
    return float(value)

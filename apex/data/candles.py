"""
Candle series validation.

Every candle frame entering the engine passes through ``normalize_candles``:
ascending, unique timestamps (tz-aware UTC), only rows with a close.
"""

import logging
from pathlib import Path
from typing import Iterable, Mapping, Union

import pandas as pd

from apex.core.exceptions import ApexDataError

logger = logging.getLogger(__name__)

CANDLE_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]

TIMEFRAME_ALIASES = {
    "5MIN": "5m", "5M": "5m",
    "15MIN": "15m", "15M": "15m",
    "60MIN": "1h", "1H": "1h", "60M": "1h",
    "1D": "1d", "D": "1d", "DAILY": "1d",
}


def normalize_timeframe(timeframe: str) -> str:
    """Normalize timeframe string to standard format."""
    key = str(getattr(timeframe, "value", timeframe)).strip()
    return TIMEFRAME_ALIASES.get(key.upper(), key.lower())


def normalize_candles(data: Union[pd.DataFrame, Iterable[Mapping]]) -> pd.DataFrame:
    """
    Clean a candle series.

    Rows without a close are dropped, timestamps converted to UTC, sorted
    ascending, and duplicate timestamps keep the last row. A DatetimeIndex
    is accepted in place of a timestamp column.

    Raises:
        ApexDataError: Required columns missing.
    """
    frame = data.copy() if isinstance(data, pd.DataFrame) else pd.DataFrame(list(data))
    frame.columns = [str(c).lower() for c in frame.columns]

    if "timestamp" not in frame.columns:
        if isinstance(frame.index, pd.DatetimeIndex):
            frame = frame.rename_axis("timestamp").reset_index()
        elif "date" in frame.columns:
            frame = frame.rename(columns={"date": "timestamp"})

    missing = [c for c in CANDLE_COLUMNS if c not in frame.columns]
    if missing:
        raise ApexDataError(f"Candle data missing columns: {', '.join(missing)}")

    before = len(frame)
    frame = frame[CANDLE_COLUMNS].dropna(subset=["close"]).copy()
    frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
    frame = (
        frame.sort_values("timestamp", kind="mergesort")
        .drop_duplicates(subset="timestamp", keep="last")
        .reset_index(drop=True)
    )
    for column in ("open", "high", "low"):
        frame[column] = frame[column].fillna(frame["close"])
    frame["volume"] = frame["volume"].fillna(0)

    if len(frame) != before:
        logger.debug("Dropped %d invalid or duplicate candles", before - len(frame))
    return frame


def load_candles_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Read a CSV of candles and normalize it."""
    return normalize_candles(pd.read_csv(path))

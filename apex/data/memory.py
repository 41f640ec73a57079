"""
In-memory candle provider.

Serves preloaded frames keyed by (symbol, timeframe), trimmed to the
requested number of days before the last bar.
"""

import logging
from typing import Dict, Optional, Tuple

import pandas as pd

from apex.core.exceptions import ApexDataError
from apex.data.base import BaseDataProvider
from apex.data.candles import normalize_candles, normalize_timeframe

logger = logging.getLogger(__name__)


class DataFrameProvider(BaseDataProvider):
    """Provider backed by frames supplied up front (CSV files, fixtures)."""

    def __init__(self, frames: Optional[Dict[Tuple[str, str], pd.DataFrame]] = None):
        super().__init__()
        self._frames: Dict[Tuple[str, str], pd.DataFrame] = {}
        for (symbol, timeframe), frame in (frames or {}).items():
            self.add(symbol, timeframe, frame)

    def add(self, symbol: str, timeframe: str, frame: pd.DataFrame) -> None:
        self._frames[(symbol.upper(), normalize_timeframe(timeframe))] = normalize_candles(frame)

    async def get_bars(self, symbol: str, timeframe: str, days: int) -> pd.DataFrame:
        key = (symbol.upper(), normalize_timeframe(timeframe))
        frame = self._frames.get(key)
        if frame is None:
            raise ApexDataError(f"No candles loaded for {key[0]} {key[1]}")
        if frame.empty:
            return frame.copy()

        start = frame["timestamp"].iloc[-1] - pd.Timedelta(days=days)
        return frame[frame["timestamp"] > start].reset_index(drop=True)

"""
APEX Base Data Provider

Abstract base class for candle sources. Retrieval, caching, retries and
timeouts all belong to the provider; the engine only consumes frames.
"""

import logging
from abc import ABC, abstractmethod

import pandas as pd

logger = logging.getLogger(__name__)


class BaseDataProvider(ABC):
    """Abstract base class for all candle providers."""

    def __init__(self):
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        """Connect to the data source."""
        self._connected = True
        return True

    async def disconnect(self) -> None:
        """Disconnect from the data source."""
        self._connected = False

    @abstractmethod
    async def get_bars(self, symbol: str, timeframe: str, days: int) -> pd.DataFrame:
        """
        Get OHLCV bars for a symbol.

        Args:
            symbol: Ticker symbol.
            timeframe: Bar timeframe (5m, 15m, 1h, 1d).
            days: Calendar days of history ending now.

        Returns:
            DataFrame with columns: timestamp, open, high, low, close, volume
        """
        pass

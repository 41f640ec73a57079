from .base import BaseDataProvider
from .candles import load_candles_csv, normalize_candles, normalize_timeframe
from .memory import DataFrameProvider

__all__ = [
    "BaseDataProvider",
    "DataFrameProvider",
    "load_candles_csv",
    "normalize_candles",
    "normalize_timeframe",
]

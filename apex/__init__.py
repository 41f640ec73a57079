"""APEX - signal scoring and backtesting engine."""

__version__ = "0.1.0"

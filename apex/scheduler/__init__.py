"""APEX scheduling: session timing and the multi-timeframe scan loop."""

from .market_hours import MarketHours

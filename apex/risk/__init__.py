"""APEX Risk: Kelly allocation, risk-based sizing and ATR trade setups."""

from .kelly import kelly_size
from .position_sizer import RiskPositionSizer
from .trade_setup import TradeSetup, calculate_trade_setup

__all__ = [
    "kelly_size",
    "RiskPositionSizer",
    "TradeSetup",
    "calculate_trade_setup",
]

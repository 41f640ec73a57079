"""APEX Backtesting Framework."""

from .models import (
    BacktestConfig,
    BacktestResult,
    BacktestSummary,
    BreakdownRow,
    SimulatedPosition,
    Trade,
)
from .reporter import BacktestReporter
from .runner import BacktestRunner
from .simulator import BacktestSimulator
from .statistics import StatisticsCalculator

__all__ = [
    "BacktestConfig",
    "BacktestReporter",
    "BacktestResult",
    "BacktestRunner",
    "BacktestSimulator",
    "BacktestSummary",
    "BreakdownRow",
    "SimulatedPosition",
    "StatisticsCalculator",
    "Trade",
]

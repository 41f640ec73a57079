"""
Backtest runner: validate parameters, fetch candles, simulate.

Configuration errors are raised before the provider is touched; too little
history is raised before the first simulated bar.
"""

import logging
from typing import Any, Optional, Sequence

from apex.backtest.models import BacktestConfig, BacktestResult
from apex.backtest.simulator import BacktestSimulator
from apex.config.timeframe_config import BACKTEST_INTERVALS
from apex.core.enums import SizingMode
from apex.core.exceptions import ApexConfigError
from apex.core.models import MarketContext
from apex.data.base import BaseDataProvider
from apex.data.candles import normalize_timeframe
from apex.indicators.snapshot import SnapshotBuilder
from apex.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)


class BacktestRunner:
    """
    Runs backtests against an injected data provider.

    Args:
        provider: Candle source.
        settings: Optional settings object (e.g. from apex.config.settings).
        simulator: Optional preconfigured simulator.
    """

    def __init__(
        self,
        provider: BaseDataProvider,
        settings: Any = None,
        simulator: Optional[BacktestSimulator] = None,
    ):
        if settings is None:
            from apex.config.settings import get_settings

            settings = get_settings()
        self.provider = provider
        self.settings = settings
        self.simulator = simulator

    def build_config(
        self,
        symbol: str,
        days: int = 30,
        interval: str = "15m",
        min_score: Optional[int] = None,
        sizing: SizingMode = SizingMode.FIXED,
    ) -> BacktestConfig:
        """Validated config with settings-driven defaults."""
        s = self.settings
        return BacktestConfig(
            symbol=symbol,
            interval=normalize_timeframe(interval),
            days=days,
            min_score=s.backtest_min_score if min_score is None else min_score,
            sizing=sizing,
            starting_balance=s.backtest_starting_balance,
            risk_per_trade_pct=s.risk_per_trade_pct,
            max_position_pct=s.max_position_pct,
            session_cutoff_hour=s.session_cutoff_hour,
            max_days=s.backtest_max_days,
        )

    async def run(
        self,
        symbol: str,
        days: int = 30,
        interval: str = "15m",
        min_score: Optional[int] = None,
        sizing: SizingMode = SizingMode.FIXED,
        strategies: Optional[Sequence[BaseStrategy]] = None,
        context: Optional[MarketContext] = None,
    ) -> BacktestResult:
        """
        Fetch history and run the simulator.

        Raises:
            ApexConfigError: Invalid parameters (before any fetch).
            InsufficientDataError: Not enough candles for warm-up.
        """
        config = self.build_config(symbol, days, interval, min_score, sizing)
        if config.timeframe not in BACKTEST_INTERVALS:
            raise ApexConfigError(f"Unsupported backtest interval: {config.interval}")

        candles = await self.provider.get_bars(config.symbol, config.interval, config.days)
        simulator = self.simulator or BacktestSimulator(
            strategies=strategies,
            snapshot_builder=SnapshotBuilder(window=self.settings.snapshot_window_bars),
            context=context,
        )
        return simulator.run(candles, config)

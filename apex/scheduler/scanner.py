"""
APEX Scan Scheduler

Periodic multi-timeframe scanning of a watchlist:
- MultiTimeframeScanner turns one symbol into one Decision (15m, 1h and
  1d candles fetched concurrently, scored, aggregated)
- ScanScheduler runs the scanner over the watchlist in bounded batches,
  stores Decisions, notifies on strong ones and exposes its status

All collaborators are injected; nothing is held in module globals.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Sequence

from apex.config.timeframe_config import CONSENSUS_TIMEFRAMES, TIMEFRAME_CONFIGS
from apex.core.enums import Timeframe
from apex.core.exceptions import ApexConfigError, ApexDataError
from apex.core.models import Decision, IndicatorSnapshot, MarketContext, Signal
from apex.data.base import BaseDataProvider
from apex.data.candles import normalize_candles
from apex.indicators.snapshot import SnapshotBuilder
from apex.intelligence.aggregator import MultiTimeframeAggregator
from apex.intelligence.regime import RegimeDetector, trend_bias
from apex.storage.decisions import DecisionStore
from apex.strategies.selector import StrategySelector

logger = logging.getLogger(__name__)

Notifier = Callable[[Decision], Awaitable[Any]]
ContextProvider = Callable[[str], Awaitable[Optional[MarketContext]]]


class MultiTimeframeScanner:
    """
    Produces a consensus Decision for a symbol.

    Args:
        provider: Candle source.
        selector: Strategy selector (default battery when None).
        aggregator: Consensus aggregator.
        snapshot_builder: Indicator snapshot factory.
        context_provider: Optional async callable returning the
            MarketContext for a symbol (VIX, GEX).
    """

    def __init__(
        self,
        provider: BaseDataProvider,
        selector: Optional[StrategySelector] = None,
        aggregator: Optional[MultiTimeframeAggregator] = None,
        snapshot_builder: Optional[SnapshotBuilder] = None,
        context_provider: Optional[ContextProvider] = None,
        timeframes: Sequence[Timeframe] = tuple(CONSENSUS_TIMEFRAMES),
    ):
        self.provider = provider
        self.selector = selector or StrategySelector()
        self.aggregator = aggregator or MultiTimeframeAggregator()
        self.snapshot_builder = snapshot_builder or SnapshotBuilder()
        self.context_provider = context_provider
        self.timeframes = list(timeframes)
        self.regime_detector = RegimeDetector()

    async def scan_symbol(self, symbol: str, scanned_at: Optional[datetime] = None) -> Decision:
        """Fetch, score and aggregate every timeframe for ``symbol``."""
        frames = await asyncio.gather(
            *(
                self.provider.get_bars(symbol, tf.value, TIMEFRAME_CONFIGS[tf].lookback_days)
                for tf in self.timeframes
            )
        )
        context = (await self.context_provider(symbol) if self.context_provider else None) or MarketContext()

        # Indicator math runs in worker threads
        built = await asyncio.gather(
            *(
                asyncio.to_thread(self._build_snapshot, frame, symbol, tf)
                for tf, frame in zip(self.timeframes, frames)
            )
        )
        snapshots: Dict[Timeframe, Optional[IndicatorSnapshot]] = dict(zip(self.timeframes, built))

        daily = snapshots.get(Timeframe.D1)
        if daily is not None and context.daily_bias is None:
            context = context.model_copy(update={"daily_bias": trend_bias(daily)})

        signals: Dict[str, List[Signal]] = {}
        for tf, snapshot in snapshots.items():
            signals[tf.value] = (
                self.selector.select(snapshot, context, tf.strategy_class) if snapshot is not None else []
            )

        regime = self.regime_detector.detect(daily, context).regime if daily is not None else None
        return self.aggregator.aggregate(symbol, signals, scanned_at=scanned_at, regime=regime)

    def _build_snapshot(self, frame, symbol: str, timeframe: Timeframe) -> Optional[IndicatorSnapshot]:
        try:
            return self.snapshot_builder.build(normalize_candles(frame), symbol, timeframe.value)
        except ApexDataError as e:
            logger.warning(f"[{symbol}] {timeframe.value} snapshot unavailable: {e}")
            return None


@dataclass
class SchedulerStatus:
    """Externally observable scheduler state."""

    is_running: bool = False
    interval_minutes: int = 5
    watchlist_size: int = 0
    last_scan_time: Optional[datetime] = None
    cycles_completed: int = 0
    last_cycle_scanned: int = 0
    last_cycle_failed: int = 0
    last_cycle_alerts: int = 0
    activity_log: Deque[Dict[str, str]] = field(default_factory=lambda: deque(maxlen=100))

    def to_dict(self) -> dict:
        return {
            "is_running": self.is_running,
            "interval_minutes": self.interval_minutes,
            "watchlist_size": self.watchlist_size,
            "last_scan_time": self.last_scan_time.isoformat() if self.last_scan_time else None,
            "cycles_completed": self.cycles_completed,
            "last_cycle_scanned": self.last_cycle_scanned,
            "last_cycle_failed": self.last_cycle_failed,
            "last_cycle_alerts": self.last_cycle_alerts,
            "activity_log": list(self.activity_log),
        }


class ScanScheduler:
    """
    Runs watchlist scans on an interval.

    Args:
        scanner: Produces one Decision per symbol.
        store: Decision persistence.
        notifier: Optional async callable for strong Decisions.
        settings: Optional settings object (e.g. from apex.config.settings).
        interval_minutes: Minutes between cycles (1-60).
        max_concurrent: Symbols scanned at once.
    """

    def __init__(
        self,
        scanner: MultiTimeframeScanner,
        store: DecisionStore,
        notifier: Optional[Notifier] = None,
        settings: Any = None,
        interval_minutes: Optional[int] = None,
        max_concurrent: Optional[int] = None,
    ):
        if settings is None:
            from apex.config.settings import get_settings

            settings = get_settings()
        interval = interval_minutes if interval_minutes is not None else settings.scan_interval_minutes
        concurrency = max_concurrent if max_concurrent is not None else settings.scan_concurrency
        if not 1 <= interval <= 60:
            raise ApexConfigError(f"Scan interval must be 1-60 minutes, got {interval}")
        if concurrency < 1:
            raise ApexConfigError(f"max_concurrent must be at least 1, got {concurrency}")

        self.scanner = scanner
        self.store = store
        self.notifier = notifier
        self.max_concurrent = concurrency
        self.alert_threshold = settings.alert_score_threshold
        self.status = SchedulerStatus(
            interval_minutes=interval,
            activity_log=deque(maxlen=settings.activity_log_size),
        )
        self._task: Optional[asyncio.Task] = None

    def _log(self, message: str) -> None:
        logger.info(message)
        self.status.activity_log.append(
            {"time": datetime.now(timezone.utc).isoformat(), "message": message}
        )

    async def run_cycle(self, watchlist: Sequence[str], scanned_at: Optional[datetime] = None) -> List[Decision]:
        """
        Scan every symbol once.

        A failing symbol is logged and counted; the rest of the cycle
        carries on.
        """
        semaphore = asyncio.Semaphore(self.max_concurrent)
        scanned_at = scanned_at or datetime.now(timezone.utc)

        async def _scan(symbol: str) -> Optional[Decision]:
            async with semaphore:
                try:
                    return await self.scanner.scan_symbol(symbol, scanned_at=scanned_at)
                except Exception as e:
                    logger.error(f"Scan failed for {symbol}: {e}")
                    return None

        results = await asyncio.gather(*(_scan(symbol) for symbol in watchlist))
        decisions = [d for d in results if d is not None]

        stored = self.store.upsert_many(decisions)
        if not stored.ok:
            logger.error(f"Failed to store decisions: {stored.error}")

        alerts = 0
        for decision in decisions:
            if self.notifier is None or not decision.is_actionable:
                continue
            if decision.final_score < self.alert_threshold:
                continue
            try:
                await self.notifier(decision)
                alerts += 1
            except Exception as e:
                logger.error(f"Notifier failed for {decision.symbol}: {e}")

        self.status.last_scan_time = scanned_at
        self.status.cycles_completed += 1
        self.status.watchlist_size = len(watchlist)
        self.status.last_cycle_scanned = len(decisions)
        self.status.last_cycle_failed = len(watchlist) - len(decisions)
        self.status.last_cycle_alerts = alerts
        self._log(
            f"Cycle {self.status.cycles_completed}: {len(decisions)}/{len(watchlist)} scanned, {alerts} alerts"
        )
        return decisions

    async def _loop(self, watchlist: Sequence[str]) -> None:
        try:
            while self.status.is_running:
                await self.run_cycle(watchlist)
                await asyncio.sleep(self.status.interval_minutes * 60)
        except asyncio.CancelledError:
            self._log("Scheduler cancelled")
            raise
        finally:
            self.status.is_running = False

    def start(self, watchlist: Sequence[str]) -> asyncio.Task:
        """Start the periodic loop on the running event loop."""
        if self.status.is_running and self._task is not None:
            return self._task
        self.status.is_running = True
        self._log(f"Scheduler started: {len(watchlist)} symbols every {self.status.interval_minutes} min")
        self._task = asyncio.create_task(self._loop(list(watchlist)))
        return self._task

    async def stop(self) -> None:
        """Stop the loop and wait for it to finish."""
        self.status.is_running = False
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._log("Scheduler stopped")

"""
Tests for the multi-timeframe scanner, scan scheduler and decision store.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from apex.core.enums import FinalSignal, TimeframeClass
from apex.core.exceptions import ApexConfigError, ApexDataError
from apex.core.models import Decision, MarketContext
from apex.data.memory import DataFrameProvider
from apex.indicators.snapshot import SnapshotBuilder
from apex.intelligence.aggregator import NO_SIGNAL
from apex.scheduler.scanner import MultiTimeframeScanner, ScanScheduler
from apex.storage.decisions import DecisionStore
from apex.strategies.selector import StrategySelector
from tests.conftest import StaticStrategy, random_walk_candles

SCANNED_AT = datetime(2024, 3, 1, 15, 0, tzinfo=timezone.utc)


def make_decision(symbol: str, score: int = 90, final_signal: FinalSignal = FinalSignal.STRONG_BUY) -> Decision:
    return Decision(
        symbol=symbol,
        final_signal=final_signal,
        final_score=score,
        best_strategy=NO_SIGNAL,
        scanned_at=SCANNED_AT,
    )


@pytest.fixture
def mock_settings():
    settings = MagicMock()
    settings.scan_interval_minutes = 5
    settings.scan_concurrency = 5
    settings.alert_score_threshold = 80
    settings.activity_log_size = 10
    return settings


@pytest.fixture
def provider():
    return DataFrameProvider(
        {
            ("SPY", "15m"): random_walk_candles(120, start="2024-02-26 14:30", freq="15min", seed=1),
            ("SPY", "1h"): random_walk_candles(120, start="2024-02-20 14:30", freq="1h", seed=2),
            ("SPY", "1d"): random_walk_candles(120, start="2023-10-01 14:30", freq="1D", seed=3),
        }
    )


@pytest.fixture
def scanner(provider):
    selector = StrategySelector(
        {
            TimeframeClass.INTRADAY: [StaticStrategy(score=90)],
            TimeframeClass.SWING: [StaticStrategy(score=90)],
        }
    )
    return MultiTimeframeScanner(
        provider,
        selector=selector,
        snapshot_builder=SnapshotBuilder(sma_periods=(5, 10, 20)),
    )


def mock_scanner(results):
    """Scanner stand-in returning ``results[symbol]`` (raising if it is an exception)."""
    scanner = MagicMock()

    async def scan_symbol(symbol, scanned_at=None):
        result = results[symbol]
        if isinstance(result, Exception):
            raise result
        return result

    scanner.scan_symbol = AsyncMock(side_effect=scan_symbol)
    return scanner


# =============================================================================
# SCANNER
# =============================================================================


class TestMultiTimeframeScanner:
    """Tests for MultiTimeframeScanner."""

    @pytest.mark.asyncio
    async def test_consensus_decision(self, scanner):
        decision = await scanner.scan_symbol("SPY", scanned_at=SCANNED_AT)

        assert decision.symbol == "SPY"
        assert decision.final_score == 90
        assert decision.bullish_count == 3
        assert decision.final_signal == FinalSignal.STRONG_BUY
        assert set(decision.timeframes) == {"15m", "1h", "1d"}
        assert decision.scanned_at == SCANNED_AT
        assert decision.regime is not None

    @pytest.mark.asyncio
    async def test_missing_symbol_raises(self, scanner):
        with pytest.raises(ApexDataError):
            await scanner.scan_symbol("QQQ")

    @pytest.mark.asyncio
    async def test_context_provider_used(self, provider):
        strategy = MagicMock(wraps=StaticStrategy(score=90))
        strategy.id, strategy.name, strategy.family = "static", "Static", StaticStrategy.family
        context_provider = AsyncMock(return_value=MarketContext(vix=30.0))
        scanner = MultiTimeframeScanner(
            provider,
            selector=StrategySelector({TimeframeClass.SWING: [strategy], TimeframeClass.INTRADAY: []}),
            snapshot_builder=SnapshotBuilder(sma_periods=(5, 10, 20)),
            context_provider=context_provider,
        )

        decision = await scanner.scan_symbol("SPY", scanned_at=SCANNED_AT)

        context_provider.assert_awaited_once_with("SPY")
        context = strategy.evaluate.call_args[0][1]
        assert context.vix == 30.0
        assert context.daily_bias in ("BULLISH", "BEARISH", None)
        # Only the daily timeframe scored
        assert decision.final_score == 45
        assert decision.timeframes["15m"].score == 0

    @pytest.mark.asyncio
    async def test_short_history_gives_placeholder(self):
        provider = DataFrameProvider(
            {
                ("SPY", "15m"): random_walk_candles(1, start="2024-02-26 14:30", freq="15min"),
                ("SPY", "1h"): random_walk_candles(50, start="2024-02-20 14:30", freq="1h"),
                ("SPY", "1d"): random_walk_candles(50, start="2023-10-01 14:30", freq="1D"),
            }
        )
        scanner = MultiTimeframeScanner(
            provider,
            selector=StrategySelector(
                {TimeframeClass.INTRADAY: [StaticStrategy(score=90)], TimeframeClass.SWING: [StaticStrategy(score=90)]}
            ),
            snapshot_builder=SnapshotBuilder(sma_periods=(5, 10, 20)),
        )

        decision = await scanner.scan_symbol("SPY", scanned_at=SCANNED_AT)

        assert decision.timeframes["15m"].signal == "NEUTRAL"
        assert decision.final_score == 72

    @pytest.mark.asyncio
    async def test_snapshots_built_in_worker_threads(self, scanner, monkeypatch):
        built_for = []
        real_to_thread = asyncio.to_thread

        async def tracking_to_thread(func, *args, **kwargs):
            built_for.append(args[2].value)
            return await real_to_thread(func, *args, **kwargs)

        monkeypatch.setattr(asyncio, "to_thread", tracking_to_thread)

        decision = await scanner.scan_symbol("SPY", scanned_at=SCANNED_AT)

        assert sorted(built_for) == ["15m", "1d", "1h"]
        assert decision.final_score == 90


# =============================================================================
# SCHEDULER
# =============================================================================


class TestScanScheduler:
    """Tests for ScanScheduler."""

    @pytest.mark.asyncio
    async def test_cycle_stores_and_reports(self, scanner, mock_settings):
        store = DecisionStore()
        scheduler = ScanScheduler(scanner, store, settings=mock_settings)

        decisions = await scheduler.run_cycle(["SPY", "QQQ"], scanned_at=SCANNED_AT)

        assert [d.symbol for d in decisions] == ["SPY"]
        assert store.get("spy") is not None
        status = scheduler.status.to_dict()
        assert status["cycles_completed"] == 1
        assert status["last_cycle_scanned"] == 1
        assert status["last_cycle_failed"] == 1
        assert status["last_scan_time"] == SCANNED_AT.isoformat()
        assert "1/2 scanned" in status["activity_log"][-1]["message"]

    @pytest.mark.asyncio
    async def test_notifier_only_for_strong_actionable(self, mock_settings):
        scanner = mock_scanner(
            {
                "AAA": make_decision("AAA", 90, FinalSignal.STRONG_BUY),
                "BBB": make_decision("BBB", 75, FinalSignal.BUY),
                "CCC": make_decision("CCC", 95, FinalSignal.HOLD),
            }
        )
        notifier = AsyncMock()
        scheduler = ScanScheduler(scanner, DecisionStore(), notifier=notifier, settings=mock_settings)

        await scheduler.run_cycle(["AAA", "BBB", "CCC"])

        notifier.assert_awaited_once()
        assert notifier.await_args[0][0].symbol == "AAA"
        assert scheduler.status.last_cycle_alerts == 1

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_abort(self, mock_settings):
        scanner = mock_scanner({"AAA": make_decision("AAA"), "BBB": make_decision("BBB")})
        notifier = AsyncMock(side_effect=RuntimeError("webhook down"))
        store = DecisionStore()
        scheduler = ScanScheduler(scanner, store, notifier=notifier, settings=mock_settings)

        decisions = await scheduler.run_cycle(["AAA", "BBB"])

        assert len(decisions) == 2
        assert len(store) == 2
        assert notifier.await_count == 2
        assert scheduler.status.last_cycle_alerts == 0

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self, mock_settings):
        active = 0
        peak = 0

        async def scan_symbol(symbol, scanned_at=None):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return make_decision(symbol, 50, FinalSignal.WATCH)

        scanner = MagicMock()
        scanner.scan_symbol = scan_symbol
        scheduler = ScanScheduler(scanner, DecisionStore(), settings=mock_settings, max_concurrent=2)

        decisions = await scheduler.run_cycle([f"S{i}" for i in range(7)])

        assert len(decisions) == 7
        assert peak == 2

    @pytest.mark.parametrize("interval", [0, 61])
    def test_interval_validated(self, scanner, mock_settings, interval):
        with pytest.raises(ApexConfigError):
            ScanScheduler(scanner, DecisionStore(), settings=mock_settings, interval_minutes=interval)

    def test_concurrency_validated(self, scanner, mock_settings):
        with pytest.raises(ApexConfigError):
            ScanScheduler(scanner, DecisionStore(), settings=mock_settings, max_concurrent=0)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, mock_settings):
        scanner = mock_scanner({"AAA": make_decision("AAA", 50, FinalSignal.WATCH)})
        scheduler = ScanScheduler(scanner, DecisionStore(), settings=mock_settings, interval_minutes=1)

        task = scheduler.start(["AAA"])
        assert scheduler.start(["AAA"]) is task
        for _ in range(100):
            if scheduler.status.cycles_completed:
                break
            await asyncio.sleep(0)
        await scheduler.stop()

        assert task.done()
        assert not scheduler.status.is_running
        assert scheduler.status.cycles_completed == 1
        assert scheduler.status.activity_log[-1]["message"] == "Scheduler stopped"


# =============================================================================
# DECISION STORE
# =============================================================================


class TestDecisionStore:
    """Tests for DecisionStore."""

    def test_upsert_replaces_by_symbol(self):
        store = DecisionStore()
        store.upsert(make_decision("spy", 60, FinalSignal.WATCH))
        store.upsert(make_decision("SPY", 90))

        assert len(store) == 1
        assert store.get("SPY").final_score == 90

    def test_all_sorted_by_score(self):
        store = DecisionStore()
        store.upsert_many([make_decision("B", 50), make_decision("A", 90), make_decision("C", 50)])

        assert [d.symbol for d in store.all()] == ["A", "B", "C"]

    def test_failed_transaction_rolls_back(self):
        store = DecisionStore()
        store.upsert(make_decision("SPY"))

        def mutation(current):
            current["QQQ"] = make_decision("QQQ")
            raise RuntimeError("disk full")

        result = store.transaction(mutation)

        assert not result.ok
        assert result.error == "disk full"
        assert store.get("QQQ") is None
        assert len(store) == 1

    def test_delete(self):
        store = DecisionStore()
        store.upsert(make_decision("SPY"))

        assert store.delete("spy").value is True
        assert store.delete("spy").value is False
        assert len(store) == 0

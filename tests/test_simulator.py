"""
Tests for the backtest simulator.

Uses a fixed-score scorer and a price-only snapshot factory so every
entry and exit can be worked out by hand.
"""

import pytest

from apex.backtest.models import BacktestConfig
from apex.backtest.simulator import BacktestSimulator
from apex.core.enums import Direction, ExitReason, SizingMode
from apex.core.exceptions import ApexConfigError, InsufficientDataError
from apex.indicators.snapshot import SnapshotBuilder
from apex.core.models import IndicatorSnapshot, MarketContext
from apex.strategies.intraday import GoldenSetupStrategy
from tests.conftest import StaticStrategy, make_candles, price_only_builder, random_walk_candles


def stacked_builder(candles, symbol, timeframe):
    """Uptrend snapshot around the last close: SMAs stacked below, VWAP just under."""
    close = float(candles["close"].iloc[-1])
    return IndicatorSnapshot(
        symbol=symbol,
        timeframe=timeframe,
        timestamp=candles["timestamp"].iloc[-1].to_pydatetime(),
        current_price=close,
        sma20=close - 1.0,
        sma50=close - 3.0,
        vwap=close - 0.5,
        rsi=55.0,
        rvol=2.0,
    )


def simulator(score=80, risk=1.0, direction=Direction.LONG, builder=price_only_builder):
    return BacktestSimulator(
        strategies=[StaticStrategy(score=score, risk=risk, direction=direction)],
        snapshot_builder=builder,
        warmup_bars=1,
    )


# =============================================================================
# EXIT RULES
# =============================================================================


class TestExitRules:
    """Stop, target, session cutoff and end of data."""

    def test_stop_checked_before_target(self):
        # Entry 100 at bar 1: stop 99, target 102. Bar 2 spans both.
        candles = make_candles([100, 100, 100], highs=[100.1, 100.1, 103], lows=[99.9, 99.9, 98])
        result = simulator().run(candles, BacktestConfig(symbol="SPY", interval="15m"))

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.exit_reason == ExitReason.STOP_LOSS
        assert trade.exit_price == 99.0
        assert trade.pnl == -1.0
        assert not trade.is_win

    def test_target_fill_at_target_price(self):
        candles = make_candles([100, 100, 101], highs=[100.1, 100.1, 102.5], lows=[99.9, 99.9, 99.5])
        result = simulator().run(candles, BacktestConfig(symbol="SPY", interval="15m"))

        trade = result.trades[0]
        assert trade.exit_reason == ExitReason.TARGET
        assert trade.exit_price == 102.0
        assert trade.pnl == 2.0
        assert trade.hold_minutes == 15

    def test_eod_exit_at_cutoff(self):
        # 14:30, 14:45, 15:00, 15:15 ET
        candles = make_candles([100, 100, 100.5, 100.5], start="2024-01-02 19:30")
        result = simulator().run(candles, BacktestConfig(symbol="SPY", interval="15m", session_cutoff_hour=15))

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.exit_reason == ExitReason.EOD
        assert trade.exit_price == 100.5
        assert trade.pnl == pytest.approx(0.5)
        assert trade.session_phase == "AFTERNOON_SESSION"
        # No new entry once the cutoff has passed
        assert result.positions_opened == 1

    def test_eod_on_new_trading_day(self):
        # Entry 05:30 ET, next bar 01:30 ET the following day
        candles = make_candles([100, 100, 100.3], start="2024-01-02 14:30", freq="1200min")
        result = simulator().run(candles, BacktestConfig(symbol="SPY", interval="1h", session_cutoff_hour=20))

        assert result.trades[0].exit_reason == ExitReason.EOD

    def test_end_of_data_on_daily(self):
        candles = make_candles([100, 100, 100.5, 101], start="2024-01-02 14:30", freq="1D")
        result = simulator().run(candles, BacktestConfig(symbol="SPY", interval="1d"))

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.exit_reason == ExitReason.END_OF_DATA
        assert trade.exit_price == 101.0
        assert trade.pnl == pytest.approx(1.0)
        assert trade.session_phase is None
        assert trade.day_of_week == "Wednesday"

    def test_exit_bar_does_not_reenter(self):
        candles = make_candles([100, 100, 100, 100], highs=[100.1, 100.1, 103, 100.1], lows=[99.9, 99.9, 98, 99.9])
        result = simulator().run(candles, BacktestConfig(symbol="SPY", interval="15m"))

        # Stop on bar 2, re-entry on bar 3, closed by end of data
        assert [t.exit_reason for t in result.trades] == [ExitReason.STOP_LOSS, ExitReason.END_OF_DATA]
        assert result.trades[1].entry_time == result.trades[1].exit_time
        assert [t.trade_id for t in result.trades] == [1, 2]


# =============================================================================
# ENTRY RULES
# =============================================================================


class TestEntryRules:
    """Threshold, direction and sizing at entry."""

    def test_below_min_score_no_trades(self):
        candles = make_candles([100] * 10)
        result = simulator(score=50).run(candles, BacktestConfig(symbol="SPY", interval="15m", min_score=60))

        assert result.trades == ()
        assert result.positions_opened == 0
        assert result.summary.total_trades == 0

    def test_short_plans_ignored(self):
        candles = make_candles([100] * 10)
        result = simulator(direction=Direction.SHORT).run(candles, BacktestConfig(symbol="SPY", interval="15m"))

        assert result.trades == ()

    def test_fixed_size(self):
        candles = make_candles([100, 100, 101], highs=[100.1, 100.1, 102.5], lows=[99.9, 99.9, 99.5])
        config = BacktestConfig(symbol="SPY", interval="15m", fixed_size=10)
        result = simulator().run(candles, config)

        assert result.trades[0].size == 10
        assert result.trades[0].pnl == 20.0
        assert result.trades[0].balance_after == 10_020.0

    def test_risk_sizing_capped_by_position_value(self):
        candles = make_candles([100, 100, 101], highs=[100.1, 100.1, 102.5], lows=[99.9, 99.9, 99.5])
        config = BacktestConfig(symbol="SPY", interval="15m", sizing=SizingMode.RISK, starting_balance=10_000)
        result = simulator().run(candles, config)

        # $100 risk / $1 stop = 100 shares, capped to 95 by the 95% value limit
        trade = result.trades[0]
        assert trade.size == 95
        assert trade.pnl == pytest.approx(190.0)
        assert result.summary.ending_balance == pytest.approx(10_190.0)

    def test_golden_setup_trades_on_bias_from_seen_candles(self):
        # Price stacked above the 20/50 SMAs, half a point above VWAP, heavy volume
        candles = make_candles([100, 100, 100], highs=[100.1, 100.1, 103.5], lows=[99.9, 99.9, 99.5])
        sim = BacktestSimulator(strategies=[GoldenSetupStrategy()], snapshot_builder=stacked_builder, warmup_bars=1)
        result = sim.run(candles, BacktestConfig(symbol="SPY", interval="15m"))

        assert len(result.trades) == 1
        trade = result.trades[0]
        assert trade.strategy_id == "golden-setup"
        assert trade.signal == "GOLDEN LONG"
        assert trade.score == 80
        assert trade.stop_loss == pytest.approx(98.505)
        assert trade.exit_reason == ExitReason.TARGET
        assert trade.exit_price == pytest.approx(102.99)

    def test_explicit_bias_wins_over_derived(self):
        candles = make_candles([100, 100, 100], highs=[100.1, 100.1, 103.5], lows=[99.9, 99.9, 99.5])
        sim = BacktestSimulator(
            strategies=[GoldenSetupStrategy()],
            snapshot_builder=stacked_builder,
            context=MarketContext(daily_bias="BEARISH"),
            warmup_bars=1,
        )
        result = sim.run(candles, BacktestConfig(symbol="SPY", interval="15m"))

        # Bearish bias produces a short plan, which the long-only simulator skips
        assert result.trades == ()

    def test_snapshot_never_sees_future_bars(self):
        seen = []

        def recording_builder(candles, symbol, timeframe):
            seen.append((len(candles), candles["timestamp"].iloc[-1]))
            return price_only_builder(candles, symbol, timeframe)

        candles = make_candles([100] * 6)
        simulator(score=10, builder=recording_builder).run(
            candles, BacktestConfig(symbol="SPY", interval="15m", min_score=60)
        )

        ts = list(make_candles([100] * 6)["timestamp"])
        assert [n for n, _ in seen] == [2, 3, 4, 5, 6]
        assert all(last == ts[n - 1] for n, last in seen)


# =============================================================================
# RUN-LEVEL BEHAVIOUR
# =============================================================================


class TestRun:
    """Warm-up, determinism and result bookkeeping."""

    def test_insufficient_data(self):
        with pytest.raises(InsufficientDataError):
            simulator().run(make_candles([100]), BacktestConfig(symbol="SPY", interval="15m"))

    def test_default_warmup_from_builder(self):
        sim = BacktestSimulator(snapshot_builder=SnapshotBuilder(sma_periods=(5, 10, 20)))
        assert sim.warmup_bars == 20

    def test_deterministic_and_balanced(self):
        candles = random_walk_candles(150)
        config = BacktestConfig(symbol="spy", interval="1d", min_score=50)
        sim = BacktestSimulator(snapshot_builder=SnapshotBuilder(sma_periods=(5, 10, 20)))

        first = sim.run(candles, config)
        second = sim.run(candles, config)

        assert first.to_dict() == second.to_dict()
        assert first.positions_opened == len(first.trades)
        assert first.bars_processed == 150 - 20
        assert first.config.symbol == "SPY"
        for trade in first.trades:
            assert trade.entry_time <= trade.exit_time
            assert trade.direction == Direction.LONG

    def test_unsorted_input_is_normalized(self):
        candles = make_candles([100, 100, 101], highs=[100.1, 100.1, 102.5], lows=[99.9, 99.9, 99.5])
        shuffled = candles.iloc[[2, 0, 1]]

        result = simulator().run(shuffled, BacktestConfig(symbol="SPY", interval="15m"))
        assert result.trades[0].exit_reason == ExitReason.TARGET

    def test_to_dict_limits_trades(self):
        candles = make_candles([100, 100, 100, 100], highs=[100.1, 100.1, 103, 100.1], lows=[99.9, 99.9, 98, 99.9])
        result = simulator().run(candles, BacktestConfig(symbol="SPY", interval="15m"))

        data = result.to_dict(max_trades=1)
        assert len(data["trades"]) == 1
        assert data["trades"][0]["trade_id"] == 2
        assert data["trades"][0]["exit_reason"] == "END_OF_DATA"


# =============================================================================
# CONFIG VALIDATION
# =============================================================================


class TestBacktestConfig:
    """BacktestConfig rejects bad parameters before any work."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"symbol": ""},
            {"symbol": "SPY", "interval": "7m"},
            {"symbol": "SPY", "days": 0},
            {"symbol": "SPY", "days": 400},
            {"symbol": "SPY", "min_score": 101},
            {"symbol": "SPY", "sizing": "kelly"},
            {"symbol": "SPY", "fixed_size": 0},
            {"symbol": "SPY", "starting_balance": -5},
            {"symbol": "SPY", "session_cutoff_hour": 24},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ApexConfigError):
            BacktestConfig(**kwargs)

    def test_normalizes(self):
        config = BacktestConfig(symbol=" qqq ", sizing="risk")

        assert config.symbol == "QQQ"
        assert config.sizing == SizingMode.RISK
        assert config.to_dict()["sizing"] == "risk"

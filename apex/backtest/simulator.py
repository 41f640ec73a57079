"""
Candle-by-candle backtest simulator.

Replays a candle series through a scorer battery with at most one open
position:
- FLAT: snapshot from candles[: i + 1], rank signals, enter at bar i's close
  when the top signal clears min_score and carries a long trade plan
- IN_POSITION: from bar i + 1 on, stop first (low <= stop), then target
  (high >= target), then the session cutoff (close)
- End of data force-closes at the final close

Run state lives in local variables of ``run``, so one simulator instance
can serve concurrent runs.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

import pandas as pd

from apex.backtest.models import BacktestConfig, BacktestResult, SimulatedPosition, Trade
from apex.backtest.statistics import StatisticsCalculator
from apex.core.enums import Direction, ExitReason, SizingMode
from apex.core.exceptions import ApexDataError, InsufficientDataError
from apex.core.models import IndicatorSnapshot, MarketContext, Signal
from apex.data.candles import normalize_candles
from apex.indicators.snapshot import SnapshotBuilder
from apex.intelligence.regime import trend_bias
from apex.risk.position_sizer import RiskPositionSizer
from apex.scheduler.market_hours import MarketHours
from apex.strategies.base import BaseStrategy
from apex.strategies.selector import StrategySelector, default_strategies

logger = logging.getLogger(__name__)

SnapshotFactory = Callable[[pd.DataFrame, str, str], IndicatorSnapshot]


class BacktestSimulator:
    """
    Simulates a strategy battery over historical candles.

    Args:
        strategies: Scorers to evaluate each bar. Defaults to the battery
            for the run's timeframe class.
        snapshot_builder: Callable (candles, symbol, timeframe) ->
            IndicatorSnapshot. Defaults to SnapshotBuilder().
        context: Market context passed to every evaluation. When it sets no
            ``daily_bias``, each bar derives one from its own snapshot.
        warmup_bars: Bars skipped before the first evaluation. Defaults
            to the builder's ``lookback``.
    """

    def __init__(
        self,
        strategies: Optional[Sequence[BaseStrategy]] = None,
        snapshot_builder: Optional[SnapshotFactory] = None,
        context: Optional[MarketContext] = None,
        warmup_bars: Optional[int] = None,
    ):
        self.strategies = list(strategies) if strategies is not None else None
        self.snapshot_builder = snapshot_builder or SnapshotBuilder()
        self.context = context
        if warmup_bars is None:
            warmup_bars = getattr(self.snapshot_builder, "lookback", 50)
        self.warmup_bars = max(1, int(warmup_bars))
        self.stats = StatisticsCalculator()

    def run(self, candles: pd.DataFrame, config: BacktestConfig) -> BacktestResult:
        """
        Replay ``candles`` under ``config``.

        Raises:
            InsufficientDataError: Not more candles than the warm-up window.
        """
        candles = normalize_candles(candles)
        n = len(candles)
        if n <= self.warmup_bars:
            raise InsufficientDataError(
                f"[{config.symbol}] {n} candles, need more than {self.warmup_bars} for warm-up",
                required=self.warmup_bars + 1,
                available=n,
            )

        timeframe = config.timeframe
        tf_class = timeframe.strategy_class
        strategies = (
            self.strategies
            if self.strategies is not None
            else default_strategies(tf_class, bankroll=config.starting_balance)
        )
        selector = StrategySelector({tf_class: strategies})
        sizer = RiskPositionSizer(
            risk_per_trade_pct=config.risk_per_trade_pct,
            max_position_pct=config.max_position_pct,
        )
        cutoff = config.session_cutoff_hour if timeframe.is_intraday else None

        timestamps = [ts.to_pydatetime() for ts in candles["timestamp"]]
        highs = candles["high"].to_numpy(dtype=float)
        lows = candles["low"].to_numpy(dtype=float)
        closes = candles["close"].to_numpy(dtype=float)

        balance = config.starting_balance
        position: Optional[SimulatedPosition] = None
        trades: List[Trade] = []
        opened = 0

        logger.info(
            "Backtest %s %s: %d bars, warm-up %d, min_score %d, sizing %s",
            config.symbol, config.interval, n, self.warmup_bars, config.min_score, config.sizing.value,
        )

        for i in range(self.warmup_bars, n):
            ts = timestamps[i]

            if position is not None:
                exit_info = self._check_exit(position, ts, highs[i], lows[i], closes[i], cutoff)
                if exit_info is not None:
                    exit_price, reason = exit_info
                    trade = self._close(position, len(trades) + 1, config.symbol, exit_price, ts, reason, balance)
                    trades.append(trade)
                    balance = trade.balance_after
                    position = None
                continue

            if cutoff is not None and MarketHours.is_past_cutoff(ts, cutoff):
                continue

            try:
                snapshot = self.snapshot_builder(candles.iloc[: i + 1], config.symbol, config.interval)
            except ApexDataError as e:
                logger.debug("[%s] bar %d skipped: %s", config.symbol, i, e)
                continue

            ranked = selector.select(snapshot, self._bar_context(snapshot), tf_class)
            if not ranked:
                continue
            position = self._try_open(ranked[0], config, sizer, balance, i, ts, float(closes[i]))
            if position is not None:
                opened += 1

        if position is not None:
            trade = self._close(
                position, len(trades) + 1, config.symbol, float(closes[-1]), timestamps[-1],
                ExitReason.END_OF_DATA, balance,
            )
            trades.append(trade)
            balance = trade.balance_after

        summary = self.stats.calculate(trades, config.starting_balance)
        logger.info(
            "Backtest %s done: %d trades, win rate %.1f%%, P&L %.2f",
            config.symbol, summary.total_trades, summary.win_rate, summary.total_pnl,
        )
        return BacktestResult(
            config=config,
            trades=tuple(trades),
            summary=summary,
            bars_processed=n - self.warmup_bars,
            positions_opened=opened,
        )

    def _bar_context(self, snapshot: IndicatorSnapshot) -> MarketContext:
        """Run context, with the trend bias taken from the candles seen so far when unset."""
        context = self.context or MarketContext()
        if context.daily_bias is not None:
            return context
        bias = trend_bias(snapshot)
        if bias is None:
            return context
        return context.model_copy(update={"daily_bias": bias})

    def _try_open(
        self,
        top: Signal,
        config: BacktestConfig,
        sizer: RiskPositionSizer,
        balance: float,
        index: int,
        ts: datetime,
        close: float,
    ) -> Optional[SimulatedPosition]:
        plan = top.trade_plan
        if top.score < config.min_score or plan is None:
            return None
        if plan.direction != Direction.LONG:
            logger.debug("[%s] %s short setup ignored (long only)", config.symbol, top.id)
            return None
        if not plan.stop_loss < close < plan.target:
            logger.debug(
                "[%s] %s plan stale at close %.4f (stop %.4f, target %.4f)",
                config.symbol, top.id, close, plan.stop_loss, plan.target,
            )
            return None

        if config.sizing == SizingMode.RISK:
            sized = sizer.size(balance, close, plan.stop_loss, config.symbol)
            if not sized.can_trade:
                logger.debug("[%s] entry skipped: %s", config.symbol, sized.rejection_reason)
                return None
            size = float(sized.shares)
        else:
            size = config.fixed_size

        phase = MarketHours.get_session_phase(ts) if config.timeframe.is_intraday else None
        return SimulatedPosition(
            entry_index=index,
            entry_price=close,
            entry_time=ts,
            direction=Direction.LONG,
            size=size,
            stop_loss=plan.stop_loss,
            target=plan.target,
            strategy_id=top.id,
            strategy_name=top.name,
            signal=top.signal,
            score=top.score,
            session_phase=phase.value if phase else None,
            day_of_week=MarketHours.to_eastern(ts).strftime("%A"),
        )

    @staticmethod
    def _check_exit(
        position: SimulatedPosition,
        ts: datetime,
        high: float,
        low: float,
        close: float,
        cutoff: Optional[int],
    ) -> Optional[Tuple[float, ExitReason]]:
        """Exit price and reason for this bar, stop checked before target."""
        if low <= position.stop_loss:
            return position.stop_loss, ExitReason.STOP_LOSS
        if high >= position.target:
            return position.target, ExitReason.TARGET
        if cutoff is not None:
            new_day = MarketHours.trading_date(ts) != MarketHours.trading_date(position.entry_time)
            if new_day or MarketHours.is_past_cutoff(ts, cutoff):
                return close, ExitReason.EOD
        return None

    @staticmethod
    def _close(
        position: SimulatedPosition,
        trade_id: int,
        symbol: str,
        exit_price: float,
        exit_time: datetime,
        reason: ExitReason,
        balance: float,
    ) -> Trade:
        move = exit_price - position.entry_price
        pnl = round(move * position.size, 4)
        return Trade(
            trade_id=trade_id,
            symbol=symbol,
            strategy_id=position.strategy_id,
            strategy_name=position.strategy_name,
            signal=position.signal,
            score=position.score,
            direction=position.direction,
            size=position.size,
            entry_price=position.entry_price,
            entry_time=position.entry_time,
            exit_price=float(exit_price),
            exit_time=exit_time,
            stop_loss=position.stop_loss,
            target=position.target,
            exit_reason=reason,
            pnl=pnl,
            pnl_pct=round(move / position.entry_price * 100, 4),
            hold_minutes=int((exit_time - position.entry_time).total_seconds() // 60),
            session_phase=position.session_phase,
            day_of_week=position.day_of_week,
            balance_after=round(balance + pnl, 4),
        )

"""
Calculate backtest summary statistics from a Trade ledger.

Key metrics:
- Win rate, profit factor, expectancy
- Average hold time
- Max drawdown on the running balance
- Statistical significance (t-test)
- Breakdowns by session phase, strategy and day of week
"""

import logging
import math
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats as sp_stats

from apex.backtest.models import BacktestSummary, BreakdownRow, Trade

logger = logging.getLogger(__name__)


class StatisticsCalculator:
    """Calculate backtest statistics."""

    def calculate(self, trades: Sequence[Trade], starting_balance: float = 10_000.0) -> BacktestSummary:
        """Summarize a ledger; an empty ledger gives an all-zero summary."""
        if not trades:
            return BacktestSummary(starting_balance=starting_balance, ending_balance=starting_balance)

        total = len(trades)
        winning = [t for t in trades if t.is_win]
        losing = [t for t in trades if not t.is_win]

        win_rate = len(winning) / total
        gross_profit = sum(t.pnl for t in winning)
        gross_loss = abs(sum(t.pnl for t in losing))
        avg_win = gross_profit / len(winning) if winning else 0.0
        avg_loss = gross_loss / len(losing) if losing else 0.0

        if gross_loss > 0:
            profit_factor = gross_profit / gross_loss
        else:
            profit_factor = float("inf") if gross_profit > 0 else 0.0

        expectancy = win_rate * avg_win - (1 - win_rate) * avg_loss
        total_pnl = sum(t.pnl for t in trades)
        max_dd, max_dd_pct = self._calculate_drawdown(trades, starting_balance)
        t_stat, p_value = self._significance_test([t.pnl for t in trades])

        return BacktestSummary(
            total_trades=total,
            wins=len(winning),
            losses=len(losing),
            win_rate=round(win_rate * 100, 2),
            gross_profit=round(gross_profit, 2),
            gross_loss=round(gross_loss, 2),
            total_pnl=round(total_pnl, 2),
            profit_factor=round(profit_factor, 2) if math.isfinite(profit_factor) else profit_factor,
            expectancy=round(expectancy, 4),
            avg_win=round(avg_win, 4),
            avg_loss=round(avg_loss, 4),
            avg_hold_minutes=round(float(np.mean([t.hold_minutes for t in trades])), 1),
            starting_balance=starting_balance,
            ending_balance=round(starting_balance + total_pnl, 2),
            max_drawdown=round(max_dd, 2),
            max_drawdown_pct=round(max_dd_pct, 2),
            t_statistic=t_stat,
            p_value=p_value,
            exit_reasons=dict(sorted(Counter(t.exit_reason.value for t in trades).items())),
            by_session=self._breakdown(trades, lambda t: t.session_phase or "UNKNOWN"),
            by_strategy=self._breakdown(trades, lambda t: t.strategy_id),
            by_day_of_week=self._breakdown(trades, lambda t: t.day_of_week),
        )

    @staticmethod
    def _breakdown(trades: Sequence[Trade], key) -> Dict[str, BreakdownRow]:
        rows: Dict[str, BreakdownRow] = defaultdict(BreakdownRow)
        for trade in trades:
            rows[key(trade)].add(trade)
        return dict(rows)

    @staticmethod
    def _significance_test(pnl_values: List[float]) -> Tuple[Optional[float], Optional[float]]:
        """One-tailed t-test: is mean PnL significantly > 0?"""
        if len(pnl_values) < 2 or float(np.std(pnl_values)) == 0.0:
            return None, None

        t_stat, p_two = sp_stats.ttest_1samp(pnl_values, 0)
        # Convert to one-tailed (H1: mean > 0)
        p_one = p_two / 2 if t_stat > 0 else 1 - p_two / 2
        return round(float(t_stat), 4), round(float(p_one), 6)

    @staticmethod
    def _calculate_drawdown(trades: Sequence[Trade], starting_balance: float) -> Tuple[float, float]:
        """Maximum drawdown from the sequential equity curve."""
        equity = starting_balance
        peak = starting_balance
        max_dd = 0.0
        max_dd_pct = 0.0

        for trade in trades:
            equity += trade.pnl
            if equity > peak:
                peak = equity

            dd = peak - equity
            if dd > max_dd:
                max_dd = dd
                max_dd_pct = (dd / peak) * 100 if peak > 0 else 0.0

        return max_dd, max_dd_pct

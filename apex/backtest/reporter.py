"""
Backtest Reporter

Generates formatted text reports from a BacktestResult.
"""

import math
from typing import Dict, Optional

from .models import BacktestResult, BreakdownRow


class BacktestReporter:
    """Generate reports from backtest results."""

    def generate_summary(self, result: BacktestResult) -> str:
        s = result.summary
        cfg = result.config
        pf = "inf" if math.isinf(s.profit_factor) else f"{s.profit_factor:.2f}"
        p_value = f"{s.p_value:.4f}" if s.p_value is not None else "n/a"
        lines = [
            "=" * 70,
            f"APEX BACKTEST SUMMARY - {cfg.symbol} {cfg.interval} ({cfg.days} days)",
            "=" * 70,
            "",
            f"Min Score: {cfg.min_score}    Sizing: {cfg.sizing.value}    Bars: {result.bars_processed}",
            "",
            "## ACCOUNT PERFORMANCE",
            f"Starting Balance:  ${s.starting_balance:>12,.2f}",
            f"Ending Balance:    ${s.ending_balance:>12,.2f}",
            f"Net P&L:           ${s.total_pnl:>12,.2f}",
            f"Max Drawdown:      ${s.max_drawdown:>12,.2f} ({s.max_drawdown_pct:.2f}%)",
            "",
            "## TRADE STATISTICS",
            f"Total Trades:      {s.total_trades:>12}",
            f"Winners:           {s.wins:>12}",
            f"Losers:            {s.losses:>12}",
            f"Win Rate:          {s.win_rate:>12.1f}%",
            f"Profit Factor:     {pf:>12}",
            f"Expectancy:        ${s.expectancy:>12,.2f}",
            f"Avg Hold:          {s.avg_hold_minutes:>10.1f} min",
            f"p-value (mean>0):  {p_value:>12}",
        ]
        if s.exit_reasons:
            lines.extend(["", "## EXIT REASONS"])
            lines.extend(f"{reason:<18} {count:>12}" for reason, count in s.exit_reasons.items())
        return "\n".join(lines)

    def generate_breakdown(self, title: str, rows: Dict[str, BreakdownRow]) -> str:
        lines = [
            "",
            "=" * 70,
            title,
            "=" * 70,
        ]
        for key, row in sorted(rows.items(), key=lambda x: x[1].total_pnl, reverse=True):
            status = "[+]" if row.total_pnl > 0 else "[-]"
            lines.append(
                f"{status} {key:<28} trades {row.trades:>4}  W:{row.wins:<4} "
                f"WR {row.win_rate:>5.1f}%  P&L ${row.total_pnl:>10,.2f}"
            )
        return "\n".join(lines)

    def generate_full_report(self, result: BacktestResult, max_trades: Optional[int] = 20) -> str:
        s = result.summary
        parts = [
            self.generate_summary(result),
            self.generate_breakdown("PERFORMANCE BY STRATEGY", s.by_strategy),
            self.generate_breakdown("PERFORMANCE BY SESSION", s.by_session),
            self.generate_breakdown("PERFORMANCE BY DAY OF WEEK", s.by_day_of_week),
        ]
        trades = list(result.trades)
        if max_trades is not None:
            trades = trades[-max_trades:] if max_trades > 0 else []
        if trades:
            lines = ["", "=" * 70, f"LAST {len(trades)} TRADES", "=" * 70]
            for t in trades:
                lines.append(
                    f"#{t.trade_id:<4} {t.entry_time:%Y-%m-%d %H:%M} {t.strategy_id:<28} "
                    f"{t.entry_price:>9.2f} -> {t.exit_price:>9.2f} {t.exit_reason.value:<11} "
                    f"${t.pnl:>9,.2f}"
                )
            parts.append("\n".join(lines))
        return "\n".join(parts)

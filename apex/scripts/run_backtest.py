"""
Run a backtest over a CSV of candles and print the report.

The CSV needs timestamp, open, high, low, close, volume columns.

Usage::

    python -m apex.scripts.run_backtest data/SPY_15m.csv --symbol SPY --interval 15m
    python -m apex.scripts.run_backtest data/SPY_1d.csv --symbol SPY --interval 1d --days 365 --sizing risk
    python -m apex.scripts.run_backtest data/SPY_15m.csv --symbol SPY --json
    python -m apex.scripts.run_backtest data/SPY_15m.csv --symbol SPY --daily-bias BULLISH --gex 2.5
"""

import argparse
import asyncio
import json
import logging
import sys

from apex.backtest.reporter import BacktestReporter
from apex.backtest.runner import BacktestRunner
from apex.config.settings import get_settings
from apex.core.enums import SizingMode
from apex.core.exceptions import ApexError
from apex.core.models import MarketContext
from apex.data.candles import load_candles_csv
from apex.data.memory import DataFrameProvider

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
)
logger = logging.getLogger(__name__)


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="APEX - candle-by-candle strategy backtest",
    )
    parser.add_argument("csv", type=str, help="Candle CSV file")
    parser.add_argument("--symbol", type=str, required=True)
    parser.add_argument("--interval", type=str, default="15m", help="5m, 15m, 1h or 1d")
    parser.add_argument("--days", type=int, default=30)
    parser.add_argument("--min-score", type=int, default=None)
    parser.add_argument("--sizing", choices=[m.value for m in SizingMode], default=SizingMode.FIXED.value)
    parser.add_argument("--vix", type=float, default=None, help="VIX level for context-aware scorers")
    parser.add_argument("--gex", type=float, default=None, help="Aggregate gamma exposure in billions")
    parser.add_argument(
        "--daily-bias",
        choices=["BULLISH", "BEARISH"],
        default=None,
        help="Fixed trend bias; derived from the candles when omitted",
    )
    parser.add_argument("--trades", type=int, default=None, help="Trades to include in the output")
    parser.add_argument("--json", action="store_true", default=False, help="Print JSON instead of text")
    parser.add_argument("--verbose", "-v", action="store_true", default=False)
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    provider = DataFrameProvider()
    provider.add(args.symbol, args.interval, load_candles_csv(args.csv))

    runner = BacktestRunner(provider, settings)
    context_fields = {"vix": args.vix, "gex": args.gex, "daily_bias": args.daily_bias}
    context_fields = {k: v for k, v in context_fields.items() if v is not None}
    context = MarketContext(**context_fields) if context_fields else None
    result = await runner.run(
        args.symbol,
        days=args.days,
        interval=args.interval,
        min_score=args.min_score,
        sizing=SizingMode(args.sizing),
        context=context,
    )

    max_trades = args.trades if args.trades is not None else settings.backtest_max_trades
    if args.json:
        print(json.dumps(result.to_dict(max_trades=max_trades), indent=2, default=str, allow_nan=False))
    else:
        print(BacktestReporter().generate_full_report(result, max_trades=max_trades))
    return 0


def main(argv=None) -> None:
    args = _parse_args(argv)
    if args.verbose:
        logging.getLogger("apex").setLevel(logging.INFO)
    try:
        code = asyncio.run(run(args))
    except ApexError as e:
        logger.error(f"Backtest failed: {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()

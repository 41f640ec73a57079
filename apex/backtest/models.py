"""Backtest data models."""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from apex.core.enums import Direction, ExitReason, SizingMode, Timeframe
from apex.core.exceptions import ApexConfigError


@dataclass
class BacktestConfig:
    """
    Parameters for one backtest run. Validated on construction.

    Raises:
        ApexConfigError: Any parameter outside its allowed range.
    """

    symbol: str
    interval: str = Timeframe.M15.value
    days: int = 30
    min_score: int = 60
    sizing: SizingMode = SizingMode.FIXED
    fixed_size: float = 1.0
    starting_balance: float = 10_000.0
    risk_per_trade_pct: float = 1.0
    max_position_pct: float = 95.0
    session_cutoff_hour: Optional[int] = 15  # None disables EOD exits
    max_days: int = 365

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ApexConfigError("symbol is required")
        self.symbol = self.symbol.strip().upper()
        self.interval = str(getattr(self.interval, "value", self.interval))
        try:
            Timeframe(self.interval)
        except ValueError:
            raise ApexConfigError(f"Unsupported interval: {self.interval}") from None
        if not 1 <= int(self.days) <= self.max_days:
            raise ApexConfigError(f"days must be within 1-{self.max_days}, got {self.days}")
        if not 0 <= self.min_score <= 100:
            raise ApexConfigError(f"min_score must be within 0-100, got {self.min_score}")
        try:
            self.sizing = SizingMode(self.sizing)
        except ValueError:
            raise ApexConfigError(f"Unsupported sizing mode: {self.sizing}") from None
        if self.fixed_size <= 0:
            raise ApexConfigError(f"fixed_size must be positive, got {self.fixed_size}")
        if self.starting_balance <= 0:
            raise ApexConfigError(f"starting_balance must be positive, got {self.starting_balance}")
        if not 0 < self.risk_per_trade_pct <= 100 or not 0 < self.max_position_pct <= 100:
            raise ApexConfigError("risk_per_trade_pct and max_position_pct must be within (0, 100]")
        if self.session_cutoff_hour is not None and not 0 <= self.session_cutoff_hour <= 23:
            raise ApexConfigError(f"session_cutoff_hour must be within 0-23, got {self.session_cutoff_hour}")

    @property
    def timeframe(self) -> Timeframe:
        return Timeframe(self.interval)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["sizing"] = self.sizing.value
        return data


@dataclass
class SimulatedPosition:
    """The single open position of a simulator run."""

    entry_index: int
    entry_price: float
    entry_time: datetime
    direction: Direction
    size: float
    stop_loss: float
    target: float
    strategy_id: str
    strategy_name: str
    signal: str
    score: int
    session_phase: Optional[str]
    day_of_week: str


@dataclass(frozen=True)
class Trade:
    """A closed backtest position. Never mutated after creation."""

    trade_id: int
    symbol: str
    strategy_id: str
    strategy_name: str
    signal: str
    score: int
    direction: Direction
    size: float

    entry_price: float
    entry_time: datetime
    exit_price: float
    exit_time: datetime
    stop_loss: float
    target: float
    exit_reason: ExitReason

    pnl: float
    pnl_pct: float
    hold_minutes: int

    session_phase: Optional[str]
    day_of_week: str
    balance_after: float

    @property
    def is_win(self) -> bool:
        return self.pnl > 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["direction"] = self.direction.value
        data["exit_reason"] = self.exit_reason.value
        data["entry_time"] = self.entry_time.isoformat()
        data["exit_time"] = self.exit_time.isoformat()
        return data


@dataclass
class BreakdownRow:
    """Trade count, wins and P&L for one bucket of a breakdown table."""

    trades: int = 0
    wins: int = 0
    losses: int = 0
    total_pnl: float = 0.0

    @property
    def win_rate(self) -> float:
        return (self.wins / self.trades * 100) if self.trades else 0.0

    def add(self, trade: Trade) -> None:
        self.trades += 1
        if trade.is_win:
            self.wins += 1
        else:
            self.losses += 1
        self.total_pnl += trade.pnl

    def to_dict(self) -> dict:
        return {
            "trades": self.trades,
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": round(self.win_rate, 2),
            "total_pnl": round(self.total_pnl, 2),
        }


@dataclass
class BacktestSummary:
    """Aggregate statistics over a Trade ledger."""

    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0  # Percentage
    gross_profit: float = 0.0
    gross_loss: float = 0.0  # Positive number
    total_pnl: float = 0.0
    profit_factor: float = 0.0  # inf when profitable with no losses
    expectancy: float = 0.0  # Expected P&L per trade
    avg_win: float = 0.0
    avg_loss: float = 0.0  # Positive number
    avg_hold_minutes: float = 0.0

    starting_balance: float = 0.0
    ending_balance: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_pct: float = 0.0

    t_statistic: Optional[float] = None
    p_value: Optional[float] = None

    exit_reasons: Dict[str, int] = field(default_factory=dict)
    by_session: Dict[str, BreakdownRow] = field(default_factory=dict)
    by_strategy: Dict[str, BreakdownRow] = field(default_factory=dict)
    by_day_of_week: Dict[str, BreakdownRow] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {
            key: value
            for key, value in asdict(self).items()
            if key not in ("by_session", "by_strategy", "by_day_of_week")
        }
        # Non-finite floats (loss-free profit factor) serialize as None
        for key, value in data.items():
            if isinstance(value, float) and not math.isfinite(value):
                data[key] = None
        data["by_session"] = {k: v.to_dict() for k, v in self.by_session.items()}
        data["by_strategy"] = {k: v.to_dict() for k, v in self.by_strategy.items()}
        data["by_day_of_week"] = {k: v.to_dict() for k, v in self.by_day_of_week.items()}
        return data


@dataclass
class BacktestResult:
    """Ledger plus summary for one run."""

    config: BacktestConfig
    trades: Tuple[Trade, ...]
    summary: BacktestSummary
    bars_processed: int = 0
    positions_opened: int = 0

    def to_dict(self, max_trades: Optional[int] = None) -> Dict[str, Any]:
        """
        Serializable result.

        Args:
            max_trades: Keep only the most recent N trades in the ledger.
        """
        trades: List[Trade] = list(self.trades)
        if max_trades is not None:
            trades = trades[-max_trades:] if max_trades > 0 else []
        return {
            "config": self.config.to_dict(),
            "summary": self.summary.to_dict(),
            "bars_processed": self.bars_processed,
            "positions_opened": self.positions_opened,
            "trades": [t.to_dict() for t in trades],
        }

"""
APEX configuration - loaded from environment (APEX_*).
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="APEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Account / risk
    account_size: float = 100_000.0
    risk_per_trade_pct: float = Field(default=1.0, gt=0, le=100)
    max_position_pct: float = Field(default=95.0, gt=0, le=100)  # Position value cap, % of balance

    # Kelly sizing
    kelly_multiplier: float = Field(default=0.5, gt=0, le=1)  # Half-Kelly
    max_kelly_allocation: float = Field(default=0.20, gt=0, le=1)

    # Backtesting
    backtest_starting_balance: float = 10_000.0
    backtest_min_score: int = Field(default=60, ge=0, le=100)
    backtest_max_days: int = 365
    backtest_max_trades: int = 50  # Ledger entries returned to callers
    snapshot_window_bars: int = 400  # Trailing bars fed to indicator calculation
    session_cutoff_hour: int = Field(default=15, ge=0, le=23)  # ET hour that forces EOD exit

    # Scanning / automation
    scan_concurrency: int = Field(default=5, ge=1)
    scan_interval_minutes: int = Field(default=5, ge=1, le=60)
    alert_score_threshold: int = Field(default=80, ge=0, le=100)
    activity_log_size: int = 100


settings = Settings()


def get_settings() -> Settings:
    """Return application settings (for dependency injection)."""
    return settings

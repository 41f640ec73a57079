"""
Market Hours Module - Knows which US equity session a bar belongs to.

Session windows are defined in Eastern Time; naive datetimes are treated
as UTC.
"""

from datetime import date, datetime, time
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

import pandas as pd

from apex.core.enums import SessionPhase

UTC = ZoneInfo("UTC")
ET = ZoneInfo("America/New_York")


class MarketHours:
    """
    Handles all session timing logic for US equities.

    Sessions (ET):
    - Pre-Market: 04:00-09:30
    - Opening Drive: 09:30-10:00 (also the opening range window)
    - Morning Trend: 10:00-12:00
    - Lunch Chop: 12:00-13:30
    - Afternoon Session: 13:30-15:00
    - Power Hour: 15:00-16:00
    - Post-Market: 16:00-20:00
    - Closed: otherwise, and all weekend
    """

    PRE_MARKET_OPEN = time(4, 0)
    REGULAR_OPEN = time(9, 30)
    REGULAR_CLOSE = time(16, 0)
    POST_MARKET_CLOSE = time(20, 0)

    OPENING_RANGE = (time(9, 30), time(10, 0))

    # (start inclusive, end exclusive)
    PHASES = [
        (SessionPhase.PRE_MARKET, time(4, 0), time(9, 30)),
        (SessionPhase.OPENING_DRIVE, time(9, 30), time(10, 0)),
        (SessionPhase.MORNING_TREND, time(10, 0), time(12, 0)),
        (SessionPhase.LUNCH_CHOP, time(12, 0), time(13, 30)),
        (SessionPhase.AFTERNOON_SESSION, time(13, 30), time(15, 0)),
        (SessionPhase.POWER_HOUR, time(15, 0), time(16, 0)),
        (SessionPhase.POST_MARKET, time(16, 0), time(20, 0)),
    ]

    @classmethod
    def now_utc(cls) -> datetime:
        """Get current time in UTC."""
        return datetime.now(UTC)

    @classmethod
    def to_eastern(cls, dt: datetime) -> datetime:
        """Convert to Eastern Time, treating naive datetimes as UTC."""
        if isinstance(dt, pd.Timestamp):
            dt = dt.to_pydatetime()
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.astimezone(ET)

    @classmethod
    def get_session_phase(cls, dt: Optional[datetime] = None) -> SessionPhase:
        """Session phase for a point in time."""
        et = cls.to_eastern(dt or cls.now_utc())
        if et.weekday() >= 5:
            return SessionPhase.CLOSED

        current = et.time()
        for phase, start, end in cls.PHASES:
            if start <= current < end:
                return phase
        return SessionPhase.CLOSED

    @classmethod
    def is_regular_hours(cls, dt: Optional[datetime] = None) -> bool:
        return cls.get_session_phase(dt).is_regular_hours

    @classmethod
    def trading_date(cls, dt: datetime) -> date:
        """Calendar date of the bar in Eastern Time."""
        return cls.to_eastern(dt).date()

    @classmethod
    def is_past_cutoff(cls, dt: datetime, cutoff_hour: int) -> bool:
        """True when the ET wall clock is at or after ``cutoff_hour``."""
        return cls.to_eastern(dt).hour >= cutoff_hour

    @classmethod
    def opening_range(cls, candles: pd.DataFrame) -> Tuple[Optional[float], Optional[float], bool]:
        """
        High/low of the current day's 09:30-10:00 ET window.

        Args:
            candles: DataFrame with timestamp, high, low columns.

        Returns:
            (high, low, complete) where complete is True once the last bar
            is past the window. (None, None, False) before any range bar.
        """
        if candles.empty:
            return None, None, False

        et = pd.to_datetime(candles["timestamp"], utc=True).dt.tz_convert(ET)
        last = et.iloc[-1]
        start, end = cls.OPENING_RANGE
        same_day = et.dt.date == last.date()
        times = et.dt.time
        in_range = same_day & (times >= start) & (times < end)
        if not in_range.any():
            return None, None, False

        window = candles.loc[in_range.values]
        complete = last.time() >= end
        return float(window["high"].max()), float(window["low"].min()), complete

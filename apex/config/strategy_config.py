"""
Strategy thresholds shared across scorers.
"""

# RSI
RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70
RSI_NEUTRAL_LOW = 40
RSI_NEUTRAL_HIGH = 60
RSI_TREND_LOW = 50
RSI_TREND_HIGH = 70

# Volume
VOLUME_CONFIRMATION = 1.5
VOLUME_SURGE = 2.0

# Bollinger
BB_SQUEEZE_WIDTH = 0.10

# ADX
ADX_TRENDING = 20
ADX_STRONG_TREND = 25

# VIX
VIX_LOW = 15
VIX_NORMAL = 20
VIX_HIGH = 30
VIX_PANIC = 25

# Opening range
ORB_MIN_RANGE_PCT = 0.002
ORB_VOLUME_THRESHOLD = 1.2

# Gamma exposure (billions)
GEX_SIGNIFICANT = 1.0

# Session score adjustments
LUNCH_CHOP_PENALTY = -10
OFF_HOURS_PENALTY = -15
PREFERRED_SESSION_BONUS = 10

# Kelly
MIN_REWARD_RISK = 1.5
DEFAULT_WIN_RATE = 0.55

from .aggregator import MultiTimeframeAggregator, NO_SIGNAL
from .regime import RegimeAnalysis, RegimeDetector, trend_bias

__all__ = [
    "MultiTimeframeAggregator",
    "NO_SIGNAL",
    "RegimeAnalysis",
    "RegimeDetector",
    "trend_bias",
]

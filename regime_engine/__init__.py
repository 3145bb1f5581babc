"""
Market-regime and cross-asset confirmation engine for crypto futures signals
"""

from .correlation import calculate_correlation, describe_correlation
from .market_structure import MarketStructureAnalyzer
from .reference_asset import ReferenceAssetAnalyzer
from .swing_detector import detect_swing_points
from .timeframe_trend import TimeframeTrendProvider
from .timeframe_weighting import TimeframeWeightingCombiner
from .trend_analyzer import TrendAnalyzer
from .validation import InvalidInputError, Outcome, ValidationError, ValidationRule

__all__ = [
    'calculate_correlation', 'describe_correlation', 'MarketStructureAnalyzer',
    'ReferenceAssetAnalyzer', 'detect_swing_points', 'TimeframeTrendProvider',
    'TimeframeWeightingCombiner', 'TrendAnalyzer', 'InvalidInputError', 'Outcome',
    'ValidationError', 'ValidationRule'
]

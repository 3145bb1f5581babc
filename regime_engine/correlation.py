"""
Rolling Pearson correlation between a reference asset and a traded asset
"""
import logging
from typing import Optional, Sequence

import numpy as np

from .models import Candle, CorrelationResult, CorrelationStrength, FilterStrength

logger = logging.getLogger(__name__)

# Strength buckets
CORRELATION_STRONG = 0.7
CORRELATION_MODERATE = 0.4
CORRELATION_WEAK = 0.2

# The WEAK filter boundary is 0.3, not the 0.2 strength boundary
FILTER_WEAK_BOUNDARY = 0.3

DEFAULT_WINDOW = 50


def calculate_returns(candles: Sequence[Candle]) -> np.ndarray:
    """Simple close-to-close returns"""
    closes = np.array([c.close for c in candles], dtype=float)
    return np.diff(closes) / closes[:-1]


def pearson(x: np.ndarray, y: np.ndarray) -> float:
    """Pearson coefficient, 0.0 when either series has zero variance"""
    if len(x) != len(y) or len(x) == 0:
        return 0.0

    x_dev = x - x.mean()
    y_dev = y - y.mean()

    denominator = np.sqrt(np.sum(x_dev * x_dev) * np.sum(y_dev * y_dev))
    if denominator == 0:
        return 0.0

    return float(np.sum(x_dev * y_dev) / denominator)


def volatility(returns: np.ndarray) -> float:
    """Population standard deviation of returns, in percent"""
    if len(returns) == 0:
        return 0.0
    return float(np.std(returns) * 100)


def classify_strength(coefficient: float) -> CorrelationStrength:
    r = abs(coefficient)
    if r >= CORRELATION_STRONG:
        return CorrelationStrength.STRONG
    elif r >= CORRELATION_MODERATE:
        return CorrelationStrength.MODERATE
    elif r >= CORRELATION_WEAK:
        return CorrelationStrength.WEAK
    return CorrelationStrength.NONE


def classify_filter_strength(coefficient: float) -> FilterStrength:
    r = abs(coefficient)
    if r >= CORRELATION_STRONG:
        return FilterStrength.STRICT
    elif r >= CORRELATION_MODERATE:
        return FilterStrength.MODERATE
    elif r >= FILTER_WEAK_BOUNDARY:
        return FilterStrength.WEAK
    return FilterStrength.SKIP


def calculate_correlation(reference: Sequence[Candle],
                          traded: Sequence[Candle],
                          window: int = DEFAULT_WINDOW) -> Optional[CorrelationResult]:
    """
    Calculate correlation of returns over the last `window` candles

    Args:
        reference: Reference asset candles (e.g. BTC)
        traded: Traded asset candles, same length as reference
        window: Rolling window size (>= 2)

    Returns:
        CorrelationResult, or None when lengths differ or are shorter than window
    """
    if window < 2:
        raise ValueError(f"Correlation window must be >= 2, got {window}")

    if len(reference) != len(traded):
        logger.debug(f"Correlation skipped: length mismatch {len(reference)} vs {len(traded)}")
        return None

    if len(reference) < window:
        logger.debug(f"Correlation skipped: {len(reference)} candles < window {window}")
        return None

    reference_returns = calculate_returns(reference[-window:])
    traded_returns = calculate_returns(traded[-window:])

    coefficient = pearson(reference_returns, traded_returns)

    return CorrelationResult(
        coefficient=coefficient,
        strength=classify_strength(coefficient),
        filter_strength=classify_filter_strength(coefficient),
        sample_size=window,
        reference_volatility=volatility(reference_returns),
        traded_volatility=volatility(traded_returns)
    )


def describe_correlation(result: CorrelationResult) -> str:
    """Human-readable summary of a correlation result"""
    sign = 'positive' if result.coefficient >= 0 else 'negative'
    return (f"{result.strength.value} {sign} correlation (r={abs(result.coefficient):.2f}) - "
            f"Recommend {result.filter_strength.value} reference filter")

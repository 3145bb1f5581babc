"""
Swing point (fractal pivot) detection and helpers
"""
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .models import Candle, MarketStructure, SwingPoint, SwingPointType, TrendBias

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = 2


def detect_swing_points(candles: Sequence[Candle],
                        lookback: int = DEFAULT_LOOKBACK) -> Tuple[List[SwingPoint], List[SwingPoint]]:
    """
    Detect swing highs and lows

    A candle is a swing high if its high is strictly above the high of every
    candle within `lookback` bars on each side; swing lows mirror this. One
    candle can be both.

    Args:
        candles: Candles in ascending time order
        lookback: Neighbourhood radius on each side

    Returns:
        Tuple of (highs, lows) ordered by candle index
    """
    if lookback < 1:
        raise ValueError(f"Lookback must be >= 1, got {lookback}")

    highs: List[SwingPoint] = []
    lows: List[SwingPoint] = []

    n = len(candles)
    if n < 2 * lookback + 1:
        logger.debug(f"Not enough candles for swing detection: need {2 * lookback + 1}, got {n}")
        return highs, lows

    high = np.array([c.high for c in candles], dtype=float)
    low = np.array([c.low for c in candles], dtype=float)

    for i in range(lookback, n - lookback):
        high_neighbours = np.concatenate((high[i - lookback:i], high[i + 1:i + lookback + 1]))
        low_neighbours = np.concatenate((low[i - lookback:i], low[i + 1:i + lookback + 1]))

        if high[i] > high_neighbours.max():
            highs.append(SwingPoint(float(high[i]), candles[i].timestamp, SwingPointType.HIGH, i))

        if low[i] < low_neighbours.min():
            lows.append(SwingPoint(float(low[i]), candles[i].timestamp, SwingPointType.LOW, i))

    logger.debug(f"Swing detection complete: {n} candles, {len(highs)} highs, "
                 f"{len(lows)} lows (lookback={lookback})")
    return highs, lows


def latest_high(highs: Sequence[SwingPoint]) -> Optional[SwingPoint]:
    return highs[-1] if highs else None


def latest_low(lows: Sequence[SwingPoint]) -> Optional[SwingPoint]:
    return lows[-1] if lows else None


def is_higher_high_higher_low(highs: Sequence[SwingPoint], lows: Sequence[SwingPoint]) -> bool:
    """Last two highs and last two lows both rising"""
    if len(highs) < 2 or len(lows) < 2:
        return False
    return highs[-1].price > highs[-2].price and lows[-1].price > lows[-2].price


def is_lower_high_lower_low(highs: Sequence[SwingPoint], lows: Sequence[SwingPoint]) -> bool:
    """Last two highs and last two lows both falling"""
    if len(highs) < 2 or len(lows) < 2:
        return False
    return highs[-1].price < highs[-2].price and lows[-1].price < lows[-2].price


def strength_from_swing_points(bias: TrendBias,
                               highs: Sequence[SwingPoint],
                               lows: Sequence[SwingPoint]) -> float:
    """
    Trend strength from the number of swing points.

    Used by the per-timeframe provider. The single-timeframe trend analyzer
    uses its own fixed strengths instead (see TrendAnalyzer).
    """
    if bias == TrendBias.NEUTRAL:
        return 0.3

    count = len(highs) + len(lows)
    if count <= 2:
        return 0.5
    if count <= 5:
        return 0.7
    return 0.9


def is_higher(current: float, previous: float, tolerance: float) -> bool:
    return current > previous * (1 + tolerance)


def is_lower(current: float, previous: float, tolerance: float) -> bool:
    return current < previous * (1 - tolerance)


def is_equal(current: float, previous: float, tolerance: float) -> bool:
    return abs(current - previous) / previous <= tolerance


def label_swings(points: Sequence[SwingPoint], tolerance: float) -> List[Tuple[SwingPoint, Optional[MarketStructure]]]:
    """Label each swing as HH/LH/EH or HL/LL/EL against the previous one of its kind"""
    out = []
    last_high = None
    last_low = None

    for p in points:
        if p.type == SwingPointType.HIGH:
            previous, last_high = last_high, p
            labels = (MarketStructure.HIGHER_HIGH, MarketStructure.LOWER_HIGH, MarketStructure.EQUAL_HIGH)
        else:
            previous, last_low = last_low, p
            labels = (MarketStructure.HIGHER_LOW, MarketStructure.LOWER_LOW, MarketStructure.EQUAL_LOW)

        label = None
        if previous is not None:
            if is_higher(p.price, previous.price, tolerance):
                label = labels[0]
            elif is_lower(p.price, previous.price, tolerance):
                label = labels[1]
            else:
                label = labels[2]

        out.append((p, label))

    return out

"""
Reference asset (BTC) confirmation.

Measures the reference asset's own momentum and checks whether it supports a
candidate signal. When correlation is enabled the gate adapts to how closely
the traded asset currently follows the reference.
"""
import logging
from typing import Optional, Sequence

import numpy as np

from .config.models import ReferenceAssetConfig
from .correlation import calculate_correlation, describe_correlation
from .models import (
    Candle, CorrelationResult, ReferenceAssetAnalysis, ReferenceDirection,
    SignalDirection
)

logger = logging.getLogger(__name__)

PRICE_SCORE_DIVISOR = 2.0
PRICE_SCORE_MAX = 0.5

STRONG_MOMENTUM = 0.5
MODERATE_MOMENTUM = 0.3


class ReferenceAssetAnalyzer:
    """Gates candidate signals on the reference asset's momentum"""

    def __init__(self, config: ReferenceAssetConfig):
        self.config = config

    def analyze(self, candles: Sequence[Candle], signal_direction: SignalDirection,
                traded_candles: Optional[Sequence[Candle]] = None) -> ReferenceAssetAnalysis:
        """
        Analyze reference asset movement for signal confirmation

        Args:
            candles: Reference asset candles, most recent last
            signal_direction: Candidate signal direction
            traded_candles: Traded asset candles for correlation (optional)

        Returns:
            ReferenceAssetAnalysis; a neutral, non-aligned result when there
            are fewer than lookback_candles reference candles
        """
        symbol = self.config.symbol
        lookback = self.config.lookback_candles

        if len(candles) < lookback:
            logger.warning(f"Not enough {symbol} candles for analysis: {len(candles)} < {lookback}")
            return ReferenceAssetAnalysis(
                direction=ReferenceDirection.NEUTRAL,
                momentum=0.0,
                price_change=0.0,
                consecutive_moves=0,
                volume_ratio=1.0,
                is_aligned=False,
                reason=f"Insufficient {symbol} data"
            )

        correlation = self._correlation(candles, traded_candles)

        window = candles[-lookback:]
        start_price = window[0].close
        price_change = (window[-1].close - start_price) / start_price * 100

        direction = self.determine_direction(price_change)
        consecutive = count_consecutive_moves(window)
        ratio = volume_ratio(window)
        momentum = self.calculate_momentum(price_change, consecutive, ratio)
        aligned = check_alignment(direction, signal_direction)

        reason = build_reason(symbol, direction, momentum, price_change, consecutive,
                              aligned, signal_direction)

        logger.debug(f"{symbol} analysis: {direction.value} change={price_change:.2f}% "
                     f"momentum={momentum:.2f} moves={consecutive} volume_ratio={ratio:.2f} "
                     f"aligned={aligned}")

        return ReferenceAssetAnalysis(
            direction=direction,
            momentum=momentum,
            price_change=price_change,
            consecutive_moves=consecutive,
            volume_ratio=ratio,
            is_aligned=aligned,
            reason=reason,
            correlation=correlation
        )

    def _correlation(self, candles: Sequence[Candle],
                     traded_candles: Optional[Sequence[Candle]]) -> Optional[CorrelationResult]:
        if not self.config.use_correlation or not traded_candles:
            return None

        correlation = calculate_correlation(candles, traded_candles, self.config.correlation_period)
        if correlation is None:
            logger.warning(f"Correlation unavailable for {self.config.symbol}: "
                           f"{len(candles)} vs {len(traded_candles)} candles, "
                           f"period {self.config.correlation_period}")
        else:
            logger.debug(f"{self.config.symbol} correlation: {describe_correlation(correlation)}")
        return correlation

    def should_confirm(self, analysis: ReferenceAssetAnalysis) -> bool:
        """True if the reference asset confirms the candidate signal"""
        if self.config.use_correlation and analysis.correlation is not None:
            return self._confirm_with_correlation(analysis, analysis.correlation)
        return self._confirm_fixed(analysis)

    def _confirm_fixed(self, analysis: ReferenceAssetAnalysis) -> bool:
        if not self.config.require_alignment:
            return True
        return analysis.is_aligned and analysis.momentum >= self.config.minimum_momentum

    def _confirm_with_correlation(self, analysis: ReferenceAssetAnalysis,
                                  correlation: CorrelationResult) -> bool:
        thresholds = self.config.correlation_thresholds
        r = abs(correlation.coefficient)

        if r < thresholds.weak:
            logger.debug(f"Reference filter skipped: |r|={r:.2f} < weak {thresholds.weak}")
            return True

        if r < thresholds.moderate:
            logger.debug(f"Reference filter passed: |r|={r:.2f} < moderate {thresholds.moderate}")
            return True

        if r < thresholds.strict:
            reduced = self.config.minimum_momentum * self.config.momentum_reduction_factor
            return analysis.is_aligned and analysis.momentum >= reduced

        return self._confirm_fixed(analysis)

    def determine_direction(self, price_change: float) -> ReferenceDirection:
        threshold = self.config.neutral_threshold
        if price_change > threshold:
            return ReferenceDirection.UP
        if price_change < -threshold:
            return ReferenceDirection.DOWN
        return ReferenceDirection.NEUTRAL

    def calculate_momentum(self, price_change: float, consecutive_moves: int, ratio: float) -> float:
        """Price, streak and volume scores summed and clamped to [0, 1]"""
        price_score = min(abs(price_change) / PRICE_SCORE_DIVISOR, PRICE_SCORE_MAX)
        moves_score = min(consecutive_moves / self.config.moves_divisor, self.config.moves_max_weight)
        volume_score = min((ratio - 1.0) / self.config.volume_divisor, self.config.volume_max_weight)
        return float(np.clip(price_score + moves_score + volume_score, 0.0, 1.0))


def count_consecutive_moves(candles: Sequence[Candle]) -> int:
    """Trailing run of same-colour candles; close <= open counts as down"""
    count = 0
    last_up = None

    for candle in reversed(candles):
        up = candle.close > candle.open
        if last_up is not None and up != last_up:
            break
        last_up = up
        count += 1

    return count


def volume_ratio(candles: Sequence[Candle]) -> float:
    """Last volume relative to the window average"""
    if not candles:
        return 1.0
    average = float(np.mean([c.volume for c in candles]))
    return candles[-1].volume / average if average > 0 else 1.0


def check_alignment(direction: ReferenceDirection, signal_direction: SignalDirection) -> bool:
    if signal_direction == SignalDirection.HOLD or direction == ReferenceDirection.NEUTRAL:
        return False
    return (signal_direction == SignalDirection.LONG) == (direction == ReferenceDirection.UP)


def build_reason(symbol: str, direction: ReferenceDirection, momentum: float, price_change: float,
                 consecutive_moves: int, aligned: bool, signal_direction: SignalDirection) -> str:
    if momentum >= STRONG_MOMENTUM:
        label = 'STRONG'
    elif momentum >= MODERATE_MOMENTUM:
        label = 'MODERATE'
    else:
        label = 'WEAK'

    parts = [
        f"{symbol} {direction.value}",
        f"{price_change:.2f}%",
        f"{label} momentum ({momentum * 100:.0f}%)",
        f"{consecutive_moves} consecutive",
        f"{'ALIGNED' if aligned else 'NOT aligned'} with {SignalDirection(signal_direction).value}"
    ]
    return ', '.join(parts)

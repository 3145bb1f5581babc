"""
Weighted voting across timeframe trend opinions
"""
import logging
from typing import Dict, Mapping

from .models import TIMEFRAMES, TimeframeTrend, TradingMode, TrendBias, WeightedTrendResult
from .validation import InvalidInputError, ValidationError, ValidationRule

logger = logging.getLogger(__name__)

# Order used in the reasoning string, longest timeframe first
REASONING_ORDER = ('4h', '1h', '15m', '5m')


class TimeframeWeightingCombiner:
    """Combines per-timeframe trends using a trading-mode weight profile"""

    def __init__(self, profiles: Mapping[TradingMode, Mapping[str, float]]):
        self.profiles: Dict[TradingMode, Dict[str, float]] = {
            TradingMode(mode): dict(weights) for mode, weights in profiles.items()
        }

    def weights_for(self, trading_mode: TradingMode) -> Dict[str, float]:
        try:
            return self.profiles[TradingMode(trading_mode)]
        except (KeyError, ValueError):
            raise InvalidInputError(ValidationError(
                ValidationRule.UNKNOWN_TRADING_MODE,
                f"No weight profile for trading mode: {trading_mode}"
            ))

    def combine(self, trends: Mapping[str, TimeframeTrend], trading_mode: TradingMode) -> WeightedTrendResult:
        """
        Combine trends for 5m, 15m, 1h and 4h into one verdict

        Args:
            trends: Trend per timeframe label, all four required
            trading_mode: Selects the weight profile

        Returns:
            WeightedTrendResult with consensus bias, weighted strength and reasoning
        """
        missing = [tf for tf in TIMEFRAMES if tf not in trends]
        if missing:
            raise InvalidInputError(ValidationError(
                ValidationRule.MISSING_TIMEFRAME_DATA,
                f"Weighted combination needs all timeframes, missing: {missing}"
            ))

        weights = self.weights_for(trading_mode)

        strength = weighted_strength(trends, weights)
        bias = weighted_vote(trends, weights)
        reasoning = build_reasoning(trends, weights, bias)

        logger.info(f"Weighted combination ({TradingMode(trading_mode).value}): "
                    f"{bias.value} strength={strength:.2f} | {reasoning}")

        return WeightedTrendResult(bias=bias, strength=strength, reasoning=reasoning)


def weighted_strength(trends: Mapping[str, TimeframeTrend], weights: Mapping[str, float]) -> float:
    """Sum of strength * weight, clamped to [0, 1]"""
    total = sum(trends[tf].strength * weights[tf] for tf in TIMEFRAMES)
    return max(0.0, min(1.0, total))


def weighted_vote(trends: Mapping[str, TimeframeTrend], weights: Mapping[str, float]) -> TrendBias:
    """Side holding more than half of the directional vote weight wins; NEUTRAL abstains"""
    bullish = sum(weights[tf] for tf in TIMEFRAMES if trends[tf].bias == TrendBias.BULLISH)
    bearish = sum(weights[tf] for tf in TIMEFRAMES if trends[tf].bias == TrendBias.BEARISH)

    total = bullish + bearish
    if total == 0:
        return TrendBias.NEUTRAL

    if bullish / total > 0.5:
        return TrendBias.BULLISH
    if bearish / total > 0.5:
        return TrendBias.BEARISH

    # conflicted
    return TrendBias.NEUTRAL


def build_reasoning(trends: Mapping[str, TimeframeTrend], weights: Mapping[str, float],
                    final_bias: TrendBias) -> str:
    parts = [
        f"{tf}={trends[tf].bias.value}({trends[tf].strength:.2f},w={weights[tf] * 100:.0f}%)"
        for tf in REASONING_ORDER
    ]
    parts.append(f"-> Final={final_bias.value}")
    return ' '.join(parts)

"""
Per-timeframe trend extraction for multi-timeframe analysis
"""
import logging
from typing import Dict, Mapping, Sequence

from .models import (
    Alignment, Candle, MultiTimeframeAnalysis, TIMEFRAMES, TimeframeTrend,
    TrendBias, TrendConsensus
)
from .swing_detector import (
    detect_swing_points, is_higher_high_higher_low, is_lower_high_lower_low,
    strength_from_swing_points
)
from .validation import InvalidInputError, ValidationError, ValidationRule

logger = logging.getLogger(__name__)

MIN_TIMEFRAME_CANDLES = 5
INSUFFICIENT_DATA_STRENGTH = 0.3

# Consensus strength weights, independent of trading mode
CONSENSUS_WEIGHTS = {'4h': 0.4, '1h': 0.3, '15m': 0.2, '5m': 0.1}


class TimeframeTrendProvider:
    """Extracts a trend opinion for each of the 5m, 15m, 1h and 4h timeframes"""

    def __init__(self, swing_lookback: int):
        if swing_lookback < 1:
            raise ValueError(f"Lookback must be >= 1, got {swing_lookback}")
        self.swing_lookback = swing_lookback

    def analyze(self, candles_by_timeframe: Mapping[str, Sequence[Candle]]) -> MultiTimeframeAnalysis:
        """
        Analyze every timeframe and form a consensus

        Args:
            candles_by_timeframe: Candles keyed by '5m', '15m', '1h', '4h'

        Returns:
            MultiTimeframeAnalysis with per-timeframe trends and consensus
        """
        missing = [tf for tf in TIMEFRAMES if candles_by_timeframe.get(tf) is None]
        if missing:
            raise InvalidInputError(ValidationError(
                ValidationRule.MISSING_TIMEFRAME_DATA,
                f"Candles required for every timeframe, missing: {missing}"
            ))

        by_timeframe = {tf: self.analyze_timeframe(candles_by_timeframe[tf], tf) for tf in TIMEFRAMES}

        consensus = TrendConsensus(
            primary_trend=by_timeframe['4h'].bias,
            current_trend=by_timeframe['1h'].bias,
            entry_trend=entry_trend(by_timeframe),
            strength=consensus_strength(by_timeframe),
            alignment=detect_alignment(by_timeframe)
        )

        logger.info(f"Consensus: primary={consensus.primary_trend.value} "
                    f"current={consensus.current_trend.value} entry={consensus.entry_trend.value} "
                    f"alignment={consensus.alignment.value} strength={consensus.strength:.2f}")

        return MultiTimeframeAnalysis(by_timeframe=by_timeframe, consensus=consensus)

    def analyze_timeframe(self, candles: Sequence[Candle], timeframe: str) -> TimeframeTrend:
        if len(candles) < MIN_TIMEFRAME_CANDLES:
            logger.debug(f"Insufficient candles for {timeframe}: {len(candles)} < {MIN_TIMEFRAME_CANDLES}")
            return TimeframeTrend(timeframe=timeframe, bias=TrendBias.NEUTRAL,
                                  strength=INSUFFICIENT_DATA_STRENGTH)

        highs, lows = detect_swing_points(candles, self.swing_lookback)

        if len(highs) < 2 or len(lows) < 2:
            # Too few swings: fall back to overall price direction
            first, last = candles[0].close, candles[-1].close
            if last > first:
                bias = TrendBias.BULLISH
            elif last < first:
                bias = TrendBias.BEARISH
            else:
                bias = TrendBias.NEUTRAL
            pattern = 'FLAT'
        elif is_higher_high_higher_low(highs, lows):
            bias, pattern = TrendBias.BULLISH, 'HH_HL'
        elif is_lower_high_lower_low(highs, lows):
            bias, pattern = TrendBias.BEARISH, 'LH_LL'
        else:
            bias, pattern = TrendBias.NEUTRAL, 'FLAT'

        strength = strength_from_swing_points(bias, highs, lows)

        logger.debug(f"{timeframe}: {bias.value} {pattern} strength={strength:.2f} "
                     f"({len(highs)}H/{len(lows)}L)")

        return TimeframeTrend(
            timeframe=timeframe,
            bias=bias,
            strength=strength,
            swing_highs_count=len(highs),
            swing_lows_count=len(lows),
            pattern=pattern
        )


def entry_trend(by_timeframe: Dict[str, TimeframeTrend]) -> TrendBias:
    """5m/15m agreement, or the stronger of the two (15m on ties)"""
    fast, slow = by_timeframe['5m'], by_timeframe['15m']
    if fast.bias == slow.bias:
        return fast.bias
    return fast.bias if fast.strength > slow.strength else slow.bias


def detect_alignment(by_timeframe: Dict[str, TimeframeTrend]) -> Alignment:
    biases = [by_timeframe[tf].bias for tf in TIMEFRAMES]

    if biases[0] != TrendBias.NEUTRAL and all(b == biases[0] for b in biases):
        return Alignment.ALIGNED

    primary, current = by_timeframe['4h'].bias, by_timeframe['1h'].bias
    if {primary, current} == {TrendBias.BULLISH, TrendBias.BEARISH}:
        return Alignment.CONFLICTED

    return Alignment.MIXED


def consensus_strength(by_timeframe: Dict[str, TimeframeTrend]) -> float:
    total = sum(by_timeframe[tf].strength * w for tf, w in CONSENSUS_WEIGHTS.items())
    return max(0.0, min(1.0, total))

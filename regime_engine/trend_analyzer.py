"""
Trend analyzer: the primary trend verdict consumed before any signal executes.

Required inputs are never defaulted. Invalid input is reported as a
ValidationError by try_analyze_trend() and raised as InvalidInputError by
analyze_trend().
"""
import logging
from typing import List, Mapping, Optional, Sequence

from .config.models import TrendConfig
from .market_structure import MarketStructureAnalyzer
from .models import (
    Candle, ComprehensiveTrendAnalysis, SignalDirection, TradingMode,
    TrendAnalysis, TrendBias
)
from .swing_detector import detect_swing_points
from .timeframe_trend import TimeframeTrendProvider
from .timeframe_weighting import TimeframeWeightingCombiner
from .validation import InvalidInputError, Outcome, ValidationError, ValidationRule, require

logger = logging.getLogger(__name__)

PATTERNS = {
    TrendBias.BULLISH: 'HH_HL',
    TrendBias.BEARISH: 'LH_LL',
    TrendBias.NEUTRAL: 'FLAT',
}


class TrendAnalyzer:
    """Directional bias, strength and restricted directions for an instrument"""

    def __init__(self, config: TrendConfig,
                 structure: MarketStructureAnalyzer,
                 swing_lookback: int,
                 timeframe_provider: Optional[TimeframeTrendProvider] = None,
                 combiner: Optional[TimeframeWeightingCombiner] = None):
        require(config, 'TrendConfig', 'TrendAnalyzer')
        require(structure, 'MarketStructureAnalyzer', 'TrendAnalyzer')
        require(swing_lookback, 'swing_lookback', 'TrendAnalyzer')

        self.config = config
        self.structure = structure
        self.swing_lookback = swing_lookback
        self.timeframe_provider = timeframe_provider
        self.combiner = combiner

        # Most recent result, single or multi-timeframe
        self.last_analysis: Optional[TrendAnalysis] = None

    def validate(self, candles, timeframe) -> Optional[ValidationError]:
        """First broken input rule, or None"""
        if not isinstance(candles, (list, tuple)):
            return ValidationError(ValidationRule.CANDLES_NOT_SEQUENCE,
                                   f"Candles must be a list or tuple, got {type(candles).__name__}")
        if len(candles) < self.config.min_candles:
            return ValidationError(ValidationRule.INSUFFICIENT_CANDLES,
                                   f"Candles must have length >= {self.config.min_candles}, got {len(candles)}")
        if not timeframe or not isinstance(timeframe, str):
            return ValidationError(ValidationRule.MISSING_TIMEFRAME,
                                   f"Timeframe label required, got {timeframe!r}")
        return None

    def try_analyze_trend(self, candles: Sequence[Candle], timeframe: str) -> Outcome[TrendAnalysis]:
        error = self.validate(candles, timeframe)
        if error is not None:
            logger.warning(f"Trend analysis rejected: {error}")
            return Outcome(error=error)

        highs, lows = detect_swing_points(candles, self.swing_lookback)
        structure_pattern = self.structure.get_last_pattern(highs, lows)

        bias = self.calculate_bias(candles)
        strength = self.calculate_strength(bias)
        restricted = restricted_directions(bias)

        analysis = TrendAnalysis(
            bias=bias,
            strength=strength,
            timeframe=timeframe,
            pattern=PATTERNS[bias],
            reasoning=build_reasoning(bias, strength, len(highs), len(lows), structure_pattern),
            restricted_directions=restricted
        )

        logger.info(f"Trend {timeframe}: {bias.value} strength={strength:.0%} "
                    f"swings={len(highs)}H/{len(lows)}L "
                    f"restricted={','.join(d.value for d in restricted) or 'NONE'}")

        self.last_analysis = analysis
        return Outcome.success(analysis)

    def analyze_trend(self, candles: Sequence[Candle], timeframe: str) -> TrendAnalysis:
        """
        Analyze the trend of one timeframe

        Args:
            candles: Price data, at least config.min_candles
            timeframe: Timeframe label, e.g. '1h'

        Returns:
            TrendAnalysis with bias, strength and restricted directions

        Raises:
            InvalidInputError: If candles or timeframe are missing or invalid
        """
        return self.try_analyze_trend(candles, timeframe).unwrap()

    def analyze_multi_timeframe(self, candles_by_timeframe: Mapping[str, Sequence[Candle]],
                                trading_mode: TradingMode) -> ComprehensiveTrendAnalysis:
        """Combine 5m/15m/1h/4h trends into one weighted verdict"""
        if self.timeframe_provider is None or self.combiner is None:
            raise InvalidInputError(ValidationError(
                ValidationRule.MISSING_COLLABORATOR,
                "Multi-timeframe analysis needs a TimeframeTrendProvider and a TimeframeWeightingCombiner"
            ))
        if candles_by_timeframe is None:
            raise InvalidInputError(ValidationError(
                ValidationRule.MISSING_TIMEFRAME_DATA, "Multi-timeframe candles required, got None"
            ))

        # An unknown trading mode fails here, before any per-timeframe work
        weights = self.combiner.weights_for(trading_mode)

        multi = self.timeframe_provider.analyze(candles_by_timeframe)
        weighted = self.combiner.combine(multi.by_timeframe, trading_mode)
        logger.debug(f"Multi-timeframe weights ({TradingMode(trading_mode).value}): {weights}")

        analysis = ComprehensiveTrendAnalysis(
            bias=weighted.bias,
            strength=weighted.strength,
            timeframe='MULTI-TF',
            pattern=PATTERNS[weighted.bias],
            reasoning=[weighted.reasoning],
            restricted_directions=restricted_directions(weighted.bias),
            by_timeframe=multi.by_timeframe,
            alignment=multi.consensus.alignment,
            primary_trend_bias=multi.consensus.primary_trend,
            current_trend_bias=multi.consensus.current_trend
        )

        logger.info(f"Multi-timeframe trend: {analysis.bias.value} strength={analysis.strength:.0%} "
                    f"primary={analysis.primary_trend_bias.value} current={analysis.current_trend_bias.value} "
                    f"alignment={analysis.alignment.value} mode={TradingMode(trading_mode).value}")

        self.last_analysis = analysis
        return analysis

    def calculate_bias(self, candles: Sequence[Candle]) -> TrendBias:
        """Compare the recent window of highs/lows against the window before it"""
        window = self.config.recent_window
        recent = candles[-window:]
        prior = candles[-2 * window:-window]

        if not recent or not prior:
            return TrendBias.NEUTRAL

        recent_high = max(c.high for c in recent)
        recent_low = min(c.low for c in recent)
        prior_high = max(c.high for c in prior)
        prior_low = min(c.low for c in prior)

        if recent_high > prior_high and recent_low > prior_low:
            return TrendBias.BULLISH
        if recent_high < prior_high and recent_low < prior_low:
            return TrendBias.BEARISH
        return TrendBias.NEUTRAL

    def calculate_strength(self, bias: TrendBias) -> float:
        """
        Fixed strength per bias.

        The per-timeframe provider uses the swing-count step function
        (swing_detector.strength_from_swing_points) instead.
        """
        if bias == TrendBias.NEUTRAL:
            return self.config.flat_trend_strength
        return self.config.strong_trend_strength


def restricted_directions(bias: TrendBias) -> List[SignalDirection]:
    if bias == TrendBias.BEARISH:
        return [SignalDirection.LONG]
    if bias == TrendBias.BULLISH:
        return [SignalDirection.SHORT]
    return []


def build_reasoning(bias: TrendBias, strength: float, high_count: int, low_count: int,
                    structure_pattern: Optional[str]) -> List[str]:
    reasoning = []

    if bias == TrendBias.BULLISH:
        reasoning.append("Market Structure: HH_HL pattern (Higher Highs + Higher Lows)")
    elif bias == TrendBias.BEARISH:
        reasoning.append("Market Structure: LH_LL pattern (Lower Highs + Lower Lows)")
    else:
        reasoning.append("Market Structure: Mixed pattern (No clear direction)")

    reasoning.append(f"Trend Strength: {strength * 100:.0f}%")
    reasoning.append(f"Swing Points: {high_count} highs, {low_count} lows detected")
    reasoning.append(f"Swing Structure: {structure_pattern or 'UNCLEAR'}")

    if bias == TrendBias.BEARISH:
        reasoning.append("Restriction: LONG entries blocked in downtrend")
    elif bias == TrendBias.BULLISH:
        reasoning.append("Restriction: SHORT entries blocked in uptrend")

    return reasoning

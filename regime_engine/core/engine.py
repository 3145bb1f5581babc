"""
Regime engine: runs the trend, structure and reference-asset checks that a
candidate signal must pass before execution
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config.models import EngineConfig
from ..models import (
    Candle, ComprehensiveTrendAnalysis, ReferenceAssetAnalysis, SignalDirection,
    StructureDetection, StructureEvent, SwingPoint, TradingMode, TrendAnalysis, TrendBias
)
from ..reference_asset import ReferenceAssetAnalyzer
from ..swing_detector import detect_swing_points
from ..timeframe_trend import TimeframeTrendProvider
from ..timeframe_weighting import TimeframeWeightingCombiner
from ..trend_analyzer import TrendAnalyzer
from .registry import StructureRegistry

logger = logging.getLogger(__name__)


@dataclass
class RegimeVerdict:
    """Everything the signal-fusion layer needs about one candidate signal"""
    symbol: str
    direction: SignalDirection
    trend: TrendAnalysis
    structure: StructureDetection
    structure_pattern: Optional[str]
    reference: Optional[ReferenceAssetAnalysis] = None
    reference_confirmed: bool = True
    allowed: bool = False
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for CLI output"""
        event = self.structure.event
        return {
            'symbol': self.symbol,
            'direction': self.direction.value,
            'allowed': self.allowed,
            'trend_bias': self.trend.bias.value,
            'trend_strength': self.trend.strength,
            'restricted': [d.value for d in self.trend.restricted_directions],
            'structure_trend': self.structure.current_trend.value,
            'structure_pattern': self.structure_pattern,
            'structure_event': f"{event.type.value} {event.direction.value}" if event else None,
            'confidence_modifier': self.structure.confidence_modifier,
            'reference': self.reference.to_dict() if self.reference else None,
            'reference_confirmed': self.reference_confirmed,
            'reasons': list(self.reasons)
        }


class RegimeEngine:
    """Wires the regime components from an EngineConfig"""

    def __init__(self, config: EngineConfig):
        self.config = config
        self.registry = StructureRegistry(config.market_structure)
        self.provider = TimeframeTrendProvider(config.swing.lookback)
        self.combiner = TimeframeWeightingCombiner(config.timeframe_weights)
        self.reference = ReferenceAssetAnalyzer(config.reference_asset)
        self.trend_analyzers: Dict[str, TrendAnalyzer] = {}

    def trend_analyzer(self, symbol: str) -> TrendAnalyzer:
        symbol = symbol.upper()
        analyzer = self.trend_analyzers.get(symbol)
        if analyzer is None:
            analyzer = TrendAnalyzer(
                self.config.trend,
                self.registry.get(symbol),
                self.config.swing.lookback,
                self.provider,
                self.combiner
            )
            self.trend_analyzers[symbol] = analyzer
        return analyzer

    def evaluate(self, symbol: str, candles: Sequence[Candle], timeframe: str,
                 candidate_direction: SignalDirection,
                 reference_candles: Optional[Sequence[Candle]] = None) -> RegimeVerdict:
        """
        Evaluate a candidate signal

        Args:
            symbol: Traded symbol
            candles: Traded asset candles, oldest first
            timeframe: Timeframe label of the candles
            candidate_direction: Candidate signal direction
            reference_candles: Reference asset candles aligned with `candles` (optional)

        Returns:
            RegimeVerdict; allowed is True when the trend does not restrict the
            direction and the reference gate (if run) passes
        """
        symbol = symbol.upper()
        direction = SignalDirection(candidate_direction)

        trend = self.trend_analyzer(symbol).analyze_trend(candles, timeframe)

        highs, lows = detect_swing_points(candles, self.config.swing.lookback)
        structure = self._update_structure(symbol, highs, lows, candles[-1], direction)
        pattern = self.registry.get(symbol).get_last_pattern(highs, lows)

        reasons = list(trend.reasoning)
        if structure.event is not None:
            reasons.append(f"Structure event: {structure.event.type.value} {structure.event.direction.value} "
                           f"(strength {structure.event.strength:.0%})")

        reference = None
        confirmed = True
        if reference_candles is not None:
            reference = self.reference.analyze(reference_candles, direction, candles)
            confirmed = self.reference.should_confirm(reference)
            reasons.append(f"Reference: {reference.reason} -> {'CONFIRMED' if confirmed else 'BLOCKED'}")

        restricted = trend.is_restricted(direction)
        if restricted:
            reasons.append(f"{direction.value} restricted by {trend.bias.value} trend")

        verdict = RegimeVerdict(
            symbol=symbol,
            direction=direction,
            trend=trend,
            structure=structure,
            structure_pattern=pattern,
            reference=reference,
            reference_confirmed=confirmed,
            allowed=not restricted and confirmed,
            reasons=reasons
        )

        logger.info(f"Regime verdict {symbol} {direction.value}: "
                    f"{'ALLOWED' if verdict.allowed else 'BLOCKED'} "
                    f"(trend {trend.bias.value}, structure {structure.current_trend.value}, "
                    f"modifier {structure.confidence_modifier:.2f})")
        return verdict

    def analyze_multi_timeframe(self, symbol: str, candles_by_timeframe: Mapping[str, Sequence[Candle]],
                                trading_mode: Optional[TradingMode] = None) -> ComprehensiveTrendAnalysis:
        """Weighted multi-timeframe trend; trading mode defaults to the configured one"""
        mode = trading_mode if trading_mode is not None else self.config.trend.trading_mode
        return self.trend_analyzer(symbol).analyze_multi_timeframe(candles_by_timeframe, mode)

    def replay(self, symbol: str, candles: Sequence[Candle]) -> List[StructureEvent]:
        """Feed a candle history bar by bar and collect the structure events"""
        lookback = self.config.swing.lookback
        events = []

        for end in range(2 * lookback + 1, len(candles) + 1):
            window = candles[:end]
            highs, lows = detect_swing_points(window, lookback)
            detection = self._update_structure(symbol, highs, lows, window[-1], None)
            if detection.event is not None:
                events.append(detection.event)

        logger.info(f"Replayed {len(candles)} candles for {symbol.upper()}: {len(events)} structure events")
        return events

    def reset(self, symbol: str) -> bool:
        return self.registry.reset(symbol)

    def remove(self, symbol: str) -> bool:
        """Drop all per-symbol state; the next call for the symbol starts from NEUTRAL"""
        self.trend_analyzers.pop(symbol.upper(), None)
        return self.registry.remove(symbol)

    def _update_structure(self, symbol: str, highs: List[SwingPoint], lows: List[SwingPoint],
                          candle: Candle, direction: Optional[SignalDirection]) -> StructureDetection:
        analyzer = self.registry.get(symbol)

        # NEUTRAL has no outgoing transition, so the owner seeds it from swing structure
        if self.config.seed_trend_from_structure and analyzer.current_trend == TrendBias.NEUTRAL:
            seed = analyzer.get_trend_bias(highs, lows)
            if seed != TrendBias.NEUTRAL:
                analyzer.set_trend(seed)
                logger.info(f"Seeded {symbol.upper()} structure trend from swings: {seed.value}")

        return analyzer.detect_choch_bos(highs, lows, candle.close, direction, candle.timestamp)

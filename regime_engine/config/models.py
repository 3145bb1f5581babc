"""
Configuration models for the regime engine

Thresholds carry no code defaults: every value comes from the YAML file.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models import TIMEFRAMES, TradingMode

WEIGHT_SUM_TOLERANCE = 1e-6


@dataclass
class SwingConfig:
    """Swing point detection parameters"""
    lookback: int

    def validate(self) -> List[str]:
        errors = []
        if self.lookback < 1:
            errors.append(f"swing.lookback must be >= 1: {self.lookback}")
        return errors


@dataclass
class MarketStructureConfig:
    """Structure classification and confidence modifiers"""
    equal_threshold: float
    choch_aligned_boost: float
    choch_against_penalty: float
    bos_aligned_boost: float
    no_modification: float

    def validate(self) -> List[str]:
        errors = []
        if not 0 < self.equal_threshold < 0.05:
            errors.append(f"market_structure.equal_threshold out of range: {self.equal_threshold}")
        if self.choch_aligned_boost <= 1.0:
            errors.append(f"market_structure.choch_aligned_boost must be > 1: {self.choch_aligned_boost}")
        if self.bos_aligned_boost <= 1.0:
            errors.append(f"market_structure.bos_aligned_boost must be > 1: {self.bos_aligned_boost}")
        if not 0 < self.choch_against_penalty < 1.0:
            errors.append(f"market_structure.choch_against_penalty must be in (0, 1): {self.choch_against_penalty}")
        if self.no_modification <= 0:
            errors.append(f"market_structure.no_modification must be > 0: {self.no_modification}")
        return errors


@dataclass
class TrendConfig:
    """Single-timeframe trend analyzer parameters"""
    min_candles: int
    recent_window: int
    strong_trend_strength: float
    flat_trend_strength: float
    trading_mode: TradingMode

    def __post_init__(self):
        self.trading_mode = TradingMode(self.trading_mode)

    def validate(self) -> List[str]:
        errors = []
        if self.recent_window < 1:
            errors.append(f"trend.recent_window must be >= 1: {self.recent_window}")
        if self.min_candles < 2 * self.recent_window:
            errors.append(f"trend.min_candles must be >= 2 * recent_window: {self.min_candles}")
        for name in ('strong_trend_strength', 'flat_trend_strength'):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                errors.append(f"trend.{name} must be in [0, 1]: {value}")
        return errors


@dataclass
class CorrelationThresholds:
    """Adaptive gate boundaries on |r|"""
    strict: float
    moderate: float
    weak: float

    def validate(self) -> List[str]:
        if not 0 <= self.weak <= self.moderate <= self.strict <= 1:
            return [f"correlation_thresholds must satisfy 0 <= weak <= moderate <= strict <= 1: "
                    f"{self.weak}/{self.moderate}/{self.strict}"]
        return []


@dataclass
class ReferenceAssetConfig:
    """Reference asset (BTC) confirmation parameters"""
    symbol: str
    lookback_candles: int
    minimum_momentum: float
    require_alignment: bool
    use_correlation: bool
    correlation_period: int
    correlation_thresholds: CorrelationThresholds
    moves_divisor: float
    moves_max_weight: float
    volume_divisor: float
    volume_max_weight: float
    neutral_threshold: float
    momentum_reduction_factor: float

    def __post_init__(self):
        self.symbol = self.symbol.upper()
        if isinstance(self.correlation_thresholds, dict):
            self.correlation_thresholds = CorrelationThresholds(**self.correlation_thresholds)

    def validate(self) -> List[str]:
        errors = []
        if self.lookback_candles < 2:
            errors.append(f"reference_asset.lookback_candles must be >= 2: {self.lookback_candles}")
        if not 0 <= self.minimum_momentum <= 1:
            errors.append(f"reference_asset.minimum_momentum must be in [0, 1]: {self.minimum_momentum}")
        if self.correlation_period < 2:
            errors.append(f"reference_asset.correlation_period must be >= 2: {self.correlation_period}")
        for name in ('moves_divisor', 'volume_divisor'):
            if getattr(self, name) <= 0:
                errors.append(f"reference_asset.{name} must be > 0: {getattr(self, name)}")
        for name in ('moves_max_weight', 'volume_max_weight', 'neutral_threshold'):
            if getattr(self, name) < 0:
                errors.append(f"reference_asset.{name} must be >= 0: {getattr(self, name)}")
        if not 0 < self.momentum_reduction_factor <= 1:
            errors.append(f"reference_asset.momentum_reduction_factor must be in (0, 1]: "
                          f"{self.momentum_reduction_factor}")
        errors.extend(self.correlation_thresholds.validate())
        return errors


def validate_weight_profiles(profiles: Dict[TradingMode, Dict[str, float]]) -> List[str]:
    """Each trading mode needs all four timeframes with weights summing to 1"""
    errors = []
    for mode in TradingMode:
        profile = profiles.get(mode)
        if profile is None:
            errors.append(f"timeframe_weights missing profile for {mode.value}")
            continue
        if set(profile) != set(TIMEFRAMES):
            errors.append(f"timeframe_weights.{mode.value} must name exactly {list(TIMEFRAMES)}: {sorted(profile)}")
            continue
        total = sum(profile.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            errors.append(f"timeframe_weights.{mode.value} must sum to 1.0: {total}")
    return errors


@dataclass
class EngineConfig:
    """Main engine configuration"""
    swing: SwingConfig
    market_structure: MarketStructureConfig
    trend: TrendConfig
    reference_asset: ReferenceAssetConfig
    timeframe_weights: Dict[TradingMode, Dict[str, float]]
    seed_trend_from_structure: bool

    # Logging
    log_level: str
    log_file: Optional[str]

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []
        errors.extend(self.swing.validate())
        errors.extend(self.market_structure.validate())
        errors.extend(self.trend.validate())
        errors.extend(self.reference_asset.validate())
        errors.extend(validate_weight_profiles(self.timeframe_weights))
        return errors

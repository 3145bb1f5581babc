"""
Data models for the market-regime confirmation engine
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class TrendBias(str, Enum):
    """Directional classification of an instrument"""
    BULLISH = 'BULLISH'
    BEARISH = 'BEARISH'
    NEUTRAL = 'NEUTRAL'


class SignalDirection(str, Enum):
    """Direction of a candidate trade signal"""
    LONG = 'LONG'
    SHORT = 'SHORT'
    HOLD = 'HOLD'


class SwingPointType(str, Enum):
    HIGH = 'HIGH'
    LOW = 'LOW'


class MarketStructure(str, Enum):
    """Two-point structure labels"""
    HIGHER_HIGH = 'HH'
    HIGHER_LOW = 'HL'
    LOWER_HIGH = 'LH'
    LOWER_LOW = 'LL'
    EQUAL_HIGH = 'EH'
    EQUAL_LOW = 'EL'


class StructureEventType(str, Enum):
    CHOCH = 'CHoCH'
    BOS = 'BoS'


class StructureDirection(str, Enum):
    BULLISH = 'BULLISH'
    BEARISH = 'BEARISH'


class CorrelationStrength(str, Enum):
    STRONG = 'STRONG'
    MODERATE = 'MODERATE'
    WEAK = 'WEAK'
    NONE = 'NONE'


class FilterStrength(str, Enum):
    """Recommended strictness of the reference-asset gate"""
    STRICT = 'STRICT'
    MODERATE = 'MODERATE'
    WEAK = 'WEAK'
    SKIP = 'SKIP'


class ReferenceDirection(str, Enum):
    UP = 'UP'
    DOWN = 'DOWN'
    NEUTRAL = 'NEUTRAL'


class TradingMode(str, Enum):
    """Trading mode selecting a timeframe weight profile"""
    SWING = 'swing'
    DAY = 'day'
    SCALP = 'scalp'


class Alignment(str, Enum):
    ALIGNED = 'ALIGNED'
    CONFLICTED = 'CONFLICTED'
    MIXED = 'MIXED'


TIMEFRAMES = ('5m', '15m', '1h', '4h')


@dataclass(frozen=True)
class Candle:
    """Unified candle data structure"""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class SwingPoint:
    """Represents a fractal pivot point (swing high/low)"""
    price: float
    timestamp: datetime
    type: SwingPointType
    idx: int = -1  # index of the source candle


@dataclass(frozen=True)
class StructureEvent:
    """CHoCH or BoS event"""
    type: StructureEventType
    direction: StructureDirection
    price: float
    timestamp: datetime
    strength: float  # 0-1, a 1% break saturates


@dataclass
class StructureDetection:
    """Result of one CHoCH/BoS check"""
    has_event: bool
    event: Optional[StructureEvent]
    current_trend: TrendBias
    confidence_modifier: float


@dataclass
class TrendAnalysis:
    """Single verdict of the trend analyzer"""
    bias: TrendBias
    strength: float
    timeframe: str
    pattern: str
    reasoning: List[str] = field(default_factory=list)
    restricted_directions: List[SignalDirection] = field(default_factory=list)

    def is_restricted(self, direction: SignalDirection) -> bool:
        return direction in self.restricted_directions


@dataclass
class TimeframeTrend:
    """Trend opinion for a single timeframe"""
    timeframe: str
    bias: TrendBias
    strength: float
    swing_highs_count: int = 0
    swing_lows_count: int = 0
    pattern: str = 'FLAT'


@dataclass
class TrendConsensus:
    primary_trend: TrendBias
    current_trend: TrendBias
    entry_trend: TrendBias
    strength: float
    alignment: Alignment


@dataclass
class MultiTimeframeAnalysis:
    by_timeframe: Dict[str, TimeframeTrend]
    consensus: TrendConsensus


@dataclass
class WeightedTrendResult:
    bias: TrendBias
    strength: float
    reasoning: str


@dataclass
class ComprehensiveTrendAnalysis(TrendAnalysis):
    """Trend analysis combined across timeframes"""
    by_timeframe: Dict[str, TimeframeTrend] = field(default_factory=dict)
    alignment: Alignment = Alignment.MIXED
    primary_trend_bias: TrendBias = TrendBias.NEUTRAL
    current_trend_bias: TrendBias = TrendBias.NEUTRAL


@dataclass(frozen=True)
class CorrelationResult:
    """Rolling Pearson correlation between a reference and a traded asset"""
    coefficient: float
    strength: CorrelationStrength
    filter_strength: FilterStrength
    sample_size: int
    reference_volatility: float  # %
    traded_volatility: float  # %


@dataclass
class ReferenceAssetAnalysis:
    """Reference asset (BTC) momentum and alignment with a candidate signal"""
    direction: ReferenceDirection
    momentum: float
    price_change: float  # %
    consecutive_moves: int
    volume_ratio: float
    is_aligned: bool
    reason: str
    correlation: Optional[CorrelationResult] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for logging and CLI output"""
        return {
            'direction': self.direction.value,
            'momentum': self.momentum,
            'price_change': self.price_change,
            'consecutive_moves': self.consecutive_moves,
            'volume_ratio': self.volume_ratio,
            'is_aligned': self.is_aligned,
            'reason': self.reason,
            'correlation': self.correlation.coefficient if self.correlation else None,
            'filter_strength': self.correlation.filter_strength.value if self.correlation else None
        }

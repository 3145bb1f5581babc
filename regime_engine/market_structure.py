"""
Market structure analysis: HH/HL/LH/LL classification and the CHoCH/BoS
trend state machine.

One MarketStructureAnalyzer owns the trend state of one symbol. Calls must
arrive in candle order from a single caller; the class is not synchronized.
"""
import logging
from datetime import datetime
from typing import Optional, Sequence

from .config.models import MarketStructureConfig
from .models import (
    MarketStructure, SignalDirection, StructureDetection, StructureDirection,
    StructureEvent, StructureEventType, SwingPoint, TrendBias
)
from .swing_detector import is_equal, is_higher, is_lower

logger = logging.getLogger(__name__)

MAX_EVENT_STRENGTH = 1.0


class MarketStructureAnalyzer:
    """Classifies swing structure and tracks CHoCH/BoS events for one symbol"""

    def __init__(self, config: MarketStructureConfig, symbol: str = ''):
        self.config = config
        self.symbol = symbol.upper()
        self._current_trend = TrendBias.NEUTRAL
        self._last_event: Optional[StructureEvent] = None

    @property
    def current_trend(self) -> TrendBias:
        return self._current_trend

    @property
    def last_structure_event(self) -> Optional[StructureEvent]:
        return self._last_event

    def reset(self) -> None:
        """Back to NEUTRAL with no retained event (tests, resubscription)"""
        self._current_trend = TrendBias.NEUTRAL
        self._last_event = None
        logger.debug(f"Structure state reset for {self.symbol or '<unnamed>'}")

    def set_trend(self, trend: TrendBias) -> None:
        """Seed the trend state explicitly"""
        self._current_trend = TrendBias(trend)

    # ------------------------------------------------------------------
    # Structure classification
    # ------------------------------------------------------------------

    def identify_structure(self, highs: Sequence[SwingPoint],
                           lows: Sequence[SwingPoint]) -> Optional[MarketStructure]:
        """Classify the last two highs, falling back to the last two lows"""
        eps = self.config.equal_threshold

        if len(highs) >= 2:
            prev, current = highs[-2].price, highs[-1].price
            if is_higher(current, prev, eps):
                return MarketStructure.HIGHER_HIGH
            if is_lower(current, prev, eps):
                return MarketStructure.LOWER_HIGH
            if is_equal(current, prev, eps):
                return MarketStructure.EQUAL_HIGH

        if len(lows) >= 2:
            prev, current = lows[-2].price, lows[-1].price
            if is_higher(current, prev, eps):
                return MarketStructure.HIGHER_LOW
            if is_lower(current, prev, eps):
                return MarketStructure.LOWER_LOW
            if is_equal(current, prev, eps):
                return MarketStructure.EQUAL_LOW

        return None

    def get_last_pattern(self, highs: Sequence[SwingPoint],
                         lows: Sequence[SwingPoint]) -> Optional[str]:
        """Combined pattern over the last two highs and lows: HH_HL, LH_LL, FLAT or None"""
        if len(highs) < 2 or len(lows) < 2:
            return None

        eps = self.config.equal_threshold
        prev_high, current_high = highs[-2].price, highs[-1].price
        prev_low, current_low = lows[-2].price, lows[-1].price

        if is_higher(current_high, prev_high, eps) and is_higher(current_low, prev_low, eps):
            return 'HH_HL'
        if is_lower(current_high, prev_high, eps) and is_lower(current_low, prev_low, eps):
            return 'LH_LL'
        if is_equal(current_high, prev_high, eps) or is_equal(current_low, prev_low, eps):
            return 'FLAT'

        # mixed structure
        return None

    def get_trend_bias(self, highs: Sequence[SwingPoint], lows: Sequence[SwingPoint]) -> TrendBias:
        pattern = self.get_last_pattern(highs, lows)
        if pattern == 'HH_HL':
            return TrendBias.BULLISH
        if pattern == 'LH_LL':
            return TrendBias.BEARISH
        return TrendBias.NEUTRAL

    # ------------------------------------------------------------------
    # CHoCH / BoS
    # ------------------------------------------------------------------

    def detect_choch_bos(self, highs: Sequence[SwingPoint], lows: Sequence[SwingPoint],
                         current_price: float,
                         signal_direction: Optional[SignalDirection] = None,
                         timestamp: Optional[datetime] = None) -> StructureDetection:
        """
        Detect Change of Character (reversal) and Break of Structure (continuation)

        CHoCH breaks the previous swing level against the current trend and
        flips the trend; BoS breaks the latest swing level in the trend's
        direction and leaves it unchanged. High-side checks run first and at
        most one event is emitted per call.

        Args:
            highs: Swing highs in candle order
            lows: Swing lows in candle order
            current_price: Latest price
            signal_direction: Candidate signal direction, if any
            timestamp: Event time, defaults to now

        Returns:
            StructureDetection with the new event (if any), the trend after
            this call and the confidence modifier for the candidate signal
        """
        if len(highs) < 2 and len(lows) < 2:
            logger.debug(f"BoS/CHoCH check skipped for {self.symbol}: {len(highs)} highs, "
                         f"{len(lows)} lows, trend {self._current_trend.value}")
            return StructureDetection(
                has_event=False,
                event=None,
                current_trend=self._current_trend,
                confidence_modifier=self.config.no_modification
            )

        event_time = timestamp or datetime.now()
        new_event = None

        if len(highs) >= 2:
            prev_high, current_high = highs[-2].price, highs[-1].price

            if self._current_trend == TrendBias.BEARISH and current_price > prev_high:
                new_event = self._make_event(StructureEventType.CHOCH, StructureDirection.BULLISH,
                                             current_price, prev_high, event_time)
                self._current_trend = TrendBias.BULLISH
            elif self._current_trend == TrendBias.BULLISH and current_price > current_high:
                new_event = self._make_event(StructureEventType.BOS, StructureDirection.BULLISH,
                                             current_price, current_high, event_time)
            else:
                logger.debug(f"Bullish break check {self.symbol}: price={current_price} "
                             f"trend={self._current_trend.value} prev_high={prev_high} "
                             f"current_high={current_high}")

        if new_event is None and len(lows) >= 2:
            prev_low, current_low = lows[-2].price, lows[-1].price

            if self._current_trend == TrendBias.BULLISH and current_price < prev_low:
                new_event = self._make_event(StructureEventType.CHOCH, StructureDirection.BEARISH,
                                             current_price, prev_low, event_time)
                self._current_trend = TrendBias.BEARISH
            elif self._current_trend == TrendBias.BEARISH and current_price < current_low:
                new_event = self._make_event(StructureEventType.BOS, StructureDirection.BEARISH,
                                             current_price, current_low, event_time)
            else:
                logger.debug(f"Bearish break check {self.symbol}: price={current_price} "
                             f"trend={self._current_trend.value} prev_low={prev_low} "
                             f"current_low={current_low}")

        if new_event is not None:
            self._last_event = new_event

        return StructureDetection(
            has_event=new_event is not None,
            event=new_event,
            current_trend=self._current_trend,
            confidence_modifier=self.confidence_modifier(self._last_event, signal_direction)
        )

    def _make_event(self, event_type: StructureEventType, direction: StructureDirection,
                    price: float, broken_level: float, timestamp: datetime) -> StructureEvent:
        event = StructureEvent(
            type=event_type,
            direction=direction,
            price=price,
            timestamp=timestamp,
            strength=event_strength(price, broken_level)
        )
        logger.info(f"{event_type.value} {direction.value} on {self.symbol or '<unnamed>'}: "
                    f"price {price} broke {broken_level} "
                    f"(strength {event.strength:.0%}, trend now {self._trend_after(event).value})")
        return event

    def _trend_after(self, event: StructureEvent) -> TrendBias:
        if event.type == StructureEventType.CHOCH:
            return TrendBias(event.direction.value)
        return self._current_trend

    def confidence_modifier(self, event: Optional[StructureEvent],
                            signal_direction: Optional[SignalDirection]) -> float:
        """Multiplier applied to a candidate signal's confidence"""
        if event is None or signal_direction is None:
            return self.config.no_modification

        aligned = (
            (signal_direction == SignalDirection.LONG and event.direction == StructureDirection.BULLISH) or
            (signal_direction == SignalDirection.SHORT and event.direction == StructureDirection.BEARISH)
        )
        against = (
            (signal_direction == SignalDirection.LONG and event.direction == StructureDirection.BEARISH) or
            (signal_direction == SignalDirection.SHORT and event.direction == StructureDirection.BULLISH)
        )

        if event.type == StructureEventType.CHOCH:
            if aligned:
                return self.config.choch_aligned_boost
            if against:
                return self.config.choch_against_penalty
        elif aligned:
            return self.config.bos_aligned_boost

        # BoS against the signal is continuation, not penalized
        return self.config.no_modification


def event_strength(price: float, broken_level: float) -> float:
    """Break distance in percent, capped at 1.0"""
    distance = abs(price - broken_level) / broken_level
    return min(distance * 100, MAX_EVENT_STRENGTH)

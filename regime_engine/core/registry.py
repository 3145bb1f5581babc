"""
Per-symbol ownership of market structure state
"""
import logging
from typing import Dict, List

from ..config.models import MarketStructureConfig
from ..market_structure import MarketStructureAnalyzer

logger = logging.getLogger(__name__)


class StructureRegistry:
    """
    Holds exactly one MarketStructureAnalyzer per symbol.

    Not synchronized: each symbol must be driven by a single caller in candle
    order. Different symbols share nothing and may run in parallel.
    """

    def __init__(self, config: MarketStructureConfig):
        self.config = config
        self.analyzers: Dict[str, MarketStructureAnalyzer] = {}

    def get(self, symbol: str) -> MarketStructureAnalyzer:
        """Analyzer for symbol, created on first use"""
        symbol = symbol.upper()
        analyzer = self.analyzers.get(symbol)
        if analyzer is None:
            analyzer = MarketStructureAnalyzer(self.config, symbol)
            self.analyzers[symbol] = analyzer
            logger.info(f"Created structure analyzer for {symbol}")
        return analyzer

    def reset(self, symbol: str) -> bool:
        """Reset a symbol's trend state; False if the symbol is unknown"""
        analyzer = self.analyzers.get(symbol.upper())
        if analyzer is None:
            return False
        analyzer.reset()
        return True

    def remove(self, symbol: str) -> bool:
        """Drop a symbol (end of its trading session)"""
        removed = self.analyzers.pop(symbol.upper(), None)
        if removed is not None:
            logger.info(f"Removed structure analyzer for {symbol.upper()}")
        return removed is not None

    def symbols(self) -> List[str]:
        return sorted(self.analyzers)

    def __contains__(self, symbol: str) -> bool:
        return symbol.upper() in self.analyzers

    def __len__(self) -> int:
        return len(self.analyzers)

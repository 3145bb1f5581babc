"""
Core orchestration for the regime engine
"""

from .engine import RegimeEngine, RegimeVerdict
from .registry import StructureRegistry

__all__ = ['RegimeEngine', 'RegimeVerdict', 'StructureRegistry']

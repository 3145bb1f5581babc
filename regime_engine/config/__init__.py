"""
Configuration package for the regime engine
"""

from .models import (
    EngineConfig, SwingConfig, MarketStructureConfig, TrendConfig,
    CorrelationThresholds, ReferenceAssetConfig
)
from .loader import ConfigError, ConfigLoader, parse_config, load_config, save_config

__all__ = [
    'EngineConfig', 'SwingConfig', 'MarketStructureConfig', 'TrendConfig',
    'CorrelationThresholds', 'ReferenceAssetConfig', 'ConfigError',
    'ConfigLoader', 'parse_config', 'load_config', 'save_config'
]

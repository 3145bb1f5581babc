"""
Configuration loader for YAML files
"""
import dataclasses
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..models import TradingMode
from .models import (
    CorrelationThresholds, EngineConfig, MarketStructureConfig,
    ReferenceAssetConfig, SwingConfig, TrendConfig
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/engine.yaml"


class ConfigError(ValueError):
    """Missing or invalid configuration"""

    def __init__(self, errors: List[str]):
        super().__init__(f"Configuration validation failed: {errors}")
        self.errors = errors


# Accepted YAML value types per annotated field type
FIELD_TYPES = {
    int: (int,),
    float: (int, float),
    bool: (bool,),
    str: (str,),
    TradingMode: (str,),
    CorrelationThresholds: (dict,),
}

# Top-level scalar keys: accepted types
TOP_LEVEL_KEYS = {
    'seed_trend_from_structure': (bool,),
    'log_level': (str,),
    'log_file': (str, type(None)),
}


def _type_error(path: str, value: Any, accepted: tuple) -> Optional[str]:
    """Error text when value is not one of the accepted types (bool never passes as a number)"""
    if isinstance(value, bool) and bool not in accepted:
        ok = False
    else:
        ok = isinstance(value, accepted)
    if ok:
        return None
    expected = ' or '.join('null' if t is type(None) else t.__name__ for t in accepted)
    return f"Invalid value: {path} = {value!r} (expected {expected})"


def _section(data: Dict[str, Any], name: str, model, errors: List[str]):
    """Build a dataclass section, recording every missing, unknown or mistyped key"""
    raw = data.get(name)
    if not isinstance(raw, dict):
        errors.append(f"Missing section: {name}")
        return None

    required = [
        f.name for f in dataclasses.fields(model)
        if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
    ]
    missing = [key for key in required if key not in raw]
    if missing:
        errors.extend(f"Missing key: {name}.{key}" for key in missing)
        return None

    unknown = set(raw) - {f.name for f in dataclasses.fields(model)}
    if unknown:
        errors.append(f"Unknown keys in {name}: {sorted(unknown)}")
        return None

    mistyped = []
    for f in dataclasses.fields(model):
        accepted = FIELD_TYPES.get(f.type)
        if accepted is None:
            continue
        error = _type_error(f"{name}.{f.name}", raw[f.name], accepted)
        if error:
            mistyped.append(error)
    if mistyped:
        errors.extend(mistyped)
        return None

    try:
        return model(**raw)
    except (TypeError, ValueError) as e:
        errors.append(f"Invalid section {name}: {e}")
        return None


def _weight_profiles(data: Dict[str, Any], errors: List[str]) -> Dict[TradingMode, Dict[str, float]]:
    weights: Dict[TradingMode, Dict[str, float]] = {}
    raw_weights = data.get('timeframe_weights')
    if not isinstance(raw_weights, dict):
        errors.append("Missing section: timeframe_weights")
        return weights

    for mode_name, profile in raw_weights.items():
        try:
            mode = TradingMode(mode_name)
        except ValueError:
            errors.append(f"Unknown trading mode in timeframe_weights: {mode_name}")
            continue

        if not isinstance(profile, dict):
            errors.append(f"Invalid profile: timeframe_weights.{mode_name} must map timeframe to weight, "
                          f"got {profile!r}")
            continue

        parsed = {}
        for timeframe, weight in profile.items():
            error = _type_error(f"timeframe_weights.{mode_name}.{timeframe}", weight, FIELD_TYPES[float])
            if error:
                errors.append(error)
            else:
                parsed[str(timeframe)] = float(weight)
        weights[mode] = parsed

    return weights


def parse_config(data: Dict[str, Any]) -> EngineConfig:
    """Build and validate an EngineConfig from a parsed YAML mapping"""
    if not data:
        raise ConfigError(["Empty configuration"])
    if not isinstance(data, dict):
        raise ConfigError([f"Configuration must be a mapping, got {type(data).__name__}"])

    errors: List[str] = []

    for key, accepted in TOP_LEVEL_KEYS.items():
        if key not in data:
            errors.append(f"Missing key: {key}")
            continue
        error = _type_error(key, data[key], accepted)
        if error:
            errors.append(error)

    swing = _section(data, 'swing', SwingConfig, errors)
    market_structure = _section(data, 'market_structure', MarketStructureConfig, errors)
    trend = _section(data, 'trend', TrendConfig, errors)
    if isinstance(data.get('reference_asset'), dict):
        thresholds = data['reference_asset'].get('correlation_thresholds')
        if isinstance(thresholds, dict):
            _section({'correlation_thresholds': thresholds}, 'correlation_thresholds',
                     CorrelationThresholds, errors)
    reference_asset = _section(data, 'reference_asset', ReferenceAssetConfig, errors)
    weights = _weight_profiles(data, errors)

    if errors:
        raise ConfigError(errors)

    config = EngineConfig(
        swing=swing,
        market_structure=market_structure,
        trend=trend,
        reference_asset=reference_asset,
        timeframe_weights=weights,
        seed_trend_from_structure=data['seed_trend_from_structure'],
        log_level=data['log_level'],
        log_file=data['log_file']
    )

    errors = config.validate()
    if errors:
        raise ConfigError(errors)

    return config


class ConfigLoader:
    """Loads and saves configuration from YAML files"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)

    def load(self) -> EngineConfig:
        """Load configuration from YAML file"""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)

        try:
            config = parse_config(data)
        except ConfigError as e:
            logger.error(f"Configuration errors in {self.config_path}: {e.errors}")
            raise

        logger.info(f"Loaded configuration from {self.config_path}")
        return config

    def save(self, config: EngineConfig) -> None:
        """Save configuration to YAML file"""
        errors = config.validate()
        if errors:
            raise ConfigError(errors)

        data = {
            'log_level': config.log_level,
            'log_file': config.log_file,
            'seed_trend_from_structure': config.seed_trend_from_structure,
            'swing': dataclasses.asdict(config.swing),
            'market_structure': dataclasses.asdict(config.market_structure),
            'trend': dict(dataclasses.asdict(config.trend), trading_mode=config.trend.trading_mode.value),
            'reference_asset': dataclasses.asdict(config.reference_asset),
            'timeframe_weights': {
                mode.value: dict(profile) for mode, profile in config.timeframe_weights.items()
            }
        }

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)

        logger.info(f"Configuration saved to {self.config_path}")


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> EngineConfig:
    """Convenience function to load configuration"""
    return ConfigLoader(config_path).load()


def save_config(config: EngineConfig, config_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Convenience function to save configuration"""
    ConfigLoader(config_path).save(config)

import pytest
import yaml

from conftest import CONFIG_PATH
from regime_engine.config import (
    ConfigError, ConfigLoader, CorrelationThresholds, load_config, parse_config, save_config
)
from regime_engine.models import TradingMode


def _write(tmp_path, data):
    path = tmp_path / "engine.yaml"
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return path


def test_shipped_config_loads():
    config = load_config(str(CONFIG_PATH))

    assert config.swing.lookback == 2
    assert config.market_structure.choch_aligned_boost == 1.3
    assert config.market_structure.choch_against_penalty == 0.5
    assert config.trend.trading_mode == TradingMode.DAY
    assert config.reference_asset.symbol == 'BTCUSDT'
    assert isinstance(config.reference_asset.correlation_thresholds, CorrelationThresholds)
    assert config.reference_asset.correlation_thresholds.moderate == 0.5
    assert config.timeframe_weights[TradingMode.SCALP]['15m'] == 0.4
    assert config.seed_trend_from_structure is True
    assert config.log_file is None


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        ConfigLoader("does/not/exist.yaml").load()


def test_empty_config_rejected():
    with pytest.raises(ConfigError):
        parse_config({})
    with pytest.raises(ConfigError):
        parse_config(None)


def test_missing_key_is_not_defaulted(raw_config):
    del raw_config['trend']['min_candles']
    del raw_config['market_structure']['equal_threshold']

    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "Missing key: trend.min_candles" in exc_info.value.errors
    assert "Missing key: market_structure.equal_threshold" in exc_info.value.errors


def test_missing_section(raw_config):
    del raw_config['reference_asset']
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "Missing section: reference_asset" in exc_info.value.errors


def test_missing_threshold_key(raw_config):
    del raw_config['reference_asset']['correlation_thresholds']['weak']
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "Missing key: correlation_thresholds.weak" in exc_info.value.errors


def test_unknown_key_rejected(raw_config):
    raw_config['swing']['left'] = 3
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "Unknown keys in swing: ['left']" in exc_info.value.errors


def test_unknown_trading_mode(raw_config):
    raw_config['timeframe_weights']['position'] = {'5m': 0.25, '15m': 0.25, '1h': 0.25, '4h': 0.25}
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "Unknown trading mode in timeframe_weights: position" in exc_info.value.errors

    raw_config['timeframe_weights'].pop('position')
    raw_config['trend']['trading_mode'] = 'position'
    with pytest.raises(ConfigError):
        parse_config(raw_config)


@pytest.mark.parametrize("section, key, value, fragment", [
    ('swing', 'lookback', 0, "swing.lookback"),
    ('market_structure', 'choch_against_penalty', 1.2, "choch_against_penalty"),
    ('trend', 'min_candles', 6, "trend.min_candles"),
    ('reference_asset', 'momentum_reduction_factor', 0.0, "momentum_reduction_factor"),
    ('reference_asset', 'correlation_period', 1, "correlation_period"),
])
def test_invalid_values(raw_config, section, key, value, fragment):
    raw_config[section][key] = value
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert any(fragment in error for error in exc_info.value.errors)


def test_threshold_order_validated(raw_config):
    raw_config['reference_asset']['correlation_thresholds'] = {'strict': 0.4, 'moderate': 0.5, 'weak': 0.3}
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "correlation_thresholds" in exc_info.value.errors[0]


def test_weights_must_sum_to_one(raw_config):
    raw_config['timeframe_weights']['day']['4h'] = 0.5
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert any("timeframe_weights.day must sum to 1.0" in error for error in exc_info.value.errors)


def test_every_mode_needs_a_profile(raw_config):
    del raw_config['timeframe_weights']['scalp']
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "timeframe_weights missing profile for scalp" in exc_info.value.errors


def test_load_from_custom_file(tmp_path, raw_config):
    raw_config['reference_asset']['symbol'] = 'ethusdt'
    raw_config['log_level'] = 'DEBUG'
    config = load_config(str(_write(tmp_path, raw_config)))

    assert config.reference_asset.symbol == 'ETHUSDT'
    assert config.log_level == 'DEBUG'


def test_save_then_load(tmp_path, config):
    path = tmp_path / "nested" / "engine.yaml"
    save_config(config, str(path))

    assert path.exists()
    assert load_config(str(path)) == config


def test_save_refuses_invalid_config(tmp_path, config):
    config.swing.lookback = 0
    with pytest.raises(ConfigError):
        save_config(config, str(tmp_path / "engine.yaml"))


@pytest.mark.parametrize("section, key, value", [
    ('swing', 'lookback', None),
    ('trend', 'recent_window', 'five'),
    ('trend', 'min_candles', 20.5),
    ('market_structure', 'equal_threshold', None),
    ('reference_asset', 'require_alignment', 'yes'),
    ('reference_asset', 'symbol', None),
    ('reference_asset', 'correlation_thresholds', None),
])
def test_null_or_mistyped_value_is_config_error(raw_config, section, key, value):
    raw_config[section][key] = value
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert any(error.startswith(f"Invalid value: {section}.{key} = ") for error in exc_info.value.errors)


def test_bool_is_not_a_number(raw_config):
    raw_config['swing']['lookback'] = True
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "Invalid value: swing.lookback = True (expected int)" in exc_info.value.errors


def test_int_accepted_for_float_field(raw_config):
    raw_config['market_structure']['no_modification'] = 1
    assert parse_config(raw_config).market_structure.no_modification == 1


@pytest.mark.parametrize("key", ['seed_trend_from_structure', 'log_level', 'log_file'])
def test_top_level_key_is_not_defaulted(raw_config, key):
    del raw_config[key]
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert f"Missing key: {key}" in exc_info.value.errors


def test_seed_flag_must_be_bool(raw_config):
    raw_config['seed_trend_from_structure'] = 'no'
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert "Invalid value: seed_trend_from_structure = 'no' (expected bool)" in exc_info.value.errors


def test_seed_flag_read_from_file(raw_config):
    raw_config['seed_trend_from_structure'] = False
    assert parse_config(raw_config).seed_trend_from_structure is False


def test_non_numeric_weight_reported_as_weight(raw_config):
    raw_config['timeframe_weights']['day']['5m'] = 'abc'
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    errors = exc_info.value.errors
    assert "Invalid value: timeframe_weights.day.5m = 'abc' (expected int or float)" in errors
    assert not any("Unknown trading mode" in error for error in errors)


def test_non_mapping_profile(raw_config):
    raw_config['timeframe_weights']['day'] = [0.2, 0.35, 0.4, 0.05]
    with pytest.raises(ConfigError) as exc_info:
        parse_config(raw_config)
    assert any(error.startswith("Invalid profile: timeframe_weights.day") for error in exc_info.value.errors)


def test_non_mapping_document():
    with pytest.raises(ConfigError) as exc_info:
        parse_config(['swing', 'trend'])
    assert exc_info.value.errors == ["Configuration must be a mapping, got list"]

import numpy as np
import pytest

from conftest import candles_from_closes, closes_from_returns
from regime_engine.correlation import (
    calculate_correlation, calculate_returns, classify_filter_strength,
    classify_strength, describe_correlation, pearson, volatility
)
from regime_engine.models import CorrelationStrength, FilterStrength


def _random_returns(n, seed=11):
    rng = np.random.default_rng(seed)
    return list(rng.normal(0, 0.01, n))


def test_self_correlation_is_one():
    candles = candles_from_closes(closes_from_returns(_random_returns(59)))
    result = calculate_correlation(candles, candles, 50)

    assert result.coefficient == pytest.approx(1.0)
    assert result.strength == CorrelationStrength.STRONG
    assert result.filter_strength == FilterStrength.STRICT
    assert result.sample_size == 50


def test_negated_series_correlation_is_minus_one():
    returns = _random_returns(59)
    reference = candles_from_closes(closes_from_returns(returns))
    traded = candles_from_closes(closes_from_returns([-r for r in returns]))

    result = calculate_correlation(reference, traded, 50)
    assert result.coefficient == pytest.approx(-1.0)
    assert result.strength == CorrelationStrength.STRONG


def test_identical_percentage_changes_at_different_prices():
    returns = _random_returns(59, seed=3)
    reference = candles_from_closes(closes_from_returns(returns, start=42000.0))
    traded = candles_from_closes(closes_from_returns(returns, start=2.5))

    result = calculate_correlation(reference, traded, 50)
    assert len(reference) == 60
    assert result.coefficient > 0.95
    assert result.filter_strength == FilterStrength.STRICT


def test_length_mismatch_and_short_input_return_none():
    candles = candles_from_closes(closes_from_returns(_random_returns(59)))
    assert calculate_correlation(candles, candles[:-1], 50) is None
    assert calculate_correlation(candles[:40], candles[:40], 50) is None


def test_window_must_be_at_least_two():
    candles = candles_from_closes([1.0, 2.0, 3.0])
    with pytest.raises(ValueError):
        calculate_correlation(candles, candles, 1)


def test_zero_variance_gives_zero_coefficient():
    flat = candles_from_closes([100.0] * 60)
    trending = candles_from_closes(closes_from_returns(_random_returns(59)))

    result = calculate_correlation(flat, trending, 50)
    assert result.coefficient == 0.0
    assert result.strength == CorrelationStrength.NONE
    assert result.filter_strength == FilterStrength.SKIP
    assert result.reference_volatility == 0.0


def test_pearson_guards():
    assert pearson(np.array([1.0, 2.0]), np.array([1.0])) == 0.0
    assert pearson(np.array([]), np.array([])) == 0.0


def test_returns_and_volatility():
    returns = calculate_returns(candles_from_closes([100.0, 110.0, 99.0]))
    assert returns == pytest.approx([0.1, -0.1])
    assert volatility(returns) == pytest.approx(10.0)
    assert volatility(np.array([])) == 0.0


@pytest.mark.parametrize("coefficient, strength, filter_strength", [
    (0.85, CorrelationStrength.STRONG, FilterStrength.STRICT),
    (-0.7, CorrelationStrength.STRONG, FilterStrength.STRICT),
    (0.45, CorrelationStrength.MODERATE, FilterStrength.MODERATE),
    (0.35, CorrelationStrength.WEAK, FilterStrength.WEAK),
    (0.25, CorrelationStrength.WEAK, FilterStrength.SKIP),
    (-0.1, CorrelationStrength.NONE, FilterStrength.SKIP),
])
def test_strength_and_filter_boundaries(coefficient, strength, filter_strength):
    assert classify_strength(coefficient) == strength
    assert classify_filter_strength(coefficient) == filter_strength


def test_describe_correlation():
    candles = candles_from_closes(closes_from_returns(_random_returns(59)))
    text = describe_correlation(calculate_correlation(candles, candles, 50))
    assert text.startswith("STRONG positive correlation (r=1.00)")
    assert text.endswith("Recommend STRICT reference filter")

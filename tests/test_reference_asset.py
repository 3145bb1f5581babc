import dataclasses

import pytest

from conftest import candles_from_closes, closes_from_returns, make_candle
from regime_engine.models import (
    CorrelationResult, CorrelationStrength, FilterStrength, ReferenceAssetAnalysis,
    ReferenceDirection, SignalDirection
)
from regime_engine.reference_asset import (
    ReferenceAssetAnalyzer, check_alignment, count_consecutive_moves, volume_ratio
)


def _breakout_candles():
    """30 flat bars, then +3% over the last 5 with volume tripling on the final bar"""
    candles = [make_candle(i, 100.0, 100.2, 99.8, 100.0, 100.0) for i in range(30)]
    closes = [100.6, 101.2, 101.8, 102.4, 103.0]
    prev = 100.0
    for j, close in enumerate(closes):
        volume = 300.0 if j == len(closes) - 1 else 100.0
        candles.append(make_candle(30 + j, prev, close + 0.1, prev - 0.1, close, volume))
        prev = close
    return candles


def _correlated(coefficient, filter_strength):
    return CorrelationResult(coefficient=coefficient, strength=CorrelationStrength.MODERATE,
                             filter_strength=filter_strength, sample_size=50,
                             reference_volatility=1.0, traded_volatility=2.0)


def _analysis(aligned, momentum, correlation=None):
    return ReferenceAssetAnalysis(
        direction=ReferenceDirection.UP, momentum=momentum, price_change=1.0,
        consecutive_moves=3, volume_ratio=1.0, is_aligned=aligned, reason='test',
        correlation=correlation
    )


@pytest.fixture
def analyzer(config):
    return ReferenceAssetAnalyzer(config.reference_asset)


def test_breakout_confirms_long(analyzer):
    analysis = analyzer.analyze(_breakout_candles(), SignalDirection.LONG)

    assert analysis.direction == ReferenceDirection.UP
    assert analysis.price_change == pytest.approx(3.0)
    assert analysis.consecutive_moves == 5
    assert analysis.volume_ratio == pytest.approx(2.5)
    assert analysis.momentum > 0.3
    assert analysis.is_aligned
    assert analysis.correlation is None
    assert analyzer.should_confirm(analysis)
    assert analysis.reason == ("BTCUSDT UP, 3.00%, STRONG momentum (100%), "
                               "5 consecutive, ALIGNED with LONG")


def test_breakout_blocks_short(analyzer):
    analysis = analyzer.analyze(_breakout_candles(), SignalDirection.SHORT)
    assert not analysis.is_aligned
    assert not analyzer.should_confirm(analysis)
    assert analysis.reason.endswith("NOT aligned with SHORT")


def test_insufficient_reference_data(analyzer, caplog):
    analysis = analyzer.analyze(_breakout_candles()[:9], SignalDirection.LONG)

    assert analysis.direction == ReferenceDirection.NEUTRAL
    assert analysis.momentum == 0.0
    assert analysis.volume_ratio == 1.0
    assert not analysis.is_aligned
    assert analysis.reason == "Insufficient BTCUSDT data"
    assert not analyzer.should_confirm(analysis)
    assert "Not enough BTCUSDT candles" in caplog.text


def test_sideways_reference_skips_filter(analyzer):
    reference = candles_from_closes(closes_from_returns([0.0005, -0.0005] * 30)[:60])
    traded = candles_from_closes(closes_from_returns([0.02, 0.025, 0.025, 0.02] * 15)[:60])

    analysis = analyzer.analyze(reference, SignalDirection.SHORT, traded)

    assert analysis.correlation is not None
    assert analysis.correlation.filter_strength in (FilterStrength.SKIP, FilterStrength.WEAK)
    assert analysis.direction == ReferenceDirection.NEUTRAL
    assert not analysis.is_aligned
    assert analyzer.should_confirm(analysis)


def test_correlation_disabled(config):
    analyzer = ReferenceAssetAnalyzer(dataclasses.replace(config.reference_asset, use_correlation=False))
    candles = _breakout_candles() * 2
    analysis = analyzer.analyze(candles, SignalDirection.LONG, candles)
    assert analysis.correlation is None


def test_correlation_needs_matching_history(analyzer, caplog):
    candles = _breakout_candles()
    analysis = analyzer.analyze(candles, SignalDirection.LONG, candles[:-1])
    assert analysis.correlation is None
    assert "Correlation unavailable for BTCUSDT" in caplog.text


def test_alignment_not_required(config):
    analyzer = ReferenceAssetAnalyzer(dataclasses.replace(config.reference_asset, require_alignment=False))
    assert analyzer.should_confirm(_analysis(aligned=False, momentum=0.0))


@pytest.mark.parametrize("coefficient, aligned, momentum, expected", [
    (0.2, False, 0.0, True),     # below weak: skip
    (0.4, False, 0.0, True),     # weak band: pass
    (-0.6, True, 0.25, True),    # moderate band: reduced momentum 0.21
    (0.6, True, 0.2, False),
    (0.6, False, 0.9, False),
    (0.8, True, 0.3, True),      # strict: fixed rule
    (0.8, True, 0.25, False),
])
def test_adaptive_gate(analyzer, coefficient, aligned, momentum, expected):
    analysis = _analysis(aligned, momentum, _correlated(coefficient, FilterStrength.MODERATE))
    assert analyzer.should_confirm(analysis) is expected


def test_fixed_gate_without_correlation(analyzer):
    assert analyzer.should_confirm(_analysis(aligned=True, momentum=0.3))
    assert not analyzer.should_confirm(_analysis(aligned=True, momentum=0.29))
    assert not analyzer.should_confirm(_analysis(aligned=False, momentum=0.9))


def test_direction_threshold(analyzer):
    assert analyzer.determine_direction(0.11) == ReferenceDirection.UP
    assert analyzer.determine_direction(-0.11) == ReferenceDirection.DOWN
    assert analyzer.determine_direction(0.1) == ReferenceDirection.NEUTRAL
    assert analyzer.determine_direction(-0.05) == ReferenceDirection.NEUTRAL


def test_momentum_is_clamped(analyzer):
    assert analyzer.calculate_momentum(0.0, 0, 0.0) == 0.0
    assert analyzer.calculate_momentum(10.0, 10, 5.0) == 1.0
    assert analyzer.calculate_momentum(0.5, 2, 1.5) == pytest.approx(0.25 + 0.2 + 0.1)


def test_consecutive_moves_treats_doji_as_down():
    candles = [
        make_candle(0, 10, 11, 9, 10.5),
        make_candle(1, 10.5, 11, 9, 10.2),
        make_candle(2, 10.2, 11, 9, 10.2),
    ]
    assert count_consecutive_moves(candles) == 2
    assert count_consecutive_moves(candles[:1]) == 1
    assert count_consecutive_moves([]) == 0


def test_volume_ratio():
    candles = [make_candle(i, 10, 11, 9, 10, v) for i, v in enumerate([100, 100, 400])]
    assert volume_ratio(candles) == pytest.approx(2.0)
    assert volume_ratio([make_candle(0, 10, 11, 9, 10, 0.0)]) == 1.0
    assert volume_ratio([]) == 1.0


def test_hold_and_neutral_never_align():
    assert not check_alignment(ReferenceDirection.UP, SignalDirection.HOLD)
    assert not check_alignment(ReferenceDirection.NEUTRAL, SignalDirection.LONG)
    assert check_alignment(ReferenceDirection.DOWN, SignalDirection.SHORT)
    assert not check_alignment(ReferenceDirection.DOWN, SignalDirection.LONG)


def test_to_dict(analyzer):
    data = analyzer.analyze(_breakout_candles(), SignalDirection.LONG).to_dict()
    assert data['direction'] == 'UP'
    assert data['is_aligned'] is True
    assert data['correlation'] is None

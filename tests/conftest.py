import copy
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import yaml

from regime_engine.config import parse_config
from regime_engine.models import Candle, SwingPoint, SwingPointType

CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "engine.yaml"
START = datetime(2024, 1, 1)


def make_candle(i, open, high, low, close, volume=100.0, step=timedelta(hours=1)):
    return Candle(timestamp=START + i * step, open=open, high=high, low=low, close=close, volume=volume)


def candles_from_closes(closes, volumes=None, spread=0.5):
    """Candles whose high/low sit `spread` around the close; open is the previous close clipped into range"""
    candles = []
    prev = closes[0]
    for i, close in enumerate(closes):
        high, low = close + spread, close - spread
        open_ = min(max(prev, low), high)
        volume = volumes[i] if volumes is not None else 100.0
        candles.append(make_candle(i, open_, high, low, close, volume))
        prev = close
    return candles


def zigzag_closes(n=40, drift=1.0, amplitude=2.0, period=8, base=100.0):
    """Triangle wave on a linear drift; swing highs at phase period/2, lows at phase 0"""
    half = period // 2
    closes = []
    for i in range(n):
        phase = i % period
        tri = phase if phase <= half else period - phase
        closes.append(base + drift * i + amplitude * tri)
    return closes


def closes_from_returns(returns, start=100.0):
    closes = [start]
    for r in returns:
        closes.append(closes[-1] * (1 + r))
    return closes


def swing(price, kind, idx=0):
    point_type = SwingPointType.HIGH if kind == 'H' else SwingPointType.LOW
    return SwingPoint(price=price, timestamp=START + timedelta(hours=idx), type=point_type, idx=idx)


@pytest.fixture
def raw_config():
    with open(CONFIG_PATH, 'r', encoding='utf-8') as f:
        return copy.deepcopy(yaml.safe_load(f))


@pytest.fixture
def config(raw_config):
    return parse_config(raw_config)


@pytest.fixture
def rising_candles():
    return candles_from_closes(zigzag_closes(drift=1.0))


@pytest.fixture
def falling_candles():
    return candles_from_closes(zigzag_closes(drift=-1.0))


@pytest.fixture
def flat_candles():
    return candles_from_closes([100.0] * 40)

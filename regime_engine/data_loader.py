"""
Data loading and candle conversion utilities
"""
import logging
from pathlib import Path
from typing import List, Sequence

import pandas as pd

from .models import Candle

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {'timestamp', 'open', 'high', 'low', 'close'}
PRICE_COLUMNS = ['open', 'high', 'low', 'close']


def _parse_timestamps(column: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(column):
        return pd.to_datetime(column, unit='ms', utc=True)
    return pd.to_datetime(column, utc=True, errors='coerce')


def load_csv(path: str) -> pd.DataFrame:
    """
    Load OHLCV CSV file and validate required columns

    Args:
        path: Path to CSV file

    Returns:
        Cleaned DataFrame sorted by timestamp

    Raises:
        ValueError: If required columns are missing or nothing valid remains
        FileNotFoundError: If file doesn't exist
    """
    if not Path(path).exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    df = pd.read_csv(path)
    df.columns = [c.lower() for c in df.columns]

    missing_columns = REQUIRED_COLUMNS - set(df.columns)
    if missing_columns:
        raise ValueError(f"CSV must contain columns: {sorted(REQUIRED_COLUMNS)}. Missing: {sorted(missing_columns)}")

    if 'volume' not in df.columns:
        df['volume'] = 0.0

    df['timestamp'] = _parse_timestamps(df['timestamp'])
    df = df.dropna(subset=['timestamp'])
    df = df.sort_values('timestamp').reset_index(drop=True)

    if df.empty:
        raise ValueError("DataFrame is empty after cleaning")

    for col in PRICE_COLUMNS:
        if (df[col] <= 0).any():
            logger.warning(f"Found non-positive values in {col} column of {path}")

    invalid_ohlc = (
        (df['high'] < df['low']) |
        (df['high'] < df['open']) |
        (df['high'] < df['close']) |
        (df['low'] > df['open']) |
        (df['low'] > df['close'])
    )

    if invalid_ohlc.any():
        logger.warning(f"Dropping {int(invalid_ohlc.sum())} rows with invalid OHLC data from {path}")
        df = df[~invalid_ohlc].reset_index(drop=True)

    logger.info(f"Loaded {len(df)} candles from {path}")
    return df


def candles_from_dataframe(df: pd.DataFrame) -> List[Candle]:
    """Convert an OHLCV DataFrame (timestamp column or index) to candles"""
    frame = df if 'timestamp' in df.columns else df.reset_index().rename(columns={df.index.name or 'index': 'timestamp'})
    return [
        Candle(
            timestamp=pd.Timestamp(row.timestamp).to_pydatetime(),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume)
        )
        for row in frame.itertuples(index=False)
    ]


def candles_to_dataframe(candles: Sequence[Candle]) -> pd.DataFrame:
    """Convert candle list to a DataFrame indexed by timestamp"""
    df = pd.DataFrame([{
        'timestamp': candle.timestamp,
        'open': float(candle.open),
        'high': float(candle.high),
        'low': float(candle.low),
        'close': float(candle.close),
        'volume': float(candle.volume)
    } for candle in candles])

    if df.empty:
        return pd.DataFrame(columns=['open', 'high', 'low', 'close', 'volume'])

    df['timestamp'] = pd.to_datetime(df['timestamp'])
    df.set_index('timestamp', inplace=True)
    return df

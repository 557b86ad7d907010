"""
Price Series Ingestion for the SMA Signal Analyzer

PIPELINE ARCHITECTURE
    The collector operates in three sequential stages:

    Stage 1 - READ
        Load the CSV file (header ``timestamp,price``) as raw strings so
        every field can be validated with its row number.

    Stage 2 - VALIDATE
        - Timestamps: ISO-8601 / RFC 3339, converted to UTC (naive values
          are taken as UTC)
        - Prices: numeric and finite
        - Ordering: strictly ascending timestamps

    Stage 3 - RESAMPLE (optional)
        Bucket raw observations into fixed N-hour candles aligned to the
        Unix epoch (4h buckets start at 00:00, 04:00, 08:00, ...), keeping
        the last observation of each bucket. The candle keeps the timestamp
        of that observation, not the bucket start.

Every failure raises a typed error from ``sma_analyzer.exceptions`` carrying
the 1-based data row number (header excluded) and the offending value.

Version: 1.0.0
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from .exceptions import (
    CsvParseError,
    InputFileNotFoundError,
    MalformedTimestampError,
    NonNumericPriceError,
)
from .indicators import SeriesWindow

# Module-level logger
logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

EXPECTED_HEADER = ('timestamp', 'price')

_PARSER_LINE = re.compile(r"line (\d+)")


# =============================================================================
# CSV LOADING
# =============================================================================

def _parser_error_row(error: Exception) -> Optional[int]:
    """Data row named in a pandas tokenizer message ("... in line 3, saw 3")."""
    match = _PARSER_LINE.search(str(error))
    if match is None:
        return None
    # File line 1 is the header
    return max(int(match.group(1)) - 1, 0)


def _reject_blank_rows(raw: pd.DataFrame) -> pd.DataFrame:
    """Drop trailing blank lines, reject blank lines between data rows."""
    blank = ((raw['timestamp'].str.strip() == '') & (raw['price'].str.strip() == '')).to_numpy()
    if not blank.any():
        return raw

    filled = np.flatnonzero(~blank)
    end = int(filled[-1]) + 1 if len(filled) else 0
    interior = blank[:end]
    if interior.any():
        raise CsvParseError(int(np.argmax(interior)) + 1, "blank row")
    return raw.iloc[:end]


def _read_raw(path: Path) -> pd.DataFrame:
    """Read the CSV as strings, translating pandas failures."""
    try:
        raw = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            skip_blank_lines=False,
        )
    except pd.errors.EmptyDataError:
        raise CsvParseError(0, "file is empty")
    except pd.errors.ParserError as e:
        raise CsvParseError(_parser_error_row(e), f"malformed CSV structure ({str(e).strip()})")
    except UnicodeDecodeError as e:
        raise CsvParseError(None, f"file is not valid text ({e})")

    header = tuple(str(c).strip() for c in raw.columns)
    if header != EXPECTED_HEADER:
        raise CsvParseError(
            0, f"expected header 'timestamp,price', got {','.join(header)!r}"
        )
    raw.columns = list(EXPECTED_HEADER)
    # Short and blank rows leave NaN even with keep_default_na=False
    return _reject_blank_rows(raw.fillna(''))


def _parse_timestamps(values: pd.Series) -> pd.DatetimeIndex:
    parsed = pd.to_datetime(values, utc=True, errors='coerce', format='ISO8601')
    bad = parsed.isna().to_numpy()
    if bad.any():
        idx = int(np.argmax(bad))
        raise MalformedTimestampError(row=idx + 1, value=values.iloc[idx])
    return pd.DatetimeIndex(parsed, name='timestamp')


def _parse_prices(values: pd.Series) -> np.ndarray:
    parsed = pd.to_numeric(values, errors='coerce').to_numpy(dtype=float)
    bad = ~np.isfinite(parsed)
    if bad.any():
        idx = int(np.argmax(bad))
        raise NonNumericPriceError(row=idx + 1, value=values.iloc[idx])
    return parsed


def _check_ascending(timestamps: pd.DatetimeIndex) -> None:
    if len(timestamps) < 2:
        return
    values = timestamps.asi8
    not_after = values[1:] <= values[:-1]
    if not_after.any():
        idx = int(np.argmax(not_after)) + 1
        raise CsvParseError(
            idx + 1,
            f"timestamp {timestamps[idx].isoformat()} is not after the previous row "
            f"({timestamps[idx - 1].isoformat()})"
        )


def load_price_csv(path: Union[str, Path]) -> pd.DataFrame:
    """
    Load and validate a ``timestamp,price`` CSV file.

    Args:
        path: Path to the CSV file

    Returns:
        DataFrame with a UTC DatetimeIndex named 'timestamp' and a float
        'price' column, strictly ascending

    Raises:
        InputFileNotFoundError: path does not exist or is not a file
        CsvParseError: bad header, malformed structure or ordering
        MalformedTimestampError: unparseable timestamp
        NonNumericPriceError: unparseable or non-finite price
    """
    path = Path(path)
    if not path.is_file():
        raise InputFileNotFoundError(path, exists=path.exists())

    raw = _read_raw(path)
    timestamps = _parse_timestamps(raw['timestamp'].str.strip())
    prices = _parse_prices(raw['price'].str.strip())
    _check_ascending(timestamps)

    logger.debug(f"Parsed {len(prices)} rows from {path}")
    return pd.DataFrame({'price': prices}, index=timestamps)


# =============================================================================
# RESAMPLING
# =============================================================================

def resample_to_close(df: pd.DataFrame, step: pd.Timedelta) -> pd.DataFrame:
    """
    Keep the last observation of each fixed-size, epoch-aligned bucket.

    Args:
        df: Frame from ``load_price_csv`` (DatetimeIndex + 'price')
        step: Bucket size, at least one second

    Returns:
        Frame in the same shape, one row per non-empty bucket, ordered by
        bucket; each row keeps its original observation timestamp
    """
    step = pd.Timedelta(step)
    if step < pd.Timedelta(seconds=1):
        raise ValueError(f"step must be at least one second, got {step}")
    if df.empty:
        return df.copy()

    frame = df.sort_index(kind='stable')
    buckets = frame.index.floor(step)
    last_rows = (
        frame.assign(_bucket=buckets)
        .groupby('_bucket', sort=True)
        .tail(1)
    )
    return last_rows[['price']]


def resample_to_n_hours(df: pd.DataFrame, hours: int) -> pd.DataFrame:
    """Convenience wrapper for 1h / 2h / 4h / ... candles."""
    if hours < 1:
        raise ValueError(f"hours must be >= 1, got {hours}")
    return resample_to_close(df, pd.Timedelta(hours=hours))


def resample_to_hourly(df: pd.DataFrame) -> pd.DataFrame:
    return resample_to_n_hours(df, 1)


# =============================================================================
# COLLECTOR
# =============================================================================

class DataCollector:
    """
    Turns an input file into the immutable SeriesWindow the engine consumes.

    Stages:
    1. READ + VALIDATE: ``load_price_csv``
    2. RESAMPLE: optional N-hour closing candles
    3. FREEZE: wrap the result in a read-only SeriesWindow
    """

    def __init__(self, resample_hours: int = 0):
        """
        Args:
            resample_hours: Candle size in hours; 0 analyses rows as given
        """
        if resample_hours < 0:
            raise ValueError(f"resample_hours must be >= 0, got {resample_hours}")
        self.resample_hours = resample_hours

    def load_frame(self, path: Union[str, Path]) -> pd.DataFrame:
        logger.info(f"Loading samples from {path}")
        raw = load_price_csv(path)

        if not self.resample_hours:
            logger.info(f"Loaded {len(raw)} samples")
            return raw

        candles = resample_to_n_hours(raw, self.resample_hours)
        logger.info(
            f"Loaded {len(raw)} raw points, {len(candles)} "
            f"{self.resample_hours}h candles after resampling"
        )
        return candles

    def collect(self, path: Union[str, Path]) -> SeriesWindow:
        return SeriesWindow.from_frame(self.load_frame(path))

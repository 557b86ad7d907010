"""
Price-Only Indicator Primitives for the SMA Signal Engine

INDICATOR ARCHITECTURE
    Every primitive in this module is a pure computation over an immutable
    price series. Nothing here performs I/O or keeps state between calls,
    so the same instances can be shared by any number of analyses.

    ROLLING AVERAGE
        Simple moving average over a fixed window, optionally shifted back
        by an offset. ``offset=0`` is the current window, ``offset=1`` the
        window ending one sample earlier. A vectorised pandas rolling mean
        is provided for whole-series computation.

    CROSSOVER DETECTOR
        Compares short/long averages at two consecutive points:
        - Golden Cross: prev_short <= prev_long and curr_short > curr_long
        - Death Cross:  prev_short >= prev_long and curr_short < curr_long
        Equality at the previous point counts as "not yet crossed".

    RANGE TRACKER
        Highest/lowest price over a trailing lookback window that excludes
        the most recent sample. The last price breaking strictly above the
        high (below the low) is a breakout.

    TREND BIAS CLASSIFIER
        Long bias:  SMA(long) rising, price > SMA(short) > SMA(long)
        Short bias: SMA(long) falling, price < SMA(short) < SMA(long)
        Otherwise neutral.

    PULLBACK DETECTOR
        Dip to SMA(short) then bounce (long bias) or rally to SMA(short)
        then rejection (short bias), using a proximity band around the
        average to decide what counts as a touch.

Version: 1.0.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .config import BREAKOUT_LOOKBACK, PULLBACK_LOOKBACK, PULLBACK_TOLERANCE
from .exceptions import InsufficientDataError

# Module-level logger
logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class CrossoverType(Enum):
    """Short/long average crossover classification."""
    GOLDEN_CROSS = "GOLDEN_CROSS"   # Short crosses above long
    DEATH_CROSS = "DEATH_CROSS"     # Short crosses below long
    NONE = "NONE"


class BreakoutType(Enum):
    """Last price relative to the trailing high/low range."""
    BREAKOUT_UP = "BREAKOUT_UP"
    BREAKOUT_DOWN = "BREAKOUT_DOWN"
    NONE = "NONE"


class TrendBias(Enum):
    """Directional lean derived from average slope and price position."""
    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


class PullbackType(Enum):
    """Pullback-to-average continuation pattern."""
    BOUNCE = "BOUNCE"           # Dip to SMA(short), close back above
    REJECTION = "REJECTION"     # Rally to SMA(short), close back below
    NONE = "NONE"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class Sample:
    """One observation of the input series."""
    timestamp: pd.Timestamp
    price: float


@dataclass(frozen=True, eq=False)
class SeriesWindow:
    """
    Immutable, time-ordered price series owned by a single analysis.

    Prices are copied into a read-only float array on construction so no
    caller can mutate the series after it has been handed to the engine.
    Ordering is a precondition established by the loader, not re-checked.
    """
    timestamps: Tuple[pd.Timestamp, ...]
    prices: np.ndarray

    def __post_init__(self):
        timestamps = tuple(self.timestamps)
        prices = np.array(self.prices, dtype=float)
        if prices.ndim != 1:
            raise ValueError("prices must be one-dimensional")
        if len(timestamps) != len(prices):
            raise ValueError(
                f"timestamps ({len(timestamps)}) and prices ({len(prices)}) differ in length"
            )
        prices.setflags(write=False)
        object.__setattr__(self, 'timestamps', timestamps)
        object.__setattr__(self, 'prices', prices)

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def last(self) -> Sample:
        """Most recent sample."""
        if not len(self):
            raise InsufficientDataError(required=1, found=0)
        return Sample(timestamp=self.timestamps[-1], price=float(self.prices[-1]))

    @classmethod
    def from_samples(cls, samples: Iterable[Sample]) -> 'SeriesWindow':
        samples = list(samples)
        return cls(
            timestamps=tuple(s.timestamp for s in samples),
            prices=np.array([s.price for s in samples], dtype=float),
        )

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> 'SeriesWindow':
        """
        Build a window from a DataFrame.

        Parameters
        ----------
        df : pd.DataFrame
            Either a 'price' column with a DatetimeIndex, or 'timestamp'
            and 'price' columns

        Returns
        -------
        SeriesWindow
        """
        if 'price' not in df.columns:
            raise ValueError("DataFrame must have a 'price' column")
        if 'timestamp' in df.columns:
            timestamps = pd.DatetimeIndex(df['timestamp'])
        else:
            timestamps = pd.DatetimeIndex(df.index)
        return cls(
            timestamps=tuple(timestamps),
            prices=df['price'].to_numpy(dtype=float),
        )

    def to_series(self) -> pd.Series:
        """Prices as a pandas Series indexed by timestamp."""
        return pd.Series(self.prices, index=pd.DatetimeIndex(self.timestamps), name='price')


@dataclass(frozen=True)
class SMAState:
    """Current and one-sample-earlier value of a simple moving average."""
    period: int
    current: float
    previous: float

    @property
    def rising(self) -> bool:
        return self.current > self.previous

    @property
    def falling(self) -> bool:
        return self.current < self.previous


PriceInput = Union[SeriesWindow, pd.Series, np.ndarray, Sequence[float]]


def as_price_array(series: PriceInput) -> np.ndarray:
    """Normalize any supported price container to a float array."""
    if isinstance(series, SeriesWindow):
        return series.prices
    if isinstance(series, pd.Series):
        return series.to_numpy(dtype=float)
    return np.asarray(series, dtype=float)


# =============================================================================
# ROLLING AVERAGE
# =============================================================================

def simple_moving_average(series: PriceInput, period: int, offset: int = 0) -> float:
    """
    Mean of ``period`` consecutive prices ending ``offset`` samples before
    the last one.

    Parameters
    ----------
    series : PriceInput
        Time-ordered prices
    period : int
        Window length (>= 1)
    offset : int
        How many samples to shift the window back from the end (>= 0)

    Returns
    -------
    float
        The simple moving average

    Raises
    ------
    InsufficientDataError
        If the series has fewer than ``period + offset`` samples
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")

    prices = as_price_array(series)
    n = len(prices)
    if n < period + offset:
        raise InsufficientDataError(required=period + offset, found=n)

    end = n - offset
    return float(prices[end - period:end].sum() / period)


def rolling_sma(series: PriceInput, period: int) -> pd.Series:
    """
    Simple moving average at every point of the series.

    Uses pandas' running-sum rolling mean, so each new sample costs O(1).
    The first ``period - 1`` values are NaN.
    """
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")

    if isinstance(series, SeriesWindow):
        prices = series.to_series()
    elif isinstance(series, pd.Series):
        prices = series.astype(float)
    else:
        prices = pd.Series(np.asarray(series, dtype=float))
    return prices.rolling(window=period, min_periods=period).mean()


def compute_sma_state(series: PriceInput, period: int) -> SMAState:
    """Current and previous SMA of one period; needs ``period + 1`` samples."""
    return SMAState(
        period=period,
        current=simple_moving_average(series, period, offset=0),
        previous=simple_moving_average(series, period, offset=1),
    )


# =============================================================================
# CROSSOVER DETECTION
# =============================================================================

class CrossoverDetector:
    """
    Classifies a short/long average crossover at the latest sample.

    The definition is strict and non-symmetric: a tie at the previous point
    is "not yet crossed", so a tie followed by a strict move is reported once
    and a tie at the current point is never a cross. Both conditions can
    never hold for the same inputs.
    """

    @staticmethod
    def detect(
        prev_short: float,
        prev_long: float,
        curr_short: float,
        curr_long: float
    ) -> CrossoverType:
        if prev_short <= prev_long and curr_short > curr_long:
            return CrossoverType.GOLDEN_CROSS
        if prev_short >= prev_long and curr_short < curr_long:
            return CrossoverType.DEATH_CROSS
        return CrossoverType.NONE

    @classmethod
    def detect_states(cls, short: SMAState, long: SMAState) -> CrossoverType:
        return cls.detect(short.previous, long.previous, short.current, long.current)


# =============================================================================
# RANGE TRACKING
# =============================================================================

class RangeTracker:
    """
    Trailing high/low over ``lookback`` samples, excluding the last sample.

    A breakout on its own is not actionable; the decision rules only act on
    it when it agrees with the trend bias.
    """

    def __init__(self, lookback: int = BREAKOUT_LOOKBACK):
        """
        Parameters
        ----------
        lookback : int
            Number of samples before the current one that form the range
        """
        if lookback < 1:
            raise ValueError(f"lookback must be >= 1, got {lookback}")
        self.lookback = lookback

    def trailing_range(self, series: PriceInput) -> Tuple[float, float]:
        """
        Returns
        -------
        Tuple[float, float]
            (trailing_high, trailing_low)
        """
        prices = as_price_array(series)
        n = len(prices)
        if n < self.lookback + 1:
            raise InsufficientDataError(required=self.lookback + 1, found=n)

        window = prices[n - 1 - self.lookback:n - 1]
        return float(window.max()), float(window.min())

    def classify(self, series: PriceInput) -> BreakoutType:
        prices = as_price_array(series)
        high, low = self.trailing_range(prices)
        last_price = prices[-1]
        logger.debug(
            f"Trailing {self.lookback}-sample range: high {high:.4f}, low {low:.4f}, "
            f"last {last_price:.4f}"
        )

        # Equality with the range edge is not a breakout
        if last_price > high:
            return BreakoutType.BREAKOUT_UP
        if last_price < low:
            return BreakoutType.BREAKOUT_DOWN
        return BreakoutType.NONE


# =============================================================================
# TREND BIAS
# =============================================================================

class TrendBiasClassifier:
    """Derives long/short/neutral bias; gates breakout and pullback rules."""

    @staticmethod
    def classify(last_price: float, sma_short: SMAState, sma_long: SMAState) -> TrendBias:
        if (sma_long.rising
                and last_price > sma_short.current
                and sma_short.current > sma_long.current):
            return TrendBias.LONG
        if (sma_long.falling
                and last_price < sma_short.current
                and sma_short.current < sma_long.current):
            return TrendBias.SHORT
        return TrendBias.NEUTRAL


# =============================================================================
# PULLBACK DETECTION
# =============================================================================

class PullbackDetector:
    """
    Pullback-to-average continuation patterns.

    The pattern spans ``lookback + 2`` prices: an anchor, ``lookback``
    touch candidates and the current price.

    Bounce (uptrend):
        - anchor above SMA(short)
        - lowest candidate below the anchor and at or under
          SMA(short) * (1 + tolerance)
        - current price above SMA(short) and above that candidate

    Rejection (downtrend) mirrors it with the highest candidate at or over
    SMA(short) * (1 - tolerance).

    With ``lookback=1`` this is the classic three-close pattern.
    """

    def __init__(
        self,
        tolerance: float = PULLBACK_TOLERANCE,
        lookback: int = PULLBACK_LOOKBACK
    ):
        """
        Parameters
        ----------
        tolerance : float
            Proximity band around SMA(short), as a fraction (0.001 = 0.1%)
        lookback : int
            Number of samples before the current one that may hold the touch
        """
        if lookback < 1:
            raise ValueError(f"lookback must be >= 1, got {lookback}")
        if tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {tolerance}")
        self.tolerance = tolerance
        self.lookback = lookback

    def _pattern(self, series: PriceInput) -> Optional[Tuple[float, np.ndarray, float]]:
        prices = as_price_array(series)
        if len(prices) < self.lookback + 2:
            return None
        window = prices[-(self.lookback + 2):]
        return float(window[0]), window[1:-1], float(window[-1])

    def is_bounce(self, series: PriceInput, sma_short: float) -> bool:
        pattern = self._pattern(series)
        if pattern is None:
            return False
        anchor, candidates, current = pattern

        touch = float(candidates.min())
        was_above = anchor > sma_short
        pulled_back_near = touch < anchor and touch <= sma_short * (1.0 + self.tolerance)
        bounced = current > sma_short and current > touch

        return was_above and pulled_back_near and bounced

    def is_rejection(self, series: PriceInput, sma_short: float) -> bool:
        pattern = self._pattern(series)
        if pattern is None:
            return False
        anchor, candidates, current = pattern

        touch = float(candidates.max())
        was_below = anchor < sma_short
        pulled_back_near = touch > anchor and touch >= sma_short * (1.0 - self.tolerance)
        rejected = current < sma_short and current < touch

        return was_below and pulled_back_near and rejected

    def detect(self, series: PriceInput, sma_short: float, bias: TrendBias) -> PullbackType:
        """Only the pattern matching the current bias is eligible."""
        if bias is TrendBias.LONG and self.is_bounce(series, sma_short):
            return PullbackType.BOUNCE
        if bias is TrendBias.SHORT and self.is_rejection(series, sma_short):
            return PullbackType.REJECTION
        return PullbackType.NONE

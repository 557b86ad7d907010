"""
Market Context: Volatility and Macro Regime

Informational section shown next to the suggestion. Nothing computed here
feeds back into the decision rules.

CONTEXT MEASURES
    ATR% (close-only approximation)
        TR_i = |close_i - close_{i-1}|
        ATR  = mean(TR over the last ``atr_period`` intervals)
        ATR% = ATR / last close

    Macro regime over the bigger picture
        1. Need max(long_window, slope_window) + 1 prices, otherwise the
           regime is reported as SIDEWAYS with insufficient history
        2. Long SMA over ``long_window``
        3. Trend: % move over ``slope_window``
        4. Range: (high - low) over ``slope_window`` / long SMA
        5. Small trend AND small range -> SIDEWAYS
        6. Price above long SMA with trend up   -> TRENDING_UP
           Price below long SMA with trend down -> TRENDING_DOWN
           Otherwise                            -> SIDEWAYS

    A least-squares fit over the slope window (scipy.stats.linregress)
    reports how linear the move was (R-squared).

Version: 1.0.0
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np
from scipy import stats

from .config import DEFAULT_REGIME_PARAMS, RegimeParameters
from .indicators import PriceInput, as_price_array, simple_moving_average

# Suppress numerical warnings for flat windows (zero variance fits)
warnings.filterwarnings('ignore', category=RuntimeWarning)

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class MarketRegime(Enum):
    """Market regime in the bigger picture."""
    TRENDING_UP = "TRENDING_UP"
    TRENDING_DOWN = "TRENDING_DOWN"
    SIDEWAYS = "SIDEWAYS"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class MarketContext:
    """Regime and volatility context for the latest sample."""
    regime: MarketRegime
    sufficient_history: bool
    trend_pct: Optional[float] = None       # % move over slope window
    range_pct: Optional[float] = None       # high/low range / long SMA
    slope_r2: Optional[float] = None        # linearity of the move
    long_sma: Optional[float] = None
    atr_pct: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'regime': self.regime.value,
            'sufficient_history': self.sufficient_history,
            'trend_pct': self.trend_pct,
            'range_pct': self.range_pct,
            'slope_r2': self.slope_r2,
            'long_sma': self.long_sma,
            'atr_pct': self.atr_pct,
        }


# =============================================================================
# VOLATILITY
# =============================================================================

def atr(series: PriceInput, period: int) -> Optional[float]:
    """
    Close-only ATR over the last ``period`` intervals.

    Returns None if there are fewer than ``period + 1`` prices.
    """
    prices = as_price_array(series)
    if period < 1 or len(prices) < period + 1:
        return None
    window = prices[-(period + 1):]
    return float(np.abs(np.diff(window)).mean())


def atr_percent(series: PriceInput, period: int) -> Optional[float]:
    """ATR as a fraction of the last price (0.02 = 2%)."""
    prices = as_price_array(series)
    value = atr(prices, period)
    if value is None or prices[-1] <= 0:
        return None
    return value / float(prices[-1])


# =============================================================================
# REGIME DETECTION
# =============================================================================

class RegimeDetector:
    """
    Classifies the macro regime behind the latest sample.

    Usage
    -----
    >>> context = RegimeDetector().detect(window)
    >>> print(context.regime.value)
    """

    def __init__(self, params: RegimeParameters = DEFAULT_REGIME_PARAMS):
        self.params = params

    @property
    def required_history(self) -> int:
        return max(self.params.long_window, self.params.slope_window) + 1

    def detect(self, series: PriceInput) -> MarketContext:
        """
        Parameters
        ----------
        series : PriceInput
            Time-ordered prices

        Returns
        -------
        MarketContext
            SIDEWAYS with ``sufficient_history=False`` when the series is
            too short or prices are not positive
        """
        p = self.params
        prices = as_price_array(series)
        n = len(prices)
        atr_pct = atr_percent(prices, p.atr_period) if n else None

        if n < self.required_history:
            # Not enough history, avoid overconfidence
            logger.info(
                f"Market context needs {self.required_history} samples, got {n}; "
                f"reporting SIDEWAYS"
            )
            return MarketContext(
                regime=MarketRegime.SIDEWAYS,
                sufficient_history=False,
                atr_pct=atr_pct,
            )

        long_sma = simple_moving_average(prices, p.long_window)
        window = prices[n - 1 - p.slope_window:]
        start_price, end_price = float(window[0]), float(window[-1])

        if long_sma <= 0 or start_price <= 0:
            return MarketContext(
                regime=MarketRegime.SIDEWAYS,
                sufficient_history=False,
                atr_pct=atr_pct,
            )

        trend = end_price / start_price - 1.0
        range_pct = float(window.max() - window.min()) / long_sma

        fit = stats.linregress(np.arange(len(window)), window)
        r2 = float(fit.rvalue ** 2) if np.isfinite(fit.rvalue) else 0.0

        if abs(trend) < p.min_trend_strength and range_pct < p.min_range:
            regime = MarketRegime.SIDEWAYS
        elif end_price > long_sma and trend > 0:
            regime = MarketRegime.TRENDING_UP
        elif end_price < long_sma and trend < 0:
            regime = MarketRegime.TRENDING_DOWN
        else:
            regime = MarketRegime.SIDEWAYS

        logger.debug(
            f"Regime {regime.value}: trend {trend:+.2%}, range {range_pct:.2%}, R2 {r2:.3f}"
        )

        return MarketContext(
            regime=regime,
            sufficient_history=True,
            trend_pct=trend,
            range_pct=range_pct,
            slope_r2=r2,
            long_sma=long_sma,
            atr_pct=atr_pct,
        )

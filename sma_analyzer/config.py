"""
Configuration Module for the SMA Signal Analyzer

This module centralizes the window lengths, tolerances and output settings
used throughout the analysis pipeline.

All "magic numbers" are defined here to ensure:
1. Single source of truth for all parameters
2. Easy modification without touching analysis code
3. Transparency in assumptions and thresholds

Parameters can be overridden per run from a JSON file:

    {
        "signal": {"breakout_lookback": 10, "pullback_tolerance": 0.002},
        "regime": {"long_window": 100}
    }
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Union

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

# Moving average windows
SMA_SHORT_PERIOD: int = 20
SMA_LONG_PERIOD: int = 50

# Breakout: trailing high/low window, last sample excluded
BREAKOUT_LOOKBACK: int = 20

# Pullback: proximity band around SMA(short) that counts as a touch (0.1%)
PULLBACK_TOLERANCE: float = 0.001
# Pullback: number of samples before the current one searched for the touch
PULLBACK_LOOKBACK: int = 3

# Market context regime and ATR filters, tuned for 1h candles
REGIME_LONG_WINDOW: int = 200        # ~8 days of 1h candles
REGIME_SLOPE_WINDOW: int = 48        # ~2 days of 1h candles
REGIME_MIN_TREND_STRENGTH: float = 0.02
REGIME_MIN_RANGE: float = 0.03
ATR_PERIOD: int = 14

# Report formatting
DECIMAL_PLACES: int = 4
LABEL_WIDTH: int = 25


def _is_real(value: Any) -> bool:
    """Finite int or float, excluding bool."""
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


# =============================================================================
# SIGNAL PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class SignalParameters:
    """Windows and tolerances for the signal engine."""

    short_period: int = SMA_SHORT_PERIOD
    long_period: int = SMA_LONG_PERIOD
    breakout_lookback: int = BREAKOUT_LOOKBACK
    pullback_tolerance: float = PULLBACK_TOLERANCE
    pullback_lookback: int = PULLBACK_LOOKBACK

    def __post_init__(self):
        """Reject parameter combinations the engine cannot honour."""
        for name in ('short_period', 'long_period', 'breakout_lookback', 'pullback_lookback'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.short_period >= self.long_period:
            raise ConfigurationError(
                f"short_period ({self.short_period}) must be below "
                f"long_period ({self.long_period})"
            )
        if not _is_real(self.pullback_tolerance) or not 0.0 <= self.pullback_tolerance < 1.0:
            raise ConfigurationError(
                f"pullback_tolerance must be in [0, 1), got {self.pullback_tolerance!r}"
            )

    @property
    def min_samples(self) -> int:
        """
        Minimum series length for a full analysis.

        The long average needs one extra sample for its previous value, the
        breakout window excludes the last sample, and the pullback pattern
        spans an anchor, the touch candidates and the current sample.
        """
        return max(
            self.long_period + 1,
            self.breakout_lookback + 1,
            self.pullback_lookback + 2,
        )


# =============================================================================
# MARKET CONTEXT PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class RegimeParameters:
    """Thresholds for the informational market-context section."""

    long_window: int = REGIME_LONG_WINDOW
    slope_window: int = REGIME_SLOPE_WINDOW
    min_trend_strength: float = REGIME_MIN_TREND_STRENGTH  # 2% move over slope window
    min_range: float = REGIME_MIN_RANGE                    # 3% high/low range
    atr_period: int = ATR_PERIOD

    def __post_init__(self):
        for name in ('long_window', 'slope_window', 'atr_period'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        for name in ('min_trend_strength', 'min_range'):
            value = getattr(self, name)
            if not _is_real(value) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative number, got {value!r}")


# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class OutputConfig:
    """Configuration for report formatting."""

    decimal_places: int = DECIMAL_PLACES
    label_width: int = LABEL_WIDTH

    def __post_init__(self):
        for name in ('decimal_places', 'label_width'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")


@dataclass(frozen=True)
class AnalyzerConfig:
    """Bundle of all parameter groups for one run."""

    signal: SignalParameters = field(default_factory=SignalParameters)
    regime: RegimeParameters = field(default_factory=RegimeParameters)
    output: OutputConfig = field(default_factory=OutputConfig)


# =============================================================================
# GLOBAL CONFIGURATION INSTANCES
# =============================================================================

DEFAULT_SIGNAL_PARAMS = SignalParameters()
DEFAULT_REGIME_PARAMS = RegimeParameters()
OUTPUT = OutputConfig()


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _apply_overrides(base: Any, section: str, overrides: Any) -> Any:
    """Return a copy of a frozen dataclass with JSON overrides applied."""
    if not isinstance(overrides, dict):
        raise ConfigurationError(f"Section '{section}' must be a JSON object")

    known = {f.name for f in fields(base)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigurationError(f"Unknown keys in section '{section}': {unknown}")

    try:
        return replace(base, **overrides)
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value in section '{section}': {e}")


def config_from_dict(data: Dict[str, Any]) -> AnalyzerConfig:
    """
    Build an AnalyzerConfig from a parsed JSON document.

    Args:
        data: Mapping with optional 'signal', 'regime' and 'output' sections

    Returns:
        AnalyzerConfig with defaults for every omitted value
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration root must be a JSON object")

    sections = {'signal', 'regime', 'output'}
    unknown = sorted(set(data) - sections)
    if unknown:
        raise ConfigurationError(f"Unknown configuration sections: {unknown}")

    config = AnalyzerConfig()
    return AnalyzerConfig(
        signal=_apply_overrides(config.signal, 'signal', data.get('signal', {})),
        regime=_apply_overrides(config.regime, 'regime', data.get('regime', {})),
        output=_apply_overrides(config.output, 'output', data.get('output', {})),
    )


def load_config(path: Union[str, Path]) -> AnalyzerConfig:
    """
    Load parameter overrides from a JSON file.

    Args:
        path: Path to the JSON configuration file

    Returns:
        AnalyzerConfig with the file's overrides applied
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}")

    config = config_from_dict(data)
    logger.info(f"Loaded configuration overrides from {path}")
    return config

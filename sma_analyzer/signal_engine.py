"""
SMA Signal Engine: Rule-Ordered Trading Suggestion

SIGNAL PIPELINE
    A single synchronous pass over an immutable SeriesWindow:

        SeriesWindow
          -> SMA(short), SMA(long) with previous values     (RollingAverage)
          -> trailing high/low breakout                     (RangeTracker)
          -> crossover, trend bias, pullback                (detectors)
          -> SignalSnapshot
          -> first matching DecisionRule
          -> AnalysisResult

DECISION TREE
    Rules are an explicit ordered tuple of (predicate, outcome) pairs,
    checked top to bottom; the first satisfied rule sets both the suggestion
    and the reason. The last rule always matches, so exactly one fires.

    1. Golden Cross + SMA50 rising + price above both    -> BUY
    2. Death Cross + SMA50 falling + price below both    -> SELL
    3. Breakout above trailing high under long bias      -> BUY
    4. Breakout below trailing low under short bias      -> SELL
    5. Pullback bounce (long bias)                       -> BUY
    6. Pullback rejection (short bias)                   -> SELL
    7. Long bias                                         -> HOLD / LONG BIAS
    8. Short bias                                        -> HOLD / SHORT BIAS
    9. Otherwise                                         -> HOLD

Version: 1.0.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import pandas as pd

from .config import DEFAULT_SIGNAL_PARAMS, SignalParameters
from .exceptions import InsufficientDataError
from .indicators import (
    BreakoutType,
    CrossoverDetector,
    CrossoverType,
    PullbackDetector,
    PullbackType,
    RangeTracker,
    SeriesWindow,
    SMAState,
    TrendBias,
    TrendBiasClassifier,
    compute_sma_state,
)

logger = logging.getLogger(__name__)

ENGINE_VERSION: str = "1.0.0"


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Suggestion(Enum):
    """Closed set of suggestions the engine can produce."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD_LONG_BIAS = "HOLD / LONG BIAS"
    HOLD_SHORT_BIAS = "HOLD / SHORT BIAS"
    HOLD = "HOLD"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class SignalSnapshot:
    """
    Every intermediate signal the decision rules look at.

    Built once per analysis; rules are pure predicates over it, which also
    lets each rule be exercised without constructing a price series.
    """
    last_price: float
    sma_short: SMAState
    sma_long: SMAState
    crossover: CrossoverType
    bias: TrendBias
    breakout: BreakoutType
    pullback: PullbackType

    @property
    def price_above_both(self) -> bool:
        return self.last_price > self.sma_short.current and self.last_price > self.sma_long.current

    @property
    def price_below_both(self) -> bool:
        return self.last_price < self.sma_short.current and self.last_price < self.sma_long.current


@dataclass(frozen=True)
class DecisionRule:
    """One row of the decision table."""
    name: str
    predicate: Callable[[SignalSnapshot], bool]
    suggestion: Suggestion
    reason: str


@dataclass(frozen=True)
class AnalysisResult:
    """
    Sole output of an analysis run.

    ``sma20``/``sma50`` hold the short and long averages (20 and 50 periods
    with default parameters).
    """
    last_timestamp: pd.Timestamp
    last_price: float
    sma20: float
    sma50: float
    prev_sma20: float
    prev_sma50: float
    suggestion: Suggestion
    reason: str
    rule_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'last_timestamp': self.last_timestamp.isoformat(),
            'last_price': self.last_price,
            'sma20': self.sma20,
            'sma50': self.sma50,
            'prev_sma20': self.prev_sma20,
            'prev_sma50': self.prev_sma50,
            'suggestion': self.suggestion.value,
            'reason': self.reason,
            'rule': self.rule_name,
        }


# =============================================================================
# DECISION TABLE
# =============================================================================

DECISION_RULES: Tuple[DecisionRule, ...] = (
    DecisionRule(
        name="golden_cross",
        predicate=lambda s: (
            s.crossover is CrossoverType.GOLDEN_CROSS
            and s.sma_long.rising
            and s.price_above_both
        ),
        suggestion=Suggestion.BUY,
        reason="Golden Cross + SMA50 rising + price above SMA20 & SMA50",
    ),
    DecisionRule(
        name="death_cross",
        predicate=lambda s: (
            s.crossover is CrossoverType.DEATH_CROSS
            and s.sma_long.falling
            and s.price_below_both
        ),
        suggestion=Suggestion.SELL,
        reason="Death Cross + SMA50 falling + price below SMA20 & SMA50",
    ),
    DecisionRule(
        name="breakout_up",
        predicate=lambda s: s.breakout is BreakoutType.BREAKOUT_UP and s.bias is TrendBias.LONG,
        suggestion=Suggestion.BUY,
        reason="Breakout above recent high in uptrend",
    ),
    DecisionRule(
        name="breakout_down",
        predicate=lambda s: s.breakout is BreakoutType.BREAKOUT_DOWN and s.bias is TrendBias.SHORT,
        suggestion=Suggestion.SELL,
        reason="Breakout below recent low in downtrend",
    ),
    DecisionRule(
        name="pullback_bounce",
        predicate=lambda s: s.pullback is PullbackType.BOUNCE,
        suggestion=Suggestion.BUY,
        reason="Pullback to SMA20 + bounce in uptrend",
    ),
    DecisionRule(
        name="pullback_rejection",
        predicate=lambda s: s.pullback is PullbackType.REJECTION,
        suggestion=Suggestion.SELL,
        reason="Pullback to SMA20 + rejection in downtrend",
    ),
    DecisionRule(
        name="long_bias",
        predicate=lambda s: s.bias is TrendBias.LONG,
        suggestion=Suggestion.HOLD_LONG_BIAS,
        reason="Uptrend: SMA50 rising, SMA20 above SMA50, price above SMA20",
    ),
    DecisionRule(
        name="short_bias",
        predicate=lambda s: s.bias is TrendBias.SHORT,
        suggestion=Suggestion.HOLD_SHORT_BIAS,
        reason="Downtrend: SMA50 falling, SMA20 below SMA50, price below SMA20",
    ),
    DecisionRule(
        name="no_edge",
        predicate=lambda s: True,
        suggestion=Suggestion.HOLD,
        reason="No clear crossover, breakout, or pullback signal",
    ),
)


def evaluate_rules(
    snapshot: SignalSnapshot,
    rules: Tuple[DecisionRule, ...] = DECISION_RULES
) -> DecisionRule:
    """Return the first rule whose predicate holds for the snapshot."""
    for rule in rules:
        if rule.predicate(snapshot):
            return rule
    raise RuntimeError("Decision table has no matching rule")


# =============================================================================
# MAIN SIGNAL ENGINE
# =============================================================================

class SignalEngine:
    """
    Orchestrates the indicator primitives into one suggestion.

    The engine only holds immutable parameters and stateless detectors, so
    a single instance can analyse any number of independent series.

    Usage
    -----
    >>> engine = SignalEngine()
    >>> result = engine.analyze(window)
    >>> print(result.suggestion.value, result.reason)
    """

    def __init__(self, params: SignalParameters = DEFAULT_SIGNAL_PARAMS):
        """
        Initialize the signal engine.

        Parameters
        ----------
        params : SignalParameters
            Average periods, breakout lookback and pullback band
        """
        self.params = params
        self.range_tracker = RangeTracker(lookback=params.breakout_lookback)
        self.pullback_detector = PullbackDetector(
            tolerance=params.pullback_tolerance,
            lookback=params.pullback_lookback,
        )

        logger.debug(
            f"SignalEngine initialized: SMA({params.short_period})/SMA({params.long_period}), "
            f"breakout lookback {params.breakout_lookback}, "
            f"pullback band {params.pullback_tolerance:.4%} over {params.pullback_lookback} samples"
        )

    def snapshot(self, window: SeriesWindow) -> SignalSnapshot:
        """
        Compute every signal for the latest sample of the window.

        Raises
        ------
        InsufficientDataError
            If the window is shorter than ``params.min_samples``
        """
        required = self.params.min_samples
        if len(window) < required:
            raise InsufficientDataError(required=required, found=len(window))

        last_price = float(window.prices[-1])
        sma_short = compute_sma_state(window, self.params.short_period)
        sma_long = compute_sma_state(window, self.params.long_period)

        crossover = CrossoverDetector.detect_states(sma_short, sma_long)
        bias = TrendBiasClassifier.classify(last_price, sma_short, sma_long)
        breakout = self.range_tracker.classify(window)
        pullback = self.pullback_detector.detect(window, sma_short.current, bias)

        return SignalSnapshot(
            last_price=last_price,
            sma_short=sma_short,
            sma_long=sma_long,
            crossover=crossover,
            bias=bias,
            breakout=breakout,
            pullback=pullback,
        )

    def analyze(self, window: SeriesWindow) -> AnalysisResult:
        """
        Reduce the window to one suggestion and reason.

        Parameters
        ----------
        window : SeriesWindow
            Time-ordered samples, at least ``params.min_samples`` long

        Returns
        -------
        AnalysisResult
        """
        logger.info(f"Analyzing {len(window)} samples")

        snap = self.snapshot(window)
        rule = evaluate_rules(snap)
        last = window.last

        logger.info(
            f"Signals: crossover={snap.crossover.value}, bias={snap.bias.value}, "
            f"breakout={snap.breakout.value}, pullback={snap.pullback.value} "
            f"-> {rule.suggestion.value} ({rule.name})"
        )

        return AnalysisResult(
            last_timestamp=last.timestamp,
            last_price=last.price,
            sma20=snap.sma_short.current,
            sma50=snap.sma_long.current,
            prev_sma20=snap.sma_short.previous,
            prev_sma50=snap.sma_long.previous,
            suggestion=rule.suggestion,
            reason=rule.reason,
            rule_name=rule.name,
        )


def analyze_series(
    window: SeriesWindow,
    params: Optional[SignalParameters] = None
) -> AnalysisResult:
    """Convenience wrapper: one engine, one window."""
    return SignalEngine(params or DEFAULT_SIGNAL_PARAMS).analyze(window)

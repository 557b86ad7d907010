import itertools

import numpy as np
import pytest

from sma_analyzer.exceptions import InsufficientDataError
from sma_analyzer.indicators import (
    BreakoutType,
    CrossoverDetector,
    CrossoverType,
    PullbackDetector,
    PullbackType,
    RangeTracker,
    SMAState,
    TrendBias,
    TrendBiasClassifier,
    compute_sma_state,
    rolling_sma,
    simple_moving_average,
)


# -----------------------------------------------------------------------------
# Rolling average
# -----------------------------------------------------------------------------

def test_sma_with_exact_window_length_uses_all_values():
    assert simple_moving_average([1.0, 2.0, 3.0, 4.0], 4) == pytest.approx(2.5)


def test_sma_uses_last_window_values():
    assert simple_moving_average([1.0, 2.0, 3.0, 4.0, 5.0], 3) == pytest.approx(4.0)


def test_sma_period_one_is_last_price():
    assert simple_moving_average([10.0, 20.0, 30.0], 1) == 30.0
    assert simple_moving_average([7.25], 1) == 7.25


def test_sma_offset_shifts_window_back():
    # offset 1, period 2 -> (3 + 4) / 2
    assert simple_moving_average([1.0, 2.0, 3.0, 4.0, 5.0], 2, offset=1) == pytest.approx(3.5)


def test_sma_insufficient_data_reports_required_and_found():
    with pytest.raises(InsufficientDataError) as exc:
        simple_moving_average([1.0, 2.0, 3.0], 3, offset=1)
    assert exc.value.required == 4
    assert exc.value.found == 3


def test_sma_on_empty_series_is_insufficient():
    with pytest.raises(InsufficientDataError):
        simple_moving_average([], 1)


def test_sma_rejects_invalid_period_and_offset():
    with pytest.raises(ValueError):
        simple_moving_average([1.0, 2.0], 0)
    with pytest.raises(ValueError):
        simple_moving_average([1.0, 2.0], 1, offset=-1)


def test_compute_sma_state_with_exactly_51_prices():
    prices = [float(x) for x in range(1, 52)]

    short = compute_sma_state(prices, 20)
    long = compute_sma_state(prices, 50)

    # Last 20: 32..51, previous 20: 31..50
    assert short.current == pytest.approx(41.5)
    assert short.previous == pytest.approx(40.5)
    # Last 50: 2..51, previous 50: 1..50
    assert long.current == pytest.approx(26.5)
    assert long.previous == pytest.approx(25.5)
    assert long.rising and not long.falling


def test_windowed_and_rolling_sma_match_naive_recomputation():
    rng = np.random.default_rng(7)
    prices = 100 + np.cumsum(rng.normal(0, 1, size=120))
    rolled = {period: rolling_sma(prices, period) for period in (1, 5, 20, 50)}

    for period in (1, 5, 20, 50):
        for offset in (0, 1, 7, 120 - period):
            end = len(prices) - offset
            naive = sum(prices[end - period:end]) / period
            windowed = simple_moving_average(prices, period, offset)
            assert windowed == pytest.approx(naive, rel=1e-9)
            assert rolled[period].iloc[end - 1] == pytest.approx(naive, rel=1e-9)


def test_rolling_sma_leading_values_are_nan(make_window):
    series = rolling_sma(make_window([1.0, 2.0, 3.0, 4.0]), 3)
    assert series.iloc[:2].isna().all()
    assert series.iloc[2] == pytest.approx(2.0)
    assert series.iloc[3] == pytest.approx(3.0)


def test_series_window_is_read_only(make_window):
    source = [1.0, 2.0, 3.0]
    window = make_window(source)
    source[0] = 99.0

    assert window.prices[0] == 1.0
    with pytest.raises(ValueError):
        window.prices[0] = 5.0
    assert window.last.price == 3.0


# -----------------------------------------------------------------------------
# Crossover
# -----------------------------------------------------------------------------

def test_golden_cross_from_tie():
    assert CrossoverDetector.detect(1.0, 1.0, 2.0, 1.0) is CrossoverType.GOLDEN_CROSS


def test_death_cross_from_tie():
    assert CrossoverDetector.detect(1.0, 1.0, 0.5, 1.0) is CrossoverType.DEATH_CROSS


def test_no_cross_when_already_above_or_tied_now():
    assert CrossoverDetector.detect(2.0, 1.0, 3.0, 1.0) is CrossoverType.NONE
    assert CrossoverDetector.detect(0.5, 1.0, 1.0, 1.0) is CrossoverType.NONE
    assert CrossoverDetector.detect(1.0, 1.0, 1.0, 1.0) is CrossoverType.NONE


def test_crossover_matches_definition_and_is_exclusive():
    values = (0.0, 1.0, 2.0)
    for ps, pl, cs, cl in itertools.product(values, repeat=4):
        result = CrossoverDetector.detect(ps, pl, cs, cl)
        golden = ps <= pl and cs > cl
        death = ps >= pl and cs < cl
        assert not (golden and death)
        assert (result is CrossoverType.GOLDEN_CROSS) == golden
        assert (result is CrossoverType.DEATH_CROSS) == death


def test_detect_states_uses_previous_and_current():
    short = SMAState(period=20, current=10.5, previous=9.9)
    long = SMAState(period=50, current=10.0, previous=10.0)
    assert CrossoverDetector.detect_states(short, long) is CrossoverType.GOLDEN_CROSS


# -----------------------------------------------------------------------------
# Range tracker
# -----------------------------------------------------------------------------

def test_breakout_requires_lookback_plus_one_samples():
    with pytest.raises(InsufficientDataError) as exc:
        RangeTracker(lookback=5).classify([100.0, 99.0])
    assert exc.value.required == 6


def test_last_price_equal_to_recent_low_is_not_breakdown():
    assert RangeTracker(lookback=3).classify([100.0, 98.0, 97.0, 97.0]) is BreakoutType.NONE


def test_last_price_below_recent_low_is_breakdown():
    assert RangeTracker(lookback=3).classify([100.0, 98.0, 97.0, 96.0]) is BreakoutType.BREAKOUT_DOWN


def test_breakdown_ignores_lows_outside_lookback():
    # Global minimum 50.0 sits outside the window [60, 55, 54]
    prices = [50.0, 60.0, 55.0, 54.0, 53.0]
    assert RangeTracker(lookback=3).classify(prices) is BreakoutType.BREAKOUT_DOWN


def test_range_excludes_last_sample():
    tracker = RangeTracker(lookback=2)
    prices = [10.0, 9.0, 8.0, 7.0, 6.0]
    assert tracker.trailing_range(prices) == (8.0, 7.0)
    assert tracker.classify(prices) is BreakoutType.BREAKOUT_DOWN


def test_breakout_above_recent_high():
    tracker = RangeTracker(lookback=3)
    assert tracker.classify([100.0, 101.0, 102.0, 103.0, 104.0]) is BreakoutType.BREAKOUT_UP
    assert tracker.classify([100.0, 101.0, 102.0, 103.0, 103.0]) is BreakoutType.NONE


# -----------------------------------------------------------------------------
# Trend bias
# -----------------------------------------------------------------------------

def test_long_bias():
    short = SMAState(20, current=105.0, previous=104.0)
    long = SMAState(50, current=100.0, previous=99.5)
    assert TrendBiasClassifier.classify(106.0, short, long) is TrendBias.LONG


def test_short_bias():
    short = SMAState(20, current=95.0, previous=96.0)
    long = SMAState(50, current=100.0, previous=100.5)
    assert TrendBiasClassifier.classify(94.0, short, long) is TrendBias.SHORT


def test_flat_long_average_is_neutral():
    short = SMAState(20, current=105.0, previous=104.0)
    long = SMAState(50, current=100.0, previous=100.0)
    assert TrendBiasClassifier.classify(106.0, short, long) is TrendBias.NEUTRAL


def test_price_below_short_average_is_neutral_in_uptrend():
    short = SMAState(20, current=105.0, previous=104.0)
    long = SMAState(50, current=100.0, previous=99.5)
    assert TrendBiasClassifier.classify(104.0, short, long) is TrendBias.NEUTRAL


# -----------------------------------------------------------------------------
# Pullback
# -----------------------------------------------------------------------------

def test_three_close_bounce():
    detector = PullbackDetector(tolerance=0.001, lookback=1)
    assert detector.is_bounce([101.0, 100.05, 100.5], sma_short=100.0)


def test_bounce_requires_touch_within_band():
    detector = PullbackDetector(tolerance=0.001, lookback=1)
    assert not detector.is_bounce([102.0, 101.0, 101.5], sma_short=100.0)


def test_bounce_requires_close_back_above_average():
    detector = PullbackDetector(tolerance=0.001, lookback=1)
    assert not detector.is_bounce([101.0, 99.5, 99.8], sma_short=100.0)


def test_three_close_rejection():
    detector = PullbackDetector(tolerance=0.001, lookback=1)
    assert detector.is_rejection([99.0, 99.95, 99.5], sma_short=100.0)


def test_bounce_touch_anywhere_in_lookback():
    detector = PullbackDetector(tolerance=0.001, lookback=3)
    prices = [101.0, 100.8, 99.9, 100.4, 100.6]
    assert detector.is_bounce(prices, sma_short=100.0)


def test_pullback_false_when_not_enough_prices():
    detector = PullbackDetector(tolerance=0.001, lookback=1)
    assert not detector.is_bounce([], 100.0)
    assert not detector.is_rejection([99.0, 100.0], 100.0)


def test_pullback_gated_by_bias():
    detector = PullbackDetector(tolerance=0.001, lookback=1)
    bounce = [101.0, 100.05, 100.5]
    assert detector.detect(bounce, 100.0, TrendBias.LONG) is PullbackType.BOUNCE
    assert detector.detect(bounce, 100.0, TrendBias.NEUTRAL) is PullbackType.NONE
    assert detector.detect(bounce, 100.0, TrendBias.SHORT) is PullbackType.NONE

    rejection = [99.0, 99.95, 99.5]
    assert detector.detect(rejection, 100.0, TrendBias.SHORT) is PullbackType.REJECTION
    assert detector.detect(rejection, 100.0, TrendBias.LONG) is PullbackType.NONE

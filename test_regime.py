import datetime as dt

import pytest

np = pytest.importorskip("numpy")

from stakecast.regime import (
    DEFAULT_REGIME_TABLES,
    REGIME_ORDER,
    ExecutionDataPoint,
    FeeRegime,
    RegimeDetection,
    RegimeTables,
    TransitionRow,
    classify_yield,
    detect_regime,
    resolve_regime,
)

VALIDATORS = 1000
START = dt.datetime(2024, 1, 1)


def _series(daily_totals):
    """Execution points with ``daily_totals[i]`` ETH paid on day ``i``."""

    return [
        ExecutionDataPoint(
            timestamp=START + dt.timedelta(days=i),
            priority_fees=total * 0.4,
            mev_rewards=total * 0.6,
        )
        for i, total in enumerate(daily_totals)
    ]


def test_empty_history_returns_calm_default():
    detection = detect_regime([], 1_000_000)
    assert detection == RegimeDetection(
        current_regime=FeeRegime.CALM,
        confidence=0.5,
        days_in_regime=0,
        transition_probability=DEFAULT_REGIME_TABLES.transitions[FeeRegime.CALM],
    )


@pytest.mark.parametrize("regime", REGIME_ORDER)
def test_transition_rows_sum_to_one(regime):
    assert DEFAULT_REGIME_TABLES.transitions[regime].total() == pytest.approx(1.0, abs=1e-9)


def test_classify_yield_thresholds():
    assert classify_yield(0.0) is FeeRegime.CALM
    assert classify_yield(0.000999) is FeeRegime.CALM
    assert classify_yield(0.001) is FeeRegime.ELEVATED
    assert classify_yield(0.00299) is FeeRegime.ELEVATED
    assert classify_yield(0.003) is FeeRegime.HOT


def test_detect_calm_regime():
    detection = detect_regime(_series([0.5] * 10), VALIDATORS)
    assert detection.current_regime is FeeRegime.CALM
    assert detection.confidence == pytest.approx(0.5)
    assert detection.days_in_regime == 10
    assert detection.average_yield == pytest.approx(0.0005)
    assert detection.transition_probability == TransitionRow(0.85, 0.12, 0.03)


def test_elevated_confidence_peaks_mid_band():
    detection = detect_regime(_series([2.0] * 7), VALIDATORS)
    assert detection.current_regime is FeeRegime.ELEVATED
    assert detection.confidence == pytest.approx(1.0)


def test_hot_confidence_is_clamped():
    detection = detect_regime(_series([3.5] * 7), VALIDATORS)
    assert detection.current_regime is FeeRegime.HOT
    assert detection.confidence == pytest.approx(0.3)


def test_days_in_regime_counts_from_most_recent():
    points = _series([0.5] * 5 + [2.0] * 8)
    detection = detect_regime(list(reversed(points)), VALIDATORS)
    assert detection.current_regime is FeeRegime.ELEVATED
    assert detection.days_in_regime == 8


def test_window_uses_most_recent_days_only():
    # Old hot days fall outside the seven-day window
    detection = detect_regime(_series([5.0] * 20 + [0.2] * 7), VALIDATORS)
    assert detection.current_regime is FeeRegime.CALM
    assert detection.days_in_regime == 7


def test_single_sample_volatility_proxy():
    detection = detect_regime(_series([2.0]), VALIDATORS)
    assert detection.yield_volatility == pytest.approx(0.3 * 0.002)


def test_sample_standard_deviation():
    totals = [1.0, 1.2, 1.4, 1.6, 1.8, 2.0, 2.2]
    detection = detect_regime(_series(totals), VALIDATORS)
    expected = np.std(np.array(totals) / VALIDATORS, ddof=1)
    assert detection.yield_volatility == pytest.approx(expected)


def test_zero_validators_is_treated_as_calm():
    detection = detect_regime(_series([5.0] * 3), 0)
    assert detection.current_regime is FeeRegime.CALM


def test_detect_regime_does_not_mutate_input():
    points = list(reversed(_series([0.5, 2.0, 3.5])))
    snapshot = list(points)
    detect_regime(points, VALIDATORS)
    assert points == snapshot


def test_tables_reject_rows_not_summing_to_one():
    transitions = dict(DEFAULT_REGIME_TABLES.transitions)
    transitions[FeeRegime.HOT] = TransitionRow(0.2, 0.4, 0.5)
    with pytest.raises(ValueError):
        RegimeTables(transitions=transitions)


def test_tables_reject_unordered_thresholds():
    with pytest.raises(ValueError):
        RegimeTables(calm_max=0.004, elevated_max=0.003)


def test_tables_are_read_only():
    with pytest.raises(TypeError):
        DEFAULT_REGIME_TABLES.transitions[FeeRegime.CALM] = TransitionRow(1.0, 0.0, 0.0)


def test_transition_matrix_is_row_stochastic():
    matrix = DEFAULT_REGIME_TABLES.transition_matrix()
    assert matrix.shape == (3, 3)
    assert list(matrix.sum(axis=1)) == pytest.approx([1.0, 1.0, 1.0])


def test_resolve_regime():
    assert resolve_regime("HOT") is FeeRegime.HOT
    assert resolve_regime(FeeRegime.CALM) is FeeRegime.CALM
    with pytest.raises(ValueError):
        resolve_regime("frothy")

import datetime as dt
import math

import pytest

pd = pytest.importorskip("pandas")

from stakecast.execution import forecast_execution_yield
from stakecast.forecast import (
    DEFAULT_SCENARIO,
    EmptyHistoryError,
    ScenarioParams,
    apply_apr_feedback,
    attribute_drivers,
    calculate_queue_pressure,
    forecast_to_frame,
    generate_forecast,
    get_max_daily_stake_change,
)
from stakecast.protocol import stake_ratio, theoretical_apr
from stakecast.regime import ExecutionDataPoint, FeeRegime
from stakecast.trend import HistoricalDataPoint, calculate_staking_trend

START = dt.datetime(2024, 1, 1)
VALIDATORS = 1_078_125
MAX_DAILY = 16 * 225 * 32


def _history(stakes, validators=VALIDATORS):
    return [
        HistoricalDataPoint(
            timestamp=START + dt.timedelta(days=i),
            total_staked=stake,
            active_validators=validators,
            entry_queue_length=2500,
            exit_queue_length=800,
        )
        for i, stake in enumerate(stakes)
    ]


def _flat_history():
    return _history([34_500_000.0] * 10)


def _assert_attribution(point):
    d = point.drivers
    assert d.consensus_pct + d.execution_pct == pytest.approx(100.0)
    assert d.priority_fees_pct + d.mev_pct == pytest.approx(d.execution_pct)
    assert d.total_apr == pytest.approx(d.consensus_apr + d.execution_apr)


def test_flat_history_six_month_forecast():
    points = generate_forecast(_flat_history(), 6)

    assert len(points) == 6
    dates = [p.date for p in points]
    assert all(a < b for a, b in zip(dates, dates[1:]))
    assert dates[0] == START + dt.timedelta(days=9 + 30)
    assert dates[-1] == START + dt.timedelta(days=9 + 180)
    for point in points:
        assert 2.0 < point.forecast_apr < 6.0
        assert point.total_staked == pytest.approx(34_500_000.0)
        assert point.stake_ratio == pytest.approx(stake_ratio(34_500_000.0))
        assert point.confidence.lower == point.confidence.upper == point.total_staked
        assert point.components.protocol_base == pytest.approx(theoretical_apr(34_500_000.0))
        assert point.components.queue_constraint == pytest.approx(MAX_DAILY)
        _assert_attribution(point)


def test_empty_history_is_a_precondition_failure():
    with pytest.raises(EmptyHistoryError):
        generate_forecast([], 6)
    assert issubclass(EmptyHistoryError, ValueError)


def test_unsorted_history_is_not_mutated():
    history = list(reversed(_history([34_000_000.0 + 1000.0 * i for i in range(10)])))
    snapshot = list(history)
    points = generate_forecast(history, 3)
    assert history == snapshot
    assert points[0].date == START + dt.timedelta(days=39)


@pytest.mark.parametrize("months,expected", [(0, 0), (1, 1), (3, 3), (12, 12)])
def test_monthly_snapshot_count(months, expected):
    assert len(generate_forecast(_flat_history(), months)) == expected


def test_growth_is_clamped_to_churn_capacity():
    history = _history([34_500_000.0 + 10_000_000.0 * i for i in range(5)])
    points = generate_forecast(history, 2)
    for point in points:
        assert point.components.trend_adjustment == pytest.approx(MAX_DAILY)
    assert points[-1].total_staked == pytest.approx(history[-1].total_staked + 60 * MAX_DAILY)


def test_contraction_is_clamped_to_churn_capacity():
    history = _history([80_000_000.0 - 10_000_000.0 * i for i in range(5)])
    points = generate_forecast(history, 1)
    assert points[0].components.trend_adjustment == pytest.approx(-MAX_DAILY)


def test_stake_confidence_band_grows_with_volatility():
    stakes = [34_500_000.0 + (100.0 if i % 2 else -100.0) for i in range(12)]
    history = _history(stakes)
    trend = calculate_staking_trend(history)
    points = generate_forecast(history, 2)

    first = points[0]
    spread = 1.96 * math.sqrt(30) * trend.volatility * 32
    assert first.confidence.upper - first.total_staked == pytest.approx(spread)
    assert first.total_staked - first.confidence.lower == pytest.approx(spread)
    assert points[1].confidence.upper - points[1].total_staked > spread


def test_mev_multiplier_scales_execution_apr():
    base = generate_forecast(_flat_history(), 1, ScenarioParams(fee_regime_bias="elevated"))
    doubled = generate_forecast(_flat_history(), 1, ScenarioParams(mev_multiplier=2.0, fee_regime_bias="elevated"))
    assert doubled[0].drivers.execution_apr == pytest.approx(2 * base[0].drivers.execution_apr)
    _assert_attribution(doubled[0])


def test_execution_yield_is_taken_from_pre_simulation_history():
    execution = [
        ExecutionDataPoint(timestamp=START + dt.timedelta(days=i), priority_fees=1000.0, mev_rewards=1500.0)
        for i in range(10)
    ]
    points = generate_forecast(_flat_history(), 1, DEFAULT_SCENARIO, execution)
    current_yield = 2500.0 / VALIDATORS
    expected = forecast_execution_yield(current_yield, FeeRegime.ELEVATED, 30, VALIDATORS)
    assert points[0].drivers.execution_apr == pytest.approx(expected.annualized_apr)
    assert points[0].drivers.fee_regime is expected.regime


def test_forced_regime_overrides_detection():
    execution = [
        ExecutionDataPoint(timestamp=START + dt.timedelta(days=i), priority_fees=1000.0, mev_rewards=1500.0)
        for i in range(10)
    ]
    forced = generate_forecast(_flat_history(), 1, ScenarioParams(fee_regime_bias=FeeRegime.HOT), execution)
    expected = forecast_execution_yield(2500.0 / VALIDATORS, FeeRegime.HOT, 30, VALIDATORS)
    assert forced[0].drivers.execution_apr == pytest.approx(expected.annualized_apr)


def test_attribution_guards_zero_denominators():
    drivers = attribute_drivers(0.0, 0.0, 0.0, 0.0, FeeRegime.CALM)
    assert drivers.consensus_pct == drivers.execution_pct == 0.0
    assert drivers.priority_fees_pct == drivers.mev_pct == 0.0

    consensus_only = attribute_drivers(3.0, 0.0, 0.0, 0.0, FeeRegime.CALM)
    assert consensus_only.consensus_pct == pytest.approx(100.0)
    assert consensus_only.mev_pct == 0.0


def test_attribution_two_level_shares():
    drivers = attribute_drivers(3.0, 1.0, 0.4, 0.6, FeeRegime.HOT)
    assert drivers.execution_pct == pytest.approx(25.0)
    assert drivers.priority_fees_pct == pytest.approx(10.0)
    assert drivers.mev_pct == pytest.approx(15.0)


def test_apply_apr_feedback():
    assert apply_apr_feedback(100.0, 5.0) == pytest.approx(110.0)
    assert apply_apr_feedback(100.0, 3.0) == pytest.approx(90.0)
    assert apply_apr_feedback(100.0, 3.0, target_apr=3.0) == pytest.approx(100.0)
    assert apply_apr_feedback(-100.0, 5.0) == pytest.approx(-110.0)


def test_queue_helpers():
    assert get_max_daily_stake_change(VALIDATORS) == pytest.approx(MAX_DAILY)
    assert get_max_daily_stake_change(0) == pytest.approx(4 * 225 * 32)
    assert calculate_queue_pressure(2500, 800, VALIDATORS) == 1700


@pytest.mark.parametrize(
    "kwargs",
    [
        {"net_flow_bias": 1.5},
        {"mev_multiplier": 0.0},
        {"queue_pressure": -1.0},
        {"fee_regime_bias": "frothy"},
    ],
)
def test_scenario_params_validation(kwargs):
    with pytest.raises(ValueError):
        ScenarioParams(**kwargs)


def test_scenario_regime_names_are_coerced():
    assert ScenarioParams(fee_regime_bias="hot").fee_regime_bias is FeeRegime.HOT
    assert DEFAULT_SCENARIO.resolve_regime(FeeRegime.ELEVATED) is FeeRegime.ELEVATED


def test_forecast_to_frame():
    points = generate_forecast(_flat_history(), 3)
    frame = forecast_to_frame(points)
    assert len(frame) == 3
    assert frame.index.name == "date"
    assert {"total_staked", "forecast_apr", "stake_lower", "mev_pct", "fee_regime"} <= set(frame.columns)
    assert frame["fee_regime"].iloc[0] == points[0].drivers.fee_regime.value
    assert forecast_to_frame([]).empty

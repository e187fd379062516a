"""Hybrid stake and APR forecast simulator.

The simulator steps one day at a time from the latest observed network state.
Each day the consensus APR follows from the protocol reward curve, the
execution APR from the regime-aware yield forecaster, and the stake change
from the historical trend adjusted by APR feedback and bounded by the churn
limit. Daily points are reduced to monthly snapshots.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import pandas as pd

from .config import DEFAULT_SETTINGS, ForecastSettings
from .constants import EPOCHS_PER_DAY, STAKE_UNIT
from .execution import current_execution_yield, forecast_execution_yield
from .protocol import churn_limit, stake_ratio, theoretical_apr
from .regime import (
    DEFAULT_REGIME_TABLES,
    ExecutionDataPoint,
    FeeRegime,
    RegimeTables,
    detect_regime,
    resolve_regime,
)
from .trend import HistoricalDataPoint, calculate_staking_trend

logger = logging.getLogger(__name__)

CURRENT_REGIME = "current"


class EmptyHistoryError(ValueError):
    """Raised when a forecast is requested without any historical data."""


@dataclass(frozen=True)
class ScenarioParams:
    """Assumptions layered on top of the historical trend.

    net_flow_bias:
        -1 (bearish) to +1 (bullish) bias on staking demand.
    mev_multiplier:
        Multiplier on the execution-layer APR.
    queue_pressure:
        Multiplier on the initial entry/exit queue lengths.
    fee_regime_bias:
        Fee regime to force, or ``"current"`` to use the detected one.
    """

    net_flow_bias: float = 0.0
    mev_multiplier: float = 1.0
    queue_pressure: float = 1.0
    fee_regime_bias: Union[FeeRegime, str] = CURRENT_REGIME

    def __post_init__(self) -> None:
        if not -1.0 <= self.net_flow_bias <= 1.0:
            raise ValueError("net_flow_bias must be within [-1, 1]")
        if self.mev_multiplier <= 0:
            raise ValueError("mev_multiplier must be positive")
        if self.queue_pressure <= 0:
            raise ValueError("queue_pressure must be positive")
        if self.fee_regime_bias != CURRENT_REGIME:
            object.__setattr__(self, "fee_regime_bias", resolve_regime(self.fee_regime_bias))

    def resolve_regime(self, detected: FeeRegime) -> FeeRegime:
        if self.fee_regime_bias == CURRENT_REGIME:
            return detected
        return self.fee_regime_bias  # type: ignore[return-value]


DEFAULT_SCENARIO = ScenarioParams()


@dataclass(frozen=True)
class ConfidenceBand:
    lower: float
    upper: float


@dataclass(frozen=True)
class ForecastComponents:
    """Protocol APR, applied daily stake growth and the churn bound used."""

    protocol_base: float
    trend_adjustment: float
    queue_constraint: float


@dataclass(frozen=True)
class DriverAttribution:
    """Decomposition of total APR into consensus and execution sources.

    All percentages are shares of ``total_apr``; the priority-fee and MEV
    shares add up to ``execution_pct``.
    """

    consensus_apr: float
    execution_apr: float
    total_apr: float
    consensus_pct: float
    execution_pct: float
    priority_fees_pct: float
    mev_pct: float
    fee_regime: FeeRegime


@dataclass(frozen=True)
class ForecastPoint:
    date: dt.datetime
    total_staked: float
    stake_ratio: float
    forecast_apr: float
    confidence: ConfidenceBand
    components: ForecastComponents
    drivers: DriverAttribution


def _pct(part: float, whole: float) -> float:
    if whole == 0:
        return 0.0
    return (part / whole) * 100.0


def attribute_drivers(
    consensus_apr: float,
    execution_apr: float,
    priority_fees_apr: float,
    mev_apr: float,
    fee_regime: FeeRegime,
) -> DriverAttribution:
    """Express each APR source as a percentage of total APR.

    ``priority_fees_apr`` and ``mev_apr`` must already carry the same scaling
    as ``execution_apr``. Zero denominators yield 0%.
    """

    total = consensus_apr + execution_apr
    execution_pct = _pct(execution_apr, total)
    if execution_apr == 0:
        priority_pct = mev_pct = 0.0
    else:
        priority_pct = (priority_fees_apr / execution_apr) * execution_pct
        mev_pct = (mev_apr / execution_apr) * execution_pct
    return DriverAttribution(
        consensus_apr=consensus_apr,
        execution_apr=execution_apr,
        total_apr=total,
        consensus_pct=_pct(consensus_apr, total),
        execution_pct=execution_pct,
        priority_fees_pct=priority_pct,
        mev_pct=mev_pct,
        fee_regime=fee_regime,
    )


def calculate_queue_pressure(entry_queue_length: float, exit_queue_length: float, active_validators: int) -> float:
    """Net validator demand: positive means entries outweigh exits."""

    return entry_queue_length - exit_queue_length


def get_max_daily_stake_change(active_validators: int) -> float:
    """Largest stake change (ETH) the churn limit allows in one day."""

    return churn_limit(active_validators) * EPOCHS_PER_DAY * STAKE_UNIT


def apply_apr_feedback(
    base_growth_rate: float,
    current_apr: float,
    target_apr: float = 4.0,
    feedback_per_point: float = 0.1,
) -> float:
    """Scale growth up when APR exceeds ``target_apr`` and down when below."""

    return base_growth_rate * (1.0 + (current_apr - target_apr) * feedback_per_point)


def generate_forecast(
    history: Sequence[HistoricalDataPoint],
    months_ahead: int,
    scenario: ScenarioParams = DEFAULT_SCENARIO,
    execution_history: Optional[Sequence[ExecutionDataPoint]] = None,
    *,
    settings: ForecastSettings = DEFAULT_SETTINGS,
    tables: RegimeTables = DEFAULT_REGIME_TABLES,
) -> List[ForecastPoint]:
    """Forecast stake, stake ratio and APR for ``months_ahead`` months.

    Parameters
    ----------
    history:
        Historical network observations in any order; must not be empty.
    months_ahead:
        Forecast horizon; the simulation runs ``months_ahead * 30`` days.
    scenario:
        Demand, MEV and fee-regime assumptions.
    execution_history:
        Daily execution rewards used to detect the fee regime and the current
        execution yield. ``None`` or empty falls back to a calm regime.

    Returns
    -------
    list of ForecastPoint
        One point per 30-day boundary plus the final simulated day.
    """

    if len(history) == 0:
        raise EmptyHistoryError("No historical data provided")

    latest = max(history, key=lambda point: point.timestamp)
    trend = calculate_staking_trend(history)

    queue_pressure = calculate_queue_pressure(
        latest.entry_queue_length * scenario.queue_pressure,
        latest.exit_queue_length * scenario.queue_pressure,
        latest.active_validators,
    )
    max_daily_change = get_max_daily_stake_change(latest.active_validators)

    exec_history = list(execution_history or [])
    detection = detect_regime(exec_history, latest.active_validators, tables, window=settings.regime_window)
    base_regime = scenario.resolve_regime(detection.current_regime)
    # Reused unchanged for every simulated day
    exec_yield = current_execution_yield(
        exec_history,
        latest.active_validators,
        window=settings.regime_window,
        fallback=settings.fallback_exec_yield,
    )

    logger.debug(
        "Forecast setup: growth %.2f ETH/day (vol %.2f, r2 %.3f), regime %s -> %s, queue pressure %.0f",
        trend.daily_growth_rate,
        trend.volatility,
        trend.r2,
        detection.current_regime.value,
        base_regime.value,
        queue_pressure,
    )

    stake = float(latest.total_staked)
    validators = int(latest.active_validators)
    entry_queue = float(latest.entry_queue_length)
    exit_queue = float(latest.exit_queue_length)

    days = max(0, int(months_ahead)) * settings.days_per_month
    base_growth = trend.daily_growth_rate + scenario.net_flow_bias * max_daily_change * settings.flow_bias_share
    daily: List[ForecastPoint] = []

    for day in range(1, days + 1):
        consensus_apr = theoretical_apr(stake)

        exec_forecast = forecast_execution_yield(exec_yield, base_regime, day, validators, tables)
        multiplier = scenario.mev_multiplier
        drivers = attribute_drivers(
            consensus_apr,
            exec_forecast.annualized_apr * multiplier,
            exec_forecast.components.priority_fees * multiplier,
            exec_forecast.components.mev_rewards * multiplier,
            exec_forecast.regime,
        )
        total_apr = drivers.total_apr

        growth = apply_apr_feedback(base_growth, total_apr, settings.target_apr, settings.feedback_per_point)
        if growth > 0:
            growth = min(growth, max_daily_change)
        else:
            growth = max(growth, -max_daily_change)

        stake = max(0.0, stake + growth)
        validators = math.floor(stake / STAKE_UNIT)

        daily_churn = churn_limit(validators) * EPOCHS_PER_DAY
        entry_queue = max(0.0, entry_queue - daily_churn)
        exit_queue = max(0.0, exit_queue - daily_churn)

        uncertainty = math.sqrt(day) * trend.volatility * STAKE_UNIT
        spread = settings.confidence_z * uncertainty

        daily.append(
            ForecastPoint(
                date=latest.timestamp + dt.timedelta(days=day),
                total_staked=stake,
                stake_ratio=stake_ratio(stake),
                forecast_apr=total_apr,
                confidence=ConfidenceBand(lower=max(0.0, stake - spread), upper=stake + spread),
                components=ForecastComponents(
                    protocol_base=consensus_apr,
                    trend_adjustment=growth,
                    queue_constraint=max_daily_change,
                ),
                drivers=drivers,
            )
        )

    step = settings.days_per_month
    monthly = [point for i, point in enumerate(daily) if (i + 1) % step == 0 or i == len(daily) - 1]

    if monthly:
        logger.info(
            "Forecast %d months: stake %.0f -> %.0f ETH, APR %.2f%% -> %.2f%% (%s regime)",
            months_ahead,
            latest.total_staked,
            monthly[-1].total_staked,
            monthly[0].forecast_apr,
            monthly[-1].forecast_apr,
            base_regime.value,
        )
    return monthly


def forecast_to_frame(points: Sequence[ForecastPoint]) -> pd.DataFrame:
    """Flatten forecast points into a date-indexed DataFrame."""

    rows = [
        {
            "date": pd.Timestamp(point.date),
            "total_staked": point.total_staked,
            "stake_ratio": point.stake_ratio,
            "forecast_apr": point.forecast_apr,
            "stake_lower": point.confidence.lower,
            "stake_upper": point.confidence.upper,
            "protocol_base": point.components.protocol_base,
            "trend_adjustment": point.components.trend_adjustment,
            "queue_constraint": point.components.queue_constraint,
            "consensus_apr": point.drivers.consensus_apr,
            "execution_apr": point.drivers.execution_apr,
            "consensus_pct": point.drivers.consensus_pct,
            "execution_pct": point.drivers.execution_pct,
            "priority_fees_pct": point.drivers.priority_fees_pct,
            "mev_pct": point.drivers.mev_pct,
            "fee_regime": point.drivers.fee_regime.value,
        }
        for point in points
    ]
    frame = pd.DataFrame(rows)
    if frame.empty:
        return frame
    return frame.set_index("date")


__all__ = [
    "CURRENT_REGIME",
    "ConfidenceBand",
    "DEFAULT_SCENARIO",
    "DriverAttribution",
    "EmptyHistoryError",
    "ForecastComponents",
    "ForecastPoint",
    "HistoricalDataPoint",
    "ScenarioParams",
    "apply_apr_feedback",
    "attribute_drivers",
    "calculate_queue_pressure",
    "forecast_to_frame",
    "generate_forecast",
    "get_max_daily_stake_change",
]

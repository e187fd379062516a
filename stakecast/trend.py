"""Historical staking trend estimation."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class HistoricalDataPoint:
    """Network staking totals observed at ``timestamp``."""

    timestamp: dt.datetime
    total_staked: float
    active_validators: int
    entry_queue_length: int
    exit_queue_length: int
    observed_apr: Optional[float] = None


@dataclass(frozen=True)
class StakingTrend:
    """Daily stake growth statistics derived from history."""

    daily_growth_rate: float
    volatility: float
    r2: float


ZERO_TREND = StakingTrend(daily_growth_rate=0.0, volatility=0.0, r2=0.0)


def _fit_r2(values: np.ndarray) -> float:
    index = np.arange(values.size, dtype=float)
    slope, intercept = np.polyfit(index, values, 1)
    predictions = slope * index + intercept
    if np.std(values) == 0 or np.std(predictions) == 0:
        return 0.0
    correlation = float(np.corrcoef(predictions, values)[0, 1])
    return correlation * correlation


def calculate_staking_trend(history: Sequence[HistoricalDataPoint]) -> StakingTrend:
    """Estimate daily growth, volatility and linear-fit quality of total stake.

    Per-observation stake changes are normalised by the day gap between
    consecutive points (pairs with a non-positive gap are skipped). R² is the
    squared correlation between an OLS line of stake vs. observation index and
    the observed stake; it is 0 when the correlation is undefined.
    """

    if len(history) < 2:
        return ZERO_TREND

    ordered = sorted(history, key=lambda point: point.timestamp)

    daily_changes = []
    for prev, cur in zip(ordered[:-1], ordered[1:]):
        days = (cur.timestamp - prev.timestamp).total_seconds() / _SECONDS_PER_DAY
        if days > 0:
            daily_changes.append((cur.total_staked - prev.total_staked) / days)

    if not daily_changes:
        return ZERO_TREND

    changes = np.asarray(daily_changes, dtype=float)
    growth = float(np.mean(changes))
    volatility = float(np.std(changes, ddof=1)) if changes.size > 1 else 0.0

    stakes = np.asarray([point.total_staked for point in ordered], dtype=float)
    return StakingTrend(daily_growth_rate=growth, volatility=volatility, r2=_fit_r2(stakes))


__all__ = ["HistoricalDataPoint", "StakingTrend", "ZERO_TREND", "calculate_staking_trend"]

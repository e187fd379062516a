"""Execution-layer (priority fee + MEV) yield projections."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from .constants import STAKE_UNIT
from .regime import (
    DEFAULT_REGIME_TABLES,
    REGIME_ORDER,
    ExecutionDataPoint,
    FeeRegime,
    RegimeTables,
)

PRIORITY_FEE_SHARE = 0.4
REVERTED_WEIGHT = 0.7
FALLBACK_EXECUTION_YIELD = 0.001


@dataclass(frozen=True)
class YieldBand:
    lower: float
    upper: float


@dataclass(frozen=True)
class ExecutionComponents:
    """Annualized APR (percent) split between priority fees and MEV."""

    priority_fees: float
    mev_rewards: float


@dataclass(frozen=True)
class ExecutionYieldForecast:
    """Projected execution yield ``days_ahead`` days from now."""

    daily_yield: float
    annualized_apr: float
    regime: FeeRegime
    confidence: YieldBand
    components: ExecutionComponents
    regime_probabilities: Tuple[float, float, float]


def annualize_daily_yield(daily_yield: float) -> float:
    """Convert a per-validator daily ETH yield into an APR percentage."""

    return (daily_yield * 365 / STAKE_UNIT) * 100.0


def propagate_regime_probabilities(
    start: FeeRegime,
    days: int,
    tables: RegimeTables = DEFAULT_REGIME_TABLES,
) -> np.ndarray:
    """Regime occupancy probabilities after ``days`` daily Markov steps."""

    matrix = tables.transition_matrix()
    probs = np.zeros(len(REGIME_ORDER), dtype=float)
    probs[REGIME_ORDER.index(start)] = 1.0
    for _ in range(days):
        probs = probs @ matrix
    return probs


def most_probable_regime(probabilities: np.ndarray) -> FeeRegime:
    # argmax keeps the first maximum, so ties resolve calm > elevated > hot
    return REGIME_ORDER[int(np.argmax(probabilities))]


def forecast_execution_yield(
    current_yield: float,
    current_regime: FeeRegime,
    days_ahead: int,
    active_validators: int,
    tables: RegimeTables = DEFAULT_REGIME_TABLES,
) -> ExecutionYieldForecast:
    """Project the per-validator execution yield ``days_ahead`` days forward.

    The current yield decays toward the regime's target with the regime
    half-life, then is blended 70/30 with the target of the regime that is most
    probable at the horizon. ``active_validators`` is accepted for parity with
    the consensus-side helpers; yields are already per validator.
    """

    if days_ahead < 0:
        raise ValueError("days_ahead must be non-negative")

    reversion = tables.mean_reversion[current_regime]
    decay = math.pow(0.5, days_ahead / reversion.half_life)
    reverted = current_yield * decay + reversion.target * (1.0 - decay)

    probabilities = propagate_regime_probabilities(current_regime, days_ahead, tables)
    expected = most_probable_regime(probabilities)

    regime_target = tables.mean_reversion[expected].target
    final_yield = reverted * REVERTED_WEIGHT + regime_target * (1.0 - REVERTED_WEIGHT)
    apr = annualize_daily_yield(final_yield)

    # Uncertainty widens with the square root of the horizon
    uncertainty = 1.0 + math.sqrt(days_ahead) * 0.1

    return ExecutionYieldForecast(
        daily_yield=final_yield,
        annualized_apr=apr,
        regime=expected,
        confidence=YieldBand(lower=apr / uncertainty, upper=apr * uncertainty),
        components=ExecutionComponents(
            priority_fees=annualize_daily_yield(final_yield * PRIORITY_FEE_SHARE),
            mev_rewards=annualize_daily_yield(final_yield * (1.0 - PRIORITY_FEE_SHARE)),
        ),
        regime_probabilities=tuple(float(p) for p in probabilities),
    )


def current_execution_yield(
    history: Sequence[ExecutionDataPoint],
    active_validators: int,
    *,
    window: int = 7,
    fallback: float = FALLBACK_EXECUTION_YIELD,
) -> float:
    """Average per-validator daily yield over the most recent ``window`` days."""

    if len(history) == 0:
        return fallback
    ordered = sorted(history, key=lambda point: point.timestamp, reverse=True)[:window]
    return float(np.mean([point.yield_per_validator(active_validators) for point in ordered]))


__all__ = [
    "ExecutionComponents",
    "ExecutionYieldForecast",
    "FALLBACK_EXECUTION_YIELD",
    "PRIORITY_FEE_SHARE",
    "YieldBand",
    "annualize_daily_yield",
    "current_execution_yield",
    "forecast_execution_yield",
    "most_probable_regime",
    "propagate_regime_probabilities",
]

"""Fee-regime classification for the execution-layer yield component.

Daily priority fees and MEV paid to validators cluster into three intensity
levels. A regime is assigned purely from the per-validator daily yield using a
fixed threshold table; transitions between regimes follow a daily Markov chain
and each regime has its own mean-reversion target and half-life.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class FeeRegime(str, Enum):
    """Execution fee regimes ordered by increasing yield intensity."""

    CALM = "calm"
    ELEVATED = "elevated"
    HOT = "hot"


REGIME_ORDER = (FeeRegime.CALM, FeeRegime.ELEVATED, FeeRegime.HOT)


@dataclass(frozen=True)
class ExecutionDataPoint:
    """Daily execution-layer rewards observed across the whole network (ETH)."""

    timestamp: dt.datetime
    priority_fees: float
    mev_rewards: float
    avg_gas_price: float = 0.0
    block_count: int = 7200

    def yield_per_validator(self, active_validators: int) -> float:
        if active_validators <= 0:
            return 0.0
        return (self.priority_fees + self.mev_rewards) / active_validators


@dataclass(frozen=True)
class TransitionRow:
    """Next-day regime probabilities from a single regime."""

    to_calm: float
    to_elevated: float
    to_hot: float

    def as_array(self) -> np.ndarray:
        return np.array([self.to_calm, self.to_elevated, self.to_hot], dtype=float)

    def total(self) -> float:
        return self.to_calm + self.to_elevated + self.to_hot


@dataclass(frozen=True)
class MeanReversion:
    """Long-run daily yield a regime decays toward, with its half-life in days."""

    target: float
    half_life: float


def _default_transitions() -> Mapping[FeeRegime, TransitionRow]:
    return {
        FeeRegime.CALM: TransitionRow(0.85, 0.12, 0.03),
        FeeRegime.ELEVATED: TransitionRow(0.25, 0.55, 0.20),
        FeeRegime.HOT: TransitionRow(0.10, 0.40, 0.50),
    }


def _default_mean_reversion() -> Mapping[FeeRegime, MeanReversion]:
    return {
        FeeRegime.CALM: MeanReversion(target=0.0005, half_life=7.0),
        FeeRegime.ELEVATED: MeanReversion(target=0.002, half_life=5.0),
        # Hot regimes revert faster
        FeeRegime.HOT: MeanReversion(target=0.004, half_life=3.0),
    }


@dataclass(frozen=True)
class RegimeTables:
    """Threshold, transition and mean-reversion tables for fee regimes.

    Yields are per-validator ETH per day: ``calm < calm_max <= elevated <
    elevated_max <= hot``.
    """

    calm_max: float = 0.001
    elevated_max: float = 0.003
    transitions: Mapping[FeeRegime, TransitionRow] = field(default_factory=_default_transitions)
    mean_reversion: Mapping[FeeRegime, MeanReversion] = field(default_factory=_default_mean_reversion)

    def __post_init__(self) -> None:
        if not 0 < self.calm_max < self.elevated_max:
            raise ValueError("Regime thresholds must satisfy 0 < calm_max < elevated_max")
        for regime in REGIME_ORDER:
            if regime not in self.transitions:
                raise ValueError(f"Missing transition row for regime '{regime.value}'")
            if regime not in self.mean_reversion:
                raise ValueError(f"Missing mean-reversion entry for regime '{regime.value}'")
            row = self.transitions[regime]
            if abs(row.total() - 1.0) > 1e-9:
                raise ValueError(f"Transition row for '{regime.value}' sums to {row.total():.6f}, expected 1")
            if self.mean_reversion[regime].half_life <= 0:
                raise ValueError(f"Half-life for '{regime.value}' must be positive")
        object.__setattr__(self, "transitions", MappingProxyType(dict(self.transitions)))
        object.__setattr__(self, "mean_reversion", MappingProxyType(dict(self.mean_reversion)))

    @property
    def elevated_min(self) -> float:
        return self.calm_max

    @property
    def hot_min(self) -> float:
        return self.elevated_max

    def classify(self, yield_per_validator: float) -> FeeRegime:
        if yield_per_validator < self.calm_max:
            return FeeRegime.CALM
        if yield_per_validator < self.elevated_max:
            return FeeRegime.ELEVATED
        return FeeRegime.HOT

    def transition_matrix(self) -> np.ndarray:
        """Row-stochastic 3x3 matrix in :data:`REGIME_ORDER`."""

        return np.vstack([self.transitions[regime].as_array() for regime in REGIME_ORDER])


DEFAULT_REGIME_TABLES = RegimeTables()


@dataclass(frozen=True)
class RegimeDetection:
    """Fee regime inferred from the most recent execution history."""

    current_regime: FeeRegime
    confidence: float
    days_in_regime: int
    transition_probability: TransitionRow
    average_yield: float = 0.0
    yield_volatility: float = 0.0


def classify_yield(yield_per_validator: float, tables: RegimeTables = DEFAULT_REGIME_TABLES) -> FeeRegime:
    """Classify a single per-validator daily yield."""

    return tables.classify(yield_per_validator)


def _regime_confidence(avg_yield: float, regime: FeeRegime, tables: RegimeTables) -> float:
    if regime is FeeRegime.CALM:
        confidence = 1.0 - avg_yield / tables.calm_max
    elif regime is FeeRegime.ELEVATED:
        width = tables.elevated_max - tables.elevated_min
        position = (avg_yield - tables.elevated_min) / width
        # Highest confidence in the middle of the band
        confidence = 1.0 - abs(position - 0.5) * 2.0
    else:
        width = tables.elevated_max - tables.elevated_min
        confidence = min(1.0, (avg_yield - tables.hot_min) / width)
    return max(0.3, min(1.0, confidence))


def detect_regime(
    history: Sequence[ExecutionDataPoint],
    active_validators: int,
    tables: RegimeTables = DEFAULT_REGIME_TABLES,
    *,
    window: int = 7,
) -> RegimeDetection:
    """Classify the current fee regime from execution history.

    Parameters
    ----------
    history:
        Daily execution observations in any order. The sequence is not mutated.
    active_validators:
        Validator count used to express network rewards per validator. A
        non-positive count treats every yield as zero.
    tables:
        Threshold and transition tables.
    window:
        Number of most recent days averaged for the classification.

    Returns
    -------
    RegimeDetection
        An empty history yields a calm detection with confidence 0.5.
    """

    if len(history) == 0:
        return RegimeDetection(
            current_regime=FeeRegime.CALM,
            confidence=0.5,
            days_in_regime=0,
            transition_probability=tables.transitions[FeeRegime.CALM],
        )

    ordered = sorted(history, key=lambda point: point.timestamp, reverse=True)
    yields = np.array([point.yield_per_validator(active_validators) for point in ordered], dtype=float)
    recent = yields[:window]

    avg_yield = float(np.mean(recent))
    if recent.size > 1:
        volatility = float(np.std(recent, ddof=1))
    else:
        volatility = avg_yield * 0.3

    regime = tables.classify(avg_yield)
    confidence = _regime_confidence(avg_yield, regime, tables)

    days_in_regime = 0
    for value in yields:
        if tables.classify(float(value)) is not regime:
            break
        days_in_regime += 1

    logger.debug(
        "Detected %s regime (avg %.6f ETH/day, confidence %.2f, %d days)",
        regime.value,
        avg_yield,
        confidence,
        days_in_regime,
    )

    return RegimeDetection(
        current_regime=regime,
        confidence=confidence,
        days_in_regime=days_in_regime,
        transition_probability=tables.transitions[regime],
        average_yield=avg_yield,
        yield_volatility=volatility,
    )


def resolve_regime(value: Optional[object]) -> FeeRegime:
    """Coerce a regime name or :class:`FeeRegime` into a :class:`FeeRegime`."""

    if isinstance(value, FeeRegime):
        return value
    try:
        return FeeRegime(str(value).lower())
    except ValueError:
        choices = ", ".join(regime.value for regime in REGIME_ORDER)
        raise ValueError(f"Unknown fee regime '{value}'; expected one of: {choices}") from None


__all__ = [
    "DEFAULT_REGIME_TABLES",
    "ExecutionDataPoint",
    "FeeRegime",
    "MeanReversion",
    "REGIME_ORDER",
    "RegimeDetection",
    "RegimeTables",
    "TransitionRow",
    "classify_yield",
    "detect_regime",
    "resolve_regime",
]

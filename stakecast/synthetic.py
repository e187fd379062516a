"""Seedable synthetic history for development and offline runs."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional, Tuple

import numpy as np

from .constants import STAKE_UNIT
from .protocol import theoretical_apr
from .regime import DEFAULT_REGIME_TABLES, REGIME_ORDER, ExecutionDataPoint, FeeRegime, RegimeTables
from .trend import HistoricalDataPoint

_GAS_BASE = {FeeRegime.CALM: 10.0, FeeRegime.ELEVATED: 25.0, FeeRegime.HOT: 50.0}


def _resolve_rng(rng: Optional[np.random.Generator], seed: Optional[int]) -> np.random.Generator:
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


def _day_range(days: int, end: Optional[dt.datetime]) -> List[dt.datetime]:
    if days < 0:
        raise ValueError("days must be non-negative")
    if end is None:
        end = dt.datetime.combine(dt.date.today(), dt.time())
    return [end - dt.timedelta(days=offset) for offset in range(days, -1, -1)]


def generate_synthetic_history(
    days: int,
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    end: Optional[dt.datetime] = None,
    start_stake: float = 34_500_000.0,
    validator_growth: Tuple[float, float] = (1000.0, 2000.0),
) -> List[HistoricalDataPoint]:
    """Daily staking history ending at ``end`` (``days + 1`` points, ascending).

    Stake grows by a uniform ``validator_growth`` number of validators per day;
    the observed APR is the theoretical APR with +/-5% noise.
    """

    generator = _resolve_rng(rng, seed)
    stake = float(start_stake)
    points = []
    for i, timestamp in enumerate(_day_range(days, end)):
        if i > 0:
            stake += generator.uniform(*validator_growth) * STAKE_UNIT
        apr = theoretical_apr(stake) * generator.uniform(0.95, 1.05)
        points.append(
            HistoricalDataPoint(
                timestamp=timestamp,
                total_staked=stake,
                active_validators=int(stake // STAKE_UNIT),
                entry_queue_length=int(5000 + generator.random() * 10000),
                exit_queue_length=int(500 + generator.random() * 2000),
                observed_apr=apr,
            )
        )
    return points


def generate_synthetic_execution_history(
    days: int,
    active_validators: int,
    *,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    end: Optional[dt.datetime] = None,
    tables: RegimeTables = DEFAULT_REGIME_TABLES,
) -> List[ExecutionDataPoint]:
    """Daily execution rewards following a Markov fee-regime path."""

    generator = _resolve_rng(rng, seed)
    matrix = tables.transition_matrix()
    regime = FeeRegime.CALM
    points = []
    for timestamp in _day_range(days, end):
        row = matrix[REGIME_ORDER.index(regime)]
        regime = REGIME_ORDER[int(generator.choice(len(REGIME_ORDER), p=row))]

        base = tables.mean_reversion[regime].target * active_validators
        noise = (generator.random() - 0.5) * base * 0.4
        total = max(0.0, base + noise)
        fee_ratio = 0.35 + generator.random() * 0.1

        points.append(
            ExecutionDataPoint(
                timestamp=timestamp,
                priority_fees=total * fee_ratio,
                mev_rewards=total * (1.0 - fee_ratio),
                avg_gas_price=_GAS_BASE[regime] + generator.random() * 10.0,
                block_count=7200,
            )
        )
    return points


__all__ = ["generate_synthetic_execution_history", "generate_synthetic_history"]

"""Closed-form protocol reward and validator-queue mechanics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from .constants import (
    BASE_REWARD_FACTOR,
    BASE_REWARDS_PER_EPOCH,
    CHURN_LIMIT_QUOTIENT,
    EPOCHS_PER_DAY,
    EPOCHS_PER_YEAR,
    GWEI_PER_ETH,
    MIN_PER_EPOCH_CHURN_LIMIT,
    SECONDS_PER_DAY,
    SECONDS_PER_EPOCH,
    SLOTS_PER_EPOCH,
    STAKE_UNIT,
    TOTAL_SUPPLY,
)


@dataclass(frozen=True)
class ProtocolState:
    """Snapshot of the staking network at one instant."""

    total_staked: float
    active_validators: int
    entry_queue_length: int
    exit_queue_length: int
    network_participation: float = 0.995


@dataclass(frozen=True)
class ProtocolMetrics:
    """Metrics derived from a :class:`ProtocolState`."""

    stake_ratio: float
    theoretical_apr: float
    realistic_apr: float
    churn_limit: int
    entry_queue_days: float
    exit_queue_days: float
    validators_per_day: float


@dataclass(frozen=True)
class EpochBalance:
    """Aggregate validator balance observed at the end of an epoch."""

    epoch: int
    validators_count: int
    total_validator_balance: float


def base_reward_per_epoch(effective_balance: float, total_effective_balance: float) -> float:
    """Base reward (ETH) earned by ``effective_balance`` in one epoch.

    ``effective_balance * BASE_REWARD_FACTOR / floor(sqrt(total_effective_balance))``
    evaluated in Gwei, matching the consensus-layer integer square root.
    """

    root = math.floor(math.sqrt(total_effective_balance * GWEI_PER_ETH))
    if root <= 0:
        raise ValueError("total_effective_balance must be positive")
    reward_gwei = (effective_balance * GWEI_PER_ETH * BASE_REWARD_FACTOR) / root
    return reward_gwei / GWEI_PER_ETH


def theoretical_apr(total_staked: float) -> float:
    """Consensus APR (percent) of a full validator under perfect participation."""

    if total_staked <= 0:
        return 0.0
    per_epoch = base_reward_per_epoch(STAKE_UNIT, total_staked) * BASE_REWARDS_PER_EPOCH
    annual = per_epoch * EPOCHS_PER_YEAR
    return (annual / STAKE_UNIT) * 100.0


def realistic_apr(
    total_staked: float,
    participation: float = 0.995,
    boost_adoption: float = 0.90,
    avg_reward_per_block: float = 0.05,
) -> float:
    """Theoretical APR scaled by participation plus expected proposal rewards."""

    adjusted = theoretical_apr(total_staked) * participation
    validators = math.floor(total_staked / STAKE_UNIT) if total_staked > 0 else 0
    if validators <= 0:
        return adjusted
    slots_per_year = EPOCHS_PER_YEAR * SLOTS_PER_EPOCH
    blocks_per_validator = slots_per_year / validators
    proposal_apr = (blocks_per_validator * avg_reward_per_block * boost_adoption / STAKE_UNIT) * 100.0
    return adjusted + proposal_apr


def churn_limit(active_validators: int) -> int:
    """Validators allowed to enter or exit per epoch."""

    return max(MIN_PER_EPOCH_CHURN_LIMIT, math.floor(active_validators / CHURN_LIMIT_QUOTIENT))


def activation_wait(queue_length: int, active_validators: int) -> int:
    """Epochs needed to drain the activation queue."""

    return math.ceil(queue_length / churn_limit(active_validators))


def exit_wait(queue_length: int, active_validators: int) -> int:
    """Epochs needed to drain the exit queue."""

    return math.ceil(queue_length / churn_limit(active_validators))


def epochs_to_days(epochs: float) -> float:
    return (epochs * SECONDS_PER_EPOCH) / SECONDS_PER_DAY


def stake_ratio(total_staked: float) -> float:
    """Percentage of total supply that is staked."""

    return (total_staked / TOTAL_SUPPLY) * 100.0


def equilibrium_stake_for_apr(target_apr: float) -> float:
    """Total stake at which :func:`theoretical_apr` equals ``target_apr``.

    Inverting ``APR = F * R * E * 100 / sqrt(S * 1e9)`` gives
    ``S = (F * R * E * 100 / APR)^2 / 1e9`` (ignoring the floor of the root).
    """

    if target_apr <= 0:
        return float(TOTAL_SUPPLY)
    numerator = BASE_REWARD_FACTOR * BASE_REWARDS_PER_EPOCH * EPOCHS_PER_YEAR * 100.0
    sqrt_total_gwei = numerator / target_apr
    return (sqrt_total_gwei * sqrt_total_gwei) / GWEI_PER_ETH


def derive_metrics(state: ProtocolState) -> ProtocolMetrics:
    """Compute every derived metric for ``state``."""

    limit = churn_limit(state.active_validators)
    return ProtocolMetrics(
        stake_ratio=stake_ratio(state.total_staked),
        theoretical_apr=theoretical_apr(state.total_staked),
        realistic_apr=realistic_apr(state.total_staked, state.network_participation),
        churn_limit=limit,
        entry_queue_days=epochs_to_days(activation_wait(state.entry_queue_length, state.active_validators)),
        exit_queue_days=epochs_to_days(exit_wait(state.exit_queue_length, state.active_validators)),
        validators_per_day=limit * EPOCHS_PER_DAY,
    )


def estimate_apr_from_epochs(epochs: Sequence[EpochBalance], periods_per_year: float = 82125) -> float:
    """Annualize the average per-validator balance change across epochs."""

    if len(epochs) < 2:
        return 0.0
    rewards = []
    for prev, cur in zip(epochs[:-1], epochs[1:]):
        if cur.validators_count <= 0:
            continue
        rewards.append((cur.total_validator_balance - prev.total_validator_balance) / cur.validators_count)
    if not rewards:
        return 0.0
    avg_reward = sum(rewards) / len(rewards)
    return (avg_reward * periods_per_year / STAKE_UNIT) * 100.0


__all__ = [
    "EpochBalance",
    "ProtocolMetrics",
    "ProtocolState",
    "activation_wait",
    "base_reward_per_epoch",
    "churn_limit",
    "derive_metrics",
    "epochs_to_days",
    "equilibrium_stake_for_apr",
    "estimate_apr_from_epochs",
    "exit_wait",
    "realistic_apr",
    "stake_ratio",
    "theoretical_apr",
]

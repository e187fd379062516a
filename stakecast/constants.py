"""Consensus-layer constants used by the protocol and forecast models."""

from __future__ import annotations

# Time
SECONDS_PER_SLOT = 12
SLOTS_PER_EPOCH = 32
SECONDS_PER_EPOCH = SECONDS_PER_SLOT * SLOTS_PER_EPOCH  # 384 seconds
SECONDS_PER_DAY = 24 * 60 * 60
EPOCHS_PER_DAY = SECONDS_PER_DAY / SECONDS_PER_EPOCH  # 225
DAYS_PER_YEAR = 365.25
EPOCHS_PER_YEAR = EPOCHS_PER_DAY * DAYS_PER_YEAR

# Validators
STAKE_UNIT = 32  # ETH per validator
GWEI_PER_ETH = 1e9
MIN_PER_EPOCH_CHURN_LIMIT = 4
CHURN_LIMIT_QUOTIENT = 65536

# Rewards
BASE_REWARD_FACTOR = 64
TIMELY_SOURCE_WEIGHT = 14
TIMELY_TARGET_WEIGHT = 26
TIMELY_HEAD_WEIGHT = 14
SYNC_REWARD_WEIGHT = 2
PROPOSER_WEIGHT = 8
WEIGHT_DENOMINATOR = 64
BASE_REWARDS_PER_EPOCH = (
    TIMELY_SOURCE_WEIGHT
    + TIMELY_TARGET_WEIGHT
    + TIMELY_HEAD_WEIGHT
    + SYNC_REWARD_WEIGHT
    + PROPOSER_WEIGHT
) / WEIGHT_DENOMINATOR

# Network
TOTAL_SUPPLY = 120_000_000  # approximate circulating ETH


__all__ = [
    "SECONDS_PER_SLOT",
    "SLOTS_PER_EPOCH",
    "SECONDS_PER_EPOCH",
    "SECONDS_PER_DAY",
    "EPOCHS_PER_DAY",
    "DAYS_PER_YEAR",
    "EPOCHS_PER_YEAR",
    "STAKE_UNIT",
    "GWEI_PER_ETH",
    "MIN_PER_EPOCH_CHURN_LIMIT",
    "CHURN_LIMIT_QUOTIENT",
    "BASE_REWARD_FACTOR",
    "TIMELY_SOURCE_WEIGHT",
    "TIMELY_TARGET_WEIGHT",
    "TIMELY_HEAD_WEIGHT",
    "SYNC_REWARD_WEIGHT",
    "PROPOSER_WEIGHT",
    "WEIGHT_DENOMINATOR",
    "BASE_REWARDS_PER_EPOCH",
    "TOTAL_SUPPLY",
]

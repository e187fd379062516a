"""Tuning constants for the forecast simulator with environment overrides."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

ENV_PREFIX = "STAKECAST_"


@dataclass(frozen=True)
class ForecastSettings:
    """Simulator constants.

    target_apr:
        APR (percent) at which staking demand is in equilibrium.
    feedback_per_point:
        Fractional growth adjustment per percentage point of APR above or
        below ``target_apr``.
    flow_bias_share:
        Share of the daily churn capacity a full ``net_flow_bias`` of 1 adds.
    confidence_z:
        z-score of the stake confidence band (1.96 ~ 95%).
    """

    target_apr: float = 4.0
    feedback_per_point: float = 0.1
    flow_bias_share: float = 0.1
    confidence_z: float = 1.96
    days_per_month: int = 30
    fallback_exec_yield: float = 0.001
    regime_window: int = 7

    def __post_init__(self) -> None:
        for item in fields(self):
            if not math.isfinite(getattr(self, item.name)):
                raise ValueError(f"{item.name} must be finite")
        if self.days_per_month <= 0:
            raise ValueError("days_per_month must be positive")
        if self.regime_window <= 0:
            raise ValueError("regime_window must be positive")
        if self.confidence_z < 0:
            raise ValueError("confidence_z must be non-negative")


DEFAULT_SETTINGS = ForecastSettings()

_FLOAT_OVERRIDES = {
    "TARGET_APR": "target_apr",
    "FEEDBACK_PER_POINT": "feedback_per_point",
    "FLOW_BIAS_SHARE": "flow_bias_share",
    "CONFIDENCE_Z": "confidence_z",
    "FALLBACK_EXEC_YIELD": "fallback_exec_yield",
}


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    base: ForecastSettings = DEFAULT_SETTINGS,
) -> ForecastSettings:
    """Return ``base`` with any ``STAKECAST_*`` environment overrides applied."""

    env = os.environ if environ is None else environ
    overrides = {}
    for suffix, attr in _FLOAT_OVERRIDES.items():
        raw = env.get(ENV_PREFIX + suffix)
        if raw is None or raw.strip() == "":
            continue
        try:
            overrides[attr] = float(raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}{suffix} must be a number, got '{raw}'") from None
    if not overrides:
        return base
    return replace(base, **overrides)


__all__ = ["DEFAULT_SETTINGS", "ENV_PREFIX", "ForecastSettings", "load_settings"]

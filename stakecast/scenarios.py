"""Baseline / bullish / bearish scenario comparison."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .config import DEFAULT_SETTINGS, ForecastSettings
from .forecast import (
    ForecastPoint,
    HistoricalDataPoint,
    ScenarioParams,
    forecast_to_frame,
    generate_forecast,
)
from .regime import DEFAULT_REGIME_TABLES, ExecutionDataPoint, FeeRegime, RegimeTables

logger = logging.getLogger(__name__)

BASELINE = ScenarioParams(net_flow_bias=0.0, mev_multiplier=1.0, queue_pressure=1.0, fee_regime_bias="current")
# Bullish assumes an elevated fee environment, bearish a calm one
BULLISH = ScenarioParams(net_flow_bias=0.5, mev_multiplier=1.3, queue_pressure=1.5, fee_regime_bias=FeeRegime.ELEVATED)
BEARISH = ScenarioParams(net_flow_bias=-0.5, mev_multiplier=0.7, queue_pressure=0.5, fee_regime_bias=FeeRegime.CALM)

SCENARIO_PRESETS: Mapping[str, ScenarioParams] = MappingProxyType(
    {"baseline": BASELINE, "bullish": BULLISH, "bearish": BEARISH}
)


@dataclass(frozen=True)
class ScenarioForecasts:
    baseline: List[ForecastPoint]
    bullish: List[ForecastPoint]
    bearish: List[ForecastPoint]

    def items(self) -> Iterator[Tuple[str, List[ForecastPoint]]]:
        yield "baseline", self.baseline
        yield "bullish", self.bullish
        yield "bearish", self.bearish

    def to_frame(self) -> pd.DataFrame:
        """Stack all scenarios into one frame with a ``scenario`` column."""

        frames = []
        for name, points in self.items():
            frame = forecast_to_frame(points)
            if frame.empty:
                continue
            frame = frame.reset_index()
            frame.insert(0, "scenario", name)
            frames.append(frame)
        if not frames:
            return pd.DataFrame()
        return pd.concat(frames, ignore_index=True)


def run_scenario(
    name: str,
    history: Sequence[HistoricalDataPoint],
    months_ahead: int,
    execution_history: Optional[Sequence[ExecutionDataPoint]] = None,
    *,
    settings: ForecastSettings = DEFAULT_SETTINGS,
    tables: RegimeTables = DEFAULT_REGIME_TABLES,
) -> List[ForecastPoint]:
    """Run a single named preset."""

    try:
        params = SCENARIO_PRESETS[name]
    except KeyError:
        choices = ", ".join(SCENARIO_PRESETS)
        raise ValueError(f"Unknown scenario '{name}'; expected one of: {choices}") from None
    logger.debug("Running %s scenario", name)
    return generate_forecast(history, months_ahead, params, execution_history, settings=settings, tables=tables)


def compare_scenarios(
    history: Sequence[HistoricalDataPoint],
    months_ahead: int,
    execution_history: Optional[Sequence[ExecutionDataPoint]] = None,
    *,
    settings: ForecastSettings = DEFAULT_SETTINGS,
    tables: RegimeTables = DEFAULT_REGIME_TABLES,
) -> ScenarioForecasts:
    """Forecast all three presets against the same inputs."""

    results = {
        name: run_scenario(name, history, months_ahead, execution_history, settings=settings, tables=tables)
        for name in SCENARIO_PRESETS
    }
    return ScenarioForecasts(**results)


__all__ = [
    "BASELINE",
    "BEARISH",
    "BULLISH",
    "SCENARIO_PRESETS",
    "ScenarioForecasts",
    "compare_scenarios",
    "run_scenario",
]

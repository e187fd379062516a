"""Hybrid stake-ratio and APR forecasting for proof-of-stake networks."""

from .config import DEFAULT_SETTINGS, ForecastSettings, load_settings
from .dataset import HistoryDataError, load_execution_csv, load_history_csv
from .execution import ExecutionYieldForecast, current_execution_yield, forecast_execution_yield
from .forecast import (
    DriverAttribution,
    EmptyHistoryError,
    ForecastPoint,
    ScenarioParams,
    apply_apr_feedback,
    forecast_to_frame,
    generate_forecast,
)
from .protocol import (
    ProtocolState,
    churn_limit,
    derive_metrics,
    equilibrium_stake_for_apr,
    realistic_apr,
    stake_ratio,
    theoretical_apr,
)
from .regime import (
    DEFAULT_REGIME_TABLES,
    ExecutionDataPoint,
    FeeRegime,
    RegimeDetection,
    RegimeTables,
    detect_regime,
)
from .scenarios import SCENARIO_PRESETS, ScenarioForecasts, compare_scenarios, run_scenario
from .synthetic import generate_synthetic_execution_history, generate_synthetic_history
from .trend import HistoricalDataPoint, StakingTrend, calculate_staking_trend

__all__ = [
    "DEFAULT_REGIME_TABLES",
    "DEFAULT_SETTINGS",
    "DriverAttribution",
    "EmptyHistoryError",
    "ExecutionDataPoint",
    "ExecutionYieldForecast",
    "FeeRegime",
    "ForecastPoint",
    "ForecastSettings",
    "HistoricalDataPoint",
    "HistoryDataError",
    "ProtocolState",
    "RegimeDetection",
    "RegimeTables",
    "SCENARIO_PRESETS",
    "ScenarioForecasts",
    "ScenarioParams",
    "StakingTrend",
    "apply_apr_feedback",
    "calculate_staking_trend",
    "churn_limit",
    "compare_scenarios",
    "current_execution_yield",
    "derive_metrics",
    "detect_regime",
    "equilibrium_stake_for_apr",
    "forecast_execution_yield",
    "forecast_to_frame",
    "generate_forecast",
    "generate_synthetic_execution_history",
    "generate_synthetic_history",
    "load_execution_csv",
    "load_history_csv",
    "load_settings",
    "realistic_apr",
    "run_scenario",
    "stake_ratio",
    "theoretical_apr",
]

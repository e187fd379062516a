"""
Staking stake-ratio and APR forecaster

Overview
--------
This script forecasts total stake, stake ratio and APR for the next 3, 6 or 12
months under three scenarios (baseline, bullish, bearish) using the hybrid
forecast engine in the ``stakecast`` package.

Model
-----
For every simulated day:
  consensus_apr = theoretical APR of the current total stake
  execution_apr = regime-aware priority fee + MEV yield (scaled per scenario)
  growth        = (trend + flow bias) * (1 + 0.1 * (total_apr - target_apr)),
                  bounded by the churn limit
Monthly snapshots are printed; confidence bands widen with sqrt(days).

Inputs
------
- Staking history CSV: date,total_staked,active_validators,entry_queue,exit_queue[,observed_apr]
- Execution history CSV (optional): date,priority_fees,mev_rewards[,avg_gas_price,block_count]
When no history CSV is given, seeded synthetic history is generated.

Settings can be overridden through STAKECAST_TARGET_APR, STAKECAST_FEEDBACK_PER_POINT,
STAKECAST_FLOW_BIAS_SHARE and STAKECAST_CONFIDENCE_Z; flags take precedence.

CLI
---
python forecast_staking.py [--history-csv history.csv] [--execution-csv execution.csv] \
  [--months 6] [--synthetic-days 90] [--seed 7] [--target-apr 4.0] \
  [--save-csv forecast.csv] [--save-history history.csv] [--log-level INFO]
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
from typing import Optional, Sequence

from stakecast import (
    compare_scenarios,
    generate_synthetic_execution_history,
    generate_synthetic_history,
    load_execution_csv,
    load_history_csv,
    load_settings,
)
from stakecast.dataset import history_to_frame

logger = logging.getLogger("forecast_staking")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Forecast stake ratio and APR under three scenarios")
    parser.add_argument("--history-csv", default=None, help="Staking history CSV (default: synthetic history)")
    parser.add_argument("--execution-csv", default=None, help="Execution rewards CSV (default: synthetic when history is synthetic)")
    parser.add_argument("--months", type=int, choices=(3, 6, 12), default=6, help="Forecast horizon in months (default 6)")
    parser.add_argument("--synthetic-days", type=int, default=90, help="Days of synthetic history to generate (default 90)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for synthetic history")
    parser.add_argument("--target-apr", type=float, default=None, help="Equilibrium APR for demand feedback (default 4.0)")
    parser.add_argument("--save-csv", default=None, help="If set, saves all scenario forecasts to this CSV")
    parser.add_argument("--save-history", default=None, help="If set, saves the input staking history (synthetic or loaded) to this CSV")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = load_settings()
    if args.target_apr is not None:
        settings = dataclasses.replace(settings, target_apr=args.target_apr)

    if args.history_csv:
        history = load_history_csv(args.history_csv)
    else:
        logger.info("No history CSV given; generating %d days of synthetic history", args.synthetic_days)
        history = generate_synthetic_history(args.synthetic_days, seed=args.seed)

    latest = max(history, key=lambda point: point.timestamp)
    if args.execution_csv:
        execution = load_execution_csv(args.execution_csv)
    elif args.history_csv:
        execution = []
    else:
        execution = generate_synthetic_execution_history(
            args.synthetic_days,
            latest.active_validators,
            seed=None if args.seed is None else args.seed + 1,
            end=latest.timestamp,
        )

    if args.save_history:
        history_to_frame(history).to_csv(args.save_history, index=False)
        logger.info("Saved history to %s", args.save_history)

    forecasts = compare_scenarios(history, args.months, execution, settings=settings)

    print(f"Latest: {latest.timestamp.date()}  stake {latest.total_staked:,.0f} ETH  validators {latest.active_validators:,}")
    for name, points in forecasts.items():
        print(f"\n{name.capitalize()}")
        print(f"  {'date':<10}  {'stake (ETH)':>14}  {'ratio':>6}  {'APR':>6}  {'exec %':>6}  regime")
        for point in points:
            print(
                f"  {point.date.date()!s:<10}  {point.total_staked:>14,.0f}  {point.stake_ratio:>5.2f}%"
                f"  {point.forecast_apr:>5.2f}%  {point.drivers.execution_pct:>5.1f}%  {point.drivers.fee_regime.value}"
            )

    if args.save_csv:
        forecasts.to_frame().to_csv(args.save_csv, index=False)
        logger.info("Saved forecasts to %s", args.save_csv)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

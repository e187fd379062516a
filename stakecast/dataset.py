"""Loading staking and execution-reward history from CSV files or DataFrames."""

from __future__ import annotations

import logging
from typing import Iterable, List

import numpy as np
import pandas as pd

from .regime import ExecutionDataPoint
from .trend import HistoricalDataPoint

logger = logging.getLogger(__name__)

HISTORY_COLUMNS = ("date", "total_staked", "active_validators", "entry_queue", "exit_queue")
EXECUTION_COLUMNS = ("date", "priority_fees", "mev_rewards")


class HistoryDataError(RuntimeError):
    """Raised when a history CSV or frame is malformed."""


def _require_columns(df: pd.DataFrame, required: Iterable[str]) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        joined = ", ".join(missing)
        raise HistoryDataError(f"Missing required column(s): {joined}")


def _clean(df: pd.DataFrame, required: Iterable[str], value_columns: Iterable[str]) -> pd.DataFrame:
    _require_columns(df, required)

    df = df.copy()
    before = len(df)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    df = df.dropna(subset=["date"])
    for col in value_columns:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df = df.dropna(subset=list(value_columns))
    df = df[np.isfinite(df[list(value_columns)]).all(axis=1)]
    # Every field is a count or an ETH amount
    for col in value_columns:
        df = df[df[col] >= 0]
    df = df.sort_values("date")

    dropped = before - len(df)
    if dropped:
        logger.warning("Dropped %d malformed row(s) while loading history", dropped)
    if df.empty:
        raise HistoryDataError("No rows remain after cleaning history data")
    return df


def history_from_frame(df: pd.DataFrame) -> List[HistoricalDataPoint]:
    """Convert a frame with :data:`HISTORY_COLUMNS` into history records.

    An optional ``observed_apr`` column is carried through when present.
    """

    cleaned = _clean(df, HISTORY_COLUMNS, HISTORY_COLUMNS[1:])
    has_apr = "observed_apr" in cleaned.columns
    if has_apr:
        cleaned["observed_apr"] = pd.to_numeric(cleaned["observed_apr"], errors="coerce")

    points = []
    for row in cleaned.itertuples(index=False):
        apr = getattr(row, "observed_apr", None) if has_apr else None
        points.append(
            HistoricalDataPoint(
                timestamp=pd.Timestamp(row.date).to_pydatetime(),
                total_staked=float(row.total_staked),
                active_validators=int(row.active_validators),
                entry_queue_length=int(row.entry_queue),
                exit_queue_length=int(row.exit_queue),
                observed_apr=None if apr is None or pd.isna(apr) else float(apr),
            )
        )
    return points


def execution_from_frame(df: pd.DataFrame) -> List[ExecutionDataPoint]:
    """Convert a frame with :data:`EXECUTION_COLUMNS` into execution records.

    ``avg_gas_price`` and ``block_count`` are optional.
    """

    cleaned = _clean(df, EXECUTION_COLUMNS, EXECUTION_COLUMNS[1:])
    if "avg_gas_price" not in cleaned.columns:
        cleaned["avg_gas_price"] = 0.0
    if "block_count" not in cleaned.columns:
        cleaned["block_count"] = 7200
    cleaned["avg_gas_price"] = pd.to_numeric(cleaned["avg_gas_price"], errors="coerce").fillna(0.0)
    cleaned["block_count"] = pd.to_numeric(cleaned["block_count"], errors="coerce").fillna(7200)

    return [
        ExecutionDataPoint(
            timestamp=pd.Timestamp(row.date).to_pydatetime(),
            priority_fees=float(row.priority_fees),
            mev_rewards=float(row.mev_rewards),
            avg_gas_price=float(row.avg_gas_price),
            block_count=int(row.block_count),
        )
        for row in cleaned.itertuples(index=False)
    ]


def load_history_csv(path: str) -> List[HistoricalDataPoint]:
    """Load staking history from a CSV with ``date,total_staked,...`` columns."""

    return history_from_frame(pd.read_csv(path))


def load_execution_csv(path: str) -> List[ExecutionDataPoint]:
    """Load daily execution rewards from a CSV with ``date,priority_fees,mev_rewards``."""

    return execution_from_frame(pd.read_csv(path))


def history_to_frame(points: Iterable[HistoricalDataPoint]) -> pd.DataFrame:
    """Inverse of :func:`history_from_frame`; the CLI uses it for ``--save-history``."""

    return pd.DataFrame(
        [
            {
                "date": pd.Timestamp(point.timestamp),
                "total_staked": point.total_staked,
                "active_validators": point.active_validators,
                "entry_queue": point.entry_queue_length,
                "exit_queue": point.exit_queue_length,
                "observed_apr": point.observed_apr,
            }
            for point in points
        ],
        columns=list(HISTORY_COLUMNS) + ["observed_apr"],
    )


__all__ = [
    "EXECUTION_COLUMNS",
    "HISTORY_COLUMNS",
    "HistoryDataError",
    "execution_from_frame",
    "history_from_frame",
    "history_to_frame",
    "load_execution_csv",
    "load_history_csv",
]

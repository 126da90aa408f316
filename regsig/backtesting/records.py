"""
Backtest output records.

One BacktestRecord per held-out step. Records are plain data: they can
be handed to the significance evaluator or flattened into a DataFrame
for reporting.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class BacktestRecord:
    """A single one-step-ahead forecast and what actually happened."""
    timestamp: Any
    actual: float
    forecast: Optional[float]  # None when the step failed
    regressors: dict[str, Optional[float]] = field(default_factory=dict)
    failed: bool = False
    error: Optional[str] = None

    @property
    def residual(self) -> Optional[float]:
        """actual - forecast, None when there is no forecast."""
        if self.forecast is None:
            return None
        return self.actual - self.forecast

    def regressor(self, name: str) -> Optional[float]:
        return self.regressors.get(name)


# Columns written by records_to_frame; regressors may not reuse these names
RECORD_COLUMNS = ("timestamp", "actual", "forecast", "failed", "error")


def records_to_frame(records: Iterable[BacktestRecord]) -> pd.DataFrame:
    """
    Flatten records into a DataFrame indexed by timestamp.

    Missing forecasts and regressor values become NaN.

    Raises:
        ValueError: a regressor is named like one of RECORD_COLUMNS
    """
    rows = []
    for record in records:
        clashes = sorted(set(record.regressors) & set(RECORD_COLUMNS))
        if clashes:
            raise ValueError(f"regressor names clash with record columns: {clashes}")

        row = {
            "timestamp": record.timestamp,
            "actual": record.actual,
            "forecast": np.nan if record.forecast is None else record.forecast,
            "failed": record.failed,
            "error": record.error,
        }
        for name, value in record.regressors.items():
            row[name] = np.nan if value is None else value
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=["actual", "forecast", "failed", "error"])

    return pd.DataFrame(rows).set_index("timestamp")


def summarize_backtest(records: list[BacktestRecord]) -> dict:
    """
    Forecast accuracy over the successful steps.

    Returns:
        Dict with step counts, MAE, RMSE and mean error (actual - forecast)
    """
    errors = np.array([r.residual for r in records if r.forecast is not None], dtype=float)
    failed = sum(1 for r in records if r.failed)

    if len(errors) == 0:
        return {
            "total_steps": len(records),
            "failed_steps": failed,
            "mae": float("nan"),
            "rmse": float("nan"),
            "mean_error": float("nan"),
        }

    return {
        "total_steps": len(records),
        "failed_steps": failed,
        "mae": float(np.mean(np.abs(errors))),
        "rmse": float(np.sqrt(np.mean(errors ** 2))),
        "mean_error": float(np.mean(errors)),
    }

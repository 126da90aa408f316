"""
Immutable time series inputs.

TimeSeries is the forecast target: strictly increasing timestamps, no
duplicates, finite values. RegressorFrame holds candidate predictors on
the same index; NaN marks a value that is not (yet) known.

Both wrap a private pandas copy and only ever hand out copies, so a
backtest step can never see a caller's later mutation.
"""

from typing import Any, Iterable, Optional
import structlog

import numpy as np
import pandas as pd

logger = structlog.get_logger(__name__)


def _check_index(index: pd.Index, what: str) -> None:
    if not index.is_unique:
        raise ValueError(f"{what} timestamps must not contain duplicates")
    if not index.is_monotonic_increasing:
        raise ValueError(f"{what} timestamps must be strictly increasing")


class TimeSeries:
    """
    Ordered (timestamp, value) pairs.

    Timestamps may be datetime-like or numeric. Values must be finite:
    the series is expected to arrive cleaned.
    """

    def __init__(self, series: pd.Series, name: Optional[str] = None):
        """
        Initialize time series.

        Args:
            series: Values indexed by timestamp
            name: Optional name (defaults to the series name)
        """
        if not isinstance(series, pd.Series):
            raise TypeError("TimeSeries expects a pandas Series")

        _check_index(series.index, "TimeSeries")

        values = series.astype(float)
        if not np.isfinite(values.to_numpy()).all():
            raise ValueError("TimeSeries values must be finite (no NaN or inf)")

        self._series = values.copy()
        self._series.name = name if name is not None else series.name

    @classmethod
    def from_values(
        cls,
        timestamps: Iterable[Any],
        values: Iterable[float],
        name: Optional[str] = None,
    ) -> "TimeSeries":
        """Build a series from parallel timestamp and value sequences."""
        index = pd.Index(list(timestamps))
        data = list(values)
        if len(index) != len(data):
            raise ValueError(
                f"timestamps ({len(index)}) and values ({len(data)}) differ in length"
            )
        return cls(pd.Series(data, index=index, dtype=float), name=name)

    @property
    def name(self) -> Optional[str]:
        return self._series.name

    @property
    def index(self) -> pd.Index:
        return self._series.index

    @property
    def values(self) -> np.ndarray:
        return self._series.to_numpy(copy=True)

    @property
    def is_datetime(self) -> bool:
        return isinstance(self._series.index, pd.DatetimeIndex)

    def __len__(self) -> int:
        return len(self._series)

    def __repr__(self) -> str:
        if len(self) == 0:
            return f"TimeSeries(name={self.name!r}, empty)"
        return (
            f"TimeSeries(name={self.name!r}, n={len(self)}, "
            f"start={self.index[0]}, end={self.index[-1]})"
        )

    def head(self, n: int) -> "TimeSeries":
        """First n observations."""
        return TimeSeries(self._series.iloc[:n], name=self.name)

    def timestamp_at(self, position: int) -> Any:
        return self._series.index[position]

    def value_at(self, position: int) -> float:
        return float(self._series.iloc[position])

    def to_series(self) -> pd.Series:
        """Copy of the underlying pandas Series."""
        return self._series.copy()


class RegressorFrame:
    """
    Named regressor columns aligned to a target index.

    A NaN cell means the value is absent at that timestamp (for example a
    forward-facing regressor not yet published). Absent values are never
    filled in.
    """

    def __init__(self, frame: pd.DataFrame):
        """
        Initialize regressor frame.

        Args:
            frame: One column per regressor, indexed by timestamp
        """
        if not isinstance(frame, pd.DataFrame):
            raise TypeError("RegressorFrame expects a pandas DataFrame")

        _check_index(frame.index, "RegressorFrame")

        if not frame.columns.is_unique:
            raise ValueError("RegressorFrame column names must be unique")

        values = frame.astype(float)
        if np.isinf(values.to_numpy()).any():
            raise ValueError("RegressorFrame values must not be infinite")

        self._frame = values.copy()

    @classmethod
    def aligned_to(cls, frame: pd.DataFrame, target: TimeSeries) -> "RegressorFrame":
        """
        Reindex a frame onto the target's timestamps.

        Timestamps missing from the frame become absent values; rows
        outside the target index are dropped.
        """
        dropped = len(frame.index.difference(target.index))
        missing = len(target.index.difference(frame.index))
        if dropped or missing:
            logger.info(
                "regressor_frame_realigned",
                dropped_rows=dropped,
                missing_rows=missing,
            )
        return cls(frame.reindex(target.index))

    @property
    def names(self) -> list[str]:
        return [str(c) for c in self._frame.columns]

    @property
    def index(self) -> pd.Index:
        return self._frame.index

    def __len__(self) -> int:
        return len(self._frame)

    def __contains__(self, name: object) -> bool:
        return name in self._frame.columns

    def __repr__(self) -> str:
        return f"RegressorFrame(n={len(self)}, names={self.names})"

    def is_aligned_with(self, target: TimeSeries) -> bool:
        return self._frame.index.equals(target.index)

    def head(self, n: int) -> "RegressorFrame":
        """Rows for the first n timestamps."""
        return RegressorFrame(self._frame.iloc[:n])

    def row_at(self, position: int) -> dict[str, Optional[float]]:
        """
        Regressor values at one position.

        Returns:
            Mapping of name to value, None where the value is absent
        """
        row = self._frame.iloc[position]
        return {
            str(name): (None if pd.isna(value) else float(value))
            for name, value in row.items()
        }

    def frame_at(self, position: int) -> pd.DataFrame:
        """Single-row frame at one position."""
        return self._frame.iloc[[position]].copy()

    def column(self, name: str) -> pd.Series:
        if name not in self._frame.columns:
            raise KeyError(f"unknown regressor: {name}")
        return self._frame[name].copy()

    def to_frame(self) -> pd.DataFrame:
        """Copy of the underlying pandas DataFrame."""
        return self._frame.copy()

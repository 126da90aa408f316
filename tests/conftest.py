"""
Pytest configuration and fixtures.

Shared fixtures for all tests.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

import numpy as np
import pandas as pd

from regsig.data.series import TimeSeries, RegressorFrame
from regsig.backtesting.records import BacktestRecord


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def daily_series():
    """60 days of a random walk."""
    dates = pd.date_range(start="2020-01-01", periods=60, freq="D")
    rng = np.random.default_rng(42)
    values = 100 + np.cumsum(rng.normal(0, 1, len(dates)))
    return TimeSeries(pd.Series(values, index=dates), name="target")


@pytest.fixture
def daily_regressors(daily_series):
    """Two regressors on the daily_series index."""
    rng = np.random.default_rng(7)
    n = len(daily_series)
    frame = pd.DataFrame(
        {
            "signal": rng.normal(0, 1, n),
            "noise": rng.normal(0, 1, n),
        },
        index=daily_series.index,
    )
    return RegressorFrame(frame)


@pytest.fixture
def make_records():
    """Build BacktestRecords from parallel arrays."""
    def _make(timestamps, actual, forecast, regressor, name="x"):
        return [
            BacktestRecord(
                timestamp=t,
                actual=float(a),
                forecast=None if f is None else float(f),
                regressors={name: None if r is None else float(r)},
            )
            for t, a, f, r in zip(timestamps, actual, forecast, regressor)
        ]
    return _make

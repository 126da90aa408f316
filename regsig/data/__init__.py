"""Input data types for backtests."""

from regsig.data.series import TimeSeries, RegressorFrame

__all__ = ["TimeSeries", "RegressorFrame"]

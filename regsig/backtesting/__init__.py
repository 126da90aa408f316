"""
Walkforward backtesting.

Key principles:
- Train strictly on the past, forecast one step ahead
- One record per held-out step, in timestamp order
- A failing step is recorded, not hidden
"""

from regsig.backtesting.records import (
    BacktestRecord,
    records_to_frame,
    summarize_backtest,
)
from regsig.backtesting.walk_forward import WalkForwardBacktester, run_backtest

__all__ = [
    "BacktestRecord",
    "records_to_frame",
    "summarize_backtest",
    "WalkForwardBacktester",
    "run_backtest",
]

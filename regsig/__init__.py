"""
regsig - walkforward backtesting and regressor significance testing.

Answers one question about a forecasting setup: does a candidate
regressor explain what the forecaster's one-step-ahead predictions miss?

- Walkforward backtest: train on a growing prefix, forecast the next point
- Auxiliary regression: actual ~ forecast + regressor, optionally
  recency-weighted, with a t-test on the regressor coefficient
"""

from regsig.errors import (
    RegSigError,
    InsufficientDataError,
    DegenerateFitError,
    ForecasterStepFailure,
)
from regsig.data.series import TimeSeries, RegressorFrame
from regsig.backtesting.walk_forward import (
    BacktestRecord,
    WalkForwardBacktester,
    run_backtest,
)
from regsig.calibration.significance import (
    WeightedFit,
    RegressorSignificanceEvaluator,
    evaluate_regressor,
    screen_regressors,
)

__version__ = "0.1.0"

__all__ = [
    "RegSigError",
    "InsufficientDataError",
    "DegenerateFitError",
    "ForecasterStepFailure",
    "TimeSeries",
    "RegressorFrame",
    "BacktestRecord",
    "WalkForwardBacktester",
    "run_backtest",
    "WeightedFit",
    "RegressorSignificanceEvaluator",
    "evaluate_regressor",
    "screen_regressors",
]

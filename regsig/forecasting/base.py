"""
Forecaster capability.

The backtester only ever talks to a forecaster through two calls:

    model = forecaster.fit(training_prefix, regressors_known_so_far)
    value = forecaster.predict(model, horizon=1, future_regressors=row)

Any model family that satisfies this contract can be backtested.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import pandas as pd

from regsig.data.series import TimeSeries, RegressorFrame


class Forecaster(ABC):
    """Base class for forecasters used by the walkforward backtester."""

    name: str = "forecaster"

    @abstractmethod
    def fit(
        self,
        history: TimeSeries,
        regressors: Optional[RegressorFrame] = None,
    ) -> Any:
        """
        Fit a model on a training prefix.

        Args:
            history: Observations strictly before the forecast point
            regressors: Regressor rows for the same timestamps, if any

        Returns:
            Fitted model (opaque to the backtester)
        """

    @abstractmethod
    def predict(
        self,
        model: Any,
        horizon: int = 1,
        future_regressors: Optional[pd.DataFrame] = None,
    ) -> float:
        """
        Point forecast `horizon` steps past the end of the training prefix.

        Args:
            model: Result of fit()
            horizon: Steps ahead
            future_regressors: One row per step ahead, if regressors are used

        Returns:
            Scalar point forecast
        """


class CallableForecaster(Forecaster):
    """Adapts a pair of plain functions to the Forecaster contract."""

    def __init__(
        self,
        fit_fn: Callable[[TimeSeries, Optional[RegressorFrame]], Any],
        predict_fn: Callable[[Any, Optional[pd.DataFrame]], float],
        name: str = "callable",
    ):
        self.fit_fn = fit_fn
        self.predict_fn = predict_fn
        self.name = name

    def fit(self, history, regressors=None):
        return self.fit_fn(history, regressors)

    def predict(self, model, horizon=1, future_regressors=None):
        if horizon != 1:
            raise ValueError("CallableForecaster only forecasts one step ahead")
        return self.predict_fn(model, future_regressors)

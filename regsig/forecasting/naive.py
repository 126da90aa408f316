"""
Naive baselines.

Last value (random walk) and random walk with drift. Every forecasting
method should be compared against these before anything else.
"""

from typing import Optional

from regsig.data.series import TimeSeries, RegressorFrame
from regsig.forecasting.base import Forecaster


class NaiveForecaster(Forecaster):
    """
    Random walk forecaster.

    Forecast = last observed value, plus the average historical step
    times the horizon when drift is enabled. Regressors are ignored.
    """

    def __init__(self, drift: bool = False):
        self.drift = drift
        self.name = "drift" if drift else "naive"

    def fit(self, history: TimeSeries, regressors: Optional[RegressorFrame] = None) -> dict:
        if len(history) == 0:
            raise ValueError("cannot fit a naive forecaster on empty history")

        values = history.values
        slope = 0.0
        if self.drift:
            if len(values) < 2:
                raise ValueError("drift needs at least 2 observations")
            slope = float((values[-1] - values[0]) / (len(values) - 1))

        return {"last": float(values[-1]), "slope": slope}

    def predict(self, model: dict, horizon: int = 1, future_regressors=None) -> float:
        return model["last"] + horizon * model["slope"]

"""
Forecasters usable by the walkforward backtester.

- Naive / drift baselines
- ARIMA with AIC order search (statsmodels)
- CallableForecaster for plain fit/predict functions
"""

from regsig.forecasting.base import Forecaster, CallableForecaster
from regsig.forecasting.naive import NaiveForecaster
from regsig.forecasting.arima import ArimaForecaster, ArimaModel

__all__ = [
    "Forecaster",
    "CallableForecaster",
    "NaiveForecaster",
    "ArimaForecaster",
    "ArimaModel",
]

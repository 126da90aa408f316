"""
ARIMA forecaster with automatic order selection.

Fits every (p, d, q) in the configured grid and keeps the lowest-AIC
model. Regressors, when given, enter as exogenous variables, so a
forward-facing regressor must be known at the forecast point.
"""

from dataclasses import dataclass
from itertools import product
from typing import Any, Optional
import warnings
import structlog

import numpy as np
import pandas as pd
from statsmodels.tsa.arima.model import ARIMA

from regsig.data.series import TimeSeries, RegressorFrame
from regsig.forecasting.base import Forecaster

logger = structlog.get_logger(__name__)


@dataclass
class ArimaModel:
    """A fitted ARIMA model and how it was chosen."""
    results: Any
    order: tuple[int, int, int]
    aic: float
    regressor_names: Optional[list[str]] = None


class ArimaForecaster(Forecaster):
    """
    Auto-ARIMA style forecaster.

    Order search is exhaustive over the grid, so keep the bounds small;
    in a walkforward backtest the search runs once per step.
    """

    name = "arima"

    def __init__(
        self,
        max_p: int = 2,
        max_d: int = 1,
        max_q: int = 2,
        use_regressors: bool = True,
    ):
        """
        Initialize ARIMA forecaster.

        Args:
            max_p: Largest autoregressive order tried
            max_d: Largest differencing order tried
            max_q: Largest moving-average order tried
            use_regressors: Pass regressors to the model as exogenous variables
        """
        if min(max_p, max_d, max_q) < 0:
            raise ValueError("ARIMA order bounds must be non-negative")

        self.max_p = max_p
        self.max_d = max_d
        self.max_q = max_q
        self.use_regressors = use_regressors

    def candidate_orders(self) -> list[tuple[int, int, int]]:
        return list(product(
            range(self.max_p + 1),
            range(self.max_d + 1),
            range(self.max_q + 1),
        ))

    def fit(
        self,
        history: TimeSeries,
        regressors: Optional[RegressorFrame] = None,
    ) -> ArimaModel:
        endog = history.values
        exog = None
        names = None

        if regressors is not None and self.use_regressors and regressors.names:
            frame = regressors.to_frame()
            if frame.isna().to_numpy().any():
                raise ValueError("regressor values missing inside the training window")
            exog = frame.to_numpy()
            names = regressors.names

        best: Optional[ArimaModel] = None

        for order in self.candidate_orders():
            try:
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore")
                    results = ARIMA(endog, exog=exog, order=order).fit()
            except (ValueError, np.linalg.LinAlgError) as e:
                logger.debug("arima_order_rejected", order=order, error=str(e))
                continue

            aic = float(results.aic)
            if not np.isfinite(aic):
                continue

            if best is None or aic < best.aic:
                best = ArimaModel(results=results, order=order, aic=aic, regressor_names=names)

        if best is None:
            raise RuntimeError(f"no ARIMA order could be fitted on {len(endog)} observations")

        logger.debug("arima_order_selected", order=best.order, aic=best.aic, n_obs=len(endog))
        return best

    def predict(
        self,
        model: ArimaModel,
        horizon: int = 1,
        future_regressors: Optional[pd.DataFrame] = None,
    ) -> float:
        exog = None
        if model.regressor_names is not None:
            if future_regressors is None:
                raise ValueError("model was fitted with regressors; future values required")
            future = future_regressors[model.regressor_names]
            if len(future) != horizon:
                raise ValueError(f"need {horizon} rows of future regressors, got {len(future)}")
            if future.isna().to_numpy().any():
                raise ValueError("future regressor values are not known")
            exog = future.to_numpy(dtype=float)

        forecast = model.results.forecast(steps=horizon, exog=exog)
        return float(np.asarray(forecast)[-1])

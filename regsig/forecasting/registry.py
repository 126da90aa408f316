"""Build a forecaster from settings."""

import structlog

from regsig.config import ForecasterSettings
from regsig.forecasting.base import Forecaster
from regsig.forecasting.naive import NaiveForecaster
from regsig.forecasting.arima import ArimaForecaster

logger = structlog.get_logger(__name__)


def build_forecaster(settings: ForecasterSettings, use_regressors: bool = False) -> Forecaster:
    """
    Create the forecaster named in settings.

    Args:
        settings: Forecaster settings
        use_regressors: Let the forecaster use forward-facing regressors
    """
    if settings.name == "naive":
        forecaster = NaiveForecaster()
    elif settings.name == "drift":
        forecaster = NaiveForecaster(drift=True)
    elif settings.name == "arima":
        forecaster = ArimaForecaster(
            max_p=settings.max_p,
            max_d=settings.max_d,
            max_q=settings.max_q,
            use_regressors=use_regressors,
        )
    else:
        raise ValueError(f"unknown forecaster: {settings.name}")

    logger.info("forecaster_built", forecaster=forecaster.name)
    return forecaster

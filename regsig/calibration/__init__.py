"""Regressor significance testing with recency weighting."""

from regsig.calibration.recency import (
    RecencyWeighting,
    recency_weights,
    gamma_from_half_life,
    half_life_from_gamma,
    effective_sample_size,
)
from regsig.calibration.significance import (
    WeightedFit,
    ScreeningResult,
    RegressorSignificanceEvaluator,
    evaluate_regressor,
    screen_regressors,
)
from regsig.calibration.time_varying import exponential_regression

__all__ = [
    "RecencyWeighting",
    "recency_weights",
    "gamma_from_half_life",
    "half_life_from_gamma",
    "effective_sample_size",
    "WeightedFit",
    "ScreeningResult",
    "RegressorSignificanceEvaluator",
    "evaluate_regressor",
    "screen_regressors",
    "exponential_regression",
]

"""
Exponentially-weighted regression for time-varying relationships.

At every timestamp t, fits

    y = alpha_t + beta_t * x

by weighted least squares over all observations up to t, with the
observation k steps back weighted gamma^k. Suited to pairs of
instruments whose hedge ratio drifts over time.

Unlike recency_weights(), decay here is per observation, not per unit
of calendar time.
"""

from typing import Optional
import structlog

import numpy as np
import pandas as pd

from regsig.calibration.recency import gamma_from_half_life

logger = structlog.get_logger(__name__)


def exponential_regression(
    y: pd.Series,
    x: pd.Series,
    gamma: Optional[float] = None,
    half_life: Optional[float] = None,
    min_periods: int = 10,
) -> pd.DataFrame:
    """
    Rolling exponentially-weighted regression of y on x.

    Args:
        y: Dependent series
        x: Explanatory series (rows missing from either series are dropped)
        gamma: Decay per observation in (0, 1]; 1 gives an expanding OLS
        half_life: Alternative to gamma, in observations
        min_periods: Observations required before estimates are reported

    Returns:
        DataFrame indexed like the aligned input with columns
        alpha, beta, r_squared, n_obs. Rows before min_periods are NaN.
    """
    if gamma is not None and half_life is not None:
        raise ValueError("set gamma or half_life, not both")
    if half_life is not None:
        gamma = gamma_from_half_life(half_life)
    if gamma is None:
        raise ValueError("gamma or half_life is required")
    if not 0.0 < gamma <= 1.0:
        raise ValueError(f"gamma must be in (0, 1], got {gamma}")
    if min_periods < 2:
        raise ValueError(f"min_periods must be >= 2, got {min_periods}")

    pair = pd.concat({"y": y, "x": x}, axis=1, join="inner").dropna()
    dropped = max(len(y), len(x)) - len(pair)
    if dropped:
        logger.debug("exponential_regression_rows_dropped", dropped=dropped)

    if gamma == 1.0:
        window_x = pair["x"].expanding(min_periods=min_periods)
        window_y = pair["y"].expanding(min_periods=min_periods)
        mean_x = window_x.mean()
        mean_y = window_y.mean()
        var_x = window_x.var(ddof=0)
        cov_xy = window_x.cov(pair["y"], ddof=0)
        corr = window_x.corr(pair["y"])
    else:
        decay = 1.0 - gamma
        window_x = pair["x"].ewm(alpha=decay, min_periods=min_periods)
        window_y = pair["y"].ewm(alpha=decay, min_periods=min_periods)
        mean_x = window_x.mean()
        mean_y = window_y.mean()
        var_x = window_x.var(bias=True)
        cov_xy = window_x.cov(pair["y"], bias=True)
        corr = window_x.corr(pair["y"])

    beta = (cov_xy / var_x).replace([np.inf, -np.inf], np.nan)
    alpha = mean_y - beta * mean_x

    result = pd.DataFrame({
        "alpha": alpha,
        "beta": beta,
        "r_squared": corr ** 2,
        "n_obs": np.arange(1, len(pair) + 1),
    }, index=pair.index)

    logger.info(
        "exponential_regression_complete",
        observations=len(pair),
        gamma=gamma,
        final_beta=float(beta.iloc[-1]) if len(beta) else None,
    )

    return result

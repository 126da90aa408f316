"""
Recency weighting.

Older observations are down-weighted geometrically by elapsed time:

    weight(t) = gamma ^ ((t_latest - t) / time_unit)

so the most recent observation always weighs exactly 1. A half-life h
(in time units) corresponds to gamma = 0.5 ^ (1 / h).

Typical choices:
- Daily data, slow drift: half-life of 60-250 days
- Monthly macro data: half-life of 24-60 months
"""

from typing import Any, Iterable, Optional, Union
import structlog

import numpy as np
import pandas as pd

logger = structlog.get_logger(__name__)

# Datetime timestamps are measured in days unless told otherwise
DEFAULT_DATETIME_UNIT = pd.Timedelta(days=1)

TimeUnit = Union[str, float, int, pd.Timedelta, None]


def gamma_from_half_life(half_life: float) -> float:
    """Decay factor per time unit for a given half-life."""
    if half_life <= 0:
        raise ValueError(f"half_life must be positive, got {half_life}")
    return float(0.5 ** (1.0 / half_life))


def half_life_from_gamma(gamma: float) -> float:
    """Half-life in time units; infinite for gamma = 1."""
    _check_gamma(gamma)
    if gamma == 1.0:
        return float("inf")
    return float(np.log(0.5) / np.log(gamma))


def _check_gamma(gamma: Optional[float]) -> None:
    if gamma is not None and not 0.0 < gamma <= 1.0:
        raise ValueError(f"recency gamma must be in (0, 1], got {gamma}")


def elapsed_time(timestamps: Iterable[Any], time_unit: TimeUnit = None) -> np.ndarray:
    """
    Time from each timestamp to the latest one, in time units.

    Args:
        timestamps: Datetime-like, period or numeric timestamps
        time_unit: Length of one unit. Datetimes: a Timedelta or string
            such as "1D" (default one day). Periods: a whole number of
            periods (default 1, the series' own frequency). Numbers: a
            number (default 1).
    """
    index = pd.Index(list(timestamps))
    if len(index) == 0:
        return np.array([], dtype=float)

    if isinstance(index, pd.PeriodIndex):
        unit = 1 if time_unit is None else time_unit
        if isinstance(unit, bool) or not isinstance(unit, (int, np.integer)):
            raise ValueError("period timestamps need an integer time_unit counted in periods")
        if unit <= 0:
            raise ValueError(f"time_unit must be positive, got {unit}")
        ordinals = index.asi8
        elapsed = (ordinals.max() - ordinals) / float(unit)
    elif isinstance(index, pd.DatetimeIndex):
        if isinstance(time_unit, (int, float)):
            raise ValueError("datetime timestamps need a timedelta time_unit such as '1D'")
        unit = DEFAULT_DATETIME_UNIT if time_unit is None else pd.Timedelta(time_unit)
        if unit <= pd.Timedelta(0):
            raise ValueError(f"time_unit must be positive, got {unit}")
        elapsed = (index.max() - index) / unit
    elif pd.api.types.is_numeric_dtype(index):
        unit = 1.0 if time_unit is None else float(time_unit)
        if unit <= 0:
            raise ValueError(f"time_unit must be positive, got {unit}")
        values = index.astype(float)
        elapsed = (values.max() - values) / unit
    else:
        raise TypeError(
            f"recency weighting needs datetime, period or numeric timestamps, got {index.dtype}"
        )

    return np.asarray(elapsed, dtype=float)


def recency_weights(
    timestamps: Iterable[Any],
    gamma: Optional[float] = None,
    time_unit: TimeUnit = None,
) -> np.ndarray:
    """
    Per-observation recency weights.

    Without decay any ordered labels are accepted. With decay, very old
    observations can underflow to a weight of exactly 0; callers fitting
    on these weights should drop such rows.

    Returns:
        Array of weights in [0, 1]; all ones when gamma is None or 1
    """
    _check_gamma(gamma)
    timestamps = list(timestamps)

    if gamma is None or gamma == 1.0:
        return np.ones(len(timestamps))

    return np.power(gamma, elapsed_time(timestamps, time_unit))


def effective_sample_size(weights: np.ndarray) -> float:
    """Kish effective sample size: (sum w)^2 / sum w^2."""
    weights = np.asarray(weights, dtype=float)
    if len(weights) == 0:
        return 0.0
    return float(weights.sum() ** 2 / np.sum(weights ** 2))


class RecencyWeighting:
    """
    Recency weighting scheme, configured once and reused.

    Holds no state beyond its parameters, so the same instance can
    weight any number of independent evaluations.
    """

    def __init__(
        self,
        gamma: Optional[float] = None,
        time_unit: TimeUnit = None,
    ):
        """
        Initialize weighting.

        Args:
            gamma: Decay factor per time unit in (0, 1]; None means no decay
            time_unit: See elapsed_time()
        """
        _check_gamma(gamma)
        self.gamma = gamma
        self.time_unit = time_unit

        logger.debug(
            "recency_weighting_initialized",
            gamma=gamma,
            half_life=half_life_from_gamma(gamma) if gamma is not None else None,
        )

    @classmethod
    def from_half_life(cls, half_life: float, time_unit: TimeUnit = None) -> "RecencyWeighting":
        return cls(gamma=gamma_from_half_life(half_life), time_unit=time_unit)

    @property
    def is_uniform(self) -> bool:
        return self.gamma is None or self.gamma == 1.0

    def weights(self, timestamps: Iterable[Any]) -> np.ndarray:
        return recency_weights(timestamps, self.gamma, self.time_unit)

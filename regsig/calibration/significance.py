"""
Regressor significance on backtest residual signal.

Given walkforward records, fit by (recency-weighted) least squares

    actual = b0 + b1 * forecast + b2 * regressor + e

and report b2's standard error, t-statistic and two-sided p-value.
A significant b2 means the regressor explains something the forecaster
is missing.

The evaluator only reports statistics. Whether a p-value is "good
enough" is the caller's decision (WeightedFit.is_significant helps).

CRITICAL: screening many candidates is a multiple testing problem.
At alpha = 0.05, 1 in 20 pure-noise candidates will look significant.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
import structlog

import numpy as np
import pandas as pd
from scipy import stats

from regsig.backtesting.records import BacktestRecord
from regsig.calibration.recency import RecencyWeighting, effective_sample_size, TimeUnit
from regsig.errors import InsufficientDataError, DegenerateFitError

logger = structlog.get_logger(__name__)

# Two coefficients plus residual variance
MIN_COMPLETE_RECORDS = 3

DEFAULT_SIGNIFICANCE_LEVEL = 0.05

# Built-in predictors; a regressor may not reuse these names
RESERVED_PREDICTORS = ("intercept", "forecast")


@dataclass
class WeightedFit:
    """
    Result of the auxiliary regression.

    Predictors are "intercept", "forecast" and the regressor's own name.
    """
    regressor_name: str
    coefficients: dict[str, float]
    std_errors: dict[str, float]
    t_stats: dict[str, float]
    p_values: dict[str, float]

    # Residual summary
    n_obs: int
    dof: int
    ssr: float           # Weighted sum of squared residuals
    sigma: float         # Residual standard error
    r_squared: float     # Weighted R^2
    residual_mean: float  # Weighted mean residual

    # Weighting
    gamma: Optional[float] = None
    effective_n: float = 0.0
    weights: np.ndarray = field(default_factory=lambda: np.array([]), repr=False)

    @property
    def predictors(self) -> list[str]:
        return list(self.coefficients)

    @property
    def coefficient(self) -> float:
        """Coefficient of the candidate regressor."""
        return self.coefficients[self.regressor_name]

    @property
    def p_value(self) -> float:
        """p-value of the candidate regressor."""
        return self.p_values[self.regressor_name]

    def is_significant(
        self,
        name: Optional[str] = None,
        alpha: float = DEFAULT_SIGNIFICANCE_LEVEL,
    ) -> bool:
        """
        Decision rule: p-value below alpha.

        Args:
            name: Predictor to test (defaults to the candidate regressor)
            alpha: Significance threshold
        """
        return self.p_values[name or self.regressor_name] < alpha

    def to_frame(self) -> pd.DataFrame:
        """Coefficient table, one row per predictor."""
        return pd.DataFrame(
            {
                "coef": self.coefficients,
                "std_err": self.std_errors,
                "t_stat": self.t_stats,
                "p_value": self.p_values,
            },
            index=self.predictors,
        )

    def to_dict(self) -> dict:
        return {
            "regressor": self.regressor_name,
            "coefficient": self.coefficient,
            "std_error": self.std_errors[self.regressor_name],
            "t_stat": self.t_stats[self.regressor_name],
            "p_value": self.p_value,
            "forecast_coefficient": self.coefficients["forecast"],
            "intercept": self.coefficients["intercept"],
            "n_obs": self.n_obs,
            "dof": self.dof,
            "sigma": self.sigma,
            "r_squared": self.r_squared,
            "gamma": self.gamma,
            "effective_n": self.effective_n,
        }


@dataclass
class ScreeningResult:
    """One candidate from a screen. Exactly one of fit / error is set."""
    regressor_name: str
    fit: Optional[WeightedFit] = None
    error: Optional[str] = None

    @property
    def p_value(self) -> float:
        return self.fit.p_value if self.fit is not None else float("nan")


def _check_regressor_name(regressor_name: str) -> None:
    if regressor_name in RESERVED_PREDICTORS:
        raise ValueError(
            f"regressor name {regressor_name!r} clashes with a built-in predictor "
            f"(reserved: {', '.join(RESERVED_PREDICTORS)}); rename the column"
        )


def _present(value: Optional[float]) -> bool:
    return value is not None and bool(np.isfinite(value))


def complete_records(records: Iterable[BacktestRecord], regressor_name: str) -> list[BacktestRecord]:
    """
    Records with both a forecast and a value for the regressor.

    Incomplete records are dropped, never imputed.
    """
    complete = [
        r for r in records
        if _present(r.forecast) and _present(r.regressors.get(regressor_name))
    ]
    complete.sort(key=lambda r: r.timestamp)

    timestamps = [r.timestamp for r in complete]
    if len(set(timestamps)) != len(timestamps):
        raise ValueError("records contain duplicate timestamps")

    return complete


def weighted_least_squares(
    design: np.ndarray,
    target: np.ndarray,
    weights: np.ndarray,
) -> dict[str, Any]:
    """
    Closed-form weighted least squares with classical standard errors.

    Solves (X'WX) b = X'Wy.

    Raises:
        DegenerateFitError: no residual degrees of freedom, rank-deficient
            weighted design, or zero residual variance
    """
    n, k = design.shape
    dof = n - k
    if dof <= 0:
        raise DegenerateFitError(f"no residual degrees of freedom ({n} observations, {k} parameters)")

    sqrt_w = np.sqrt(weights)
    xw = design * sqrt_w[:, None]
    yw = target * sqrt_w

    rank = np.linalg.matrix_rank(xw)
    if rank < k:
        raise DegenerateFitError(
            f"design matrix is rank deficient (rank {rank} < {k}); "
            "the regressor may be constant or collinear with the forecast"
        )

    xtwx = xw.T @ xw
    beta = np.linalg.solve(xtwx, xw.T @ yw)

    residuals = target - design @ beta
    ssr = float(np.sum(weights * residuals ** 2))

    y_mean = float(np.sum(weights * target) / np.sum(weights))
    tss = float(np.sum(weights * (target - y_mean) ** 2))

    if ssr <= 1e-12 * max(tss, np.finfo(float).tiny):
        raise DegenerateFitError("zero residual variance; significance is undefined")

    sigma2 = ssr / dof
    cov = sigma2 * np.linalg.inv(xtwx)
    std_errors = np.sqrt(np.diag(cov))
    t_stats = beta / std_errors
    p_values = 2.0 * stats.t.sf(np.abs(t_stats), dof)

    return {
        "beta": beta,
        "std_errors": std_errors,
        "t_stats": t_stats,
        "p_values": p_values,
        "residuals": residuals,
        "dof": dof,
        "ssr": ssr,
        "sigma": float(np.sqrt(sigma2)),
        "r_squared": 1.0 - ssr / tss if tss > 0 else float("nan"),
        "residual_mean": float(np.sum(weights * residuals) / np.sum(weights)),
    }


class RegressorSignificanceEvaluator:
    """
    Tests candidate regressors against backtest residual signal.

    Stateless apart from its parameters: evaluations with different
    decay rates are independent and reproducible.
    """

    def __init__(
        self,
        recency_gamma: Optional[float] = None,
        time_unit: TimeUnit = None,
        significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL,
        weighting: Optional[RecencyWeighting] = None,
    ):
        """
        Initialize evaluator.

        Args:
            recency_gamma: Decay per time unit in (0, 1]; None or 1 is OLS
            time_unit: Unit for elapsed time (default one day for datetimes,
                one period for periods, 1 otherwise)
            significance_level: Default alpha for screening decisions
            weighting: Prebuilt weighting scheme; overrides recency_gamma and time_unit
        """
        if weighting is None:
            weighting = RecencyWeighting(gamma=recency_gamma, time_unit=time_unit)
        self.weighting = weighting
        self.significance_level = significance_level

        logger.info(
            "significance_evaluator_initialized",
            recency_gamma=weighting.gamma,
            significance_level=significance_level,
        )

    @classmethod
    def from_settings(cls, settings) -> "RegressorSignificanceEvaluator":
        """Build from EvaluationSettings."""
        if settings.half_life is not None:
            weighting = RecencyWeighting.from_half_life(settings.half_life, settings.time_unit)
        else:
            weighting = RecencyWeighting(gamma=settings.recency_gamma, time_unit=settings.time_unit)
        return cls(weighting=weighting, significance_level=settings.significance_level)

    def evaluate(
        self,
        records: Iterable[BacktestRecord],
        regressor_name: str,
    ) -> WeightedFit:
        """
        Fit actual ~ intercept + forecast + regressor.

        Args:
            records: Walkforward backtest output
            regressor_name: Candidate regressor

        Returns:
            WeightedFit with statistics for every predictor

        Raises:
            ValueError: regressor_name is "intercept" or "forecast"
        """
        _check_regressor_name(regressor_name)
        complete = complete_records(records, regressor_name)

        if len(complete) < MIN_COMPLETE_RECORDS:
            raise InsufficientDataError(
                f"need at least {MIN_COMPLETE_RECORDS} complete records for "
                f"{regressor_name!r}, got {len(complete)}"
            )

        # Very old records can underflow to zero weight and carry no information
        weights = self.weighting.weights([r.timestamp for r in complete])
        if not np.all(weights > 0):
            dropped = int(np.sum(weights <= 0))
            complete = [r for r, w in zip(complete, weights) if w > 0]
            weights = weights[weights > 0]
            logger.debug("zero_weight_records_dropped", regressor=regressor_name, dropped=dropped)

            if len(complete) < MIN_COMPLETE_RECORDS:
                raise InsufficientDataError(
                    f"only {len(complete)} records of {regressor_name!r} keep a nonzero "
                    f"recency weight; need at least {MIN_COMPLETE_RECORDS}"
                )

        target = np.array([r.actual for r in complete], dtype=float)
        design = np.column_stack([
            np.ones(len(complete)),
            np.array([r.forecast for r in complete], dtype=float),
            np.array([r.regressors[regressor_name] for r in complete], dtype=float),
        ])

        result = weighted_least_squares(design, target, weights)

        names = ["intercept", "forecast", regressor_name]
        fit = WeightedFit(
            regressor_name=regressor_name,
            coefficients=dict(zip(names, map(float, result["beta"]))),
            std_errors=dict(zip(names, map(float, result["std_errors"]))),
            t_stats=dict(zip(names, map(float, result["t_stats"]))),
            p_values=dict(zip(names, map(float, result["p_values"]))),
            n_obs=len(complete),
            dof=result["dof"],
            ssr=result["ssr"],
            sigma=result["sigma"],
            r_squared=result["r_squared"],
            residual_mean=result["residual_mean"],
            gamma=self.weighting.gamma,
            effective_n=effective_sample_size(weights),
            weights=weights,
        )

        logger.info(
            "regressor_evaluated",
            regressor=regressor_name,
            coefficient=fit.coefficient,
            p_value=fit.p_value,
            n_obs=fit.n_obs,
            effective_n=round(fit.effective_n, 2),
        )

        return fit

    def screen(
        self,
        records: Iterable[BacktestRecord],
        regressor_names: Optional[Iterable[str]] = None,
    ) -> list[ScreeningResult]:
        """
        Evaluate several candidates, each on its own against the forecast.

        Candidates that cannot be fitted are reported with their error
        instead of aborting the screen. Results are ordered by p-value,
        failures last.
        """
        records = list(records)
        if regressor_names is None:
            regressor_names = sorted({name for r in records for name in r.regressors})

        results = []
        for name in regressor_names:
            if name in RESERVED_PREDICTORS:
                error = f"regressor name {name!r} clashes with a built-in predictor"
                logger.warning("regressor_screen_skipped", regressor=name, error=error)
                results.append(ScreeningResult(name, error=error))
                continue
            try:
                results.append(ScreeningResult(name, fit=self.evaluate(records, name)))
            except (InsufficientDataError, DegenerateFitError) as e:
                logger.warning("regressor_screen_skipped", regressor=name, error=str(e))
                results.append(ScreeningResult(name, error=str(e)))

        results.sort(key=lambda r: (r.fit is None, r.p_value if r.fit is not None else 0.0))

        significant = sum(
            1 for r in results
            if r.fit is not None and r.fit.is_significant(alpha=self.significance_level)
        )
        logger.info(
            "regressor_screen_complete",
            candidates=len(results),
            significant=significant,
            alpha=self.significance_level,
        )

        return results


def evaluate_regressor(
    records: Iterable[BacktestRecord],
    regressor_name: str,
    recency_gamma: Optional[float] = None,
    *,
    time_unit: TimeUnit = None,
) -> WeightedFit:
    """Evaluate one candidate regressor. See RegressorSignificanceEvaluator."""
    evaluator = RegressorSignificanceEvaluator(recency_gamma=recency_gamma, time_unit=time_unit)
    return evaluator.evaluate(records, regressor_name)


def screen_regressors(
    records: Iterable[BacktestRecord],
    regressor_names: Optional[Iterable[str]] = None,
    recency_gamma: Optional[float] = None,
    *,
    time_unit: TimeUnit = None,
    significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL,
) -> list[ScreeningResult]:
    """Evaluate several candidates pairwise against the forecast."""
    evaluator = RegressorSignificanceEvaluator(
        recency_gamma=recency_gamma,
        time_unit=time_unit,
        significance_level=significance_level,
    )
    return evaluator.screen(records, regressor_names)

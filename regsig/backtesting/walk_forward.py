"""
Walkforward backtester.

CRITICAL: each step is fitted ONLY on observations strictly before the
held-out timestamp. A single leaked future value silently invalidates
every significance test run on the output.

Protocol, for the last `window_size` points (oldest first):
- Train on history[:i]
- Forecast one step ahead
- Record (timestamp, actual, forecast, regressor values at that timestamp)
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional
import structlog

import numpy as np

from regsig.data.series import TimeSeries, RegressorFrame
from regsig.errors import InsufficientDataError, ForecasterStepFailure
from regsig.forecasting.base import Forecaster
from regsig.backtesting.records import BacktestRecord, summarize_backtest

logger = structlog.get_logger(__name__)

FAILURE_MODES = ("skip", "abort")


class WalkForwardBacktester:
    """
    Expanding-window, one-step-ahead backtester.

    Steps are independent: each one only reads an immutable prefix of the
    inputs, so they may run on a thread pool. Output is always ordered
    by timestamp.
    """

    def __init__(
        self,
        forecaster: Forecaster,
        window_size: int,
        forward_facing: bool = False,
        on_failure: str = "skip",
        max_workers: Optional[int] = None,
    ):
        """
        Initialize backtester.

        Args:
            forecaster: Anything satisfying the fit/predict contract
            window_size: Number of most recent points to hold out and forecast
            forward_facing: Give the forecaster regressors (known through the
                training cutoff at fit time, the held-out row at predict time)
            on_failure: "skip" records a failed step and continues,
                "abort" raises ForecasterStepFailure on the first failure
            max_workers: Run steps on a thread pool of this size
        """
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        if on_failure not in FAILURE_MODES:
            raise ValueError(f"on_failure must be one of {FAILURE_MODES}, got {on_failure!r}")
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self.forecaster = forecaster
        self.window_size = window_size
        self.forward_facing = forward_facing
        self.on_failure = on_failure
        self.max_workers = max_workers

        logger.info(
            "walk_forward_backtester_initialized",
            forecaster=getattr(forecaster, "name", type(forecaster).__name__),
            window_size=window_size,
            forward_facing=forward_facing,
            on_failure=on_failure,
        )

    def run(
        self,
        history: TimeSeries,
        regressors: Optional[RegressorFrame] = None,
    ) -> list[BacktestRecord]:
        """
        Run the backtest.

        Args:
            history: Target series
            regressors: Optional regressors on the same index as history

        Returns:
            Exactly window_size records, strictly increasing by timestamp
        """
        n = len(history)
        if n < self.window_size + 1:
            raise InsufficientDataError(
                f"need at least {self.window_size + 1} observations for a "
                f"window of {self.window_size}, got {n}"
            )

        if regressors is not None and not regressors.is_aligned_with(history):
            raise ValueError("regressors must share the target series' timestamp index")

        positions = range(n - self.window_size, n)

        logger.info(
            "walk_forward_backtest_starting",
            observations=n,
            steps=self.window_size,
            first_test=str(history.timestamp_at(positions[0])),
        )

        if self.max_workers and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                records = list(pool.map(
                    lambda i: self._run_step(history, regressors, i),
                    positions,
                ))
        else:
            records = [self._run_step(history, regressors, i) for i in positions]

        summary = summarize_backtest(records)
        logger.info("walk_forward_backtest_complete", **summary)

        return records

    def _run_step(
        self,
        history: TimeSeries,
        regressors: Optional[RegressorFrame],
        position: int,
    ) -> BacktestRecord:
        timestamp = history.timestamp_at(position)
        actual = history.value_at(position)
        observed = regressors.row_at(position) if regressors is not None else {}

        try:
            forecast = self._forecast(history, regressors, position)
        except ForecasterStepFailure as failure:
            if self.on_failure == "abort":
                logger.error("backtest_aborted", timestamp=str(timestamp), error=str(failure))
                raise

            logger.warning("backtest_step_failed", timestamp=str(timestamp), error=str(failure))
            return BacktestRecord(
                timestamp=timestamp,
                actual=actual,
                forecast=None,
                regressors=observed,
                failed=True,
                error=str(failure),
            )

        return BacktestRecord(
            timestamp=timestamp,
            actual=actual,
            forecast=forecast,
            regressors=observed,
        )

    def _forecast(
        self,
        history: TimeSeries,
        regressors: Optional[RegressorFrame],
        position: int,
    ) -> float:
        """Fit on everything before `position`, forecast `position`."""
        timestamp = history.timestamp_at(position)
        train = history.head(position)

        train_regressors = None
        future_regressors = None
        if self.forward_facing and regressors is not None:
            train_regressors = regressors.head(position)
            future_regressors = regressors.frame_at(position)

        try:
            model = self.forecaster.fit(train, train_regressors)
            value = self.forecaster.predict(model, horizon=1, future_regressors=future_regressors)
        except Exception as e:
            raise ForecasterStepFailure(timestamp, f"{type(e).__name__}: {e}", cause=e) from e

        return _as_forecast(value, timestamp)


def _as_forecast(value: Any, timestamp: Any) -> float:
    try:
        arr = np.asarray(value, dtype=float)
    except (TypeError, ValueError) as e:
        raise ForecasterStepFailure(timestamp, f"forecast is not numeric: {value!r}", cause=e) from e

    if arr.size != 1:
        raise ForecasterStepFailure(timestamp, f"forecast is not a scalar (shape {arr.shape})")

    forecast = float(arr.reshape(-1)[0])
    if not np.isfinite(forecast):
        raise ForecasterStepFailure(timestamp, f"forecast is not finite: {forecast}")

    return forecast


def run_backtest(
    history: TimeSeries,
    window_size: int,
    forecaster: Forecaster,
    regressors: Optional[RegressorFrame] = None,
    *,
    forward_facing: bool = False,
    on_failure: str = "skip",
    max_workers: Optional[int] = None,
) -> list[BacktestRecord]:
    """
    Walkforward backtest in one call.

    See WalkForwardBacktester for the arguments.
    """
    backtester = WalkForwardBacktester(
        forecaster=forecaster,
        window_size=window_size,
        forward_facing=forward_facing,
        on_failure=on_failure,
        max_workers=max_workers,
    )
    return backtester.run(history, regressors)

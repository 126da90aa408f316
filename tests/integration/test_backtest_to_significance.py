"""
Integration tests: walkforward backtest feeding regressor significance.

Simulates the intended workflow: backtest a baseline forecaster, then
ask whether a candidate regressor explains its one-step-ahead errors.
"""

import pytest
import numpy as np
import pandas as pd

from regsig import (
    TimeSeries,
    RegressorFrame,
    run_backtest,
    evaluate_regressor,
    screen_regressors,
    InsufficientDataError,
)
from regsig.backtesting.records import records_to_frame, summarize_backtest
from regsig.forecasting.naive import NaiveForecaster


@pytest.fixture
def signal_dataset():
    """
    Daily series whose daily change is 3 * signal + small noise.

    A naive forecaster misses exactly the signal term.
    """
    n = 250
    rng = np.random.default_rng(2024)
    dates = pd.date_range("2021-01-01", periods=n, freq="D")
    signal = rng.normal(0, 1, n)
    noise = rng.normal(0, 1, n)
    values = 100 + np.cumsum(3.0 * signal + rng.normal(0, 0.1, n))

    history = TimeSeries(pd.Series(values, index=dates), name="level")
    regressors = RegressorFrame(pd.DataFrame({"signal": signal, "noise": noise}, index=dates))
    return history, regressors


class TestBacktestToSignificance:
    """End-to-end workflow."""

    def test_signal_regressor_detected(self, signal_dataset):
        """Test that the missing driver is found on backtest output."""
        history, regressors = signal_dataset

        records = run_backtest(history, 120, NaiveForecaster(), regressors)
        fit = evaluate_regressor(records, "signal")

        assert fit.n_obs == 120
        assert fit.coefficient == pytest.approx(3.0, abs=0.05)
        assert fit.coefficients["forecast"] == pytest.approx(1.0, abs=0.05)
        assert fit.p_value < 0.01

    def test_recency_weighted_detection(self, signal_dataset):
        """Test detection with a 30-day half-life."""
        history, regressors = signal_dataset

        records = run_backtest(history, 120, NaiveForecaster(), regressors)
        fit = evaluate_regressor(records, "signal", recency_gamma=0.5 ** (1 / 30))

        assert fit.weights[-1] == 1.0
        assert fit.weights[-31] == pytest.approx(0.5)
        assert fit.coefficient == pytest.approx(3.0, abs=0.1)
        assert fit.p_value < 0.01

    def test_screen_ranks_signal_first(self, signal_dataset):
        """Test screening both candidates."""
        history, regressors = signal_dataset

        records = run_backtest(history, 120, NaiveForecaster(), regressors)
        results = screen_regressors(records)

        assert results[0].regressor_name == "signal"
        assert results[0].fit.is_significant(alpha=0.01)
        assert results[1].regressor_name == "noise"

    def test_failed_steps_and_gaps_are_excluded(self, signal_dataset):
        """Test that failed steps and absent regressor values drop out of the fit."""
        history, regressors = signal_dataset
        n = len(history)

        frame = regressors.to_frame()
        frame.iloc[-10:, frame.columns.get_loc("signal")] = np.nan
        regressors = RegressorFrame(frame)

        class FlakyNaive(NaiveForecaster):
            def fit(self, history, regressors=None):
                if len(history) % 25 == 0:
                    raise RuntimeError("flaky")
                return super().fit(history, regressors)

        records = run_backtest(history, 100, FlakyNaive(), regressors)
        failed = {r.timestamp for r in records if r.failed}

        summary = summarize_backtest(records)
        assert summary["total_steps"] == 100
        assert summary["failed_steps"] == len(failed) == sum(1 for p in range(n - 100, n) if p % 25 == 0)

        fit = evaluate_regressor(records, "signal")
        expected = sum(
            1 for r in records
            if not r.failed and r.regressor("signal") is not None
        )
        assert fit.n_obs == expected
        assert fit.n_obs < 100

        df = records_to_frame(records)
        assert df["forecast"].isna().sum() == len(failed)
        assert df["signal"].isna().sum() == 10

    def test_window_too_small_for_evaluation(self, signal_dataset):
        """Test that a two-step backtest cannot support a significance test."""
        history, regressors = signal_dataset

        records = run_backtest(history, 2, NaiveForecaster(), regressors)

        with pytest.raises(InsufficientDataError):
            evaluate_regressor(records, "signal")


@pytest.fixture
def monthly_dataset():
    """Monthly period-indexed series driven by a signal, like published macro data."""
    n = 120
    rng = np.random.default_rng(77)
    months = pd.period_range("2000-01", periods=n, freq="M")
    signal = rng.normal(0, 1, n)
    values = 50 + np.cumsum(2.0 * signal + rng.normal(0, 0.2, n))

    history = TimeSeries(pd.Series(values, index=months), name="index_level")
    regressors = RegressorFrame(pd.DataFrame({"signal": signal}, index=months))
    return history, regressors


class TestPeriodIndexedWorkflow:
    """Backtest and evaluation on a monthly PeriodIndex."""

    def test_unweighted(self, monthly_dataset):
        """Test ordinary least squares on monthly backtest output."""
        history, regressors = monthly_dataset

        records = run_backtest(history, 60, NaiveForecaster(), regressors)
        fit = evaluate_regressor(records, "signal")

        assert isinstance(records[0].timestamp, pd.Period)
        assert fit.n_obs == 60
        assert fit.coefficient == pytest.approx(2.0, abs=0.1)
        assert fit.p_value < 0.01

    def test_weighted_in_months(self, monthly_dataset):
        """Test that a 12-month half-life halves the weight a year back."""
        history, regressors = monthly_dataset

        records = run_backtest(history, 60, NaiveForecaster(), regressors)
        fit = evaluate_regressor(records, "signal", recency_gamma=0.5 ** (1 / 12))

        assert fit.weights[-1] == 1.0
        assert fit.weights[-13] == pytest.approx(0.5)
        assert fit.weights[0] == pytest.approx(0.5 ** (59 / 12))
        assert fit.p_value < 0.01

        frame = records_to_frame(records)
        assert isinstance(frame.index, pd.PeriodIndex)


class TestRecordColumns:
    """Regressor names versus the flattened record columns."""

    @pytest.mark.parametrize("name", ["actual", "forecast", "failed", "error"])
    def test_clashing_regressor_name(self, signal_dataset, name):
        """Test that flattening refuses to overwrite a record column."""
        history, regressors = signal_dataset
        frame = regressors.to_frame().rename(columns={"noise": name})

        records = run_backtest(history, 5, NaiveForecaster(), RegressorFrame(frame))

        with pytest.raises(ValueError, match="clash"):
            records_to_frame(records)

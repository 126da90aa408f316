#!/usr/bin/env python3
"""
Run a walkforward backtest and test candidate regressors.

Usage:
    python scripts/run_backtest.py --input data/unrate.csv --target unrate --window 36

    # Test one regressor on the backtest residual signal
    python scripts/run_backtest.py --input data/unrate.csv --target unrate \\
        --forecaster arima --evaluate claims --half-life 24 --time-unit 30D

    # Screen every other column of the CSV
    python scripts/run_backtest.py --input data/unrate.csv --target unrate --screen

The CSV must have a timestamp column (default "timestamp"); every other
column is a candidate regressor unless --regressors narrows the list.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import structlog
import pandas as pd
from dotenv import load_dotenv

from regsig.config import load_settings, BacktestSettings, EvaluationSettings
from regsig.data.series import TimeSeries, RegressorFrame
from regsig.backtesting.walk_forward import WalkForwardBacktester
from regsig.backtesting.records import records_to_frame, summarize_backtest
from regsig.calibration.significance import RegressorSignificanceEvaluator
from regsig.errors import RegSigError
from regsig.forecasting.registry import build_forecaster

logger = structlog.get_logger(__name__)


def setup_logging(log_level: str = "INFO"):
    """Configure logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def load_inputs(
    path: str,
    target: str,
    timestamp_column: str,
    regressor_names: Optional[list[str]],
) -> tuple[TimeSeries, Optional[RegressorFrame]]:
    """Read target and regressors from a CSV file."""
    df = pd.read_csv(path)

    if timestamp_column not in df.columns:
        raise ValueError(f"CSV has no {timestamp_column!r} column")
    if target not in df.columns:
        raise ValueError(f"CSV has no target column {target!r}")

    timestamps = df[timestamp_column]
    if not pd.api.types.is_numeric_dtype(timestamps):
        timestamps = pd.to_datetime(timestamps)

    df = df.set_index(pd.Index(timestamps, name=timestamp_column)).drop(columns=[timestamp_column])
    df = df.sort_index()

    history = TimeSeries(df[target], name=target)

    if regressor_names is None:
        regressor_names = [c for c in df.columns if c != target]

    if not regressor_names:
        return history, None

    return history, RegressorFrame(df[regressor_names])


def main():
    parser = argparse.ArgumentParser(description="Walkforward backtest with regressor significance")
    parser.add_argument("--input", required=True, help="CSV file with timestamp, target and regressors")
    parser.add_argument("--target", required=True, help="Target column")
    parser.add_argument("--timestamp-column", default="timestamp")
    parser.add_argument("--regressors", nargs="*", help="Regressor columns (default: all others)")
    parser.add_argument("--config", help="Settings YAML (default: $REGSIG_CONFIG or config/settings.yaml)")
    parser.add_argument("--window", type=int, help="Number of held-out steps")
    parser.add_argument("--forecaster", choices=["naive", "drift", "arima"])
    parser.add_argument("--forward-facing", action="store_true", help="Let the forecaster use the regressors")
    parser.add_argument("--abort-on-failure", action="store_true", help="Stop at the first failing step")
    parser.add_argument("--workers", type=int, help="Parallel backtest steps")
    parser.add_argument("--evaluate", action="append", default=[], help="Regressor to test (repeatable)")
    parser.add_argument("--screen", action="store_true", help="Test every regressor")
    parser.add_argument("--gamma", type=float, help="Recency decay per time unit")
    parser.add_argument("--half-life", type=float, help="Recency half-life in time units")
    parser.add_argument("--time-unit", help="Time unit for recency weighting, e.g. 1D or 30D")
    parser.add_argument("--alpha", type=float, help="Significance level")
    parser.add_argument("--output", help="Write backtest records to this CSV")

    args = parser.parse_args()

    load_dotenv()
    settings = load_settings(args.config or os.getenv("REGSIG_CONFIG", "config/settings.yaml"))
    setup_logging(os.getenv("LOG_LEVEL", settings.log_level))

    backtest = settings.backtest
    backtest = BacktestSettings(
        window_size=args.window or backtest.window_size,
        on_failure="abort" if args.abort_on_failure else backtest.on_failure,
        forward_facing=args.forward_facing or backtest.forward_facing,
        max_workers=args.workers or backtest.max_workers,
    )

    evaluation = settings.evaluation
    override_decay = args.gamma is not None or args.half_life is not None
    evaluation = EvaluationSettings(
        recency_gamma=args.gamma if override_decay else evaluation.recency_gamma,
        half_life=args.half_life if override_decay else evaluation.half_life,
        significance_level=args.alpha if args.alpha is not None else evaluation.significance_level,
        time_unit=args.time_unit if args.time_unit is not None else evaluation.time_unit,
    )

    forecaster_settings = settings.forecaster
    if args.forecaster:
        forecaster_settings.name = args.forecaster

    logger.info("backtest_starting", input=args.input, target=args.target)

    try:
        history, regressors = load_inputs(
            args.input, args.target, args.timestamp_column, args.regressors
        )

        backtester = WalkForwardBacktester(
            forecaster=build_forecaster(forecaster_settings, use_regressors=backtest.forward_facing),
            window_size=backtest.window_size,
            forward_facing=backtest.forward_facing,
            on_failure=backtest.on_failure,
            max_workers=backtest.max_workers,
        )
        records = backtester.run(history, regressors)

        if args.output:
            records_to_frame(records).to_csv(args.output)
            logger.info("records_written", path=args.output, rows=len(records))

        report = {"backtest": summarize_backtest(records)}

        evaluator = RegressorSignificanceEvaluator.from_settings(evaluation)
        if args.screen:
            results = evaluator.screen(records, regressors.names if regressors is not None else [])
            report["screen"] = [
                r.fit.to_dict() if r.fit is not None else {"regressor": r.regressor_name, "error": r.error}
                for r in results
            ]
        elif args.evaluate:
            report["evaluations"] = []
            for name in args.evaluate:
                fit = evaluator.evaluate(records, name)
                entry = fit.to_dict()
                entry["significant"] = fit.is_significant(alpha=evaluation.significance_level)
                report["evaluations"].append(entry)

    except (RegSigError, ValueError) as e:
        logger.error("backtest_failed", error=str(e))
        sys.exit(1)

    print(json.dumps(report, indent=2, default=str))
    logger.info("backtest_suite_complete")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Time-varying relationship between two instruments.

Fits y = alpha_t + beta_t * x with exponentially-weighted least squares
at every timestamp and writes the estimates to CSV.

Usage:
    python scripts/rolling_beta.py --input data/prices.csv --y GLD --x GDX --half-life 60
    python scripts/rolling_beta.py --input data/prices.csv --y GLD --x GDX --gamma 0.99 --returns
"""

import argparse
import logging
import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import structlog
import pandas as pd
from dotenv import load_dotenv

from regsig.calibration.time_varying import exponential_regression

logger = structlog.get_logger(__name__)


def setup_logging(log_level: str = "INFO"):
    """Configure logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
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


def main():
    parser = argparse.ArgumentParser(description="Exponentially-weighted rolling regression")
    parser.add_argument("--input", required=True, help="CSV with a timestamp column and price columns")
    parser.add_argument("--timestamp-column", default="timestamp")
    parser.add_argument("--y", required=True, help="Dependent instrument")
    parser.add_argument("--x", required=True, help="Explanatory instrument")
    parser.add_argument("--gamma", type=float, help="Decay per observation")
    parser.add_argument("--half-life", type=float, help="Half-life in observations")
    parser.add_argument("--min-periods", type=int, default=20)
    parser.add_argument("--returns", action="store_true", help="Regress percentage returns instead of levels")
    parser.add_argument("--output", help="Output CSV (default: stdout)")

    args = parser.parse_args()

    load_dotenv()
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    df = pd.read_csv(args.input, parse_dates=[args.timestamp_column])
    df = df.set_index(args.timestamp_column).sort_index()

    for column in (args.y, args.x):
        if column not in df.columns:
            logger.error("column_not_found", column=column)
            sys.exit(1)

    y, x = df[args.y], df[args.x]
    if args.returns:
        y, x = y.pct_change(), x.pct_change()

    try:
        result = exponential_regression(
            y,
            x,
            gamma=args.gamma,
            half_life=args.half_life,
            min_periods=args.min_periods,
        )
    except ValueError as e:
        logger.error("rolling_beta_failed", error=str(e))
        sys.exit(1)

    if args.output:
        result.to_csv(args.output)
        logger.info("rolling_beta_written", path=args.output, rows=len(result))
    else:
        result.to_csv(sys.stdout)


if __name__ == "__main__":
    main()

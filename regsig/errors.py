"""
Error taxonomy.

- InsufficientDataError and DegenerateFitError abort the call that raised them
- ForecasterStepFailure is recorded inline by the backtester unless the
  caller asks to abort on the first failing step
"""

from typing import Any, Optional


class RegSigError(Exception):
    """Base class for all regsig errors."""


class InsufficientDataError(RegSigError):
    """Not enough history, or not enough complete records, to proceed."""


class DegenerateFitError(RegSigError):
    """Regression cannot be estimated (rank deficiency, no residual dof, or zero residual variance)."""


class ForecasterStepFailure(RegSigError):
    """The forecaster failed to produce a usable forecast for one step."""

    def __init__(
        self,
        timestamp: Any,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(f"forecast failed at {timestamp}: {message}")
        self.timestamp = timestamp
        self.cause = cause

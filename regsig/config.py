"""
Configuration.

Settings are loaded from YAML and passed explicitly to the components
that need them. Nothing here is module-level mutable state, so two
evaluations with different decay rates never interfere.

Example config/settings.yaml:

    log_level: INFO
    backtest:
      window_size: 24
      on_failure: skip
    evaluation:
      half_life: 12
      significance_level: 0.05
    forecaster:
      name: arima
      max_p: 2
"""

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Optional, Union
import structlog
import yaml

from regsig.calibration.recency import gamma_from_half_life

logger = structlog.get_logger(__name__)

FAILURE_MODES = ("skip", "abort")
FORECASTERS = ("naive", "drift", "arima")


@dataclass
class BacktestSettings:
    """Walkforward backtest parameters."""
    window_size: int = 12
    on_failure: str = "skip"
    forward_facing: bool = False
    max_workers: Optional[int] = None

    def __post_init__(self):
        if self.window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {self.window_size}")
        if self.on_failure not in FAILURE_MODES:
            raise ValueError(f"on_failure must be one of {FAILURE_MODES}, got {self.on_failure!r}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")


@dataclass
class EvaluationSettings:
    """Regressor significance parameters."""
    recency_gamma: Optional[float] = None
    half_life: Optional[float] = None  # In time units; alternative to gamma
    significance_level: float = 0.05
    time_unit: Optional[Union[str, float]] = None  # "1D", "7D", or a number (periods: an integer)

    def __post_init__(self):
        if self.recency_gamma is not None and self.half_life is not None:
            raise ValueError("set recency_gamma or half_life, not both")
        if self.recency_gamma is not None and not 0.0 < self.recency_gamma <= 1.0:
            raise ValueError(f"recency_gamma must be in (0, 1], got {self.recency_gamma}")
        if self.half_life is not None and self.half_life <= 0:
            raise ValueError(f"half_life must be positive, got {self.half_life}")
        if not 0.0 < self.significance_level < 1.0:
            raise ValueError(f"significance_level must be in (0, 1), got {self.significance_level}")

    def resolved_gamma(self) -> Optional[float]:
        """Decay factor per time unit, from gamma or half-life."""
        if self.half_life is not None:
            return gamma_from_half_life(self.half_life)
        return self.recency_gamma


@dataclass
class ForecasterSettings:
    """Which forecaster to backtest."""
    name: str = "naive"
    max_p: int = 2
    max_d: int = 1
    max_q: int = 2

    def __post_init__(self):
        if self.name not in FORECASTERS:
            raise ValueError(f"forecaster must be one of {FORECASTERS}, got {self.name!r}")


@dataclass
class Settings:
    """Top-level settings."""
    log_level: str = "INFO"
    backtest: BacktestSettings = field(default_factory=BacktestSettings)
    evaluation: EvaluationSettings = field(default_factory=EvaluationSettings)
    forecaster: ForecasterSettings = field(default_factory=ForecasterSettings)

    @classmethod
    def from_dict(cls, raw: dict) -> "Settings":
        raw = dict(raw or {})
        sections = {
            "backtest": BacktestSettings,
            "evaluation": EvaluationSettings,
            "forecaster": ForecasterSettings,
        }

        _reject_unknown(raw, {f.name for f in fields(cls)}, "settings")

        kwargs = {}
        for key, section_cls in sections.items():
            section = raw.pop(key, None) or {}
            _reject_unknown(section, {f.name for f in fields(section_cls)}, key)
            kwargs[key] = section_cls(**section)

        if "log_level" in raw:
            kwargs["log_level"] = str(raw["log_level"]).upper()

        return cls(**kwargs)

    def to_dict(self) -> dict:
        return asdict(self)


def _reject_unknown(section: dict, allowed: set, where: str) -> None:
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"unknown {where} keys: {sorted(unknown)}")


def load_settings(path: Union[str, Path] = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML file.

    A missing file is not an error: defaults are used and a warning logged.
    """
    config_path = Path(path)

    if not config_path.exists():
        logger.warning("config_not_found_using_defaults", path=str(path))
        return Settings()

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    settings = Settings.from_dict(raw or {})
    logger.info("config_loaded", path=str(path))
    return settings

"""
Tests for settings loading and validation.
"""

import pytest

from regsig.config import (
    Settings,
    BacktestSettings,
    EvaluationSettings,
    ForecasterSettings,
    load_settings,
)


class TestLoadSettings:
    """YAML loading."""

    def test_missing_file_uses_defaults(self, temp_dir):
        """Test that a missing config file falls back to defaults."""
        settings = load_settings(temp_dir / "nope.yaml")

        assert settings == Settings()
        assert settings.backtest.on_failure == "skip"
        assert settings.evaluation.resolved_gamma() is None

    def test_load_yaml(self, temp_dir):
        """Test loading every section from YAML."""
        path = temp_dir / "settings.yaml"
        path.write_text(
            "log_level: debug\n"
            "backtest:\n"
            "  window_size: 36\n"
            "  on_failure: abort\n"
            "  max_workers: 4\n"
            "evaluation:\n"
            "  recency_gamma: 0.98\n"
            "  time_unit: 7D\n"
            "forecaster:\n"
            "  name: arima\n"
            "  max_p: 3\n"
        )

        settings = load_settings(path)

        assert settings.log_level == "DEBUG"
        assert settings.backtest.window_size == 36
        assert settings.backtest.on_failure == "abort"
        assert settings.backtest.max_workers == 4
        assert settings.evaluation.resolved_gamma() == 0.98
        assert settings.evaluation.time_unit == "7D"
        assert settings.forecaster.name == "arima"
        assert settings.forecaster.max_p == 3
        assert settings.forecaster.max_q == 2

    def test_empty_file(self, temp_dir):
        """Test that an empty file means defaults."""
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert load_settings(path) == Settings()

    def test_unknown_keys_rejected(self, temp_dir):
        """Test that typos in config are caught."""
        path = temp_dir / "typo.yaml"
        path.write_text("backtest:\n  window: 12\n")

        with pytest.raises(ValueError, match="window"):
            load_settings(path)

        with pytest.raises(ValueError, match="unknown settings keys"):
            Settings.from_dict({"backtset": {}})

    def test_round_trip(self):
        """Test to_dict / from_dict."""
        settings = Settings(evaluation=EvaluationSettings(half_life=12.0))
        assert Settings.from_dict(settings.to_dict()) == settings


class TestValidation:
    """Section-level validation."""

    def test_backtest_settings(self):
        """Test invalid backtest parameters."""
        with pytest.raises(ValueError):
            BacktestSettings(window_size=0)
        with pytest.raises(ValueError):
            BacktestSettings(on_failure="ignore")
        with pytest.raises(ValueError):
            BacktestSettings(max_workers=0)

    def test_evaluation_settings(self):
        """Test invalid evaluation parameters."""
        with pytest.raises(ValueError):
            EvaluationSettings(recency_gamma=1.5)
        with pytest.raises(ValueError):
            EvaluationSettings(recency_gamma=0.9, half_life=10)
        with pytest.raises(ValueError):
            EvaluationSettings(half_life=-1)
        with pytest.raises(ValueError):
            EvaluationSettings(significance_level=0.0)

    def test_half_life_resolves_to_gamma(self):
        """Test half-life conversion."""
        gamma = EvaluationSettings(half_life=4.0).resolved_gamma()
        assert gamma ** 4 == pytest.approx(0.5)

    def test_forecaster_settings(self):
        """Test unknown forecaster name."""
        with pytest.raises(ValueError):
            ForecasterSettings(name="prophet")

"""Tests for settings and logging configuration."""

import pytest
import structlog
from unittest.mock import patch

from fmg_landcover.config import Settings
from fmg_landcover.utils.logging import configure_from_settings, configure_logging


class TestSettings:
    """Test environment-driven settings."""

    @pytest.fixture(autouse=True)
    def isolated_env(self, monkeypatch, tmp_path):
        # Keep a developer's .env out of the tests
        monkeypatch.chdir(tmp_path)

    def test_defaults(self):
        settings = Settings()

        assert settings.log_level == "INFO"
        assert settings.log_format == "json"
        assert settings.terrain.mountain_height == 75
        assert settings.terrain.smoothing_rounds == 1
        assert settings.farmland.max_steps == 45
        assert settings.farmland.cells_per_thousand == 4

    def test_nested_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LANDCOVER_TERRAIN__MOUNTAIN_HEIGHT", "80")
        monkeypatch.setenv("LANDCOVER_FARMLAND__MAX_STEPS", "12")
        monkeypatch.setenv("LANDCOVER_LOG_LEVEL", "DEBUG")

        settings = Settings()

        assert settings.terrain.mountain_height == 80
        assert settings.terrain.highland_height == 55
        assert settings.farmland.max_steps == 12
        assert settings.log_level == "DEBUG"

    def test_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("LANDCOVER_FARMLAND__MIN_SUITABILITY=9\n")

        settings = Settings()

        assert settings.farmland.min_suitability == 9


class TestLogging:
    """Test structlog configuration."""

    @pytest.fixture(autouse=True)
    def restore_structlog(self):
        yield
        structlog.reset_defaults()

    @pytest.mark.parametrize("fmt", ["json", "plain"])
    def test_configure_logging(self, fmt):
        configure_logging("debug", fmt)

        assert structlog.is_configured()
        structlog.get_logger("fmg_landcover").info("configured", fmt=fmt)

    def test_configure_from_settings(self):
        settings = Settings(log_level="warning", log_format="plain")
        with patch("fmg_landcover.utils.logging.configure_logging") as configure:
            configure_from_settings(settings)

        configure.assert_called_once_with("warning", "plain")

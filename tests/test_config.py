"""Tests for settings and logging setup."""

import logging

import pytest

from campusdesk.config import Settings, configure_logging


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.api_url == "http://localhost:5000"
        assert settings.request_timeout == "30s"
        assert settings.stale_time is None

    def test_invalid_duration_rejected(self) -> None:
        with pytest.raises(ValueError, match="Invalid duration"):
            Settings(request_timeout="soon")

    def test_invalid_log_level_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            Settings(log_level="chatty")

    def test_from_env(self) -> None:
        settings = Settings.from_env(
            {
                "CAMPUSDESK_API_URL": "https://school.test",
                "CAMPUSDESK_REQUEST_TIMEOUT": "2500",
                "CAMPUSDESK_STALE_TIME": "5m",
                "CAMPUSDESK_LOG_LEVEL": "debug",
            }
        )
        assert settings.api_url == "https://school.test"
        assert settings.request_timeout == 2500
        assert settings.stale_time == "5m"
        assert settings.log_level == "debug"

    def test_from_env_defaults_and_off(self) -> None:
        settings = Settings.from_env({"CAMPUSDESK_REQUEST_TIMEOUT": "off"})
        assert settings.api_url == "http://localhost:5000"
        assert settings.request_timeout is None

    def test_from_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CAMPUSDESK_API_URL", "http://env.test")
        assert Settings.from_env().api_url == "http://env.test"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level_and_single_handler(self) -> None:
        logger = configure_logging("debug")
        configure_logging("info")
        assert logger is logging.getLogger("campusdesk")
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1

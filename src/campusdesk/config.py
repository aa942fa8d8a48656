"""Settings, read from keyword arguments or the environment."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from campusdesk.duration import parse_duration
from campusdesk.types import Duration

ENV_PREFIX = "CAMPUSDESK_"
_NO_LIMIT = {"", "none", "off"}


def _env_duration(value: str | None, default: Duration | None) -> Duration | None:
    if value is None:
        return default
    value = value.strip()
    if value.lower() in _NO_LIMIT:
        return None
    if value.isdigit():
        return int(value)
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    """Client configuration.

    Durations accept "250ms", "30s", "5m" or milliseconds; None disables
    the limit (no request timeout, data fresh until invalidated).
    """

    api_url: str = "http://localhost:5000"
    request_timeout: Duration | None = "30s"
    stale_time: Duration | None = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        # Fail at construction, not on the first request
        for duration in (self.request_timeout, self.stale_time):
            if duration is not None:
                parse_duration(duration)
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from CAMPUSDESK_* variables, defaulting the rest."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            api_url=env.get(f"{ENV_PREFIX}API_URL", defaults.api_url),
            request_timeout=_env_duration(
                env.get(f"{ENV_PREFIX}REQUEST_TIMEOUT"), defaults.request_timeout
            ),
            stale_time=_env_duration(
                env.get(f"{ENV_PREFIX}STALE_TIME"), defaults.stale_time
            ),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level),
        )


def configure_logging(level: str | int = "WARNING") -> logging.Logger:
    """Set the package log level and attach a stderr handler once.

    For applications, e.g. ``configure_logging(settings.log_level)``; the
    library itself only creates loggers.
    """
    logger = logging.getLogger("campusdesk")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    return logger


__all__ = ["Settings", "configure_logging"]

"""Duration parsing for stale times and request timeouts."""

import re

from campusdesk.types import Duration

_DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h|d)$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(duration: Duration) -> int:
    """Parse a duration string to milliseconds. Non-negative ints pass through."""
    if isinstance(duration, bool):
        raise TypeError("Duration must be a string or int, not bool")
    if isinstance(duration, int):
        if duration < 0:
            raise ValueError(f"Duration must be non-negative: {duration!r}")
        return duration

    match = _DURATION_PATTERN.match(duration.strip())
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(float(value) * _UNITS[unit])


def to_seconds(duration: Duration | None) -> float | None:
    """Convert a duration to float seconds, keeping None as "no limit"."""
    if duration is None:
        return None
    return parse_duration(duration) / 1000

"""Tests for duration parsing."""

import pytest

from campusdesk.duration import parse_duration, to_seconds


class TestParseDuration:
    """Tests for parse_duration function."""

    def test_parse_milliseconds(self) -> None:
        """Test parsing milliseconds."""
        assert parse_duration("500ms") == 500
        assert parse_duration("1ms") == 1

    def test_parse_seconds(self) -> None:
        """Test parsing seconds."""
        assert parse_duration("30s") == 30_000
        assert parse_duration("1.5s") == 1500

    def test_parse_minutes_hours_days(self) -> None:
        """Test parsing larger units."""
        assert parse_duration("5m") == 300_000
        assert parse_duration("1h") == 3_600_000
        assert parse_duration("1d") == 86_400_000

    def test_surrounding_whitespace_ignored(self) -> None:
        """Test that surrounding whitespace is stripped."""
        assert parse_duration(" 10s ") == 10_000

    def test_int_passthrough(self) -> None:
        """Test that integers are returned as-is."""
        assert parse_duration(1000) == 1000
        assert parse_duration(0) == 0

    def test_invalid_format_raises(self) -> None:
        """Test that invalid formats raise ValueError."""
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration("invalid")
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration("10x")
        with pytest.raises(ValueError, match="Invalid duration"):
            parse_duration("")

    def test_negative_int_raises(self) -> None:
        """Test that negative milliseconds are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            parse_duration(-1)

    def test_bool_raises(self) -> None:
        """Test that bools are not taken for ints."""
        with pytest.raises(TypeError):
            parse_duration(True)


class TestToSeconds:
    """Tests for to_seconds."""

    def test_none_means_no_limit(self) -> None:
        assert to_seconds(None) is None

    def test_converts(self) -> None:
        assert to_seconds("30s") == 30.0
        assert to_seconds(250) == 0.25

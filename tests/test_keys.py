"""Tests for resource keys."""

import pytest

from campusdesk.keys import (
    is_key_prefix,
    key_matches,
    key_to_path,
    resource_key,
    serialize_key,
)


class TestResourceKey:
    """Tests for building keys."""

    def test_segments_become_tuple(self) -> None:
        """Test that positional segments form the key."""
        assert resource_key("/api/students", 5) == ("/api/students", 5)

    def test_list_and_tuple_normalize(self) -> None:
        """Test that a single list or tuple argument is the whole key."""
        assert resource_key(["/api/students", 5]) == ("/api/students", 5)
        assert resource_key(("/api/students",)) == ("/api/students",)

    def test_empty_key_rejected(self) -> None:
        """Test that an empty key raises ValueError."""
        with pytest.raises(ValueError):
            resource_key()
        with pytest.raises(ValueError):
            resource_key([])

    def test_invalid_segments_rejected(self) -> None:
        """Test that non str/int segments raise TypeError."""
        with pytest.raises(TypeError):
            resource_key("/api/students", 1.5)
        with pytest.raises(TypeError):
            resource_key("/api/students", True)


class TestKeyMatching:
    """Tests for prefix, exact and predicate matching."""

    def test_prefix(self) -> None:
        """Test that a collection key prefixes its record keys."""
        assert is_key_prefix(("/api/batches",), ("/api/batches", 5))
        assert is_key_prefix(("/api/batches",), ("/api/batches",))
        assert not is_key_prefix(("/api/batches", 5), ("/api/batches",))
        assert not is_key_prefix(("/api/batches",), ("/api/students",))

    def test_segments_compare_whole(self) -> None:
        """Test that a string prefix of a segment does not match."""
        assert not key_matches(("/api/student",), ("/api/students",))

    def test_exact(self) -> None:
        """Test that exact matching ignores longer keys."""
        assert key_matches(("/api/batches",), ("/api/batches",), exact=True)
        assert not key_matches(("/api/batches",), ("/api/batches", 5), exact=True)

    def test_predicate(self) -> None:
        """Test that a callable matcher is used as a predicate."""

        def is_record(key: tuple) -> bool:
            return len(key) == 2

        assert key_matches(is_record, ("/api/fees", 3))
        assert not key_matches(is_record, ("/api/fees",))


class TestKeyFormatting:
    """Tests for key_to_path and serialize_key."""

    def test_key_to_path(self) -> None:
        """Test that segments join into the request path."""
        assert key_to_path(("/api/students",)) == "/api/students"
        assert key_to_path(("/api/students", 5)) == "/api/students/5"
        assert key_to_path(("/api/students/", "/7")) == "/api/students/7"

    def test_serialize_distinguishes_int_and_str(self) -> None:
        """Test that ints and numeric strings serialize differently."""
        assert serialize_key(("/api/students", 5)) != serialize_key(("/api/students", "5"))
        assert serialize_key(("/api/students", 5)) == "/api/students:#5"

    def test_serialize_escapes_separator(self) -> None:
        """Test that colons inside segments are escaped."""
        assert serialize_key(("a:b",)) == "a\\:b"
        assert serialize_key(("a", "b")) != serialize_key(("a:b",))

"""Resource key construction and matching."""

from collections.abc import Iterable

from campusdesk.types import KeyMatcher, KeySegment, ResourceKey

_ESCAPE_MAP = {"\\": "\\\\", ":": "\\:"}


def resource_key(*segments: KeySegment | Iterable[KeySegment]) -> ResourceKey:
    """
    Build a resource key from segments.

    A single list or tuple argument is taken as the whole key, so keys
    coming back from callers in either form normalize to the same tuple.

    Example:
        resource_key("/api/students")          # ("/api/students",)
        resource_key("/api/students", 5)       # ("/api/students", 5)
        resource_key(["/api/students", 5])     # ("/api/students", 5)
    """
    if len(segments) == 1 and isinstance(segments[0], (list, tuple)):
        parts = tuple(segments[0])
    else:
        parts = tuple(segments)

    if not parts:
        raise ValueError("Resource key needs at least one segment")
    for part in parts:
        # bool is an int subclass but never a meaningful key segment
        if isinstance(part, bool) or not isinstance(part, (str, int)):
            raise TypeError(
                f"Key segments must be str or int, got {type(part).__name__}"
            )
    return parts


def is_key_prefix(prefix: ResourceKey, key: ResourceKey) -> bool:
    """Check if prefix is a leading slice of key (for invalidation)."""
    if len(prefix) > len(key):
        return False
    return key[: len(prefix)] == prefix


def key_matches(matcher: KeyMatcher, key: ResourceKey, *, exact: bool = False) -> bool:
    """Match a key against an exact key, a key prefix or a predicate."""
    if callable(matcher):
        return bool(matcher(key))
    if exact:
        return tuple(matcher) == key
    return is_key_prefix(tuple(matcher), key)


def key_to_path(key: ResourceKey) -> str:
    """Join key segments into the API path they address.

    ("/api/students", 5) -> "/api/students/5"
    """
    head, *rest = key
    return "/".join([str(head).rstrip("/"), *(str(part).strip("/") for part in rest)])


def serialize_key(key: ResourceKey) -> str:
    """Serialize a key to a stable string for logs and diagnostics."""

    def escape(part: str) -> str:
        result = part
        for char, escaped in _ESCAPE_MAP.items():
            result = result.replace(char, escaped)
        return result

    return ":".join(
        f"#{part}" if isinstance(part, int) else escape(part) for part in key
    )

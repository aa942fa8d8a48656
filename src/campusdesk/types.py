"""Core types for the campusdesk query layer."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

KeySegment = str | int
ResourceKey = tuple[KeySegment, ...]
KeyPredicate = Callable[[ResourceKey], bool]
KeyMatcher = ResourceKey | KeyPredicate

# Zero-argument coroutine factory that loads one resource
Fetcher = Callable[[], Awaitable[T]]

# Duration type alias
Duration = str | int  # "250ms", "30s", "5m" or milliseconds


class QueryStatus(str, Enum):
    """Lifecycle of one cache entry."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class MutationStatus(str, Enum):
    """Lifecycle of one mutation invocation."""

    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class QueryState(Generic[T]):
    """Snapshot of a cache entry as seen by a subscriber."""

    key: ResourceKey
    status: QueryStatus = QueryStatus.IDLE
    data: T | None = None
    error: BaseException | None = None
    is_fetching: bool = False
    is_stale: bool = True
    subscriber_count: int = 0
    updated_at: int | None = None  # Unix timestamp ms

    @property
    def is_loading(self) -> bool:
        """True only while the first fetch for the key is in flight."""
        return self.status is QueryStatus.LOADING

    @property
    def is_error(self) -> bool:
        return self.status is QueryStatus.ERROR

    @property
    def is_success(self) -> bool:
        return self.status is QueryStatus.SUCCESS


@dataclass(frozen=True, slots=True)
class MutationResult(Generic[T]):
    """Result of a mutation with keys to invalidate."""

    result: T
    invalidates: list[ResourceKey] = field(default_factory=list)


Listener = Callable[[QueryState[Any]], None]

"""QueryClient - the process-wide cache of server resources.

This module provides:
- subscribe(): register a subscriber for a key, fetching when needed
- fetch(): imperative read with request coalescing
- invalidate(): mark entries stale by key, prefix or predicate
- refetch(), batch(): start or defer refetches of invalidated keys
- depends_on(): declare derived keys that follow their sources
- get_state(), get_data(), set_data(), reset(): escape hatches and lifecycle
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from types import TracebackType
from typing import TYPE_CHECKING, Any, Generic, TypeVar, cast

from campusdesk.duration import parse_duration
from campusdesk.keys import key_matches, resource_key, serialize_key
from campusdesk.types import (
    Duration,
    Fetcher,
    KeyMatcher,
    Listener,
    QueryState,
    QueryStatus,
    ResourceKey,
)

if TYPE_CHECKING:
    from campusdesk.mutation import Mutation

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (value, error) - fetch tasks never raise so nobody has to retrieve them
_Outcome = tuple[Any, BaseException | None]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(eq=False)
class _Entry:
    """Mutable cache entry for one key."""

    key: ResourceKey
    fetcher: Fetcher[Any] | None = None
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    has_data: bool = False
    error: BaseException | None = None
    stale: bool = True
    updated_at: int | None = None
    task: asyncio.Task[_Outcome] | None = None
    refetch_after: bool = False
    subscriptions: list[Subscription[Any]] = field(default_factory=list)

    def snapshot(self) -> QueryState[Any]:
        return QueryState(
            key=self.key,
            status=self.status,
            data=self.data,
            error=self.error,
            is_fetching=self.task is not None,
            is_stale=self.stale,
            subscriber_count=len(self.subscriptions),
            updated_at=self.updated_at,
        )


class Subscription(Generic[T]):
    """A live dependency of one consumer on one resource key.

    Unsubscribing is the consumer's unmount: state changes that arrive
    afterwards, including late fetch results, are dropped for it.
    """

    __slots__ = ("_active", "_client", "_key", "_listener")

    def __init__(
        self,
        client: QueryClient,
        key: ResourceKey,
        listener: Listener | None,
    ) -> None:
        self._client = client
        self._key = key
        self._listener = listener
        self._active = True

    @property
    def key(self) -> ResourceKey:
        return self._key

    @property
    def active(self) -> bool:
        return self._active

    @property
    def state(self) -> QueryState[T]:
        """Current state of the subscribed key."""
        return cast(QueryState[T], self._client.get_state(self._key))

    @property
    def data(self) -> T | None:
        return self.state.data

    async def wait(self) -> QueryState[T]:
        """Wait for any in-flight fetch of the key, then return its state."""
        return cast(QueryState[T], await self._client.wait_for(self._key))

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._client._detach(self)

    def _deliver(self, state: QueryState[Any]) -> None:
        if self._active and self._listener is not None:
            self._listener(state)

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        status = "active" if self._active else "closed"
        return f"Subscription({serialize_key(self._key)}, {status})"


class QueryClient:
    """Key-addressed cache with coalesced fetches and stale-while-revalidate."""

    def __init__(self, *, stale_time: Duration | None = None) -> None:
        self._stale_time = parse_duration(stale_time) if stale_time is not None else None
        self._entries: dict[ResourceKey, _Entry] = {}
        self._dependents: dict[ResourceKey, dict[ResourceKey, None]] = {}
        self._pending_refetch: dict[ResourceKey, None] = {}
        self._batch_depth = 0
        self._flush_scheduled = False
        self._background_tasks: set[asyncio.Task[_Outcome]] = set()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def subscribe(
        self,
        key: ResourceKey | list[Any] | str,
        fetcher: Fetcher[T],
        on_change: Listener | None = None,
    ) -> Subscription[T]:
        """Subscribe to a key, fetching it if it is missing or stale.

        Concurrent subscribers of the same key share a single fetch. The
        returned subscription exposes cached data immediately, even while a
        background refetch is running.
        """
        normalized = resource_key(key)
        entry = self._entry(normalized)
        entry.fetcher = fetcher
        subscription: Subscription[T] = Subscription(self, normalized, on_change)
        entry.subscriptions.append(subscription)
        if entry.task is None and self._is_stale(entry):
            self._start_fetch(entry)
        return subscription

    async def fetch(
        self,
        key: ResourceKey | list[Any] | str,
        fetcher: Fetcher[T] | None = None,
    ) -> T:
        """Return fresh cached data or fetch it, joining any in-flight request.

        Unlike subscribers, callers of fetch() see the failure: the fetch
        error is raised after being recorded on the entry.
        """
        normalized = resource_key(key)
        entry = self._entry(normalized)
        if fetcher is not None:
            entry.fetcher = fetcher

        task = entry.task
        if task is None:
            if entry.has_data and not self._is_stale(entry):
                return cast(T, entry.data)
            task = self._start_fetch(entry)

        value, error = await asyncio.shield(task)
        if error is not None:
            raise error
        return cast(T, value)

    async def wait_for(self, key: ResourceKey | list[Any] | str) -> QueryState[Any]:
        """Wait until the key has no fetch in flight and return its state."""
        normalized = resource_key(key)
        while True:
            entry = self._entries.get(normalized)
            if entry is None or entry.task is None:
                break
            await asyncio.shield(entry.task)
        return self.get_state(normalized)

    async def wait_idle(self) -> None:
        """Wait until no refetch is scheduled and no fetch is in flight."""
        while True:
            if self._flush_scheduled:
                await asyncio.sleep(0)
                continue
            tasks = [t for t in self._background_tasks if not t.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def get_state(self, key: ResourceKey | list[Any] | str) -> QueryState[Any]:
        """Snapshot of a key. Unknown keys read as idle without creating an entry."""
        normalized = resource_key(key)
        entry = self._entries.get(normalized)
        if entry is None:
            return QueryState(key=normalized)
        return entry.snapshot()

    def get_data(self, key: ResourceKey | list[Any] | str) -> Any | None:
        """Last known data for a key, or None."""
        return self.get_state(key).data

    def set_data(self, key: ResourceKey | list[Any] | str, value: Any) -> None:
        """Seed or overwrite an entry as a successful, fresh value."""
        entry = self._entry(resource_key(key))
        entry.data = value
        entry.has_data = True
        entry.status = QueryStatus.SUCCESS
        entry.error = None
        entry.stale = False
        entry.updated_at = _now_ms()
        self._notify(entry)

    def keys(self) -> list[ResourceKey]:
        return list(self._entries)

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def depends_on(
        self,
        key: ResourceKey | list[Any] | str,
        *sources: ResourceKey | list[Any] | str,
    ) -> None:
        """Declare that ``key`` is derived from ``sources``.

        Invalidating any source then invalidates ``key`` as well, so a
        mutation only has to name the collections it touched directly.
        """
        derived = resource_key(key)
        for source in sources:
            self._dependents.setdefault(resource_key(source), {})[derived] = None

    def invalidate(
        self,
        matcher: KeyMatcher | list[Any] | str,
        *,
        exact: bool = False,
        refetch: bool = True,
    ) -> list[ResourceKey]:
        """Mark matching entries stale and schedule refetches.

        By default (exact=False), invalidating a key also invalidates every
        key it prefixes: ("/api/batches",) covers ("/api/batches", 5) but
        not ("/api/students",). A callable matcher is used as a predicate.

        Entries with active subscribers refetch once the current action has
        completed; the others refetch on their next subscription.
        With refetch=False the entries are only marked stale; the caller
        starts their refetches later with refetch().
        """
        if not callable(matcher):
            matcher = resource_key(matcher)

        invalidated: dict[ResourceKey, None] = {}
        expanded: set[ResourceKey] = set()
        pending: list[tuple[KeyMatcher, bool]] = [(matcher, exact)]
        while pending:
            current, current_exact = pending.pop(0)
            for key in self._entries:
                if key not in invalidated and key_matches(
                    current, key, exact=current_exact
                ):
                    invalidated[key] = None
            for source, dependents in self._dependents.items():
                if source in expanded:
                    continue
                if key_matches(current, source, exact=current_exact):
                    expanded.add(source)
                    pending.extend((dependent, False) for dependent in dependents)

        for key in invalidated:
            self._mark_stale(self._entries[key], schedule=refetch)
        if invalidated:
            logger.debug(
                "Invalidated %s", ", ".join(serialize_key(k) for k in invalidated)
            )
        return list(invalidated)

    def refetch(self, keys: Iterable[ResourceKey]) -> None:
        """Start fetches for stale, subscribed entries among ``keys``.

        Keys that are fresh, unsubscribed or already fetching are skipped.
        """
        for key in dict.fromkeys(resource_key(k) for k in keys):
            entry = self._entries.get(key)
            if entry is None or entry.task is not None:
                continue
            if entry.stale and entry.subscriptions and entry.fetcher is not None:
                self._start_fetch(entry)

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Collect refetches and start them when the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending_refetch:
                self._flush_refetches()

    def mutation(
        self,
        fn: Callable[[Any], Any] | None = None,
        /,
        **options: Any,
    ) -> Any:
        """Decorator that turns an async action into a Mutation on this client.

        Usage:
            @client.mutation(invalidates=[("/api/students",)])
            async def add_student(data: StudentCreate) -> Student:
                ...

            await add_student.mutate(data)
        """
        from campusdesk.mutation import Mutation

        def decorator(action: Callable[[Any], Any]) -> Mutation[Any, Any]:
            return Mutation(action, client=self, **options)

        if fn is None:
            return decorator
        return decorator(fn)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Cancel in-flight fetches and drop every entry.

        Dependency declarations are configuration and survive a reset.
        """
        for task in list(self._background_tasks):
            task.cancel()
        for entry in self._entries.values():
            for subscription in entry.subscriptions:
                subscription._active = False
        self._entries.clear()
        self._pending_refetch.clear()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _entry(self, key: ResourceKey) -> _Entry:
        entry = self._entries.get(key)
        if entry is None:
            entry = _Entry(key=key)
            self._entries[key] = entry
        return entry

    def _is_stale(self, entry: _Entry) -> bool:
        """Check if an entry was invalidated or outlived its stale time."""
        if entry.stale:
            return True
        if self._stale_time is None or entry.updated_at is None:
            return False
        return _now_ms() - entry.updated_at > self._stale_time

    def _start_fetch(self, entry: _Entry) -> asyncio.Task[_Outcome]:
        fetcher = entry.fetcher
        if fetcher is None:
            raise LookupError(f"No fetcher registered for {serialize_key(entry.key)}")

        entry.stale = False
        if not entry.has_data:
            entry.status = QueryStatus.LOADING
        task = asyncio.get_running_loop().create_task(self._run_fetch(entry, fetcher))
        entry.task = task
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        self._notify(entry)
        return task

    async def _run_fetch(self, entry: _Entry, fetcher: Fetcher[Any]) -> _Outcome:
        try:
            value = await fetcher()
        except Exception as e:
            entry.task = None
            entry.error = e
            entry.status = QueryStatus.ERROR
            # Failed keys are retried by the next subscriber or fetch()
            entry.stale = True
            logger.warning("Fetch failed for %s: %s", serialize_key(entry.key), e)
            self._notify(entry)
            self._follow_up(entry)
            return None, e
        except asyncio.CancelledError:
            entry.task = None
            raise

        entry.task = None
        entry.data = value
        entry.has_data = True
        entry.error = None
        entry.status = QueryStatus.SUCCESS
        entry.updated_at = _now_ms()
        self._notify(entry)
        self._follow_up(entry)
        return value, None

    def _follow_up(self, entry: _Entry) -> None:
        """Run the single refetch owed to invalidations that hit mid-flight."""
        if not entry.refetch_after:
            return
        entry.refetch_after = False
        if entry.subscriptions and self._entries.get(entry.key) is entry:
            self._start_fetch(entry)

    def _mark_stale(self, entry: _Entry, *, schedule: bool = True) -> None:
        entry.stale = True
        if entry.task is not None:
            # The in-flight result may predate the change; owe one more fetch
            entry.refetch_after = True
        elif schedule and entry.subscriptions and entry.fetcher is not None:
            self._pending_refetch[entry.key] = None
            self._schedule_flush()
        self._notify(entry)

    def _schedule_flush(self) -> None:
        if self._batch_depth > 0 or self._flush_scheduled:
            return
        self._flush_scheduled = True
        asyncio.get_running_loop().call_soon(self._flush_refetches)

    def _flush_refetches(self) -> None:
        self._flush_scheduled = False
        keys = list(self._pending_refetch)
        self._pending_refetch.clear()
        for key in keys:
            entry = self._entries.get(key)
            if entry is None or entry.task is not None:
                continue
            if entry.stale and entry.subscriptions:
                self._start_fetch(entry)

    def _detach(self, subscription: Subscription[Any]) -> None:
        entry = self._entries.get(subscription.key)
        if entry is not None and subscription in entry.subscriptions:
            entry.subscriptions.remove(subscription)

    def _notify(self, entry: _Entry) -> None:
        state = entry.snapshot()
        for subscription in list(entry.subscriptions):
            try:
                subscription._deliver(state)
            except Exception:
                logger.exception(
                    "Subscriber callback failed for %s", serialize_key(entry.key)
                )


def create_query_client(*, stale_time: Duration | None = None) -> QueryClient:
    """Create an isolated query cache.

    Args:
        stale_time: Age after which fetched data counts as stale
            (default: fresh until invalidated)

    Returns:
        QueryClient instance
    """
    return QueryClient(stale_time=stale_time)


__all__ = ["QueryClient", "Subscription", "create_query_client"]

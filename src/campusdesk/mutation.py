"""Mutation runner - one create/update/delete action plus its side effects."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

from campusdesk.errors import FormValidationError
from campusdesk.types import MutationResult, MutationStatus, ResourceKey

if TYPE_CHECKING:
    from campusdesk.query_client import QueryClient

logger = logging.getLogger(__name__)

I = TypeVar("I")  # noqa: E741
R = TypeVar("R")

Action = Callable[[I], Awaitable[Union[R, MutationResult[R]]]]
Invalidates = Union[
    Iterable[ResourceKey],
    Callable[[Any, Any], Iterable[ResourceKey]],
]


async def run_callback(callback: Callable[..., Any] | None, *args: Any) -> None:
    """Invoke a sync or async callback."""
    if callback is None:
        return
    outcome = callback(*args)
    if inspect.isawaitable(outcome):
        await outcome


class Mutation(Generic[I, R]):
    """Runs an action and invalidates the cache keys it affected.

    State per invocation: idle -> pending -> success | error. Every call to
    mutate() starts again from idle. Calls are not queued; callers that must
    not run twice keep their submit control disabled while ``is_pending``.

    Usage:
        add_student = Mutation(
            create_student,
            client=client,
            invalidates=[("/api/students",)],
            on_success=lambda student, data: dialog.close(),
            on_error=lambda error, data: notify("Failed to add student"),
        )
        await add_student.mutate(form_data)
    """

    def __init__(
        self,
        action: Action[I, R],
        *,
        client: QueryClient,
        invalidates: Invalidates = (),
        validate: Callable[[I], I] | None = None,
        on_success: Callable[[R, I], Any] | None = None,
        on_error: Callable[[BaseException, I], Any] | None = None,
        on_settled: Callable[[R | None, BaseException | None, I], Any] | None = None,
        name: str | None = None,
    ) -> None:
        self._action = action
        self._client = client
        self._invalidates = invalidates
        self._validate = validate
        self._on_success = on_success
        self._on_error = on_error
        self._on_settled = on_settled
        self._name = name or getattr(action, "__name__", "mutation")
        self.reset()

    @property
    def name(self) -> str:
        return self._name

    @property
    def status(self) -> MutationStatus:
        return self._status

    @property
    def is_idle(self) -> bool:
        return self._status is MutationStatus.IDLE

    @property
    def is_pending(self) -> bool:
        return self._status is MutationStatus.PENDING

    @property
    def is_success(self) -> bool:
        return self._status is MutationStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self._status is MutationStatus.ERROR

    @property
    def data(self) -> R | None:
        return self._data

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def field_errors(self) -> dict[str, str]:
        """Field messages from the last rejected input, empty otherwise."""
        return self._field_errors

    def reset(self) -> None:
        self._status = MutationStatus.IDLE
        self._data: R | None = None
        self._error: BaseException | None = None
        self._field_errors: dict[str, str] = {}

    async def mutate(self, variables: I) -> R | None:
        """Run the mutation; failures end up in ``on_error``, never raised.

        Returns the action's result, or None when validation rejected the
        input or the action failed.
        """
        try:
            return await self.mutate_async(variables)
        except FormValidationError:
            return None
        except Exception as e:
            logger.debug("Mutation %s settled with error: %s", self._name, e)
            return None

    async def mutate_async(self, variables: I) -> R:
        """Run the mutation and re-raise its failure after the callbacks."""
        self.reset()
        if self._validate is not None:
            try:
                variables = self._validate(variables)
            except FormValidationError as e:
                self._field_errors = e.field_errors
                raise

        self._status = MutationStatus.PENDING
        try:
            outcome = await self._action(variables)
        except Exception as e:
            self._status = MutationStatus.ERROR
            self._error = e
            logger.warning("Mutation %s failed: %s", self._name, e)
            await self._callback("on_error", self._on_error, e, variables)
            await self._callback("on_settled", self._on_settled, None, e, variables)
            raise

        if isinstance(outcome, MutationResult):
            result: R = outcome.result
            extra = list(outcome.invalidates)
        else:
            result = outcome
            extra = []

        self._status = MutationStatus.SUCCESS
        self._data = result
        # Refetches of this mutation's keys start after the success callback
        stale: list[ResourceKey] = []
        for key in [*self._keys_for(result, variables), *extra]:
            stale.extend(self._client.invalidate(key, refetch=False))
        try:
            await self._callback("on_success", self._on_success, result, variables)
        finally:
            self._client.refetch(stale)
        await self._callback("on_settled", self._on_settled, result, None, variables)
        return result

    async def _callback(
        self, label: str, callback: Callable[..., Any] | None, *args: Any
    ) -> None:
        """Run a caller's callback; its failure is logged, not raised."""
        try:
            await run_callback(callback, *args)
        except Exception:
            logger.exception("%s of mutation %s failed", label, self._name)

    def _keys_for(self, result: R, variables: I) -> list[ResourceKey]:
        if callable(self._invalidates):
            return list(self._invalidates(result, variables))
        return list(self._invalidates)

    def __repr__(self) -> str:
        return f"Mutation({self._name}, {self._status.value})"


__all__ = ["Mutation"]

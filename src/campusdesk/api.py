"""Resource endpoints and the mutation-invalidation convention.

Every collection lives under the key ``(path,)`` and every record under
``(path, id)``. A create, update or delete invalidates the collection key,
which by prefix also covers the record keys. Derived resources (dashboard
metrics) are declared as dependents of their sources, so no mutation has
to remember them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any, Generic, Protocol, TypeVar

import httpx

from campusdesk.config import Settings
from campusdesk.errors import FormValidationError, ResponseParseError
from campusdesk.keys import key_to_path, resource_key
from campusdesk.models import (
    CampusModel,
    DashboardMetrics,
    validate_form,
    validate_partial,
)
from campusdesk.mutation import Mutation, run_callback
from campusdesk.query_client import QueryClient, Subscription, create_query_client
from campusdesk.request import RequestExecutor
from campusdesk.resources import (
    ATTENDANCE,
    BATCHES,
    COURSES,
    DASHBOARD_METRICS_KEY,
    DASHBOARD_METRICS_PATH,
    ENROLLMENTS,
    EXAMS,
    FEES,
    MESSAGES,
    RESULTS,
    STUDENTS,
    TEACHERS,
    Resource,
)
from campusdesk.types import Fetcher, Listener, ResourceKey

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=CampusModel)


# =============================================================================
# Notifications
# =============================================================================


class Notifier(Protocol):
    """Transient user-facing notification (a toast)."""

    def notify(self, title: str, description: str, *, variant: str = "default") -> None:
        ...


class LoggingNotifier:
    """Notifier that writes to the log; the default outside a UI."""

    def notify(self, title: str, description: str, *, variant: str = "default") -> None:
        level = logging.ERROR if variant == "destructive" else logging.INFO
        logger.log(level, "%s: %s", title, description)


# =============================================================================
# Endpoints
# =============================================================================


def _parse(model: type[M], response: httpx.Response, where: str) -> M:
    try:
        return model.model_validate(response.json())
    except ValueError as e:
        raise ResponseParseError(f"{where}: unexpected payload: {e}") from e


class ResourceEndpoint(Generic[M]):
    """Reads and mutations for one collection."""

    def __init__(
        self,
        resource: Resource[M],
        *,
        executor: RequestExecutor,
        client: QueryClient,
        notifier: Notifier,
    ) -> None:
        self._resource = resource
        self._executor = executor
        self._client = client
        self._notifier = notifier

    @property
    def resource(self) -> Resource[M]:
        return self._resource

    @property
    def path(self) -> str:
        return self._resource.path

    @property
    def key(self) -> ResourceKey:
        return self._resource.key

    def item_key(self, id: int) -> ResourceKey:
        return resource_key(self.path, id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def parse_list(self, payload: Any) -> list[M]:
        if not isinstance(payload, list):
            raise ValueError(f"expected a list, got {type(payload).__name__}")
        return [self._resource.model.model_validate(item) for item in payload]

    def fetcher(self) -> Fetcher[list[M]]:
        return self._executor.fetcher(self.path, self.parse_list)

    def item_fetcher(self, id: int) -> Fetcher[M]:
        return self._executor.fetcher(
            key_to_path(self.item_key(id)), self._resource.model.model_validate
        )

    def subscribe(self, on_change: Listener | None = None) -> Subscription[list[M]]:
        return self._client.subscribe(self.key, self.fetcher(), on_change)

    def subscribe_item(
        self, id: int, on_change: Listener | None = None
    ) -> Subscription[M]:
        return self._client.subscribe(self.item_key(id), self.item_fetcher(id), on_change)

    async def list(self) -> list[M]:
        """The whole collection, from cache when fresh."""
        return await self._client.fetch(self.key, self.fetcher())

    async def get(self, id: int) -> M:
        return await self._client.fetch(self.item_key(id), self.item_fetcher(id))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_mutation(
        self,
        *,
        on_success: Callable[[M, Any], Any] | None = None,
        on_error: Callable[[BaseException, Any], Any] | None = None,
    ) -> Mutation[Any, M]:
        """Mutation that POSTs a validated form and refreshes the collection."""
        return Mutation(
            self._post,
            client=self._client,
            invalidates=[self.key],
            validate=lambda data: validate_form(self._resource.create_model, data),
            on_success=self._announce("created", on_success),
            on_error=self._complain("create", on_error),
            name=f"create {self._resource.name}",
        )

    def update_mutation(
        self,
        *,
        on_success: Callable[[M, Any], Any] | None = None,
        on_error: Callable[[BaseException, Any], Any] | None = None,
    ) -> Mutation[tuple[int, dict[str, Any]], M]:
        """Mutation taking ``(id, changes)`` and PUTting only those fields."""
        return Mutation(
            self._put,
            client=self._client,
            invalidates=[self.key],
            validate=lambda v: (v[0], validate_partial(self._resource.create_model, v[1])),
            on_success=self._announce("updated", on_success),
            on_error=self._complain("update", on_error),
            name=f"update {self._resource.name}",
        )

    def delete_mutation(
        self,
        *,
        on_success: Callable[[None, int], Any] | None = None,
        on_error: Callable[[BaseException, int], Any] | None = None,
    ) -> Mutation[int, None]:
        return Mutation(
            self._delete,
            client=self._client,
            invalidates=[self.key],
            on_success=self._announce("deleted", on_success),
            on_error=self._complain("delete", on_error),
            name=f"delete {self._resource.name}",
        )

    async def create(self, data: Any) -> M | None:
        """Validate and create; None when the request failed (already notified).

        Raises:
            FormValidationError: the input was rejected before any request
        """
        mutation = self.create_mutation()
        result = await mutation.mutate(data)
        if mutation.field_errors:
            raise FormValidationError(mutation.field_errors)
        return result

    async def update(self, id: int, changes: dict[str, Any]) -> M | None:
        mutation = self.update_mutation()
        result = await mutation.mutate((id, changes))
        if mutation.field_errors:
            raise FormValidationError(mutation.field_errors)
        return result

    async def delete(self, id: int) -> bool:
        """Delete a record; False when the request failed (already notified)."""
        mutation = self.delete_mutation()
        await mutation.mutate(id)
        return mutation.is_success

    async def _post(self, data: CampusModel) -> M:
        response = await self._executor.request("POST", self.path, data)
        return _parse(self._resource.model, response, f"POST {self.path}")

    async def _put(self, variables: tuple[int, dict[str, Any]]) -> M:
        id, changes = variables
        path = key_to_path(self.item_key(id))
        response = await self._executor.request("PUT", path, changes)
        return _parse(self._resource.model, response, f"PUT {path}")

    async def _delete(self, id: int) -> None:
        await self._executor.request("DELETE", key_to_path(self.item_key(id)))

    def _announce(
        self, verb: str, then: Callable[..., Any] | None
    ) -> Callable[..., Any]:
        async def on_success(result: Any, variables: Any) -> None:
            self._notifier.notify(
                "Success", f"{self._resource.title} {verb} successfully"
            )
            await run_callback(then, result, variables)

        return on_success

    def _complain(
        self, verb: str, then: Callable[..., Any] | None
    ) -> Callable[..., Any]:
        async def on_error(error: BaseException, variables: Any) -> None:
            self._notifier.notify(
                "Error", f"Failed to {verb} {self._resource.name}", variant="destructive"
            )
            await run_callback(then, error, variables)

        return on_error


class DashboardEndpoint:
    """The precomputed dashboard aggregate, cached like any other resource."""

    def __init__(self, *, executor: RequestExecutor, client: QueryClient) -> None:
        self._executor = executor
        self._client = client

    @property
    def key(self) -> ResourceKey:
        return DASHBOARD_METRICS_KEY

    def fetcher(self) -> Fetcher[DashboardMetrics]:
        return self._executor.fetcher(
            DASHBOARD_METRICS_PATH, DashboardMetrics.model_validate
        )

    def subscribe(
        self, on_change: Listener | None = None
    ) -> Subscription[DashboardMetrics]:
        return self._client.subscribe(self.key, self.fetcher(), on_change)

    async def get(self) -> DashboardMetrics:
        return await self._client.fetch(self.key, self.fetcher())


# =============================================================================
# Facade
# =============================================================================


class CampusApi:
    """All endpoints over one executor and one query cache.

    Usage:
        async with connect(Settings(api_url="http://localhost:5000")) as api:
            students = api.students.subscribe(render)
            await api.students.create({"firstName": "Ada", ...})
    """

    def __init__(
        self,
        executor: RequestExecutor,
        client: QueryClient | None = None,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self.executor = executor
        self.client = client if client is not None else create_query_client()
        self.notifier = notifier if notifier is not None else LoggingNotifier()

        def endpoint(resource: Resource[M]) -> ResourceEndpoint[M]:
            return ResourceEndpoint(
                resource,
                executor=self.executor,
                client=self.client,
                notifier=self.notifier,
            )

        self.students = endpoint(STUDENTS)
        self.teachers = endpoint(TEACHERS)
        self.courses = endpoint(COURSES)
        self.batches = endpoint(BATCHES)
        self.enrollments = endpoint(ENROLLMENTS)
        self.exams = endpoint(EXAMS)
        self.results = endpoint(RESULTS)
        self.attendance = endpoint(ATTENDANCE)
        self.fees = endpoint(FEES)
        self.messages = endpoint(MESSAGES)
        self.dashboard = DashboardEndpoint(executor=self.executor, client=self.client)

        self.client.depends_on(
            DASHBOARD_METRICS_KEY,
            self.students.key,
            self.teachers.key,
            self.fees.key,
            self.attendance.key,
        )

    def endpoints(self) -> dict[str, ResourceEndpoint[Any]]:
        return {
            endpoint.path: endpoint
            for endpoint in (
                self.students,
                self.teachers,
                self.courses,
                self.batches,
                self.enrollments,
                self.exams,
                self.results,
                self.attendance,
                self.fees,
                self.messages,
            )
        }

    async def aclose(self) -> None:
        self.client.reset()
        await self.executor.aclose()

    async def __aenter__(self) -> CampusApi:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def connect(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    notifier: Notifier | None = None,
) -> CampusApi:
    """Wire an executor, a query cache and the endpoints from settings.

    Args:
        settings: Client settings (default: read from the environment)
        transport: Optional httpx transport, e.g. ASGITransport in tests
        notifier: Where success/failure notifications go

    Returns:
        CampusApi instance
    """
    settings = settings if settings is not None else Settings.from_env()
    executor = RequestExecutor(
        settings.api_url,
        timeout=settings.request_timeout,
        transport=transport,
    )
    client = create_query_client(stale_time=settings.stale_time)
    return CampusApi(executor, client, notifier=notifier)


__all__ = [
    "DASHBOARD_METRICS_KEY",
    "CampusApi",
    "DashboardEndpoint",
    "LoggingNotifier",
    "Notifier",
    "ResourceEndpoint",
    "connect",
]

"""Shared pytest fixtures."""

from collections.abc import AsyncIterator

import httpx
import pytest

from campusdesk import CampusApi, QueryClient, RequestExecutor, create_query_client
from campusdesk.server import MemStorage, create_app

BASE_URL = "http://testserver"


class RecordingNotifier:
    """Notifier that keeps every notification for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str]] = []

    def notify(self, title: str, description: str, *, variant: str = "default") -> None:
        self.calls.append((title, description, variant))


@pytest.fixture
def client() -> QueryClient:
    """Create a fresh QueryClient for each test."""
    return create_query_client()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def storage() -> MemStorage:
    """Create an empty in-memory backend for each test."""
    return MemStorage()


@pytest.fixture
async def api(
    storage: MemStorage, notifier: RecordingNotifier
) -> AsyncIterator[CampusApi]:
    """CampusApi talking to the reference server in-process."""
    transport = httpx.ASGITransport(app=create_app(storage))
    executor = RequestExecutor(BASE_URL, timeout="5s", transport=transport)
    async with CampusApi(executor, notifier=notifier) as campus:
        yield campus

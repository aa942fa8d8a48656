"""Request executor - one JSON request against the REST API."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from campusdesk.duration import to_seconds
from campusdesk.errors import ApiError, NetworkError, RequestTimeout, ResponseParseError
from campusdesk.types import Duration, Fetcher

logger = logging.getLogger(__name__)

T = TypeVar("T")


def encode_body(body: Any) -> str:
    """Encode a request body as JSON.

    pydantic models are dumped by alias and only with the fields that were
    set, so a partial update sends exactly the fields the caller listed.
    Dates go out as ISO-8601 strings and decimals as strings.
    """
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json", by_alias=True, exclude_unset=True)
    return json.dumps(to_jsonable_python(body, by_alias=True))


class RequestExecutor:
    """Issues requests against the API and raises typed errors."""

    def __init__(
        self,
        base_url: str = "",
        *,
        timeout: Duration | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=to_seconds(timeout),
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
    ) -> httpx.Response:
        """Send one request and return the raw response.

        Raises:
            ApiError: status outside [200, 300)
            RequestTimeout: the configured timeout elapsed
            NetworkError: the request never reached the server
        """
        method = method.upper()
        headers: dict[str, str] = {}
        content: str | None = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            content = encode_body(body)

        try:
            response = await self._client.request(
                method, path, content=content, headers=headers
            )
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise RequestTimeout(f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError(f"{method} {path} failed: {e}") from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        if not response.is_success:
            text = response.text or response.reason_phrase
            logger.warning("%s %s -> %s: %s", method, path, response.status_code, text)
            raise ApiError(response.status_code, text, method=method, path=path)
        return response

    async def get_json(self, path: str) -> Any:
        """GET a path and decode its JSON body."""
        response = await self.request("GET", path)
        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(f"GET {path} returned a non-JSON body") from e

    def fetcher(
        self,
        path: str,
        parse: Callable[[Any], T] | None = None,
    ) -> Fetcher[Any]:
        """Build a query fetcher that GETs ``path`` and optionally parses it."""

        async def fetch() -> Any:
            payload = await self.get_json(path)
            if parse is None:
                return payload
            try:
                return parse(payload)
            except ValueError as e:
                # pydantic.ValidationError is a ValueError
                raise ResponseParseError(f"GET {path}: unexpected payload: {e}") from e

        return fetch

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> RequestExecutor:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


__all__ = ["RequestExecutor", "encode_body"]

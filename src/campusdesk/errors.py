"""Error hierarchy for campusdesk."""

from __future__ import annotations


class CampusDeskError(Exception):
    """Base class for every error raised by campusdesk."""


class ApiError(CampusDeskError):
    """The API answered with a status outside [200, 300)."""

    def __init__(
        self,
        status: int,
        text: str,
        *,
        method: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(f"{status}: {text}")
        self.status = status
        self.text = text
        self.method = method
        self.path = path


class NetworkError(CampusDeskError):
    """The request never produced a response (DNS, refused connection, ...)."""


class RequestTimeout(NetworkError):
    """The request did not complete within the configured timeout."""


class ResponseParseError(CampusDeskError):
    """A response body could not be decoded into the expected shape."""


class FormValidationError(CampusDeskError):
    """Form input failed validation before any network call was made.

    ``field_errors`` maps the wire (camelCase) field name to the first
    message reported for it.
    """

    def __init__(self, field_errors: dict[str, str]) -> None:
        summary = ", ".join(f"{name}: {msg}" for name, msg in field_errors.items())
        super().__init__(summary or "Invalid input")
        self.field_errors = field_errors

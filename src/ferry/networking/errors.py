"""Error types raised by the Ferry networking layer.

Every error carries the same set of attributes so callers can inspect a
failure without ``hasattr`` checks: ``name``, ``code``, ``is_axios_error``,
``response`` (``None`` when no HTTP response was produced) and ``config``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from .response import Response

CANCEL_NAME = "AbortError"
CANCEL_CODE = "ERR_CANCELED"
CANCEL_MESSAGE = "canceled"


class HttpClientError(Exception):
    """Base class for all errors raised by the HTTP client."""

    name = "Error"
    code: str | None = None
    is_axios_error = False

    def __init__(
        self,
        message: str = "",
        *,
        response: Response | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.response = response
        self.config = config


class HttpStatusError(HttpClientError):
    """The transport answered, but the status failed validation."""

    is_axios_error = True

    def __init__(
        self,
        status: int,
        *,
        response: Response,
        config: Mapping[str, Any],
    ) -> None:
        super().__init__(
            f"Request failed with status code {status}",
            response=response,
            config=config,
        )
        self.status = status


class AbortError(HttpClientError):
    """Raised by a transport when its cancellation token fires."""

    name = CANCEL_NAME

    def __init__(self, message: str = "The operation was aborted.") -> None:
        super().__init__(message)


class CanceledError(HttpClientError):
    """Canonical cancellation error surfaced to callers."""

    name = CANCEL_NAME
    code = CANCEL_CODE

    def __init__(self, *, config: Mapping[str, Any] | None = None) -> None:
        super().__init__(CANCEL_MESSAGE, config=config)


class NetworkError(HttpClientError):
    """Connectivity failure; no response could be produced."""

    name = "NetworkError"
    code = "ERR_NETWORK"


class RequestTimeoutError(HttpClientError):
    """The transport gave up waiting for the server."""

    name = "TimeoutError"
    code = "ETIMEDOUT"

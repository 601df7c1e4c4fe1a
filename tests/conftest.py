# pyright: reportUnknownParameterType=false, reportMissingParameterType=false
from __future__ import annotations

from typing import Any, Callable

import pytest

from ferry.networking.client import HttpClient
from ferry.networking.config import HttpClientConfig
from ferry.networking.transport import FetchResponse


class RecordingTransport:
    """Async transport double that records calls and replays a response."""

    supports_request_streaming = False

    def __init__(self) -> None:
        self.calls: list[tuple[Any, Any]] = []
        self.error: BaseException | None = None
        self._factory: Callable[[], Any] = lambda: FetchResponse.from_bytes(b"")

    def respond(
        self,
        content: bytes | str = b"",
        *,
        status: int = 200,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> None:
        self._factory = lambda: FetchResponse.from_bytes(
            content, status=status, headers=headers, **kwargs
        )

    def respond_with(self, factory: Callable[[], Any]) -> None:
        self._factory = factory

    async def __call__(self, resource, options=None):
        self.calls.append((resource, options))
        if self.error is not None:
            raise self.error
        return self._factory()

    @property
    def last_url(self) -> Any:
        return self.calls[-1][0]

    @property
    def last_options(self) -> Any:
        return self.calls[-1][1]


class StreamingTransport(RecordingTransport):
    """Transport double that drains streamed request bodies."""

    supports_request_streaming = True

    def __init__(self) -> None:
        super().__init__()
        self.received: bytes | None = None

    async def __call__(self, resource, options=None):
        stream = getattr(resource, "stream", None)
        if callable(stream):
            source = stream()
            if source is not None:
                self.received = b"".join([chunk async for chunk in source])
        return await super().__call__(resource, options)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def streaming_transport():
    return StreamingTransport()


@pytest.fixture
def client(transport):
    return HttpClient(HttpClientConfig(transport=transport))

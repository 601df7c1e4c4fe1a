"""Fetch-style transport contract and the default requests-backed transport.

A transport is an async callable taking either a URL plus ``FetchOptions``
or a prebuilt ``FetchRequest`` and returning a ``FetchResponse``-shaped
object. The client never performs I/O itself.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Mapping, Protocol, TypeVar
from urllib.parse import parse_qsl

import requests
from requests.structures import CaseInsensitiveDict

from .cancel import AbortSignal
from .config import TransportConfig
from .errors import AbortError, HttpClientError, NetworkError, RequestTimeoutError
from .forms import FormData, SearchParams

logger = logging.getLogger(__name__)

STREAM_CHUNK_SIZE = 64 * 1024

ResultT = TypeVar("ResultT")


class Transport(Protocol):
    async def __call__(
        self, resource: str | FetchRequest, options: FetchOptions | None = None
    ) -> FetchResponse: ...


@dataclass(frozen=True)
class FetchOptions:
    """Options handed to a transport alongside a URL."""

    method: str = "GET"
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    credentials: str | None = None
    signal: AbortSignal | None = None


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    return any(key.lower() == name for key in headers)


def encode_body(body: Any, headers: dict[str, str]) -> Any:
    """Turn a request body into something a transport can send.

    Text becomes UTF-8, forms are serialized and get a content type when
    none was set. Files and iterators pass through untouched.
    """
    if body is None:
        return None
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    if isinstance(body, FormData):
        content, content_type = body.encode()
        if not _has_header(headers, "content-type"):
            headers["content-type"] = content_type
        return content
    if isinstance(body, SearchParams):
        if not _has_header(headers, "content-type"):
            headers["content-type"] = "application/x-www-form-urlencoded;charset=UTF-8"
        return str(body).encode("utf-8")
    if hasattr(body, "read") or isinstance(body, (AsyncIterable, Iterable)):
        return body
    raise TypeError(f"unsupported request body type: {type(body).__name__}")


async def _iter_bytes(content: bytes) -> AsyncIterator[bytes]:
    for start in range(0, len(content), STREAM_CHUNK_SIZE):
        yield content[start : start + STREAM_CHUNK_SIZE]


async def _iter_file(handle: Any) -> AsyncIterator[bytes]:
    while True:
        chunk = await asyncio.to_thread(handle.read, STREAM_CHUNK_SIZE)
        if not chunk:
            return
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk


async def _iter_sync(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


@dataclass(frozen=True)
class FetchRequest:
    """A fully built request whose body can be read as a byte stream."""

    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    credentials: str | None = None
    signal: AbortSignal | None = None
    duplex: str | None = None

    @classmethod
    def build(cls, url: str, options: FetchOptions | None = None) -> FetchRequest:
        """Build a request, encoding the body.

        Raises:
            ValueError: A body was given for a GET or HEAD request.
            TypeError: The body type cannot be sent.
        """
        options = options or FetchOptions()
        method = options.method.upper()
        if options.body is not None and method in ("GET", "HEAD"):
            raise ValueError(f"{method} requests cannot have a body")
        headers = dict(options.headers)
        body = encode_body(options.body, headers)
        return cls(
            url=url,
            method=method,
            headers=headers,
            body=body,
            credentials=options.credentials,
            signal=options.signal,
        )

    def stream(self) -> AsyncIterator[bytes] | None:
        """Return the body as an async iterator of byte chunks."""
        body = self.body
        if body is None:
            return None
        if isinstance(body, bytes):
            return _iter_bytes(body)
        if isinstance(body, AsyncIterable):
            return body.__aiter__()
        if hasattr(body, "read"):
            return _iter_file(body)
        return _iter_sync(body)

    def with_body(self, body: Any, duplex: str | None = None) -> FetchRequest:
        return replace(self, body=body, duplex=duplex or self.duplex)


class FetchResponse:
    """Transport response with fetch-style body readers.

    The body is an async iterator of bytes and can be consumed once, by
    iterating ``body`` directly or through one of the decoders.
    """

    def __init__(
        self,
        *,
        status: int,
        status_text: str = "",
        headers: Any = None,
        body: AsyncIterator[bytes] | None = None,
        url: str = "",
        redirected: bool = False,
        type: str = "basic",
    ) -> None:
        self.status = status
        self.ok = 200 <= status <= 299
        self.status_text = status_text
        self.headers = headers if headers is not None else CaseInsensitiveDict()
        self.body = body
        self.url = url
        self.redirected = redirected
        self.type = type
        self.body_used = False

    @classmethod
    def from_bytes(
        cls,
        content: bytes | str = b"",
        *,
        status: int = 200,
        headers: Mapping[str, str] | None = None,
        **kwargs: Any,
    ) -> FetchResponse:
        """Build an in-memory response, handy for custom transports."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        return cls(
            status=status,
            headers=CaseInsensitiveDict(headers or {}),
            body=_iter_bytes(content),
            **kwargs,
        )

    def with_body(self, body: AsyncIterator[bytes] | None) -> FetchResponse:
        clone = copy.copy(self)
        clone.body = body
        clone.body_used = False
        return clone

    async def bytes(self) -> bytes:
        if self.body_used:
            raise TypeError("body has already been consumed")
        self.body_used = True
        if self.body is None:
            return b""
        return b"".join([chunk async for chunk in self.body])

    async def text(self) -> str:
        return (await self.bytes()).decode("utf-8", errors="replace")

    async def json(self) -> Any:
        return json.loads(await self.text())

    async def form_data(self) -> FormData:
        content_type = self.headers.get("content-type") or ""
        if not content_type.startswith("application/x-www-form-urlencoded"):
            raise TypeError(f"cannot decode {content_type or 'body'} as form data")
        form = FormData()
        for name, value in parse_qsl(await self.text(), keep_blank_values=True):
            form.append(name, value)
        return form

    def __repr__(self) -> str:
        return f"<FetchResponse [{self.status}]>"


async def _next_chunk(iterator: AsyncIterator[bytes], sentinel: object) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return sentinel


def _blocking_chunks(
    stream: AsyncIterator[bytes], loop: asyncio.AbstractEventLoop
) -> Iterator[bytes]:
    """Drain an async stream from a worker thread, one chunk at a time."""
    sentinel = object()
    while True:
        chunk = asyncio.run_coroutine_threadsafe(
            _next_chunk(stream, sentinel), loop
        ).result()
        if chunk is sentinel:
            return
        yield chunk


def _discard_late(
    task: asyncio.Future[ResultT], discard: Callable[[ResultT], Any] | None
) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("request finished after abort: %s", error)
        return
    if discard is not None:
        discard(task.result())


class RequestsTransport:
    """Default transport built on ``requests.Session``.

    Blocking calls run in worker threads, so the event loop stays free while
    a request is in flight. Request bodies given as async streams are sent
    chunked.
    """

    supports_request_streaming = True

    def __init__(
        self,
        config: TransportConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Create a new RequestsTransport.

        Args:
            config: Timeouts, TLS verification and default headers.
            session: Session to reuse; a fresh one by default.
        """
        self._config = config or TransportConfig()
        self._session = session or requests.Session()
        if self._config.user_agent:
            self._session.headers["User-Agent"] = self._config.user_agent
        self._session.headers.update(self._config.default_headers)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> RequestsTransport:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __call__(
        self, resource: str | FetchRequest, options: FetchOptions | None = None
    ) -> FetchResponse:
        request = (
            resource
            if isinstance(resource, FetchRequest)
            else FetchRequest.build(resource, options)
        )
        signal = request.signal
        if signal is not None:
            signal.throw_if_aborted()

        prepared = self._prepare(request, asyncio.get_running_loop())
        logger.debug("sending %s %s", request.method, request.url)
        try:
            response = await self._until_aborted(
                asyncio.to_thread(self._send, prepared),
                signal,
                discard=lambda late: late.close(),
            )
        except requests.exceptions.RequestException as exc:
            raise self._translate(exc) from exc

        return FetchResponse(
            status=response.status_code,
            status_text=response.reason or "",
            headers=response.headers,
            body=self._iter_content(response, signal),
            url=response.url or request.url,
            redirected=bool(response.history),
        )

    def _prepare(
        self, request: FetchRequest, loop: asyncio.AbstractEventLoop
    ) -> requests.PreparedRequest:
        body = request.body
        if isinstance(body, AsyncIterable):
            body = _blocking_chunks(body.__aiter__(), loop)
        outgoing = requests.Request(
            method=request.method,
            url=request.url,
            headers=dict(request.headers),
            data=body,
        )
        if request.credentials == "include":
            return self._session.prepare_request(outgoing)
        outgoing.headers = {**self._session.headers, **outgoing.headers}
        return outgoing.prepare()

    def _send(self, prepared: requests.PreparedRequest) -> requests.Response:
        return self._session.send(
            prepared,
            stream=True,
            timeout=self._config.timeout,
            verify=self._config.verify_tls,
            allow_redirects=True,
        )

    async def _until_aborted(
        self,
        work: Awaitable[ResultT],
        signal: AbortSignal | None,
        discard: Callable[[ResultT], Any] | None = None,
    ) -> ResultT:
        """Await ``work`` unless ``signal`` fires first.

        Work running in a thread cannot be interrupted, so on abort it is left
        to finish and its late result is handed to ``discard``.
        """
        if signal is None:
            return await work
        loop = asyncio.get_running_loop()
        aborted: asyncio.Future[None] = loop.create_future()

        def on_abort() -> None:
            loop.call_soon_threadsafe(
                lambda: aborted.done() or aborted.set_result(None)
            )

        task = asyncio.ensure_future(work)
        remove = signal.add_listener(on_abort)
        try:
            await asyncio.wait({task, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            remove()
        if task.done():
            aborted.cancel()
            return task.result()
        task.add_done_callback(lambda done: _discard_late(done, discard))
        raise AbortError()

    async def _iter_content(
        self, response: requests.Response, signal: AbortSignal | None
    ) -> AsyncIterator[bytes]:
        chunks = response.iter_content(self._config.chunk_size)
        try:
            while True:
                if signal is not None:
                    signal.throw_if_aborted()
                try:
                    chunk = await asyncio.to_thread(next, chunks, None)
                except requests.exceptions.RequestException as exc:
                    raise self._translate(exc) from exc
                if chunk is None:
                    return
                if chunk:
                    yield chunk
        finally:
            response.close()

    @staticmethod
    def _translate(error: requests.exceptions.RequestException) -> HttpClientError:
        """Map requests exceptions to Ferry errors."""
        if isinstance(error, requests.exceptions.Timeout):
            return RequestTimeoutError(str(error))
        if isinstance(error, requests.exceptions.ConnectionError):
            return NetworkError(f"Network Error: {error}")
        return HttpClientError(str(error))

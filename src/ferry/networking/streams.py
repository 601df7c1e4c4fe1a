"""Progress instrumentation for request and response byte streams.

Events are emitted one chunk late: the event for chunk ``k`` fires when
chunk ``k + 1`` arrives, and a final flush at end of stream reports the
last chunk. Only that terminal event may report a ratio of exactly 1.0.
"""

from __future__ import annotations

import sys
from dataclasses import replace
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable

from .progress import ProgressEvent, Speedometer, body_size, progress_event

if TYPE_CHECKING:
    from .transport import FetchRequest, FetchResponse

ProgressCallback = Callable[[ProgressEvent], Any]

_BELOW_ONE = 1 - sys.float_info.epsilon


def _clamp(event: ProgressEvent, terminal: bool) -> ProgressEvent:
    if event.progress is None:
        return event
    ceiling = 1.0 if terminal else _BELOW_ONE
    if event.progress > ceiling:
        return replace(event, progress=ceiling)
    return event


async def _instrumented(
    stream: AsyncIterator[bytes],
    total_bytes: int | None,
    on_progress: ProgressCallback,
    upload: bool,
    speedometer: Speedometer,
) -> AsyncIterator[bytes]:
    loaded = 0
    pending: bytes | None = None

    def emit(chunk: bytes, terminal: bool) -> None:
        nonlocal loaded
        loaded += len(chunk)
        rate = speedometer.push(len(chunk))
        event = progress_event(loaded, total_bytes, len(chunk), upload, rate)
        on_progress(_clamp(event, terminal))

    async for chunk in stream:
        if pending is not None:
            emit(pending, terminal=False)
        yield chunk
        pending = chunk

    if pending is not None:
        emit(pending, terminal=True)


def with_progress(
    stream: AsyncIterator[bytes] | None,
    total_bytes: int | None,
    on_progress: ProgressCallback | None,
    upload: bool,
    speedometer: Speedometer | None = None,
) -> AsyncIterator[bytes] | None:
    """Wrap ``stream`` so every chunk is reported to ``on_progress``.

    Chunks are forwarded unchanged and in order. When either the stream or
    the callback is missing the input is returned as-is.

    Args:
        stream: Source byte chunks.
        total_bytes: Expected size, ``None`` or ``0`` when unknown.
        on_progress: Receives a ``ProgressEvent`` per chunk.
        upload: Direction flag for the events.
        speedometer: Rate estimator for this stream; a fresh one by default.
    """
    if on_progress is None or stream is None:
        return stream
    return _instrumented(
        stream, total_bytes, on_progress, upload, speedometer or Speedometer()
    )


def with_upload_progress(
    request: FetchRequest,
    on_upload_progress: ProgressCallback | None,
    original_body: Any = None,
    speedometer: Speedometer | None = None,
) -> FetchRequest:
    """Return a copy of ``request`` whose body stream reports upload progress."""
    if request.body is None or on_upload_progress is None:
        return request
    total = body_size(original_body if original_body is not None else request.body)
    return request.with_body(
        with_progress(
            request.stream(), total, on_upload_progress, True, speedometer
        ),
        duplex="half",
    )


def content_length(headers: Any) -> int:
    """Parse ``content-length``; missing or malformed values count as 0."""
    if headers is None:
        return 0
    try:
        return max(0, int(headers.get("content-length")))
    except (TypeError, ValueError):
        return 0


def with_download_progress(
    response: FetchResponse,
    on_download_progress: ProgressCallback | None,
    speedometer: Speedometer | None = None,
) -> FetchResponse:
    """Return a copy of ``response`` whose body reports download progress."""
    if response.body is None or on_download_progress is None:
        return response
    if response.status == 204:
        return response.with_body(None)
    return response.with_body(
        with_progress(
            response.body,
            content_length(response.headers),
            on_download_progress,
            False,
            speedometer,
        )
    )

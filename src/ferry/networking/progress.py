"""Transfer-rate estimation, progress events and body sizing."""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import AsyncIterable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable

from .forms import FormData, FormFile, SearchParams

logger = logging.getLogger(__name__)

DEFAULT_SAMPLES = 10
DEFAULT_MIN_ELAPSED_MS = 1000.0


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification for an upload or a download."""

    loaded: int
    total: int | None
    progress: float | None
    bytes: int
    rate: int | None
    estimated: float | None
    upload: bool
    download: bool
    length_computable: bool


class Speedometer:
    """Sliding-window byte-rate estimator.

    Keeps the last ``samples`` ``(bytes, timestamp)`` pairs in a ring. A rate
    is only reported once ``min_elapsed_ms`` has passed since the first push.
    Not thread-safe; use one instance per stream.

    Args:
        samples: Ring capacity.
        min_elapsed_ms: Warm-up time before the first estimate.
        clock: Millisecond clock, monotonic by default.
    """

    def __init__(
        self,
        samples: int = DEFAULT_SAMPLES,
        min_elapsed_ms: float = DEFAULT_MIN_ELAPSED_MS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if samples < 1:
            raise ValueError("samples must be >= 1")
        self._capacity = samples
        self._min_elapsed_ms = min_elapsed_ms
        self._clock = clock or _monotonic_ms
        self._bytes: list[int] = [0] * samples
        self._timestamps: list[float | None] = [None] * samples
        self._head = 0
        self._tail = 0
        self._first_sample_at: float | None = None

    def push(self, chunk_bytes: int) -> int | None:
        """Record a chunk and return the current rate in bytes per second."""
        now = self._clock()
        if self._first_sample_at is None:
            self._first_sample_at = now

        self._bytes[self._head] = chunk_bytes
        self._timestamps[self._head] = now

        total = 0
        index = self._tail
        while index != self._head:
            total += self._bytes[index]
            index = (index + 1) % self._capacity

        self._head = (self._head + 1) % self._capacity
        if self._head == self._tail:
            self._tail = (self._tail + 1) % self._capacity

        if now - self._first_sample_at < self._min_elapsed_ms:
            return None
        started_at = self._timestamps[self._tail]
        if started_at is None:
            return None
        elapsed = now - started_at
        if elapsed <= 0:
            return None
        return _round_half_up(total * 1000 / elapsed)


def progress_event(
    loaded: int,
    total: int | None,
    chunk_bytes: int,
    upload: bool,
    rate: int | None = None,
) -> ProgressEvent:
    """Build a progress event from raw transfer counters."""
    length_computable = total is not None and total > 0
    progress = loaded / total if length_computable else None
    estimated = None
    if rate and length_computable and loaded <= total:
        estimated = (total - loaded) / rate
    return ProgressEvent(
        loaded=loaded,
        total=total if length_computable else None,
        progress=progress,
        bytes=chunk_bytes,
        rate=rate,
        estimated=estimated,
        upload=upload,
        download=not upload,
        length_computable=length_computable,
    )


def _encoded_length(text: str) -> int:
    return len(text.encode("utf-8"))


def _form_size(form: Any) -> int:
    size = 0
    try:
        for name, value in form.entries():
            size += _encoded_length(f'Content-Disposition: form-data; name="{name}"')
            if isinstance(value, str):
                size += _encoded_length(value)
            elif isinstance(value, FormFile):
                size += value.size
            else:
                size += len(value)
    except Exception:
        logger.debug("could not enumerate form fields for sizing", exc_info=True)
        return 0
    return size


def _seekable_size(body: Any) -> int | None:
    try:
        if not body.seekable():
            return None
        position = body.tell()
        end = body.seek(0, 2)
        body.seek(position)
    except (AttributeError, OSError, ValueError):
        return None
    return end - position


def body_size(body: Any) -> int | None:
    """Best-effort size of a request body in bytes.

    Returns ``None`` when the size cannot be known without consuming the
    body (streams, iterators, unserializable objects) and ``0`` for an
    absent body or an unsupported type.
    """
    if body is None:
        return 0
    if isinstance(body, FormData) or (
        not isinstance(body, (str, bytes, Mapping)) and hasattr(body, "entries")
    ):
        return _form_size(body)
    if isinstance(body, FormFile):
        return body.size
    if isinstance(body, (bytes, bytearray)):
        return len(body)
    if isinstance(body, memoryview):
        return body.nbytes
    if isinstance(body, str):
        return _encoded_length(body)
    if isinstance(body, SearchParams):
        return _encoded_length(str(body))
    if hasattr(body, "read"):
        return _seekable_size(body)
    if isinstance(body, (Mapping, list, tuple)):
        try:
            return _encoded_length(
                json.dumps(body, separators=(",", ":"), ensure_ascii=False)
            )
        except (TypeError, ValueError):
            return None
    if isinstance(body, (AsyncIterable, Iterable)):
        return None
    return 0

"""Cooperative cancellation tokens."""

from __future__ import annotations

import threading
from typing import Any, Callable

from .errors import AbortError


class AbortSignal:
    """Read side of a cancellation token.

    Safe to observe from worker threads: transports running blocking I/O in
    a thread can poll ``aborted`` between chunks.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._listeners: list[Callable[[], Any]] = []
        self.reason: Any = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def add_listener(self, callback: Callable[[], Any]) -> Callable[[], None]:
        """Call ``callback`` once on abort; returns a function removing it.

        An already aborted signal invokes the callback immediately.
        """
        with self._lock:
            if not self._event.is_set():
                self._listeners.append(callback)
                return lambda: self._remove(callback)
        callback()
        return lambda: None

    def _remove(self, callback: Callable[[], Any]) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def throw_if_aborted(self) -> None:
        if self.aborted:
            raise AbortError()

    def _abort(self, reason: Any) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            listeners, self._listeners = self._listeners, []
        for callback in listeners:
            callback()


class CancelToken:
    """Controller owning an ``AbortSignal``; pass ``token.signal`` per call."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Any = None) -> None:
        self.signal._abort(reason)

    cancel = abort

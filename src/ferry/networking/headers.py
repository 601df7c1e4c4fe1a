"""Case-insensitive view over a transport's response headers."""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Iterator


class HeadersView(MutableMapping):
    """Dict-style access to any header collection exposing ``get``.

    Lookups try the exact name, then its lower-cased form. Writes and
    deletes go straight to the wrapped collection, and any other attribute
    (``getlist``, ``raw`` ...) is delegated to it.
    """

    def __init__(self, headers: Any) -> None:
        self._headers = headers

    @property
    def wrapped(self) -> Any:
        return self._headers

    def get(self, name: str, default: Any = None) -> Any:
        value = self._headers.get(name)
        if value is None:
            value = self._headers.get(name.lower())
        return default if value is None else value

    def __getitem__(self, name: str) -> Any:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __setitem__(self, name: str, value: Any) -> None:
        if hasattr(self._headers, "__setitem__"):
            self._headers[name] = value
        else:
            self._headers.set(name, value)

    def __delitem__(self, name: str) -> None:
        for key in list(self):
            if key.lower() == name.lower():
                del self._headers[key]
                return
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        keys = getattr(self._headers, "keys", None)
        return iter(list(keys() if callable(keys) else self._headers))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._headers, name)

    def __repr__(self) -> str:
        return f"HeadersView({dict(self.items())!r})"

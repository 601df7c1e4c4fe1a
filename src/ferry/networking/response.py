"""Normalized response returned to callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

_MISSING = object()

# Owned by the client, never taken from the transport response.
RESERVED_FIELDS = frozenset(("config", "data"))


@dataclass
class Response:
    """Response record filled in as a request progresses.

    ``config`` is the configuration passed by the caller, before defaults
    were merged in. ``data`` holds the decoded body. Any extra public field
    a transport sets on its response is copied over as an attribute.
    """

    config: Mapping[str, Any]
    status: int = 0
    status_text: str = ""
    ok: bool = False
    url: str = ""
    redirected: bool = False
    type: str = "basic"
    headers: Any = None
    body: Any = None
    body_used: bool = False
    data: Any = None

    def absorb(self, raw: Any) -> None:
        """Copy every public, non-callable attribute of ``raw``."""
        for name in dir(raw):
            if name.startswith("_") or name in RESERVED_FIELDS:
                continue
            value = getattr(raw, name, _MISSING)
            if value is _MISSING or callable(value):
                continue
            setattr(self, name, value)

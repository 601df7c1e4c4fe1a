"""Final URL resolution: base URL joining and query-string appending."""

from __future__ import annotations

from typing import Any, Callable
from urllib.parse import urlsplit

from .forms import SearchParams


def is_absolute(url: str) -> bool:
    parts = urlsplit(url)
    return bool(parts.scheme or parts.netloc)


def join_base(base_url: str | None, url: str) -> str:
    """Prefix a relative ``url`` with ``base_url``, one slash between them."""
    if not base_url or is_absolute(url):
        return url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def serialize_params(
    params: Any, serializer: Callable[[Any], str] | None = None
) -> str:
    if serializer is not None:
        return str(serializer(params))
    if isinstance(params, str):
        return params.lstrip("?")
    if isinstance(params, SearchParams):
        return str(params)
    return str(SearchParams(params))


def resolve_url(
    url: str,
    base_url: str | None = None,
    params: Any = None,
    params_serializer: Callable[[Any], str] | None = None,
) -> str:
    """Build the URL a request is sent to.

    Args:
        url: Target, absolute or relative.
        base_url: Prefix for relative targets.
        params: Query parameters as a mapping, ``SearchParams`` or string.
        params_serializer: Custom encoder replacing the default one.
    """
    url = join_base(base_url, url)
    if params:
        separator = "&" if "?" in url else "?"
        url += separator + serialize_params(params, params_serializer)
    return url

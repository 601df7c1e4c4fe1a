"""Asynchronous, axios-style HTTP client for the Ferry networking layer.

The client owns request building (configuration merging, body encoding,
header and URL resolution), optional progress instrumentation, response
decoding and failure classification. Network I/O is delegated to an
injected transport.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import replace
from typing import Any, Awaitable, Callable, Iterable, Mapping, TypeVar
from urllib.parse import unquote

from .cancel import CancelToken
from .config import HttpClientConfig, RequestOptions, validate_response_type
from .errors import (
    CANCEL_CODE,
    CANCEL_MESSAGE,
    CANCEL_NAME,
    CanceledError,
    HttpStatusError,
)
from .forms import FormData, SearchParams
from .headers import HeadersView
from .merge import deep_merge, merge_config
from .progress import Speedometer
from .response import Response
from .streams import with_download_progress, with_upload_progress
from .transport import FetchOptions, FetchRequest, RequestsTransport, Transport
from .urls import resolve_url

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

_NETWORK_HINT = re.compile(r"fetch|network", re.IGNORECASE)


def is_cancel(error: Any) -> bool:
    """Return True when ``error`` represents a cancelled request."""
    if error is None:
        return False
    return (
        getattr(error, "name", None) == CANCEL_NAME
        or getattr(error, "code", None) == CANCEL_CODE
        or str(error) == CANCEL_MESSAGE
    )


def is_axios_error(payload: Any) -> bool:
    """Return True for errors raised by this client for a failed response."""
    if isinstance(payload, Mapping):
        return payload.get("is_axios_error") is True
    return getattr(payload, "is_axios_error", None) is True


async def all(aws: Iterable[Awaitable[ResultT]]) -> list[ResultT]:  # noqa: A001
    """Await every awaitable and return the results in order."""
    return list(await asyncio.gather(*aws))


def spread(fn: Callable[..., ResultT]) -> Callable[[Iterable[Any]], ResultT]:
    """Adapt a variadic function to take a single sequence of arguments."""
    return lambda args: fn(*args)


def _is_abort(error: Exception) -> bool:
    return (
        getattr(error, "name", None) == CANCEL_NAME
        or getattr(error, "code", None) == CANCEL_CODE
    )


def _is_json_payload(body: Any) -> bool:
    return isinstance(body, (Mapping, list, tuple)) and not isinstance(
        body, (FormData, SearchParams)
    )


class HttpClient:
    """Core HTTP client (async).

    Every call layers its options over the client's frozen defaults, so
    concurrent calls on one client never observe each other's state.
    """

    CancelToken = CancelToken

    all = staticmethod(all)
    spread = staticmethod(spread)
    is_cancel = staticmethod(is_cancel)
    is_axios_error = staticmethod(is_axios_error)
    merge_config = staticmethod(merge_config)

    def __init__(self, config: HttpClientConfig | None = None) -> None:
        """Create a new HttpClient.

        Args:
            config: Defaults, transport and progress settings.
        """
        self._config = config or HttpClientConfig()
        self._transport: Transport = self._config.transport or RequestsTransport()

    @property
    def defaults(self) -> Mapping[str, Any]:
        return self._config.defaults

    @property
    def config(self) -> HttpClientConfig:
        return self._config

    def create(self, defaults: Mapping[str, Any] | None = None) -> HttpClient:
        """Return an independent client sharing this client's transport."""
        return HttpClient(
            replace(self._config, defaults=defaults or {}, transport=self._transport)
        )

    async def request(
        self,
        url_or_config: str | RequestOptions | None = None,
        config: RequestOptions | None = None,
    ) -> Response:
        """Issue a request.

        Args:
            url_or_config: Target URL, or the full options (with ``url``).
            config: Options when the URL is given positionally.

        Returns:
            The normalized response.

        Raises:
            HttpStatusError: The status failed validation.
            CanceledError: The request was cancelled.
            HttpClientError: The transport failed.
        """
        return await self._request(url_or_config, config)

    __call__ = request

    async def get(self, url: str, config: RequestOptions | None = None) -> Response:
        return await self._request(url, config, "get")

    async def delete(self, url: str, config: RequestOptions | None = None) -> Response:
        return await self._request(url, config, "delete")

    async def head(self, url: str, config: RequestOptions | None = None) -> Response:
        return await self._request(url, config, "head")

    async def options(self, url: str, config: RequestOptions | None = None) -> Response:
        return await self._request(url, config, "options")

    async def post(
        self, url: str, data: Any = None, config: RequestOptions | None = None
    ) -> Response:
        return await self._request(url, config, "post", data)

    async def put(
        self, url: str, data: Any = None, config: RequestOptions | None = None
    ) -> Response:
        return await self._request(url, config, "put", data)

    async def patch(
        self, url: str, data: Any = None, config: RequestOptions | None = None
    ) -> Response:
        return await self._request(url, config, "patch", data)

    def _speedometer(self) -> Speedometer:
        return Speedometer(
            self._config.progress_samples, self._config.progress_min_elapsed_ms
        )

    def _read_xsrf_token(self, options: Mapping[str, Any]) -> str | None:
        """Best-effort XSRF token lookup; any failure yields None."""
        cookie_name = options.get("xsrf_cookie_name")
        source = self._config.cookie_source
        if not cookie_name or not options.get("xsrf_header_name") or source is None:
            return None
        try:
            match = re.search(
                "(^|; )" + re.escape(cookie_name) + "=([^;]*)", source()
            )
            if match is None:
                return None
            return unquote(match.group(2), errors="strict")
        except Exception:
            logger.debug("xsrf cookie %r could not be read", cookie_name, exc_info=True)
            return None

    def _build_body(
        self, options: Mapping[str, Any], data: Any, headers: dict[str, str]
    ) -> Any:
        body = data
        if body is None:
            body = options.get("data")
        if body is None:
            body = options.get("body")
        for transform in options.get("transform_request") or ():
            result = transform(body, options.get("headers"))
            if result is not None:
                body = result
        if _is_json_payload(body):
            body = json.dumps(body, separators=(",", ":"), ensure_ascii=False)
            headers["content-type"] = "application/json"
        elif isinstance(body, (bool, int, float)):
            # Scalars go out as their JSON text; zero and False mean no body.
            body = json.dumps(body) if body else None
        return body

    async def _decode(
        self, raw: Any, response_type: str | None, options: Mapping[str, Any]
    ) -> Any:
        decoder = getattr(raw, response_type or "text", None)
        try:
            data = await decoder()
        except Exception as error:
            if _is_abort(error):
                raise CanceledError(config=options) from error
            logger.debug("could not decode response as %s", response_type or "text", exc_info=True)
            return None
        if isinstance(data, str) and (
            response_type != "text" or self._config.parse_text_as_json
        ):
            try:
                return json.loads(data)
            except ValueError:
                pass
        return data

    async def _request(
        self,
        url_or_config: str | RequestOptions | None,
        config: RequestOptions | None = None,
        method: str | None = None,
        data: Any = None,
    ) -> Response:
        """Build, dispatch, decode and classify one request."""
        if isinstance(url_or_config, str):
            url = url_or_config
            config = config or {}
        else:
            config = url_or_config or {}
            url = config.get("url") or ""

        response = Response(config=config)
        options: dict[str, Any] = deep_merge(self._config.defaults, config)
        response_type = options.get("response_type")
        validate_response_type(response_type)

        custom_headers: dict[str, str] = {}
        if options.get("auth"):
            custom_headers["authorization"] = options["auth"]
        body = self._build_body(options, data, custom_headers)
        token = self._read_xsrf_token(options)
        if token is not None:
            custom_headers[options["xsrf_header_name"]] = token

        url = resolve_url(
            url,
            options.get("base_url"),
            options.get("params"),
            options.get("params_serializer"),
        )
        transport: Transport = options.get("transport") or self._transport
        method = (method or options.get("method") or "get").upper()
        has_body = body is not None and method not in ("GET", "HEAD")

        fetch_options = FetchOptions(
            method=method,
            body=body if has_body else None,
            headers=deep_merge(options.get("headers") or {}, custom_headers, True),
            credentials="include" if options.get("with_credentials") else None,
            signal=options.get("signal"),
        )

        request: FetchRequest | None = None
        on_upload_progress = options.get("on_upload_progress")
        if (
            has_body
            and on_upload_progress is not None
            and getattr(transport, "supports_request_streaming", False)
        ):
            try:
                request = with_upload_progress(
                    FetchRequest.build(url, fetch_options),
                    on_upload_progress,
                    body,
                    self._speedometer(),
                )
            except Exception:
                logger.debug("upload progress unavailable for %s", url, exc_info=True)
                request = None

        logger.debug("dispatching %s %s", method, url)
        try:
            if request is not None:
                raw = await transport(request)
            else:
                raw = await transport(url, fetch_options)
        except Exception as error:
            if _is_abort(error):
                raise CanceledError(config=options) from error
            if getattr(error, "response", None) is None and _NETWORK_HINT.search(str(error)):
                logger.debug("network failure for %s %s: %s", method, url, error)
            raise

        on_download_progress = options.get("on_download_progress")
        if on_download_progress is not None and hasattr(raw, "with_body"):
            raw = with_download_progress(raw, on_download_progress, self._speedometer())

        response.absorb(raw)
        if callable(getattr(response.headers, "get", None)):
            response.headers = HeadersView(response.headers)

        if response_type == "stream":
            response.data = getattr(raw, "body", None)
            return response

        response.data = await self._decode(raw, response_type, options)

        validate_status = options.get("validate_status")
        ok = validate_status(response.status) if validate_status else getattr(raw, "ok", False)
        if ok:
            return response
        logger.debug("%s %s failed with status %s", method, url, response.status)
        raise HttpStatusError(response.status, response=response, config=options)


def create(
    defaults: Mapping[str, Any] | None = None,
    *,
    config: HttpClientConfig | None = None,
) -> HttpClient:
    """Create an independent client.

    Args:
        defaults: Options layered under every call of the new client.
        config: Client-level settings; ``defaults`` replaces its defaults
            when both are given.
    """
    config = config or HttpClientConfig()
    if defaults is not None:
        config = replace(config, defaults=defaults)
    return HttpClient(config)

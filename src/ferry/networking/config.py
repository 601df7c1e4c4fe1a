"""Configuration models for the HttpClient and its default transport."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Literal, Mapping, Sequence, TypedDict

from .merge import deep_merge

if TYPE_CHECKING:
    from .cancel import AbortSignal
    from .progress import ProgressEvent
    from .transport import Transport

ResponseType = Literal["text", "json", "stream", "bytes", "form_data"]
RESPONSE_TYPES: frozenset[str] = frozenset(
    ("text", "json", "stream", "bytes", "form_data")
)

RequestTransform = Callable[[Any, Any], Any]


class RequestOptions(TypedDict, total=False):
    """Per-call (and per-client default) request options."""

    url: str
    method: str
    headers: Mapping[str, str]
    body: Any
    data: Any
    response_type: ResponseType
    params: Any
    params_serializer: Callable[[Any], str]
    with_credentials: bool
    auth: str
    xsrf_cookie_name: str
    xsrf_header_name: str
    validate_status: Callable[[int], bool]
    transform_request: Sequence[RequestTransform]
    base_url: str
    transport: Transport
    signal: AbortSignal
    on_upload_progress: Callable[[ProgressEvent], Any]
    on_download_progress: Callable[[ProgressEvent], Any]


def _default_headers() -> Mapping[str, str]:
    """Return immutable empty default headers mapping."""

    return MappingProxyType({})


def _default_options() -> Mapping[str, Any]:
    return MappingProxyType({})


def validate_response_type(value: Any) -> None:
    if value is not None and value not in RESPONSE_TYPES:
        raise ValueError(
            f"response_type must be one of {sorted(RESPONSE_TYPES)}, got {value!r}"
        )


@dataclass(frozen=True)
class HttpClientConfig:
    """Configuration for HttpClient behavior.

    ``defaults`` are layered under every call's options and are frozen on
    construction, so no call can alter them.
    """

    defaults: Mapping[str, Any] = field(default_factory=_default_options)
    transport: Transport | None = None
    cookie_source: Callable[[], str] | None = None
    parse_text_as_json: bool = True
    progress_samples: int = 10
    progress_min_elapsed_ms: float = 1000.0

    def __post_init__(self) -> None:
        if self.progress_samples < 1:
            raise ValueError("progress_samples must be >= 1")
        if self.progress_min_elapsed_ms < 0:
            raise ValueError("progress_min_elapsed_ms must be >= 0")
        validate_response_type(self.defaults.get("response_type"))

        # Freeze copied defaults to avoid post-init mutation side effects.
        object.__setattr__(
            self,
            "defaults",
            MappingProxyType(deep_merge(self.defaults, {})),
        )


@dataclass(frozen=True)
class TransportConfig:
    """Configuration for the requests-backed default transport."""

    user_agent: str | None = None
    default_headers: Mapping[str, str] = field(default_factory=_default_headers)
    verify_tls: bool = True
    connect_timeout_seconds: float | None = None
    read_timeout_seconds: float | None = None
    timeout_seconds: float | None = None
    chunk_size: int = 64 * 1024

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")

        has_connect_timeout = self.connect_timeout_seconds is not None
        has_read_timeout = self.read_timeout_seconds is not None
        if has_connect_timeout != has_read_timeout:
            raise ValueError(
                "connect_timeout_seconds and read_timeout_seconds "
                "must be set together"
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0 when provided")
        if (
            self.connect_timeout_seconds is not None
            and self.connect_timeout_seconds <= 0
        ):
            raise ValueError(
                "connect_timeout_seconds must be > 0 when provided"
            )
        if (
            self.read_timeout_seconds is not None
            and self.read_timeout_seconds <= 0
        ):
            raise ValueError("read_timeout_seconds must be > 0 when provided")

        object.__setattr__(
            self,
            "default_headers",
            MappingProxyType(dict(self.default_headers)),
        )

    @property
    def timeout(self) -> float | tuple[float, float] | None:
        """Resolve timeout preference."""
        if (
            self.connect_timeout_seconds is not None
            and self.read_timeout_seconds is not None
        ):
            return (self.connect_timeout_seconds, self.read_timeout_seconds)
        return self.timeout_seconds

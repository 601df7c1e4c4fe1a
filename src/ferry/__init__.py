"""Ferry: an axios-style asynchronous HTTP client.

The module-level functions are bound to a default client; use ``create``
for independently configured instances.
"""

from __future__ import annotations

from .networking.cancel import CancelToken
from .networking.client import (
    HttpClient,
    all,
    create,
    is_axios_error,
    is_cancel,
    spread,
)
from .networking.config import HttpClientConfig, RequestOptions, TransportConfig
from .networking.errors import (
    AbortError,
    CanceledError,
    HttpClientError,
    HttpStatusError,
    NetworkError,
    RequestTimeoutError,
)
from .networking.forms import FormData, FormFile, SearchParams
from .networking.merge import merge_config
from .networking.progress import ProgressEvent
from .networking.response import Response
from .networking.transport import FetchOptions, FetchRequest, FetchResponse, RequestsTransport

client = create()

request = client.request
get = client.get
delete = client.delete
head = client.head
options = client.options
post = client.post
put = client.put
patch = client.patch
defaults = client.defaults

__all__ = [
    "AbortError",
    "CancelToken",
    "CanceledError",
    "FetchOptions",
    "FetchRequest",
    "FetchResponse",
    "FormData",
    "FormFile",
    "HttpClient",
    "HttpClientConfig",
    "HttpClientError",
    "HttpStatusError",
    "NetworkError",
    "ProgressEvent",
    "RequestOptions",
    "RequestTimeoutError",
    "RequestsTransport",
    "Response",
    "SearchParams",
    "TransportConfig",
    "all",
    "client",
    "create",
    "defaults",
    "delete",
    "get",
    "head",
    "is_axios_error",
    "is_cancel",
    "merge_config",
    "options",
    "patch",
    "post",
    "put",
    "request",
    "spread",
]

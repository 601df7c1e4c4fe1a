# pyright: reportUnknownParameterType=false, reportUnknownMemberType=false
# pyright: reportUnknownVariableType=false, reportMissingParameterType=false
import pytest

from ferry.networking.cancel import CancelToken
from ferry.networking.client import HttpClient
from ferry.networking.config import HttpClientConfig
from ferry.networking.errors import (
    AbortError,
    CanceledError,
    HttpStatusError,
    NetworkError,
)
from ferry.networking.forms import FormData, SearchParams
from ferry.networking.headers import HeadersView
from ferry.networking.transport import FetchRequest, FetchResponse


@pytest.mark.asyncio
async def test_get_returns_text_and_status(client, transport):
    transport.respond("some example content")

    response = await client.get("/example.txt")

    assert response.status == 200
    assert response.ok is True
    assert response.data == "some example content"
    assert transport.last_url == "/example.txt"
    assert transport.last_options.method == "GET"


@pytest.mark.asyncio
async def test_request_accepts_a_single_config(client, transport):
    transport.respond("ok")

    response = await client.request({"url": "/foo", "method": "delete"})

    assert transport.last_url == "/foo"
    assert transport.last_options.method == "DELETE"
    assert response.config == {"url": "/foo", "method": "delete"}


@pytest.mark.asyncio
async def test_client_is_callable(client, transport):
    transport.respond("ok")

    response = await client("/foo", {"method": "options"})

    assert response.data == "ok"
    assert transport.last_options.method == "OPTIONS"


@pytest.mark.asyncio
async def test_json_is_parsed_by_default(client, transport):
    transport.respond('{"hello":"world"}')

    response = await client.get("/example.json")

    assert response.data == {"hello": "world"}


@pytest.mark.asyncio
async def test_forced_json_falls_back_to_none_on_parse_failure(client, transport):
    transport.respond("some example content")

    response = await client.get("/example.txt", {"response_type": "json"})

    assert response.data is None


@pytest.mark.asyncio
async def test_text_response_type_still_parses_json(client, transport):
    transport.respond('{"hello":"world"}')

    parsed = await client.get("/example.json", {"response_type": "text"})
    transport.respond("some example content")
    text = await client.get("/example.txt", {"response_type": "text"})

    assert parsed.data == {"hello": "world"}
    assert text.data == "some example content"


@pytest.mark.asyncio
async def test_strict_text_keeps_json_as_text(transport):
    client = HttpClient(HttpClientConfig(transport=transport, parse_text_as_json=False))
    transport.respond('{"hello":"world"}')

    strict = await client.get("/example.json", {"response_type": "text"})
    transport.respond('{"hello":"world"}')
    default = await client.get("/example.json")

    assert strict.data == '{"hello":"world"}'
    assert default.data == {"hello": "world"}


@pytest.mark.asyncio
async def test_bytes_response_type(client, transport):
    transport.respond(b"\x00\x01")

    response = await client.get("/blob", {"response_type": "bytes"})

    assert response.data == b"\x00\x01"


@pytest.mark.asyncio
async def test_form_data_response_type(client, transport):
    transport.respond(
        "a=1&b=two", headers={"content-type": "application/x-www-form-urlencoded"}
    )

    response = await client.get("/form", {"response_type": "form_data"})

    assert isinstance(response.data, FormData)
    assert response.data.get("b") == "two"


@pytest.mark.asyncio
async def test_decode_failure_yields_none(client, transport):
    transport.respond("a=1", headers={"content-type": "text/plain"})

    response = await client.get("/form", {"response_type": "form_data"})

    assert response.data is None


@pytest.mark.asyncio
async def test_stream_response_type_exposes_body(client, transport):
    transport.respond(b"streamed")

    response = await client.get("/stream", {"response_type": "stream"})

    assert b"".join([chunk async for chunk in response.data]) == b"streamed"


@pytest.mark.asyncio
async def test_unknown_response_type_is_rejected(client, transport):
    with pytest.raises(ValueError):
        await client.get("/x", {"response_type": "xml"})

    assert transport.calls == []


@pytest.mark.asyncio
async def test_post_encodes_plain_objects_as_json(client, transport):
    transport.respond("yep")

    response = await client.post("/foo", {"hello": "world"})

    options = transport.last_options
    assert options.method == "POST"
    assert options.headers == {"content-type": "application/json"}
    assert options.body == '{"hello":"world"}'
    assert response.data == "yep"


@pytest.mark.asyncio
async def test_scalar_bodies_are_sent_as_text(client, transport):
    await client.post("/n", 5)
    assert transport.last_options.body == "5"

    await client.put("/b", True)
    assert transport.last_options.body == "true"

    await client.patch("/f", 1.5)
    assert transport.last_options.body == "1.5"


@pytest.mark.asyncio
async def test_falsy_scalar_bodies_are_not_sent(client, transport):
    await client.post("/zero", 0)
    assert transport.last_options.body is None

    await client.post("/false", False)
    assert transport.last_options.body is None


@pytest.mark.asyncio
async def test_patch_and_put_carry_bodies(client, transport):
    transport.respond("yep")

    await client.patch("/foo", {"hello": "world"})
    assert transport.last_options.method == "PATCH"
    assert transport.last_options.body == '{"hello":"world"}'

    await client.put("/foo", "raw text")
    assert transport.last_options.method == "PUT"
    assert transport.last_options.body == "raw text"
    assert transport.last_options.headers == {}


@pytest.mark.asyncio
async def test_body_falls_back_to_data_option(client, transport):
    await client.request({"url": "/foo", "method": "post", "data": [1, 2]})

    assert transport.last_options.body == "[1,2]"


@pytest.mark.asyncio
async def test_form_data_is_not_json_encoded(client, transport):
    form = FormData()

    await client.post("/foo", form)

    assert transport.last_options.body is form
    assert transport.last_options.headers == {}


@pytest.mark.asyncio
async def test_form_data_keeps_configured_content_type(client, transport):
    form = FormData()
    form.append("hello", "world")

    await client.post(
        "/foo", form, {"headers": {"content-type": "multipart/form-data"}}
    )

    assert transport.last_options.headers == {"content-type": "multipart/form-data"}
    assert transport.last_options.body is form


@pytest.mark.asyncio
async def test_get_and_head_never_attach_a_body(client, transport):
    await client.request({"url": "/foo", "data": {"a": 1}})
    assert transport.last_options.body is None

    await client.head("/foo", {"data": "x"})
    assert transport.last_options.method == "HEAD"
    assert transport.last_options.body is None


@pytest.mark.asyncio
async def test_transform_request_runs_in_order(client, transport):
    seen = []

    def upper(body, headers):
        seen.append(headers)
        return body.upper()

    def keep(body, headers):
        return None

    await client.post(
        "/foo",
        "abc",
        {
            "transform_request": [upper, keep, lambda body, headers: body + "!"],
            "headers": {"X-A": "1"},
        },
    )

    assert transport.last_options.body == "ABC!"
    assert seen == [{"X-A": "1"}]


@pytest.mark.asyncio
async def test_transform_request_output_may_still_be_json_encoded(client, transport):
    await client.post("/foo", "a", {"transform_request": [lambda body, h: {"v": body}]})

    assert transport.last_options.body == '{"v":"a"}'


@pytest.mark.asyncio
async def test_auth_sets_authorization_header(client, transport):
    await client.get("/foo", {"auth": "Bearer abc"})

    assert transport.last_options.headers == {"authorization": "Bearer abc"}


@pytest.mark.asyncio
async def test_with_credentials_and_signal_pass_through(client, transport):
    token = CancelToken()

    await client.get("/foo", {"with_credentials": True, "signal": token.signal})

    assert transport.last_options.credentials == "include"
    assert transport.last_options.signal is token.signal


@pytest.mark.asyncio
async def test_credentials_omitted_by_default(client, transport):
    await client.get("/foo")

    assert transport.last_options.credentials is None
    assert transport.last_options.signal is None


@pytest.mark.asyncio
async def test_base_url_resolves_relative_urls(client, transport):
    await client.get("/bar", {"base_url": "http://foo"})
    assert transport.last_url == "http://foo/bar"
    assert transport.last_options.headers == {}
    assert transport.last_options.body is None

    await client.get("/bar", {"base_url": "/foo"})
    assert transport.last_url == "/foo/bar"

    await client.get("bar", {"base_url": "http://foo/"})
    assert transport.last_url == "http://foo/bar"


@pytest.mark.asyncio
async def test_base_url_leaves_absolute_urls_alone(client, transport):
    await client.get("https://other/baz", {"base_url": "http://foo"})

    assert transport.last_url == "https://other/baz"


@pytest.mark.asyncio
async def test_headers_merge_case_insensitively(client, transport):
    await client.request("/", {"headers": {"x-foo": "2"}})
    assert transport.last_options.headers == {"x-foo": "2"}

    await client.request("/", {"headers": {"x-foo": "2", "X-Foo": "4"}})
    assert transport.last_options.headers == {"x-foo": "4"}

    scoped = client.create({"headers": {"Base-Upper": "base", "base-lower": "base"}})
    await scoped.request("/")
    assert transport.last_options.headers == {
        "base-upper": "base",
        "base-lower": "base",
    }

    await scoped.request(
        "/", {"headers": {"base-upper": "replaced", "BASE-LOWER": "replaced"}}
    )
    assert transport.last_options.headers == {
        "base-upper": "replaced",
        "base-lower": "replaced",
    }


@pytest.mark.asyncio
async def test_params_are_serialized(client, transport):
    await client.get("/foo")
    assert transport.last_url == "/foo"

    await client.get("/foo", {"params": {"a": 1, "b": True}})
    assert transport.last_url == "/foo?a=1&b=true"

    await client.get("/foo?c=42", {"params": {"a": 1, "b": True}})
    assert transport.last_url == "/foo?c=42&a=1&b=true"

    await client.get("/foo", {"params": SearchParams({"d": "test"})})
    assert transport.last_url == "/foo?d=test"


@pytest.mark.asyncio
async def test_custom_params_serializer(client, transport):
    await client.get(
        "/foo",
        {"params": {"a": 1}, "params_serializer": lambda params: "e=iamthelaw"},
    )

    assert transport.last_url == "/foo?e=iamthelaw"


@pytest.mark.asyncio
async def test_xsrf_token_is_read_from_cookies(transport):
    client = HttpClient(
        HttpClientConfig(
            transport=transport,
            cookie_source=lambda: "a=1; XSRF-TOKEN=t%20ok; b=2",
        )
    )

    await client.get(
        "/foo",
        {"xsrf_cookie_name": "XSRF-TOKEN", "xsrf_header_name": "X-XSRF-TOKEN"},
    )

    assert transport.last_options.headers == {"x-xsrf-token": "t ok"}


@pytest.mark.asyncio
async def test_xsrf_failures_are_swallowed(transport):
    def broken_cookies():
        raise RuntimeError("no cookie store")

    xsrf = {"xsrf_cookie_name": "XSRF-TOKEN", "xsrf_header_name": "X-XSRF-TOKEN"}
    for source in (broken_cookies, lambda: "other=1", lambda: "XSRF-TOKEN=%E0%A4%A"):
        client = HttpClient(HttpClientConfig(transport=transport, cookie_source=source))

        await client.get("/foo", xsrf)

        assert transport.last_options.headers == {}


@pytest.mark.asyncio
async def test_failed_status_raises_with_response(client, transport):
    transport.respond(
        '{"error":"not found"}',
        status=404,
        headers={"content-type": "application/json"},
        status_text="Not Found",
    )

    with pytest.raises(HttpStatusError) as excinfo:
        await client.get("/notfound")

    error = excinfo.value
    assert str(error) == "Request failed with status code 404"
    assert error.is_axios_error is True
    assert error.response.status == 404
    assert error.response.status_text == "Not Found"
    assert error.response.data == {"error": "not found"}
    assert error.response.headers["Content-Type"] == "application/json"
    assert error.config == {}
    assert client.is_axios_error(error)


@pytest.mark.asyncio
async def test_validate_status_overrides_transport_ok(client, transport):
    transport.respond("gone", status=410)

    response = await client.get("/gone", {"validate_status": lambda status: status < 500})

    assert response.status == 410
    assert response.data == "gone"

    transport.respond("fine", status=200)
    with pytest.raises(HttpStatusError):
        await client.get("/fine", {"validate_status": lambda status: False})


@pytest.mark.asyncio
async def test_abort_errors_become_canonical_cancellation(client, transport):
    transport.error = AbortError("The user aborted a request.")

    with pytest.raises(CanceledError) as excinfo:
        await client.get("/test")

    error = excinfo.value
    assert client.is_cancel(error)
    assert error.name == "AbortError"
    assert str(error) == "canceled"
    assert error.response is None


@pytest.mark.asyncio
async def test_abort_while_reading_body_becomes_cancellation(client, transport):
    async def interrupted():
        yield b"partial"
        raise AbortError()

    transport.respond_with(lambda: FetchResponse(status=200, body=interrupted()))

    with pytest.raises(CanceledError) as excinfo:
        await client.get("/slow")

    assert excinfo.value.response is None
    assert isinstance(excinfo.value.__cause__, AbortError)


@pytest.mark.asyncio
async def test_foreign_abort_shaped_errors_are_recognized(client, transport):
    error = RuntimeError("stopped")
    error.code = "ERR_CANCELED"  # type: ignore[attr-defined]
    transport.error = error

    with pytest.raises(CanceledError):
        await client.get("/test")


@pytest.mark.asyncio
async def test_network_errors_propagate_unchanged(client, transport):
    failure = NetworkError("Network request failed")
    transport.error = failure

    with pytest.raises(NetworkError) as excinfo:
        await client.get("/test")

    assert excinfo.value is failure
    assert excinfo.value.response is None
    assert "Network" in str(excinfo.value)


@pytest.mark.asyncio
async def test_other_transport_errors_propagate_unchanged(client, transport):
    transport.error = KeyError("boom")

    with pytest.raises(KeyError):
        await client.get("/test")


@pytest.mark.asyncio
async def test_response_headers_are_case_insensitive(client, transport):
    transport.respond("{}", headers={"X-Inertia": "true", "content-type": "application/json"})

    response = await client.get("/test")

    assert isinstance(response.headers, HeadersView)
    assert response.headers["x-inertia"] == "true"
    assert response.headers["X-Inertia"] == "true"
    assert response.headers.get("CONTENT-TYPE") == "application/json"
    assert "x-inertia" in response.headers


@pytest.mark.asyncio
async def test_response_copies_plain_transport_fields(client, transport):
    transport.respond("x", url="http://final/", redirected=True)

    response = await client.get("/start")

    assert response.url == "http://final/"
    assert response.redirected is True
    assert response.status_text == ""


@pytest.mark.asyncio
async def test_response_copies_extra_transport_fields(client, transport):
    def traced():
        raw = FetchResponse.from_bytes("x")
        raw.trace_id = "abc"
        raw.data = "not decoded"
        return raw

    transport.respond_with(traced)

    response = await client.get("/traced")

    assert response.trace_id == "abc"
    assert response.body_used is False
    assert response.data == "x"
    assert response.config == {}


@pytest.mark.asyncio
async def test_per_call_transport_override(client, transport, streaming_transport):
    streaming_transport.respond("other")

    response = await client.get("/foo", {"transport": streaming_transport})

    assert response.data == "other"
    assert transport.calls == []
    assert streaming_transport.last_url == "/foo"


@pytest.mark.asyncio
async def test_upload_progress_streams_the_request(streaming_transport):
    client = HttpClient(HttpClientConfig(transport=streaming_transport))
    events = []

    await client.post(
        "http://example.com/upload",
        {"hello": "world"},
        {"on_upload_progress": events.append},
    )

    request, options = streaming_transport.calls[-1]
    assert isinstance(request, FetchRequest)
    assert options is None
    assert request.duplex == "half"
    assert request.headers == {"content-type": "application/json"}
    assert streaming_transport.received == b'{"hello":"world"}'
    assert events[-1].loaded == events[-1].total == len(b'{"hello":"world"}')
    assert events[-1].upload is True


@pytest.mark.asyncio
async def test_upload_progress_falls_back_when_request_cannot_be_built(
    streaming_transport,
):
    client = HttpClient(HttpClientConfig(transport=streaming_transport))
    events = []

    await client.post("/upload", 42, {"on_upload_progress": events.append})

    url, options = streaming_transport.calls[-1]
    assert url == "/upload"
    assert options.body == 42
    assert events == []


@pytest.mark.asyncio
async def test_upload_progress_needs_a_streaming_transport(client, transport):
    events = []

    await client.post("/upload", "data", {"on_upload_progress": events.append})

    assert transport.last_url == "/upload"
    assert events == []


@pytest.mark.asyncio
async def test_download_progress_reports_events(client, transport):
    transport.respond("chunk1", headers={"content-length": "6"})
    events = []

    response = await client.get("/download", {"on_download_progress": events.append})

    assert response.data == "chunk1"
    assert len(events) == 1
    assert events[0].loaded == 6
    assert events[0].total == 6
    assert events[0].progress == 1.0
    assert events[0].download is True


@pytest.mark.asyncio
async def test_download_progress_without_length(client, transport):
    transport.respond("abc")
    events = []

    await client.get("/download", {"on_download_progress": events.append})

    assert events[0].length_computable is False
    assert events[0].total is None


@pytest.mark.asyncio
async def test_calls_do_not_mutate_client_defaults(transport):
    client = HttpClient(
        HttpClientConfig(transport=transport, defaults={"headers": {"X-A": "1"}})
    )

    await client.get("/foo", {"headers": {"x-b": "2"}, "auth": "t"})

    assert dict(client.defaults) == {"headers": {"X-A": "1"}}
    assert transport.last_options.headers == {
        "x-a": "1",
        "x-b": "2",
        "authorization": "t",
    }


@pytest.mark.asyncio
async def test_defaults_supply_base_url_and_method(transport):
    client = HttpClient(
        HttpClientConfig(
            transport=transport, defaults={"base_url": "http://api", "method": "put"}
        )
    )

    await client.request("/items", {"data": "x"})
    assert transport.last_url == "http://api/items"
    assert transport.last_options.method == "PUT"

    await client.get("/items")
    assert transport.last_options.method == "GET"


@pytest.mark.asyncio
async def test_response_objects_pass_through_custom_transport(client):
    async def fetch(resource, options=None):
        return FetchResponse.from_bytes('{"hello":"world"}')

    response = await client.get("/example.json", {"transport": fetch})

    assert response.data == {"hello": "world"}

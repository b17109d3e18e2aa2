from datetime import timedelta

import aiohttp
import pytest

from requestkit import context
from requestkit.context import use_client
from requestkit.errors import BodyConsumedError, ConstructionError, EncodeError
from requestkit.request import Request, canonical_header_key
from tests.utils import EchoClient, FailingClient


# ------------------------
# Configuration
# ------------------------

def test_configuration_calls_return_same_builder():
    req = Request()

    assert req.set_timeout(1) is req
    assert req.set_body(b"x") is req
    assert req.set_json_body({}) is req
    assert req.set_xml_body({"a": None}) is req
    assert req.set_header("A", "1") is req
    assert req.add_header("A", "2") is req
    assert req.set_content_type("text/plain") is req
    assert req.set_accept("text/plain") is req
    assert req.set_basic_auth("u", "p") is req
    assert req.set_bearer_auth("t") is req


@pytest.mark.parametrize("key, expected", [
    ("content-type", "Content-Type"),
    ("X-REQUEST-ID", "X-Request-Id"),
    ("accept", "Accept"),
    ("bad key", "bad key"),
])
def test_canonical_header_key(key, expected):
    assert canonical_header_key(key) == expected


def test_set_header_replaces_regardless_of_casing():
    req = Request().set_header("x-request-id", "1").set_header("X-REQUEST-ID", "2")

    assert req.headers.getall("X-Request-Id") == ["2"]
    assert list(req.headers.keys()) == ["X-Request-Id"]


def test_add_header_keeps_values_in_order():
    req = Request().add_header("X-Tag", "a").add_header("x-tag", "b").add_header("X-TAG", "c")

    assert req.headers.getall("x-tag") == ["a", "b", "c"]


def test_set_header_after_add_header_leaves_single_value():
    req = Request().add_header("X-Tag", "a").add_header("X-Tag", "b").set_header("x-tag", "z")

    assert req.headers.getall("X-Tag") == ["z"]


def test_content_type_and_accept_helpers():
    req = Request().set_content_type("text/csv").set_accept("text/html")

    assert req.headers["Content-Type"] == "text/csv"
    assert req.headers["Accept"] == "text/html"


def test_basic_auth_known_vector():
    req = Request().set_basic_auth("username", "password")

    assert req.headers["Authorization"] == "Basic dXNlcm5hbWU6cGFzc3dvcmQ="


def test_basic_auth_password_with_colon():
    req = Request().set_basic_auth("user", "pa:ss")

    # base64("user:pa:ss")
    assert req.headers["Authorization"] == "Basic dXNlcjpwYTpzcw=="


def test_bearer_auth_passes_token_verbatim():
    req = Request().set_basic_auth("u", "p").set_bearer_auth("abc.def+/=")

    assert req.headers.getall("Authorization") == ["Bearer abc.def+/="]


def test_json_body_sets_content_type_overwriting_previous():
    req = Request().set_content_type("text/plain").set_json_body({"a": 1})

    assert req.headers.getall("Content-Type") == ["application/json"]


def test_xml_body_sets_content_type():
    req = Request().set_xml_body({"a": "1"})

    assert req.headers["Content-Type"] == "application/xml"


def test_set_body_does_not_touch_content_type():
    req = Request().set_body(b"raw")

    assert "Content-Type" not in req.headers
    assert req.body == b"raw"


def test_structured_body_is_not_encoded_outside_event_loop():
    # No running loop here: configuring must not start the encoder.
    req = Request().set_json_body({"a": 1})

    assert req.body.consumed is False


def test_timeout_accepts_seconds_and_timedelta():
    assert Request().timeout is None
    assert Request().set_timeout(2).timeout == 2.0
    assert Request().set_timeout(timedelta(minutes=1)).timeout == 60.0


def test_negative_timeout_rejected():
    with pytest.raises(ValueError):
        Request().set_timeout(-1)


# ------------------------
# Sending
# ------------------------

@pytest.mark.asyncio
async def test_send_passes_method_url_headers_and_body():
    client = EchoClient()

    with use_client(client):
        resp = await (
            Request()
            .set_header("X-Request-Id", "42")
            .add_header("X-Tag", "a")
            .add_header("X-Tag", "b")
            .set_body(b"payload")
            .send("PUT", "http://example.com/items/1")
        )

    call = client.calls[0]
    assert call.method == "PUT"
    assert call.url == "http://example.com/items/1"
    assert call.kwargs["headers"]["X-Request-Id"] == "42"
    assert call.kwargs["headers"].getall("X-Tag") == ["a", "b"]
    assert "timeout" not in call.kwargs
    assert await resp.read() == b"payload"


@pytest.mark.asyncio
async def test_timeout_override_is_per_request_and_client_untouched():
    client = EchoClient()

    with use_client(client):
        await Request().set_timeout(10).send("GET", "http://example.com")

    assert client.calls[0].kwargs["timeout"] == aiohttp.ClientTimeout(total=10.0)
    assert client.timeout == aiohttp.ClientTimeout(total=5)


@pytest.mark.asyncio
async def test_json_body_streams_compact_json():
    client = EchoClient()

    with use_client(client):
        resp = await Request().set_json_body({"message": "hi"}).send("POST", "http://example.com")

    assert await resp.read() == b'{"message":"hi"}'


@pytest.mark.asyncio
async def test_xml_body_streams_xml():
    client = EchoClient()

    with use_client(client):
        resp = await Request().set_xml_body({"payload": {"message": "hi"}}).send("POST", "http://example.com")

    assert await resp.read() == b"<payload><message>hi</message></payload>"


@pytest.mark.asyncio
async def test_encode_failure_surfaces_when_transport_reads_body():
    client = EchoClient()
    req = Request().set_json_body({"ok": 1, "bad": object()})

    with use_client(client):
        with pytest.raises(aiohttp.ClientConnectionError) as info:
            await req.send("POST", "http://example.com")

    cause = info.value.__cause__
    assert isinstance(cause, EncodeError)
    assert isinstance(cause.__cause__, TypeError)
    assert str(cause).startswith("request: encode JSON body")


@pytest.mark.asyncio
async def test_resend_with_consumed_structured_body_fails():
    client = EchoClient()
    req = Request().set_json_body({"message": "hi"})

    with use_client(client):
        await req.send("POST", "http://example.com")
        with pytest.raises(BodyConsumedError):
            await req.send("POST", "http://example.com")

    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_resend_with_bytes_body_sends_again():
    client = EchoClient()
    req = Request().set_body(b"again")

    with use_client(client):
        first = await req.send("POST", "http://example.com")
        second = await req.send("POST", "http://example.com")

    assert await first.read() == await second.read() == b"again"


@pytest.mark.asyncio
async def test_transport_error_is_not_wrapped():
    error = aiohttp.ClientConnectionError("connection refused")

    with use_client(FailingClient(error)):
        with pytest.raises(aiohttp.ClientConnectionError) as info:
            await Request().send("GET", "http://example.com")

    assert info.value is error


@pytest.mark.asyncio
async def test_default_client_used_without_attachment(monkeypatch):
    client = EchoClient()
    monkeypatch.setattr(context, "default_client", lambda: client)

    await Request().send("GET", "http://example.com")

    assert len(client.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("method, url, body", [
    ("GE T", "http://example.com", None),
    ("", "http://example.com", None),
    ("GET", "not a url", None),
    ("GET", "ftp://example.com/file", None),
    ("GET", "http://", None),
    ("GET", "http://[::1", None),
    ("POST", "http://example.com", {"not": "a stream"}),
])
async def test_invalid_requests_fail_before_sending(method, url, body):
    client = EchoClient()

    with use_client(client):
        with pytest.raises(ConstructionError):
            await Request().set_body(body).send(method, url)

    assert client.calls == []

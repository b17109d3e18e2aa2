"""
Fluent builder for outbound HTTP requests.

    resp = await (
        Request()
        .set_timeout(10)
        .set_basic_auth("username", "password")
        .set_json_body({"message": "hi"})
        .send("POST", "https://example.com/echo")
    )

Configuration calls mutate the builder and return it. ``send`` dispatches the
request through the client attached to the current context (see
``requestkit.context``) and returns the raw ``aiohttp.ClientResponse``; the
caller reads and releases its body. ``wrap_for_result`` and friends return a
``WithResult`` that does that for you.

Builders are single-use and not safe to share between tasks.
"""
from __future__ import annotations

import base64
import io
import re
from collections.abc import AsyncIterable
from datetime import timedelta
from typing import Any, Callable

import aiohttp
from aiohttp.payload import Payload
from multidict import CIMultiDict, CIMultiDictProxy
from yarl import URL

from requestkit.body import EncodedBody, json_body, xml_body
from requestkit.context import client_from_context, to_seconds
from requestkit.errors import BodyConsumedError, ConstructionError
from requestkit.result import WithResult, json_decoder, xml_decoder
from requestkit.settings import MIME
from requestkit.util.logging import get_logger

log = get_logger(__name__)

CONTENT_TYPE = "Content-Type"
ACCEPT = "Accept"
AUTHORIZATION = "Authorization"

# RFC 9110 token characters
_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")

_BODY_TYPES = (bytes, bytearray, memoryview, str, io.IOBase, AsyncIterable, Payload)


def canonical_header_key(key: str) -> str:
    """Return the canonical form of a header name: ``x-request-id`` -> ``X-Request-Id``.

    Keys that are not valid header tokens are returned unchanged.
    """
    if not _TOKEN.match(key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


class Request:
    """Accumulates headers, a timeout override and a body for a single HTTP request."""

    def __init__(self):
        self._headers: CIMultiDict[str] = CIMultiDict()
        self._timeout: float | None = None
        self._body: Any = None

    def __repr__(self) -> str:
        return (
            f"<Request headers={list(self._headers.keys())} "
            f"timeout={self._timeout} body={type(self._body).__name__}>"
        )

    @property
    def headers(self) -> CIMultiDictProxy[str]:
        return CIMultiDictProxy(self._headers)

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def body(self) -> Any:
        return self._body

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #
    def set_timeout(self, timeout: float | int | timedelta) -> "Request":
        """Override the client's timeout for this request only.

        ``0`` disables the timeout. The attached client itself is left untouched.
        """
        seconds = to_seconds(timeout)
        if seconds < 0:
            raise ValueError(f"timeout must not be negative, got {timeout!r}")
        self._timeout = seconds
        return self

    def set_body(self, body: Any) -> "Request":
        """Send ``body`` as-is: bytes, str, a binary file object or an async iterable of bytes.

        The Content-Type header is not touched.
        """
        self._body = body
        return self

    def set_json_body(self, value: Any) -> "Request":
        """Send the JSON encoding of ``value`` and set Content-Type to application/json.

        Serialization happens while the request is being sent. A value that
        cannot be serialized fails the upload, so ``send`` raises the
        transport's error (``aiohttp.ClientConnectionError`` with aiohttp)
        chained to an ``EncodeError``.
        """
        self._body = json_body(value)
        self._headers[CONTENT_TYPE] = MIME.json
        return self

    def set_xml_body(self, value: Any) -> "Request":
        """Send the XML encoding of ``value`` and set Content-Type to application/xml.

        ``value`` is an lxml element or a single-root mapping, see ``requestkit.codec``.
        """
        self._body = xml_body(value)
        self._headers[CONTENT_TYPE] = MIME.xml
        return self

    def set_header(self, key: str, value: str) -> "Request":
        """Replace all values of header ``key`` (case-insensitive) with ``value``."""
        self._headers[canonical_header_key(key)] = str(value)
        return self

    def add_header(self, key: str, value: str) -> "Request":
        """Append ``value`` to header ``key``, keeping the values already set."""
        self._headers.add(canonical_header_key(key), str(value))
        return self

    def set_content_type(self, value: str) -> "Request":
        return self.set_header(CONTENT_TYPE, value)

    def set_accept(self, value: str) -> "Request":
        return self.set_header(ACCEPT, value)

    def set_basic_auth(self, username: str, password: str) -> "Request":
        # Only the first colon separates the two parts; servers split on it.
        credentials = f"{username}:{password}".encode("utf-8")
        token = base64.b64encode(credentials).decode("ascii")
        return self.set_header(AUTHORIZATION, f"Basic {token}")

    def set_bearer_auth(self, token: str) -> "Request":
        return self.set_header(AUTHORIZATION, f"Bearer {token}")

    # ------------------------------------------------------------------ #
    # Result wrappers
    # ------------------------------------------------------------------ #
    def wrap_for_result(self) -> WithResult:
        """Return a wrapper whose ``send`` reads the whole response body into a ``Result``."""
        return WithResult(self)

    def wrap_for_json_result(self, target: Callable[[Any], Any] | None = None) -> WithResult:
        """Like ``wrap_for_result`` and also decode the body as JSON.

        Sets Accept to application/json unless an Accept value is already set.
        ``target``, if given, is called with the parsed document and its return
        value becomes ``Result.data``.
        """
        if not self._headers.get(ACCEPT):
            self._headers[ACCEPT] = MIME.json
        return WithResult(self, json_decoder(target))

    def wrap_for_xml_result(self, target: Callable[[Any], Any] | None = None) -> WithResult:
        """Like ``wrap_for_json_result`` for XML; the parsed document is the lxml root element."""
        if not self._headers.get(ACCEPT):
            self._headers[ACCEPT] = MIME.xml
        return WithResult(self, xml_decoder(target))

    # ------------------------------------------------------------------ #
    # Sending
    # ------------------------------------------------------------------ #
    def _check(self, method: str, url: str) -> None:
        if not isinstance(method, str) or not _TOKEN.match(method):
            raise ConstructionError(f"invalid method {method!r}")

        try:
            parsed = URL(url)
        except (TypeError, ValueError) as exc:
            raise ConstructionError(f"parse URL {url!r}: {exc}") from exc
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ConstructionError(f"unsupported URL {url!r}: need an absolute http(s) URL")

        body = self._body
        if isinstance(body, EncodedBody) and body.consumed:
            raise BodyConsumedError(
                f"{body.format} body already consumed by a previous send; builders are single-use"
            )
        if body is not None and not isinstance(body, _BODY_TYPES):
            raise ConstructionError(f"unsupported body type {type(body).__name__}")

    async def send(self, method: str, url: str) -> aiohttp.ClientResponse:
        """Send the request and return the response with its body unread.

        Raises ``ConstructionError`` for an invalid method, URL or body before
        anything is sent. Transport failures (``aiohttp.ClientError``,
        ``asyncio.TimeoutError``, cancellation) propagate unchanged.
        """
        self._check(method, url)

        client = client_from_context()
        kwargs: dict[str, Any] = {"headers": CIMultiDict(self._headers), "data": self._body}
        if self._timeout is not None:
            kwargs["timeout"] = aiohttp.ClientTimeout(total=self._timeout)

        log.debug("sending request", extra={"method": method, "url": url, "timeout": self._timeout})
        resp = await client.request(method, url, **kwargs)
        log.debug("response received", extra={"method": method, "url": url, "status": resp.status})
        return resp

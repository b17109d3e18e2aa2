from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

import aiohttp

from requestkit.codec import decode_json, decode_xml
from requestkit.errors import BodyReadError, DecodeError, MissingRequestError
from requestkit.util.logging import get_logger

if TYPE_CHECKING:
    from requestkit.request import Request

log = get_logger(__name__)

Decoder = Callable[[bytes], Any]


@dataclass
class Result:
    """A response whose body was read to completion and released.

    Reading ``response`` again yields nothing useful; use ``raw_data``.
    ``data`` holds the decoded body when the wrapper decodes, else ``None``.
    """
    response: aiohttp.ClientResponse
    raw_data: bytes
    data: Any = None

    @property
    def status(self) -> int:
        return self.response.status


def _decoder(parse: Callable[[bytes], Any], fmt: str,
             target: Callable[[Any], Any] | None) -> Decoder:
    def decode(data: bytes) -> Any:
        doc = parse(data)
        if target is None:
            return doc
        try:
            return target(doc)
        except Exception as exc:
            raise DecodeError(f"unmarshal {fmt}: {exc}") from exc
    return decode


def json_decoder(target: Callable[[Any], Any] | None = None) -> Decoder:
    return _decoder(decode_json, "JSON", target)


def xml_decoder(target: Callable[[Any], Any] | None = None) -> Decoder:
    return _decoder(decode_xml, "XML", target)


class WithResult:
    """Sends a ``Request`` and returns a ``Result`` instead of the raw response.

    Created through ``Request.wrap_for_result``, ``wrap_for_json_result`` or
    ``wrap_for_xml_result``; the wrapper uses the builder's state directly.
    """

    def __init__(self, request: Request | None, decode: Decoder | None = None):
        self._request = request
        self._decode = decode

    async def send(self, method: str, url: str) -> Result:
        """Send the request, read and release the response body, then decode it.

        Errors from ``Request.send`` propagate unchanged. A failed read raises
        ``BodyReadError``, a failed decode raises ``DecodeError``; no result is
        returned in either case.
        """
        if self._request is None:
            raise MissingRequestError("missing request")

        resp = await self._request.send(method, url)
        async with resp:
            try:
                data = await resp.read()
            except Exception as exc:
                raise BodyReadError(f"read response body: {exc}") from exc

        log.debug(
            "response body read",
            extra={"method": method, "url": url, "status": resp.status, "size": len(data)},
        )

        decoded = None
        if self._decode is not None:
            decoded = self._decode(data)

        return Result(response=resp, raw_data=data, data=decoded)

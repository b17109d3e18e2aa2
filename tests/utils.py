from types import SimpleNamespace

import aiohttp


# ------------------------
# Fake HTTP primitives
# ------------------------

class FakeResponse:
    def __init__(self, status: int = 200, body: bytes = b"", headers: dict | None = None,
                 read_error: Exception | None = None):
        self.status = status
        self._body = body
        self.headers = headers or {}
        self._read_error = read_error
        self.released = False

    async def read(self):
        if self.released:
            raise aiohttp.ClientConnectionError("Connection closed")
        if self._read_error is not None:
            raise self._read_error
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *_):
        self.released = True


async def collect(data) -> bytes:
    """Drain a request body the way the transport would."""
    if data is None:
        return b""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode()
    chunks = []
    async for chunk in data:
        chunks.append(chunk)
    return b"".join(chunks)


class RecordingClient:
    """Base fake client; records every call's method, url and keyword arguments."""
    def __init__(self):
        self.calls = []
        self.timeout = aiohttp.ClientTimeout(total=5)

    async def request(self, method, url, **kwargs):
        self.calls.append(SimpleNamespace(method=method, url=url, kwargs=kwargs))
        return await self.respond(kwargs)

    async def respond(self, kwargs):
        raise NotImplementedError


class EchoClient(RecordingClient):
    """Answers every request with status 200 and the request body.

    Like aiohttp, a failure while streaming the request body is reported as a
    connection error chained to the original exception.
    """
    async def respond(self, kwargs):
        try:
            body = await collect(kwargs.get("data"))
        except Exception as exc:
            raise aiohttp.ClientConnectionError(
                f"Failed to send bytes into the underlying connection: {exc!r}"
            ) from exc
        return FakeResponse(200, body)


class StaticClient(RecordingClient):
    """Answers every request with the same response."""
    def __init__(self, response: FakeResponse):
        super().__init__()
        self.response = response

    async def respond(self, kwargs):
        return self.response


class FailingClient(RecordingClient):
    """Fails every request with ``error``."""
    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    async def respond(self, kwargs):
        raise self.error

"""
Resolve the HTTP client a request is sent with.

A client is attached to the current execution context (a ``ContextVar``, so it
follows asyncio tasks) and picked up by every ``Request.send`` issued from
that context. Without an attached client the process-wide default client is
used.

    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=5)) as session:
        with use_client(session):
            resp = await Request().send("GET", "https://example.com")

Any object whose ``request(method, url, **kwargs)`` returns an awaitable
response can stand in for an ``aiohttp.ClientSession``, which is how tests
swap the transport.
"""
import asyncio
from contextlib import contextmanager
from contextvars import ContextVar, Token
from datetime import timedelta
from typing import Any, Iterator

import aiohttp

from requestkit.settings import CLIENT_SETTINGS
from requestkit.util.logging import get_logger

log = get_logger(__name__)

# Task-local client (None => fall back to the default client)
_CLIENT: ContextVar[Any | None] = ContextVar("requestkit_client", default=None)

_default_client: aiohttp.ClientSession | None = None
_default_loop: asyncio.AbstractEventLoop | None = None


def attach_client(client: Any) -> Token:
    """Attach ``client`` to the current context. Pass the token to ``detach_client``."""
    return _CLIENT.set(client)


def detach_client(token: Token) -> None:
    _CLIENT.reset(token)


@contextmanager
def use_client(client: Any) -> Iterator[Any]:
    token = _CLIENT.set(client)
    try:
        yield client
    finally:
        _CLIENT.reset(token)


def attached_client() -> Any | None:
    return _CLIENT.get()


def to_seconds(value: float | int | timedelta) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def default_client() -> aiohttp.ClientSession:
    """Return the process-wide default client, creating it on first use.

    The session belongs to the running event loop; it is recreated when it was
    closed or when called from a different loop. A session left open on
    another loop cannot be closed from here and is dropped unclosed, so await
    ``close_default_client()`` on a loop before abandoning it.
    """
    global _default_client, _default_loop

    loop = asyncio.get_running_loop()
    if _default_client is not None and not _default_client.closed and _default_loop is not loop:
        log.debug(
            "dropping unclosed default client of another event loop",
            extra={"hint": "await close_default_client() before leaving a loop"},
        )
    if _default_client is None or _default_client.closed or _default_loop is not loop:
        timeout = aiohttp.ClientTimeout(total=to_seconds(CLIENT_SETTINGS.default_timeout))
        log.debug("creating default client", extra={"timeout": timeout.total})
        _default_client = aiohttp.ClientSession(timeout=timeout)
        _default_loop = loop
    return _default_client


async def close_default_client() -> None:
    global _default_client, _default_loop

    client, _default_client, _default_loop = _default_client, None, None
    if client is not None and not client.closed:
        await client.close()


def client_from_context() -> Any:
    """Return the client attached to the current context, or the default client."""
    client = _CLIENT.get()
    if client is None:
        return default_client()
    return client

"""
Exceptions raised by requestkit.

Every failure is raised to the caller as soon as it happens; nothing is
retried. Failures raised by the transport itself (``aiohttp.ClientError``,
``asyncio.TimeoutError``, cancellation) are never wrapped and reach the caller
as-is. The classes below mark the stages requestkit owns:

    RequestError
     +-- ConstructionError      invalid method, URL or body source
     |    +-- BodyConsumedError one-shot body already sent
     +-- EncodeError            request body serialization failed; raised from
     |                          the body stream, so callers of send see the
     |                          transport error with EncodeError as __cause__
     +-- BodyReadError          reading the response body failed
     +-- DecodeError            response body is not valid JSON/XML
     +-- MissingRequestError    result wrapper without a builder
"""


class RequestError(Exception):
    """Base class for errors raised by requestkit."""

    def __init__(self, message: str):
        super().__init__(f"request: {message}")


class ConstructionError(RequestError, ValueError):
    """The method, URL or body cannot form a valid HTTP request."""


class BodyConsumedError(ConstructionError):
    """A one-shot request body was already read by a previous send."""


class EncodeError(RequestError):
    """Serializing a structured request body failed."""


class BodyReadError(RequestError):
    """Reading the response body failed after a response was received."""


class DecodeError(RequestError):
    """The response body could not be decoded into the expected structure."""


class MissingRequestError(RequestError):
    """A result wrapper was sent without an underlying request builder."""

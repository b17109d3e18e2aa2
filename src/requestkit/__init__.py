"""requestkit - a fluent builder for outbound HTTP requests on aiohttp."""

from .context import (
    attach_client,
    client_from_context,
    close_default_client,
    default_client,
    detach_client,
    use_client,
)
from .errors import (
    BodyConsumedError,
    BodyReadError,
    ConstructionError,
    DecodeError,
    EncodeError,
    MissingRequestError,
    RequestError,
)
from .request import Request
from .result import Result, WithResult
from .util.logging import configure_logging

__all__ = [
    'Request',
    'WithResult',
    'Result',
    'use_client',
    'attach_client',
    'detach_client',
    'client_from_context',
    'default_client',
    'close_default_client',
    'RequestError',
    'ConstructionError',
    'BodyConsumedError',
    'EncodeError',
    'BodyReadError',
    'DecodeError',
    'MissingRequestError',
    'configure_logging',
]

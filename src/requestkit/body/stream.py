import asyncio
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

from requestkit.body.pipe import BodyPipe
from requestkit.errors import BodyConsumedError, EncodeError
from requestkit.util.logging import get_logger

log = get_logger(__name__)


class EncodedBody:
    """One-shot request body serialized by a producer task as the transport reads it.

    Nothing is encoded until the transport starts iterating. At that point a
    task runs ``encode(value)`` and writes each chunk into a ``BodyPipe`` that
    the iterator drains. Encoding failures are raised from the iterator as
    ``EncodeError``. aiohttp reports that as a ``ClientConnectionError`` whose
    ``__cause__`` is the ``EncodeError``. If the iterator is abandoned early,
    the producer task is cancelled.
    """

    def __init__(self, encode: Callable[[Any], Iterable[bytes]], value: Any, *, fmt: str):
        self._encode = encode
        self._value = value
        self.format = fmt
        self._consumed = False
        self._producer: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"<EncodedBody format={self.format} consumed={self._consumed}>"

    @property
    def consumed(self) -> bool:
        return self._consumed

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed:
            raise BodyConsumedError(f"{self.format} body already consumed by a previous send")
        self._consumed = True
        return self._stream()

    async def _stream(self) -> AsyncIterator[bytes]:
        pipe = BodyPipe()
        self._producer = asyncio.create_task(
            self._produce(pipe), name=f"requestkit-{self.format.lower()}-encoder"
        )
        try:
            while chunk := await pipe.read():
                yield chunk
        finally:
            if not self._producer.done():
                log.debug("cancelling body encoder", extra={"format": self.format})
                self._producer.cancel()

    async def _produce(self, pipe: BodyPipe) -> None:
        try:
            for chunk in self._encode(self._value):
                await pipe.write(chunk)
        except Exception as exc:
            log.warning("body encoding failed", extra={"format": self.format, "error": repr(exc)})
            error = EncodeError(f"encode {self.format} body: {exc}")
            error.__cause__ = exc
            await pipe.close(error)
        else:
            await pipe.close()

import asyncio

_EOF = object()


class BodyPipe:
    """In-memory pipe between one producer task and one consumer.

    The pipe holds at most one chunk: ``write`` suspends until the consumer
    has taken the previous chunk, and ``read`` suspends until a chunk (or the
    end of the stream) is available. Closing with an error makes the consumer's
    read raise that error once the chunks written before it were read.
    """

    def __init__(self):
        self._slot: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._error: BaseException | None = None
        self._closed = False
        self._eof = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, chunk: bytes) -> None:
        if self._closed:
            raise RuntimeError("write to closed pipe")
        if chunk:
            await self._slot.put(bytes(chunk))

    async def close(self, error: BaseException | None = None) -> None:
        """Close the write side. Repeated closes are no-ops."""
        if self._closed:
            return
        self._closed = True
        self._error = error
        await self._slot.put(_EOF)

    async def read(self) -> bytes:
        """Return the next chunk, or ``b""`` once the stream is exhausted."""
        if not self._eof:
            item = await self._slot.get()
            if item is not _EOF:
                return item
            self._eof = True

        if self._error is not None:
            raise self._error
        return b""

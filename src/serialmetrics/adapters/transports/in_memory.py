"""In-memory frame source for mock devices and tests."""

import asyncio
from collections.abc import AsyncIterator

from serialmetrics.adapters.transports.framing import DelimiterFramer
from serialmetrics.core.models import DEFAULT_RECORD_END


class InMemoryFrameSource:
    """In-memory implementation of FrameSourcePort.

    Bytes written with ``write`` are echoed back as frames, like a serial
    loopback. Suitable for testing and for running without hardware.

    Args:
        record_end: Record end marker used to split written bytes.
        open_error: Exception to raise from ``open``, to simulate a device
            that cannot be opened.
    """

    def __init__(
        self,
        record_end: int = DEFAULT_RECORD_END,
        open_error: Exception | None = None,
    ) -> None:
        self._framer = DelimiterFramer(record_end)
        self._chunks: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._open_error = open_error
        self.is_open = False

    async def open(self) -> None:
        """Open the source."""
        if self._open_error is not None:
            raise self._open_error
        self.is_open = True

    async def write(self, data: bytes) -> None:
        """Feed bytes as if the device had transmitted them."""
        if not self.is_open:
            raise RuntimeError("Source is not open")
        self._chunks.put_nowait(data)

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield frames until the source is closed."""
        while True:
            chunk = await self._chunks.get()
            if chunk is None:
                return
            for frame in self._framer.feed(chunk):
                yield frame

    async def close(self) -> None:
        """Close the source and end ``frames``."""
        if self.is_open:
            self.is_open = False
            self._chunks.put_nowait(None)

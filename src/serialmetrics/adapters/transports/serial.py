"""Serial port frame source backed by pyserial.

Blocking pyserial reads run in worker threads; only the bytes come back to
the event loop.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

import serial

from serialmetrics.adapters.transports.framing import DelimiterFramer
from serialmetrics.core.models import DEFAULT_RECORD_END, DeviceDefinition

logger = logging.getLogger(__name__)


class SerialFrameSource:
    """pyserial implementation of FrameSourcePort.

    The path is passed to ``serial.serial_for_url``, so plain device paths
    as well as URLs such as ``loop://`` or ``socket://host:port`` work.

    Args:
        path: Device path or pyserial URL.
        baud_rate: Line speed.
        record_end: Record end marker used to split the stream.
        read_timeout: Seconds a single read may block. Bounds how long
            ``close`` waits for the reader thread.
    """

    def __init__(
        self,
        path: str,
        baud_rate: int = 9600,
        record_end: int = DEFAULT_RECORD_END,
        read_timeout: float = 0.25,
    ) -> None:
        self.path = path
        self.baud_rate = baud_rate
        self.read_timeout = read_timeout
        self._framer = DelimiterFramer(record_end)
        self._port: serial.SerialBase | None = None
        self._closing = False

    @classmethod
    def for_device(cls, device: DeviceDefinition) -> "SerialFrameSource":
        """Create a source from a device definition."""
        return cls(
            path=device.path,
            baud_rate=device.baud_rate,
            record_end=device.parser.record_end,
        )

    @property
    def is_open(self) -> bool:
        return self._port is not None and self._port.is_open

    async def open(self) -> None:
        """Open the port.

        Raises:
            serial.SerialException: The port cannot be opened.
        """
        self._closing = False
        self._port = await asyncio.to_thread(
            serial.serial_for_url,
            self.path,
            baudrate=self.baud_rate,
            timeout=self.read_timeout,
        )
        logger.info("Opened serial port", extra={"path": self.path})

    def _read_chunk(self) -> bytes:
        port = self._port
        if port is None:
            return b""
        return bytes(port.read(max(1, port.in_waiting)))

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield frames until the port is closed."""
        while self.is_open and not self._closing:
            try:
                chunk = await asyncio.to_thread(self._read_chunk)
            except (serial.SerialException, OSError):
                if self._closing:
                    return
                raise
            if not chunk:
                continue
            for frame in self._framer.feed(chunk):
                yield frame

    async def write(self, data: bytes) -> None:
        """Write bytes to the port."""
        if self._port is None:
            raise RuntimeError("Port is not open")
        await asyncio.to_thread(self._port.write, data)

    async def close(self) -> None:
        """Close the port and end ``frames``."""
        self._closing = True
        port, self._port = self._port, None
        if port is not None:
            await asyncio.to_thread(port.close)
            logger.info("Closed serial port", extra={"path": self.path})

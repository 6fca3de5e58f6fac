"""Delimiter framing for device byte streams."""


class DelimiterFramer:
    """Split a byte stream into frames on a single-byte delimiter.

    The delimiter is stripped and empty frames are dropped. Bytes after the
    last delimiter are buffered until more data arrives.

    Args:
        delimiter: Record end marker byte.
    """

    def __init__(self, delimiter: int) -> None:
        self._delimiter = bytes([delimiter])
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> list[bytes]:
        """Add bytes and return any frames completed by them."""
        self._buffer.extend(chunk)
        *complete, remainder = bytes(self._buffer).split(self._delimiter)
        self._buffer = bytearray(remainder)
        return [frame for frame in complete if frame]

    @property
    def pending(self) -> bytes:
        """Bytes received since the last delimiter."""
        return bytes(self._buffer)

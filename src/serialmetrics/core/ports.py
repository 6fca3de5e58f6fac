"""Port interfaces for device byte-stream adapters.

The core depends only on these protocols, not on pyserial or any other
concrete transport.
"""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class FrameSourcePort(Protocol):
    """Port for a device byte stream split into frames.

    Adapters implementing this protocol deliver frames with the record end
    marker already stripped, in the order the device sent them.
    Examples: SerialFrameSource, InMemoryFrameSource.
    """

    async def open(self) -> None:
        """Open the underlying stream."""
        ...

    def frames(self) -> AsyncIterator[bytes]:
        """Yield frames until the source is closed."""
        ...

    async def close(self) -> None:
        """Close the underlying stream."""
        ...

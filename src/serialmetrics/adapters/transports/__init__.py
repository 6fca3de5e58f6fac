"""Frame source adapters implementing FrameSourcePort."""

from serialmetrics.adapters.transports.framing import DelimiterFramer
from serialmetrics.adapters.transports.in_memory import InMemoryFrameSource
from serialmetrics.adapters.transports.serial import SerialFrameSource

__all__ = [
    "DelimiterFramer",
    "InMemoryFrameSource",
    "SerialFrameSource",
]

"""Single-consumer dispatcher between device frame sources and the registry.

Every device pumps its frames onto one queue. A single task drains the
queue and calls the core synchronously, so the registry only ever has one
writer.
"""

import asyncio
import logging
from collections.abc import Mapping

from serialmetrics.core.exceptions import FrameError
from serialmetrics.core.frames import decode_frame
from serialmetrics.core.models import ApplyResult, DeviceDefinition, Skipped
from serialmetrics.core.ports import FrameSourcePort
from serialmetrics.core.registry import MetricRegistry

logger = logging.getLogger(__name__)


class FrameDispatcher:
    """Decode queued frames and apply them to a registry.

    Args:
        registry: Registry receiving the readings.
        devices: Device definitions by name, for their marker bytes.
    """

    def __init__(
        self,
        registry: MetricRegistry,
        devices: Mapping[str, DeviceDefinition],
    ) -> None:
        self.registry = registry
        self.devices = dict(devices)
        self.queue: asyncio.Queue[tuple[str, bytes]] = asyncio.Queue()

    def process_frame(self, device_name: str, frame: bytes) -> ApplyResult | None:
        """Decode one frame and apply it.

        Malformed frames are logged and dropped.

        Returns:
            The apply result, or None when the frame could not be decoded.
        """
        device = self.devices[device_name]
        try:
            reading = decode_frame(device_name, frame, device.parser)
        except FrameError as e:
            logger.error(
                "Dropping malformed frame: %s",
                e,
                extra={"device": device_name, "frame": frame},
            )
            return None

        result = self.registry.apply_reading(reading)
        if isinstance(result, Skipped):
            logger.info(
                "Skipping reading: %s",
                result.reason,
                extra={"device": device_name},
            )
        return result

    async def submit(self, device_name: str, frame: bytes) -> None:
        """Queue a frame for processing."""
        await self.queue.put((device_name, frame))

    async def pump(self, device_name: str, source: FrameSourcePort) -> None:
        """Forward every frame from a source onto the queue until it ends."""
        try:
            async for frame in source.frames():
                await self.submit(device_name, frame)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Read loop failed", extra={"device": device_name})

    async def run(self) -> None:
        """Process queued frames until cancelled."""
        while True:
            device_name, frame = await self.queue.get()
            try:
                self.process_frame(device_name, frame)
            finally:
                self.queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued frame has been processed."""
        await self.queue.join()

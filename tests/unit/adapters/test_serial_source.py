"""Tests for SerialFrameSource using pyserial's loop:// URL."""

import asyncio

import pytest
import serial

from serialmetrics.adapters.transports.serial import SerialFrameSource
from serialmetrics.core.models import DeviceDefinition, ParserConfig
from serialmetrics.core.ports import FrameSourcePort

pytestmark = [pytest.mark.unit, pytest.mark.tier(1)]


class TestSerialFrameSource:
    """Tests for the pyserial-backed source."""

    def test_implements_port(self) -> None:
        assert isinstance(SerialFrameSource("loop://"), FrameSourcePort)

    def test_for_device(self) -> None:
        device = DeviceDefinition(
            name="d",
            path="loop://",
            baud_rate=19200,
            parser=ParserConfig(record_end=0x0D),
        )
        source = SerialFrameSource.for_device(device)
        assert source.path == "loop://"
        assert source.baud_rate == 19200

    async def test_reads_looped_back_frames(self) -> None:
        source = SerialFrameSource("loop://", read_timeout=0.05)
        await source.open()
        try:
            await source.write(b"\x02test_metric 30\n\x02other 1")
            await source.write(b"\n")
            frames = []

            async def collect() -> None:
                async for frame in source.frames():
                    frames.append(frame)
                    if len(frames) == 2:
                        return

            await asyncio.wait_for(collect(), timeout=5)
        finally:
            await source.close()

        assert frames == [b"\x02test_metric 30", b"\x02other 1"]
        assert source.is_open is False

    async def test_close_ends_frames(self) -> None:
        source = SerialFrameSource("loop://", read_timeout=0.05)
        await source.open()

        async def drain() -> list[bytes]:
            return [frame async for frame in source.frames()]

        task = asyncio.create_task(drain())
        await asyncio.sleep(0.1)
        await source.close()

        assert await asyncio.wait_for(task, timeout=5) == []

    async def test_open_failure_raises(self) -> None:
        source = SerialFrameSource("/dev/serialmetrics-does-not-exist")
        with pytest.raises(serial.SerialException):
            await source.open()

    async def test_write_before_open_fails(self) -> None:
        with pytest.raises(RuntimeError, match="not open"):
            await SerialFrameSource("loop://").write(b"x")

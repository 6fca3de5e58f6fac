"""Tests for port interfaces."""

from collections.abc import AsyncIterator

import pytest

from serialmetrics.adapters.transports.in_memory import InMemoryFrameSource
from serialmetrics.adapters.transports.serial import SerialFrameSource
from serialmetrics.core.ports import FrameSourcePort

pytestmark = [pytest.mark.core, pytest.mark.tier(0)]


class TestFrameSourcePort:
    """Tests for FrameSourcePort protocol."""

    def test_protocol_has_open_frames_and_close(self) -> None:
        for name in ("open", "frames", "close"):
            assert hasattr(FrameSourcePort, name)

    def test_class_implementing_protocol_is_recognized(self) -> None:
        """A class with open, frames and close satisfies FrameSourcePort."""

        class FakeSource:
            async def open(self) -> None:
                pass

            async def frames(self) -> AsyncIterator[bytes]:
                yield b""

            async def close(self) -> None:
                pass

        source: FrameSourcePort = FakeSource()
        assert isinstance(source, FrameSourcePort)

    def test_incomplete_class_is_rejected(self) -> None:
        class ReadOnly:
            async def frames(self) -> AsyncIterator[bytes]:
                yield b""

        assert not isinstance(ReadOnly(), FrameSourcePort)

    def test_adapters_satisfy_protocol(self) -> None:
        assert isinstance(InMemoryFrameSource(), FrameSourcePort)
        assert isinstance(SerialFrameSource("loop://"), FrameSourcePort)

"""Tests for DelimiterFramer."""

import pytest

from serialmetrics.adapters.transports.framing import DelimiterFramer

pytestmark = [pytest.mark.unit, pytest.mark.tier(1)]


class TestDelimiterFramer:
    """Tests for DelimiterFramer.feed()."""

    def test_splits_and_strips_delimiter(self) -> None:
        framer = DelimiterFramer(0x0A)
        assert framer.feed(b"\x02a 1\n\x02b 2\n") == [b"\x02a 1", b"\x02b 2"]
        assert framer.pending == b""

    def test_buffers_partial_frames(self) -> None:
        framer = DelimiterFramer(0x0A)
        assert framer.feed(b"\x02a") == []
        assert framer.pending == b"\x02a"
        assert framer.feed(b" 1\n\x02b") == [b"\x02a 1"]
        assert framer.pending == b"\x02b"

    def test_drops_empty_frames(self) -> None:
        framer = DelimiterFramer(0x0A)
        assert framer.feed(b"\n\n\x02a 1\n\n") == [b"\x02a 1"]

    def test_custom_delimiter(self) -> None:
        framer = DelimiterFramer(0x0D)
        assert framer.feed(b"x\ny\rz") == [b"x\ny"]
        assert framer.pending == b"z"

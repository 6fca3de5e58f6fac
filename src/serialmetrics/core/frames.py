"""Device frame decoder.

A frame on the wire looks like::

    <record_start> metric{label="value"} <value_start> 42.5 <record_end>

The transport strips ``record_end`` before frames reach the decoder.
"""

import math
import re

from serialmetrics.core.exceptions import FrameError, LabelSyntaxError
from serialmetrics.core.labels import format_label_expression, parse_label_expression
from serialmetrics.core.models import ParserConfig, Reading

_NUMBER_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def decode_frame(device_name: str, frame: bytes, parser: ParserConfig) -> Reading:
    """Decode one frame into a Reading.

    Args:
        device_name: Device the frame was read from.
        frame: Frame bytes without the record end marker.
        parser: Marker bytes configured for the device.

    Returns:
        Reading with the metric name, value and unreconciled labels.

    Raises:
        FrameError: Bad start marker, missing value marker, malformed label
            expression or a value that is not a finite number.
    """
    if not frame or frame[0] != parser.record_start:
        raise FrameError("invalid start marker")

    value_idx = frame.find(parser.value_start)
    if value_idx < 0:
        raise FrameError(f"missing value marker 0x{parser.value_start:02x}")

    expression = frame[1:value_idx].decode("utf-8", errors="replace").strip()
    try:
        parsed = parse_label_expression(expression)
    except LabelSyntaxError as e:
        raise FrameError(f"invalid label expression: {e}") from e

    value_str = frame[value_idx + 1 :].decode("utf-8", errors="replace").strip()
    value = _parse_value(value_str)

    return Reading(
        device_name=device_name,
        metric_name=parsed.metric_name,
        value=value,
        labels=parsed.labels,
    )


def _parse_value(text: str) -> float:
    if not _NUMBER_RE.fullmatch(text):
        raise FrameError(f"invalid numeric value {text!r}")
    value = float(text)
    if not math.isfinite(value):
        raise FrameError(f"invalid numeric value {text!r}")
    return value


def encode_frame(
    metric_name: str,
    value: float,
    labels: dict[str, str] | None = None,
    parser: ParserConfig | None = None,
) -> bytes:
    """Build the wire form of a reading, including the record end marker.

    Args:
        metric_name: Metric name.
        value: Numeric value.
        labels: Optional labels sent by the device.
        parser: Marker bytes (default markers when omitted).

    Returns:
        Frame bytes as an instrument would transmit them.

    Raises:
        ValueError: The metric name or a label contains the value marker or
            record end byte. The decoder splits on the first occurrence of
            those bytes, so such a frame could not be read back.
    """
    parser = parser or ParserConfig()
    expression = format_label_expression(metric_name, labels or {}).encode("utf-8")
    for marker in (parser.value_start, parser.record_end):
        if marker in expression:
            raise ValueError(
                f"marker byte 0x{marker:02x} in label expression {expression!r}"
            )
    return b"".join(
        [
            bytes([parser.record_start]),
            expression,
            bytes([parser.value_start]),
            str(value).encode("ascii"),
            bytes([parser.record_end]),
        ]
    )

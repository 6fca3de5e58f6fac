"""Prometheus text format encoder for gauge families."""

import math
from collections.abc import Iterable, Mapping
from typing import Protocol

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


class GaugeSnapshot(Protocol):
    """Read-only view of a gauge family as needed by the encoder."""

    name: str
    help: str
    label_names: tuple[str, ...]

    def samples(self) -> list[tuple[dict[str, str], float]]: ...


def escape_help(text: str) -> str:
    """Escape backslashes and newlines in HELP text."""
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def escape_label_value(value: str) -> str:
    """Escape backslashes, double quotes and newlines in a label value."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def format_value(value: float) -> str:
    """Format a sample value the way Prometheus expects it.

    Integral values are written without a decimal point.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def format_labels(labels: Mapping[str, str], order: Iterable[str]) -> str:
    """Render ``{k="v",...}`` with keys in the given order.

    Returns:
        Empty string when there are no labels.
    """
    pairs = [
        f'{key}="{escape_label_value(labels[key])}"' for key in order if key in labels
    ]
    if not pairs:
        return ""
    return "{" + ",".join(pairs) + "}"


def encode_gauges(families: Iterable[GaugeSnapshot]) -> str:
    """Encode gauge families to Prometheus text exposition format.

    Every family gets HELP and TYPE lines, followed by one line per label
    combination that has a value.

    Args:
        families: Gauge families in output order.

    Returns:
        Exposition text ending in a newline, or an empty string when there
        are no families.
    """
    lines: list[str] = []
    for family in families:
        lines.append(f"# HELP {family.name} {escape_help(family.help)}")
        lines.append(f"# TYPE {family.name} gauge")
        for labels, value in family.samples():
            label_str = format_labels(labels, family.label_names)
            lines.append(f"{family.name}{label_str} {format_value(value)}")

    if not lines:
        return ""

    return "\n".join(lines) + "\n"

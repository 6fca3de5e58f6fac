"""Parser for the label micro-syntax used inside device frames.

Devices send metric references as ``name`` or ``name{key="value",...}``.
Values may be quoted with ``"`` or ``'``; a backslash takes the following
character literally. Whitespace around the name, ``=`` and ``,`` is ignored,
whitespace inside a quoted value is kept.
"""

from dataclasses import dataclass, field

from serialmetrics.core.exceptions import LabelSyntaxError

_QUOTES = ('"', "'")


@dataclass(frozen=True)
class LabelExpression:
    """Result of parsing a label expression.

    Attributes:
        metric_name: Metric name, trimmed. May be empty.
        labels: Label pairs in the order they appeared.
    """

    metric_name: str
    labels: dict[str, str] = field(default_factory=dict)


def parse_label_expression(text: str) -> LabelExpression:
    """Parse ``name{k="v",...}`` into a metric name and labels.

    Args:
        text: The expression. Without ``{`` the whole trimmed text is the name.

    Returns:
        LabelExpression with the metric name and labels.

    Raises:
        LabelSyntaxError: Unterminated braces, a segment without a label name
            or ``=``, a value missing its opening quote, or a value missing
            its closing quote.
    """
    open_idx = text.find("{")
    if open_idx < 0:
        return LabelExpression(metric_name=text.strip())

    text = text.rstrip()
    if not text.endswith("}"):
        raise LabelSyntaxError("unterminated label expression")

    metric_name = text[:open_idx].strip()
    rest = text[open_idx + 1 : -1].strip()
    labels: dict[str, str] = {}

    while rest:
        eq_idx = rest.find("=")
        label_name = rest[:eq_idx].strip() if eq_idx > 0 else ""
        if not label_name:
            raise LabelSyntaxError("missing or unexpected '=' in label expression")

        rest = rest[eq_idx + 1 :].lstrip()
        quote = rest[:1]
        if quote not in _QUOTES:
            raise LabelSyntaxError(f"missing open quote for label {label_name!r}")

        value, end_idx = _read_quoted(rest, quote, label_name)
        labels[label_name] = value

        rest = rest[end_idx + 1 :].strip()
        if rest.startswith(","):
            rest = rest[1:].strip()

    return LabelExpression(metric_name=metric_name, labels=labels)


def _read_quoted(text: str, quote: str, label_name: str) -> tuple[str, int]:
    """Read a quoted value starting at text[0].

    Returns:
        The unescaped value and the index of the closing quote.
    """
    chars: list[str] = []
    idx = 1
    while True:
        if idx >= len(text):
            raise LabelSyntaxError(f"missing close quote for label {label_name!r}")
        char = text[idx]
        if char == quote:
            return "".join(chars), idx
        if char == "\\":
            idx += 1
            if idx >= len(text):
                raise LabelSyntaxError(
                    f"missing close quote for label {label_name!r}"
                )
            char = text[idx]
        chars.append(char)
        idx += 1


def format_label_expression(metric_name: str, labels: dict[str, str]) -> str:
    """Render a metric name and labels in the syntax accepted by the parser.

    Args:
        metric_name: Metric name.
        labels: Label pairs, rendered in iteration order.

    Returns:
        ``metric_name`` alone when labels is empty, else ``name{k="v",...}``.
    """
    if not labels:
        return metric_name
    pairs = ",".join(f'{key}="{_escape(value)}"' for key, value in labels.items())
    return f"{metric_name}{{{pairs}}}"


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')

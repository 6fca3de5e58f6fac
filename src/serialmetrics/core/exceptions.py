"""Exception hierarchy for serialmetrics."""


class SerialMetricsError(Exception):
    """Base class for all serialmetrics errors."""


class ConfigError(SerialMetricsError):
    """Invalid configuration. Fatal at startup."""


class LabelSyntaxError(SerialMetricsError):
    """Malformed label expression such as ``name{k="v"}``."""


class FrameError(SerialMetricsError):
    """Malformed device frame. Recoverable, the frame is dropped."""

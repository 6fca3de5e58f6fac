"""Logging setup for the exporter process.

Modules log through ``logging.getLogger(__name__)`` and pass structured
fields via ``extra=``. This module installs a single stream handler that
renders those fields after the message.
"""

import logging
import sys

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class ExtraFieldsFormatter(logging.Formatter):
    """Formatter that appends ``extra=`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extras = [
            f"{key}={value!r}"
            for key, value in record.__dict__.items()
            if key not in _STANDARD_LOGRECORD_ATTRS and not key.startswith("_")
        ]
        if not extras:
            return message
        return f"{message} {' '.join(extras)}"


def configure_logging(
    quiet: bool = False,
    level: int = logging.INFO,
    stream=None,
) -> logging.Handler:
    """Install a stream handler on the ``serialmetrics`` logger.

    Args:
        quiet: Only show warnings and errors.
        level: Threshold when not quiet.
        stream: Output stream (default: stderr).

    Returns:
        The installed handler.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(ExtraFieldsFormatter(DEFAULT_FORMAT))

    package_logger = logging.getLogger("serialmetrics")
    for existing in list(package_logger.handlers):
        if isinstance(existing.formatter, ExtraFieldsFormatter):
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.WARNING if quiet else level)
    return handler

"""serialmetrics - Prometheus exporter for line-framed serial instruments.

Public API:
    parse_label_expression, format_label_expression: label micro-syntax
    decode_frame, encode_frame: device frame protocol
    load_config, build_config: configuration
    build_registry, MetricRegistry: gauge registry and applier
    App, AppOptions: the running exporter
"""

from serialmetrics.app import App, AppOptions
from serialmetrics.core.config import build_config, load_config
from serialmetrics.core.exceptions import (
    ConfigError,
    FrameError,
    LabelSyntaxError,
    SerialMetricsError,
)
from serialmetrics.core.frames import decode_frame, encode_frame
from serialmetrics.core.labels import (
    LabelExpression,
    format_label_expression,
    parse_label_expression,
)
from serialmetrics.core.models import (
    AppConfig,
    Applied,
    ApplyResult,
    DeviceDefinition,
    LastValue,
    MetricDefinition,
    ParserConfig,
    PushgatewayConfig,
    Reading,
    Skipped,
    TimestampCompanion,
)
from serialmetrics.core.registry import GaugeFamily, MetricRegistry, build_registry

__all__ = [
    "App",
    "AppConfig",
    "AppOptions",
    "Applied",
    "ApplyResult",
    "ConfigError",
    "DeviceDefinition",
    "FrameError",
    "GaugeFamily",
    "LabelExpression",
    "LabelSyntaxError",
    "LastValue",
    "MetricDefinition",
    "MetricRegistry",
    "ParserConfig",
    "PushgatewayConfig",
    "Reading",
    "SerialMetricsError",
    "Skipped",
    "TimestampCompanion",
    "build_config",
    "build_registry",
    "decode_frame",
    "encode_frame",
    "format_label_expression",
    "load_config",
    "parse_label_expression",
]

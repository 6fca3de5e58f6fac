"""Configuration loading and validation.

Raw YAML mappings are turned into frozen dataclasses by applying defaults
first and the file's values second. Anything that would make the exporter
misbehave at runtime is rejected here with ConfigError.
"""

import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from serialmetrics.core.exceptions import ConfigError
from serialmetrics.core.models import (
    DEFAULT_RECORD_END,
    DEFAULT_RECORD_START,
    DEFAULT_VALUE_START,
    AppConfig,
    DeviceDefinition,
    MetricDefinition,
    ParserConfig,
    PushgatewayConfig,
    TimestampCompanion,
)

DEVICE_TYPES = frozenset({"serial"})

_DEVICE_DEFAULTS: dict[str, Any] = {
    "type": "serial",
    "baud_rate": 9600,
    "labels": {},
}

_PARSER_DEFAULTS: dict[str, Any] = {
    "record_start": DEFAULT_RECORD_START,
    "value_start": DEFAULT_VALUE_START,
    "record_end": DEFAULT_RECORD_END,
}

_METRIC_DEFAULTS: dict[str, Any] = {
    "label_names": [],
    "labels": {},
    "timestamp": {"milliseconds": False},
}

_PUSHGATEWAY_DEFAULTS: dict[str, Any] = {
    "url": None,
    "job_name": "push",
    "push_interval": 60000,
    "headers": {},
    "timeout": 10.0,
}

_TOP_LEVEL_KEYS = frozenset({"labels", "metrics", "devices", "pushgateway"})
_DEVICE_KEYS = frozenset({"path", "parser", *_DEVICE_DEFAULTS})
_METRIC_KEYS = frozenset({"help", *_METRIC_DEFAULTS})
_TIMESTAMP_KEYS = frozenset({"name", "help", "milliseconds"})

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


def load_config(path: str | Path) -> AppConfig:
    """Read and validate a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        Validated AppConfig.

    Raises:
        ConfigError: The file cannot be read, is not valid YAML, or fails
            validation.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    return build_config(raw or {})


def build_config(raw: Mapping[str, Any]) -> AppConfig:
    """Validate a raw configuration mapping.

    Args:
        raw: Parsed configuration, e.g. from YAML.

    Returns:
        Validated AppConfig.

    Raises:
        ConfigError: On any invalid entry.
    """
    if not isinstance(raw, Mapping):
        raise ConfigError("Configuration must be a mapping")
    _check_keys(raw, _TOP_LEVEL_KEYS, "configuration")

    labels = _string_labels(raw.get("labels"), "labels")
    devices = {
        str(name): build_device(str(name), entry or {})
        for name, entry in _mapping(raw.get("devices"), "devices").items()
    }
    metrics = {
        str(name): build_metric(str(name), entry or {})
        for name, entry in _mapping(raw.get("metrics"), "metrics").items()
    }
    pushgateway = build_pushgateway(raw.get("pushgateway") or {})

    return AppConfig(
        labels=labels,
        metrics=metrics,
        devices=devices,
        pushgateway=pushgateway,
    )


def build_device(name: str, raw: Mapping[str, Any]) -> DeviceDefinition:
    """Apply device defaults and validate one device entry."""
    raw = _mapping(raw, f"devices.{name}")
    _check_keys(raw, _DEVICE_KEYS, f"devices.{name}")
    entry = {**_DEVICE_DEFAULTS, **raw}

    path = entry.get("path")
    if not path:
        raise ConfigError(f"Missing device path for {name}")

    device_type = entry["type"]
    if device_type not in DEVICE_TYPES:
        raise ConfigError(f"Unsupported device type {device_type!r} for {name}")

    raw_parser = _mapping(entry.get("parser"), f"devices.{name}.parser")
    _check_keys(raw_parser, _PARSER_DEFAULTS, f"devices.{name}.parser")
    parser_entry = {**_PARSER_DEFAULTS, **raw_parser}
    parser = ParserConfig(
        **{
            key: coerce_marker(parser_entry[key], f"devices.{name}.parser.{key}")
            for key in _PARSER_DEFAULTS
        }
    )

    return DeviceDefinition(
        name=name,
        path=str(path),
        type=device_type,
        baud_rate=_integer(entry["baud_rate"], f"devices.{name}.baud_rate"),
        labels=_string_labels(entry["labels"], f"devices.{name}.labels"),
        parser=parser,
    )


def build_metric(name: str, raw: Mapping[str, Any]) -> MetricDefinition:
    """Apply metric defaults and validate one metric entry."""
    raw = _mapping(raw, f"metrics.{name}")
    _check_keys(raw, _METRIC_KEYS, f"metrics.{name}")
    entry = {**_METRIC_DEFAULTS, **raw}

    help_text = entry.get("help")
    if not help_text:
        raise ConfigError(f"Missing help text for metric {name}")

    label_names = entry["label_names"]
    if not isinstance(label_names, list | tuple):
        raise ConfigError(f"metrics.{name}.label_names must be a list")

    raw_timestamp = _mapping(entry.get("timestamp"), f"metrics.{name}.timestamp")
    _check_keys(raw_timestamp, _TIMESTAMP_KEYS, f"metrics.{name}.timestamp")
    timestamp_entry = {**_METRIC_DEFAULTS["timestamp"], **raw_timestamp}
    timestamp = None
    if timestamp_entry.get("name"):
        timestamp = TimestampCompanion(
            name=str(timestamp_entry["name"]),
            help=str(timestamp_entry.get("help") or f"{help_text} last read timestamp"),
            milliseconds=bool(timestamp_entry["milliseconds"]),
        )

    return MetricDefinition(
        name=name,
        help=str(help_text),
        label_names=tuple(str(label) for label in label_names),
        labels=_string_labels(entry["labels"], f"metrics.{name}.labels"),
        timestamp=timestamp,
    )


def build_pushgateway(raw: Mapping[str, Any]) -> PushgatewayConfig:
    """Apply push relay defaults and validate the pushgateway entry."""
    raw = _mapping(raw, "pushgateway")
    _check_keys(raw, _PUSHGATEWAY_DEFAULTS, "pushgateway")
    entry = {**_PUSHGATEWAY_DEFAULTS, **raw}
    return PushgatewayConfig(
        url=str(entry["url"]) if entry["url"] else None,
        job_name=str(entry["job_name"]),
        push_interval=_number(entry["push_interval"], "pushgateway.push_interval"),
        headers=_string_labels(entry["headers"], "pushgateway.headers"),
        timeout=_number(entry["timeout"], "pushgateway.timeout"),
    )


def coerce_marker(value: Any, where: str) -> int:
    """Coerce a marker byte given as an int or a decimal/0x string.

    Raises:
        ConfigError: The value is not an integer in 0..255.
    """
    marker = _integer(value, where)
    if not 0 <= marker <= 0xFF:
        raise ConfigError(f"Marker byte out of range for {where}: {marker}")
    return marker


def _integer(value: Any, where: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid integer value for {where}: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        for base in (0, 10):
            try:
                return int(text, base)
            except ValueError:
                continue
    raise ConfigError(f"Invalid integer value for {where}: {value!r}")


def _number(value: Any, where: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid number for {where}: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid number for {where}: {value!r}") from e


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where} must be a mapping")
    return value


def _string_labels(value: Any, where: str) -> dict[str, str]:
    return {str(key): str(val) for key, val in _mapping(value, where).items()}


def _check_keys(entry: Mapping[str, Any], allowed: Iterable[str], where: str) -> None:
    """Raise ConfigError for a key the section does not define."""
    allowed = set(allowed)
    for key in entry:
        if key in allowed:
            continue
        message = f"Unknown key {key!r} in {where}"
        snake = _CAMEL_RE.sub(r"_\1", str(key)).lower()
        if snake in allowed:
            message += f" (did you mean {snake!r}?)"
        raise ConfigError(message)

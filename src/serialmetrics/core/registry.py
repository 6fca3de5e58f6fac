"""Metric registry: gauge families built from configuration, and the applier.

The registry is the single write path for gauge values. Readings from
devices and injected initial values both go through ``apply_reading`` so
they obey the same label reconciliation rules.
"""

import re
import threading
import time
from collections.abc import Iterator, Mapping

from serialmetrics.core.encoding.prometheus import encode_gauges
from serialmetrics.core.exceptions import ConfigError
from serialmetrics.core.models import (
    AppConfig,
    Applied,
    ApplyResult,
    DeviceDefinition,
    LastValue,
    MetricDefinition,
    Reading,
    Skipped,
)

DEVICE_LABEL = "device"

_METRIC_NAME_RE = re.compile(r"[a-zA-Z_:][a-zA-Z0-9_:]*")
_LABEL_NAME_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")


class GaugeFamily:
    """All values of one gauge, keyed by label combination.

    Args:
        name: Metric name.
        help: Help text.
        label_names: Label schema. Values may only use these keys.
    """

    def __init__(self, name: str, help: str, label_names: tuple[str, ...]) -> None:
        self.name = name
        self.help = help
        self.label_names = label_names
        self._values: dict[tuple[tuple[str, str], ...], float] = {}

    def _key(self, labels: Mapping[str, str]) -> tuple[tuple[str, str], ...]:
        unknown = set(labels) - set(self.label_names)
        if unknown:
            raise ValueError(
                f"Labels {sorted(unknown)} are not in the schema of {self.name}"
            )
        return tuple((key, labels[key]) for key in self.label_names if key in labels)

    def set(self, labels: Mapping[str, str], value: float) -> None:
        """Set the value for a label combination."""
        self._values[self._key(labels)] = value

    def get(self, labels: Mapping[str, str]) -> float | None:
        """Return the value for a label combination, or None if unset."""
        return self._values.get(self._key(labels))

    def samples(self) -> list[tuple[dict[str, str], float]]:
        """Return (labels, value) pairs in insertion order."""
        return [(dict(key), value) for key, value in self._values.items()]

    def reset(self) -> None:
        """Drop all values."""
        self._values.clear()


class MetricRegistry:
    """Live gauge state for all configured metrics and devices.

    Use ``build_registry`` to create one from an AppConfig.

    Label reconciliation is an allow-list: a label sent by a device is kept
    only when its name is declared in the metric's ``label_names``. Anything
    else the device sends is dropped on purpose so firmware cannot grow the
    label cardinality of the backend. Do not turn this into a plain merge.
    """

    def __init__(
        self,
        metrics: Mapping[str, MetricDefinition],
        devices: Mapping[str, DeviceDefinition],
        families: Mapping[str, GaugeFamily],
        global_labels: Mapping[str, str] | None = None,
    ) -> None:
        self._metrics = dict(metrics)
        self._devices = dict(devices)
        self._families = dict(families)
        self._global_labels = dict(global_labels or {})
        self._last_values: dict[tuple[str, str], LastValue] = {}
        self._lock = threading.Lock()

    @property
    def metrics(self) -> dict[str, MetricDefinition]:
        """Configured (writable) metric definitions by name."""
        return dict(self._metrics)

    def family(self, name: str) -> GaugeFamily | None:
        """Return the gauge family for a metric or companion name."""
        return self._families.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._families

    def __iter__(self) -> Iterator[GaugeFamily]:
        return iter(list(self._families.values()))

    def apply_reading(self, reading: Reading) -> ApplyResult:
        """Write a decoded reading to the registry.

        Never raises for unknown metrics or devices; those readings are
        returned as Skipped so the caller can log them.

        Args:
            reading: Decoded device reading.

        Returns:
            Applied with the written cells, or Skipped with the reason.
        """
        metric = self._metrics.get(reading.metric_name)
        if metric is None:
            return Skipped(f"unregistered metric {reading.metric_name!r}")
        device = self._devices.get(reading.device_name)
        if device is None:
            return Skipped(f"unknown device {reading.device_name!r}")

        labels = self.build_labels(device, metric, reading.labels)
        last_value = LastValue(value=reading.value, labels=labels)
        companion = None

        with self._lock:
            self._families[metric.name].set(labels, reading.value)
            self._last_values[(device.name, metric.name)] = last_value
            if metric.timestamp is not None:
                now = time.time()
                if metric.timestamp.milliseconds:
                    stamp = float(int(now * 1000))
                else:
                    stamp = float(int(now))
                companion = LastValue(value=stamp, labels=labels)
                self._families[metric.timestamp.name].set(labels, stamp)
                self._last_values[(device.name, metric.timestamp.name)] = companion

        return Applied(
            device_name=device.name,
            metric_name=metric.name,
            last_value=last_value,
            companion=companion,
        )

    def set_value(
        self,
        device_name: str,
        metric_name: str,
        value: float,
        labels: Mapping[str, str] | None = None,
    ) -> ApplyResult:
        """Set a metric value for a device, as if the device had sent it."""
        return self.apply_reading(
            Reading(
                device_name=device_name,
                metric_name=metric_name,
                value=float(value),
                labels=dict(labels or {}),
            )
        )

    def get_last_value(self, device_name: str, metric_name: str) -> LastValue | None:
        """Return the last value written for (device, metric), if any."""
        return self._last_values.get((device_name, metric_name))

    def build_labels(
        self,
        device: DeviceDefinition,
        metric: MetricDefinition,
        reading_labels: Mapping[str, str],
    ) -> dict[str, str]:
        """Reconcile reading labels with configured labels.

        Later layers win: declared reading labels, then the device name,
        global labels, metric labels and finally device labels.
        """
        declared = {
            name: reading_labels[name]
            for name in metric.label_names
            if name in reading_labels
        }
        return {
            **declared,
            DEVICE_LABEL: device.name,
            **self._global_labels,
            **metric.labels,
            **device.labels,
        }

    def serialize(self) -> str:
        """Render all gauge families in Prometheus text format."""
        with self._lock:
            return encode_gauges(self._families.values())

    def reset_all(self) -> None:
        """Clear all gauge values and last values."""
        with self._lock:
            for family in self._families.values():
                family.reset()
            self._last_values.clear()


def build_registry(config: AppConfig) -> MetricRegistry:
    """Create a registry with one gauge family per metric and companion.

    Each metric's label schema is the ordered union of ``device``, the
    global labels, the metric's configured labels, the labels of every
    device and the metric's declared label names.

    Args:
        config: Validated configuration.

    Returns:
        A registry with no values set.

    Raises:
        ConfigError: Invalid metric or label names, or a timestamp companion
            whose name collides with another metric.
    """
    pooled_device_labels: dict[str, None] = {}
    for device in config.devices.values():
        pooled_device_labels.update(dict.fromkeys(device.labels))

    families: dict[str, GaugeFamily] = {}
    for metric in config.metrics.values():
        _check_metric_name(metric.name)
        schema = tuple(
            {
                DEVICE_LABEL: None,
                **dict.fromkeys(config.labels),
                **dict.fromkeys(metric.labels),
                **pooled_device_labels,
                **dict.fromkeys(metric.label_names),
            }
        )
        for label_name in schema:
            _check_label_name(label_name, metric.name)
        families[metric.name] = GaugeFamily(metric.name, metric.help, schema)

    for metric in config.metrics.values():
        if metric.timestamp is None:
            continue
        companion = metric.timestamp
        _check_metric_name(companion.name)
        if companion.name in families:
            raise ConfigError(f"duplicate timestamp metric name {companion.name}")
        families[companion.name] = GaugeFamily(
            companion.name, companion.help, families[metric.name].label_names
        )

    return MetricRegistry(
        metrics=config.metrics,
        devices=config.devices,
        families=families,
        global_labels=config.labels,
    )


def _check_metric_name(name: str) -> None:
    if not _METRIC_NAME_RE.fullmatch(name):
        raise ConfigError(f"Invalid metric name {name!r}")


def _check_label_name(name: str, metric_name: str) -> None:
    if not _LABEL_NAME_RE.fullmatch(name) or name.startswith("__"):
        raise ConfigError(f"Invalid label name {name!r} for metric {metric_name}")

"""Core domain models for device readings and the metric registry."""

from dataclasses import dataclass, field

DEFAULT_RECORD_START = 0x02
DEFAULT_VALUE_START = 0x20
DEFAULT_RECORD_END = 0x0A


@dataclass(frozen=True)
class ParserConfig:
    """Frame marker bytes for one device.

    Attributes:
        record_start: Byte that opens every frame.
        value_start: Byte separating the metric expression from the value.
        record_end: Byte that terminates a frame on the wire.
    """

    record_start: int = DEFAULT_RECORD_START
    value_start: int = DEFAULT_VALUE_START
    record_end: int = DEFAULT_RECORD_END


@dataclass(frozen=True)
class DeviceDefinition:
    """A configured instrument.

    Attributes:
        name: Unique device name, used as the ``device`` label.
        path: Connection path or pyserial URL (e.g. /dev/ttyUSB0, loop://).
        type: Transport type. Only "serial" is supported.
        baud_rate: Serial line speed.
        labels: Device-level labels applied to every reading.
        parser: Frame marker bytes.
    """

    name: str
    path: str
    type: str = "serial"
    baud_rate: int = 9600
    labels: dict[str, str] = field(default_factory=dict)
    parser: ParserConfig = field(default_factory=ParserConfig)


@dataclass(frozen=True)
class TimestampCompanion:
    """Derived gauge recording when its parent metric was last read.

    Attributes:
        name: Companion metric name, unique across the registry.
        help: Help text for the companion gauge.
        milliseconds: Record milliseconds instead of whole seconds.
    """

    name: str
    help: str
    milliseconds: bool = False


@dataclass(frozen=True)
class MetricDefinition:
    """A configured gauge.

    Attributes:
        name: Metric name, unique within a registry.
        help: Help text.
        label_names: Declared label names a reading may supply.
        labels: Metric-level labels applied to every reading.
        timestamp: Optional timestamp companion.
    """

    name: str
    help: str
    label_names: tuple[str, ...] = ()
    labels: dict[str, str] = field(default_factory=dict)
    timestamp: TimestampCompanion | None = None


@dataclass(frozen=True)
class PushgatewayConfig:
    """Push relay settings. Disabled when url is None.

    Attributes:
        url: Pushgateway base URL.
        job_name: Job name the registry is pushed under.
        push_interval: Push period in milliseconds.
        headers: Extra HTTP headers sent with each push.
        timeout: Request timeout in seconds.
    """

    url: str | None = None
    job_name: str = "push"
    push_interval: float = 60000
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 10.0


@dataclass(frozen=True)
class AppConfig:
    """Validated configuration file contents."""

    labels: dict[str, str] = field(default_factory=dict)
    metrics: dict[str, MetricDefinition] = field(default_factory=dict)
    devices: dict[str, DeviceDefinition] = field(default_factory=dict)
    pushgateway: PushgatewayConfig = field(default_factory=PushgatewayConfig)


@dataclass(frozen=True)
class Reading:
    """A decoded frame, before label reconciliation.

    Attributes:
        device_name: Device the frame came from.
        metric_name: Metric name from the frame.
        value: Parsed numeric value.
        labels: Labels supplied by the device, unreconciled.
    """

    device_name: str
    metric_name: str
    value: float
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LastValue:
    """Most recent value written for a (device, metric) pair."""

    value: float
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Applied:
    """A reading was written to the registry.

    Attributes:
        device_name: Device the reading belongs to.
        metric_name: Metric that was set.
        last_value: Value and reconciled labels that were written.
        companion: Companion cell written alongside, if any.
    """

    device_name: str
    metric_name: str
    last_value: LastValue
    companion: LastValue | None = None


@dataclass(frozen=True)
class Skipped:
    """A reading was not applied. Not an error."""

    reason: str


ApplyResult = Applied | Skipped

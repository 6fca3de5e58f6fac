"""Initial value injection.

A JSON file lists values to set at startup before the first real reading
arrives::

    [
      {"device_name": "thermo-1", "metric_name": "temperature", "value": 20},
      {"device_name": "thermo-1", "metric_name": "humidity", "value": 40,
       "labels": {"probe": "a"}, "delay": 500}
    ]

``delay`` is in milliseconds, relative to the previous record.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from serialmetrics.core.exceptions import ConfigError
from serialmetrics.core.models import ApplyResult, Skipped
from serialmetrics.core.registry import MetricRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitialValue:
    """One value to inject at startup."""

    device_name: str
    metric_name: str
    value: float
    labels: dict[str, str] = field(default_factory=dict)
    delay: float = 0


def parse_initial_values(raw: Any) -> list[InitialValue]:
    """Validate a list of initial value records.

    Raises:
        ConfigError: The data is not a list of valid records.
    """
    if not isinstance(raw, list):
        raise ConfigError("Initial values must be a list")
    records = []
    for idx, entry in enumerate(raw):
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Initial value #{idx} must be an object")
        try:
            records.append(
                InitialValue(
                    device_name=str(entry["device_name"]),
                    metric_name=str(entry["metric_name"]),
                    value=float(entry["value"]),
                    labels={
                        str(k): str(v) for k, v in (entry.get("labels") or {}).items()
                    },
                    delay=float(entry.get("delay") or 0),
                )
            )
        except KeyError as e:
            raise ConfigError(f"Initial value #{idx} is missing {e.args[0]}") from e
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Initial value #{idx} is invalid: {e}") from e
    return records


def load_initial_values(path: str | Path) -> list[InitialValue]:
    """Read initial values from a JSON file.

    Raises:
        ConfigError: The file cannot be read or is invalid.
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read initial values file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    return parse_initial_values(raw)


async def inject_initial_values(
    registry: MetricRegistry,
    records: Iterable[InitialValue],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[ApplyResult]:
    """Apply initial values in order, waiting each record's delay first.

    Returns:
        One result per record.
    """
    results: list[ApplyResult] = []
    for record in records:
        if record.delay:
            await sleep(record.delay / 1000)
        logger.info(
            "Executing initial value",
            extra={
                "device": record.device_name,
                "metric": record.metric_name,
                "value": record.value,
            },
        )
        result = registry.set_value(
            record.device_name, record.metric_name, record.value, record.labels
        )
        if isinstance(result, Skipped):
            logger.warning("Initial value skipped: %s", result.reason)
        results.append(result)
    return results

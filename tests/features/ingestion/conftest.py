"""BDD step definitions for device reading ingestion."""

import asyncio
from dataclasses import dataclass
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from serialmetrics.adapters.transports.in_memory import InMemoryFrameSource
from serialmetrics.core.config import load_config
from serialmetrics.core.registry import MetricRegistry, build_registry
from serialmetrics.dispatcher import FrameDispatcher


def run_async(coro: Any) -> Any:
    """Run async code in a sync step."""
    return asyncio.run(coro)


@dataclass
class IngestionContext:
    """State shared between the steps of one scenario."""

    registry: MetricRegistry | None = None
    dispatcher: FrameDispatcher | None = None


@pytest.fixture
def ctx() -> IngestionContext:
    return IngestionContext()


async def _deliver(dispatcher: FrameDispatcher, device_name: str, data: bytes) -> None:
    source = InMemoryFrameSource(
        record_end=dispatcher.devices[device_name].parser.record_end
    )
    await source.open()
    consumer = asyncio.create_task(dispatcher.run())
    await source.write(data)
    await source.close()
    await dispatcher.pump(device_name, source)
    await dispatcher.drain()
    consumer.cancel()


@given(parsers.parse('the configuration file "{name}"'))
def step_configuration(ctx: IngestionContext, config_path, name: str) -> None:
    config = load_config(config_path(name))
    ctx.registry = build_registry(config)
    ctx.dispatcher = FrameDispatcher(ctx.registry, config.devices)


@when(parsers.parse('device "{device}" sends the frame "{frame}"'))
def step_send_frame(ctx: IngestionContext, device: str, frame: str) -> None:
    data = frame.encode().decode("unicode_escape").encode("latin-1")
    run_async(_deliver(ctx.dispatcher, device, data))


@then(parsers.parse("the exposition contains '{line}'"))
def step_exposition_contains(ctx: IngestionContext, line: str) -> None:
    assert line in ctx.registry.serialize().splitlines()


@then(parsers.parse('the exposition does not contain "{text}"'))
def step_exposition_lacks(ctx: IngestionContext, text: str) -> None:
    assert text not in ctx.registry.serialize()


@then(parsers.parse('the metric "{metric}" has a value for device "{device}"'))
def step_metric_has_value(ctx: IngestionContext, metric: str, device: str) -> None:
    assert ctx.registry.get_last_value(device, metric) is not None

"""Exporter application: wires devices, registry, HTTP exposition and push."""

import asyncio
import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import httpx
import uvicorn

from serialmetrics.adapters.frameworks.asgi import create_asgi_app
from serialmetrics.adapters.push import PushgatewayRelay
from serialmetrics.adapters.transports.in_memory import InMemoryFrameSource
from serialmetrics.adapters.transports.serial import SerialFrameSource
from serialmetrics.core.config import load_config
from serialmetrics.core.models import (
    AppConfig,
    ApplyResult,
    DeviceDefinition,
    LastValue,
)
from serialmetrics.core.ports import FrameSourcePort
from serialmetrics.core.registry import MetricRegistry, build_registry
from serialmetrics.dispatcher import FrameDispatcher
from serialmetrics.inits import InitialValue, inject_initial_values

logger = logging.getLogger(__name__)

SourceFactory = Callable[[DeviceDefinition], FrameSourcePort]

DEFAULT_PORT = 8080


@dataclass(frozen=True)
class AppOptions:
    """Process options.

    Attributes:
        config_file: Path to the YAML configuration.
        port: HTTP port for the exposition endpoint. None disables the server.
        host: Interface to bind.
        quiet: Only log warnings and errors.
        mock: Use in-memory loopback devices instead of serial ports.
    """

    config_file: Path = field(default_factory=lambda: Path("config.yaml").resolve())
    port: int | None = DEFAULT_PORT
    host: str = "0.0.0.0"
    quiet: bool = False
    mock: bool = False

    @classmethod
    def from_env(
        cls, env: Mapping[str, str] | None = None, **overrides: Any
    ) -> "AppOptions":
        """Build options from CONFIG_FILE, HTTP_PORT, QUIET and MOCK.

        Keyword overrides take precedence over the environment.
        """
        env = os.environ if env is None else env
        try:
            port = int(env.get("HTTP_PORT") or 0) or DEFAULT_PORT
        except ValueError:
            port = DEFAULT_PORT
        options = cls(
            config_file=Path(env.get("CONFIG_FILE") or "config.yaml").resolve(),
            port=port,
            quiet=bool(env.get("QUIET")),
            mock=bool(env.get("MOCK")),
        )
        return replace(options, **overrides)


def default_source_factory(mock: bool) -> SourceFactory:
    """Return a factory creating serial sources, or loopbacks in mock mode."""

    def factory(device: DeviceDefinition) -> FrameSourcePort:
        if mock:
            return InMemoryFrameSource(record_end=device.parser.record_end)
        return SerialFrameSource.for_device(device)

    return factory


class App:
    """Serial device metrics exporter.

    Args:
        options: Process options. Defaults to ``AppOptions.from_env()``.
        source_factory: Creates the frame source for each device.
        push_client: HTTP client for the push relay.
    """

    def __init__(
        self,
        options: AppOptions | None = None,
        source_factory: SourceFactory | None = None,
        push_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.options = options or AppOptions.from_env()
        self._source_factory = source_factory or default_source_factory(
            self.options.mock
        )
        self._push_client = push_client
        self.config: AppConfig | None = None
        self.registry: MetricRegistry | None = None
        self.dispatcher: FrameDispatcher | None = None
        self.sources: dict[str, FrameSourcePort] = {}
        self.open_errors: dict[str, BaseException] = {}
        self.relay: PushgatewayRelay | None = None
        self.server: uvicorn.Server | None = None
        self._server_task: asyncio.Task[None] | None = None
        self._tasks: list[asyncio.Task[None]] = []

    async def start(self) -> None:
        """Load configuration, open devices and start serving.

        Raises:
            ConfigError: The configuration is invalid.
        """
        self.config = await asyncio.to_thread(load_config, self.options.config_file)
        self.registry = build_registry(self.config)
        self.dispatcher = FrameDispatcher(self.registry, self.config.devices)
        self._tasks.append(asyncio.create_task(self.dispatcher.run()))

        for name, device in self.config.devices.items():
            self.sources[name] = self._source_factory(device)
            logger.info("Created device %s at %s", name, device.path)

        await asyncio.gather(
            *(
                self._open_device(name, source, self.dispatcher)
                for name, source in self.sources.items()
            )
        )

        pushgateway = self.config.pushgateway
        if pushgateway.url:
            self.relay = PushgatewayRelay.from_config(
                pushgateway, self.registry.serialize, client=self._push_client
            )
            self._tasks.append(
                asyncio.create_task(self.relay.run(pushgateway.push_interval))
            )

        if self.options.port is not None:
            await self._start_server(self.registry)

    async def _open_device(
        self, name: str, source: FrameSourcePort, dispatcher: FrameDispatcher
    ) -> None:
        """Open one device and start its read loop. Failures stay per device."""
        logger.info("Opening device %s", name)
        try:
            await source.open()
        except Exception as e:
            self.open_errors[name] = e
            logger.exception("Failed to open device %s", name)
            return
        self._tasks.append(asyncio.create_task(dispatcher.pump(name, source)))

    async def _start_server(self, registry: MetricRegistry) -> None:
        config = uvicorn.Config(
            create_asgi_app(registry),
            host=self.options.host,
            port=self.options.port,
            log_level="warning" if self.options.quiet else "info",
        )
        self.server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(self.server.serve())
        while not self.server.started and not self._server_task.done():
            await asyncio.sleep(0.01)
        logger.info("Listening on %s:%s", self.options.host, self.options.port)

    async def close(self) -> None:
        """Stop serving, close devices and clear the registry."""
        if self.server is not None and self._server_task is not None:
            self.server.should_exit = True
            await asyncio.gather(self._server_task, return_exceptions=True)
            self._server_task = None
        for name, source in self.sources.items():
            try:
                await source.close()
            except Exception:
                logger.exception("Failed to close device %s", name)
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        if self.relay is not None:
            await self.relay.aclose()
        if self.registry is not None:
            self.registry.reset_all()

    async def push(self) -> httpx.Response:
        """Push the registry to the Pushgateway once."""
        if self.relay is None:
            raise RuntimeError("Pushgateway is not configured")
        return await self.relay.push()

    def set_metric_value(
        self,
        device_name: str,
        metric_name: str,
        value: float,
        labels: Mapping[str, str] | None = None,
    ) -> ApplyResult:
        """Set a value through the registry's reconciliation path."""
        return self._require_registry().set_value(
            device_name, metric_name, value, labels
        )

    def get_last_value(self, device_name: str, metric_name: str) -> LastValue | None:
        """Return the last value written for (device, metric), if any."""
        return self._require_registry().get_last_value(device_name, metric_name)

    async def inject(self, records: list[InitialValue]) -> list[ApplyResult]:
        """Apply initial values in order, honouring their delays."""
        return await inject_initial_values(self._require_registry(), records)

    def _require_registry(self) -> MetricRegistry:
        if self.registry is None:
            raise RuntimeError("App is not started")
        return self.registry

"""Shared test fixtures for all test modules."""

from pathlib import Path

import httpx
import pytest

from serialmetrics.app import App, AppOptions
from serialmetrics.core.config import build_config
from serialmetrics.core.registry import MetricRegistry, build_registry

CONFIGS_DIR = Path(__file__).parent / "fixtures" / "configs"


@pytest.fixture
def config_path():
    """Factory fixture resolving a fixture config file by name."""

    def _path(name: str) -> Path:
        return CONFIGS_DIR / name

    return _path


@pytest.fixture
def raw_config() -> dict:
    """A raw configuration mapping exercising every label layer."""
    return {
        "labels": {"site": "lab"},
        "metrics": {
            "temperature": {
                "help": "Temperature",
                "label_names": ["probe"],
                "labels": {"unit": "celsius"},
                "timestamp": {"name": "temperature_time_seconds"},
            },
            "humidity": {"help": "Relative humidity"},
        },
        "devices": {
            "thermo-1": {"path": "/dev/ttyUSB0", "labels": {"room": "a"}},
            "thermo-2": {"path": "/dev/ttyUSB1"},
        },
    }


@pytest.fixture
def registry(raw_config: dict) -> MetricRegistry:
    """Registry built from raw_config with no values set."""
    return build_registry(build_config(raw_config))


@pytest.fixture
def new_app(config_path):
    """Factory fixture creating an App in mock mode without an HTTP server."""

    def _app(name: str, **kwargs) -> App:
        options = AppOptions(config_file=config_path(name), port=None, mock=True)
        return App(options, **kwargs)

    return _app


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(registry)
            async with asgi_test_client(app) as client:
                response = await client.get("/metrics")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client

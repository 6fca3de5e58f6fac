"""Integration tests for the ASGI exposition app."""

import json

import pytest

from serialmetrics.adapters.frameworks.asgi import create_asgi_app
from serialmetrics.core.encoding.prometheus import CONTENT_TYPE
from serialmetrics.core.registry import MetricRegistry

pytestmark = [pytest.mark.tier(2), pytest.mark.asgi]


class TestASGIExposition:
    """Tests for /metrics, /ready and unknown routes."""

    async def test_metrics_endpoint_returns_gauges(
        self, registry: MetricRegistry, asgi_test_client
    ) -> None:
        registry.set_value("thermo-2", "humidity", 40)
        app = create_asgi_app(registry)

        async with asgi_test_client(app) as client:
            response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"] == CONTENT_TYPE
        assert "# TYPE humidity gauge" in response.text
        assert 'humidity{device="thermo-2",site="lab"} 40' in response.text

    async def test_metrics_endpoint_is_empty_without_families(
        self, asgi_test_client
    ) -> None:
        app = create_asgi_app(MetricRegistry({}, {}, {}))

        async with asgi_test_client(app) as client:
            response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.text == ""

    async def test_ready_endpoint(
        self, registry: MetricRegistry, asgi_test_client
    ) -> None:
        app = create_asgi_app(registry)

        async with asgi_test_client(app) as client:
            response = await client.get("/ready")

        assert response.status_code == 200
        assert response.text == "OK Ready"

    async def test_unknown_path_returns_404(
        self, registry: MetricRegistry, asgi_test_client
    ) -> None:
        app = create_asgi_app(registry)

        async with asgi_test_client(app) as client:
            response = await client.get("/nope")

        assert response.status_code == 404

    async def test_serialization_error_returns_500(
        self,
        registry: MetricRegistry,
        asgi_test_client,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        def failing_serialize() -> str:
            raise ValueError("Encoding failed")

        monkeypatch.setattr(registry, "serialize", failing_serialize)
        app = create_asgi_app(registry)

        async with asgi_test_client(app) as client:
            response = await client.get("/metrics")

        assert response.status_code == 500
        assert json.loads(response.text) == {"error": "Internal Server Error"}
        assert "Error encoding metrics endpoint" in caplog.text

"""FastAPI adapter for the exposition endpoint."""

from fastapi import APIRouter, Response

from serialmetrics.core.encoding.prometheus import CONTENT_TYPE
from serialmetrics.core.registry import MetricRegistry


def create_exposition_router(registry: MetricRegistry) -> APIRouter:
    """Create a FastAPI router with /metrics and /ready endpoints.

    Args:
        registry: Registry to expose.

    Returns:
        APIRouter with /metrics and /ready endpoints configured.
    """
    router = APIRouter()

    @router.get("/metrics")
    async def get_metrics() -> Response:
        """Return metrics in Prometheus text format."""
        return Response(content=registry.serialize(), media_type=CONTENT_TYPE)

    @router.get("/ready")
    async def get_ready() -> Response:
        """Readiness probe."""
        return Response(content="OK Ready", media_type="text/plain")

    return router

"""Pushgateway relay.

Pushes the full registry to a Prometheus Pushgateway on a timer. The
Pushgateway replaces all metrics of the job on each ``PUT``.
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from urllib.parse import quote

import httpx

from serialmetrics.core.encoding.prometheus import CONTENT_TYPE
from serialmetrics.core.models import PushgatewayConfig

logger = logging.getLogger(__name__)

MIN_PUSH_INTERVAL_MS = 100


class PushgatewayRelay:
    """Send the serialized registry to a Pushgateway.

    Args:
        url: Pushgateway base URL.
        job_name: Job the metrics are grouped under.
        render: Callable returning the exposition text to push.
        headers: Extra headers sent with every push.
        timeout: Request timeout in seconds.
        client: Client to use. One is created (and owned) when omitted.
    """

    def __init__(
        self,
        url: str,
        job_name: str,
        render: Callable[[], str],
        headers: Mapping[str, str] | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.job_name = job_name
        self._render = render
        self._headers = {"content-type": CONTENT_TYPE, **(headers or {})}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(
        cls,
        config: PushgatewayConfig,
        render: Callable[[], str],
        client: httpx.AsyncClient | None = None,
    ) -> "PushgatewayRelay":
        """Create a relay from the pushgateway configuration section."""
        if not config.url:
            raise ValueError("Pushgateway URL is not configured")
        return cls(
            url=config.url,
            job_name=config.job_name,
            render=render,
            headers=config.headers,
            timeout=config.timeout,
            client=client,
        )

    @property
    def push_url(self) -> str:
        return f"{self.url.rstrip('/')}/metrics/job/{quote(self.job_name, safe='')}"

    async def push(self) -> httpx.Response:
        """Push the registry once.

        Raises:
            httpx.HTTPError: The request failed or returned an error status.
        """
        response = await self._client.put(
            self.push_url,
            content=self._render().encode(),
            headers=self._headers,
        )
        response.raise_for_status()
        return response

    async def run(self, interval_ms: float) -> None:
        """Push every ``interval_ms`` milliseconds until cancelled.

        The interval is clamped to at least 100 ms. Failed pushes are logged
        and retried on the next tick.
        """
        interval_ms = max(MIN_PUSH_INTERVAL_MS, interval_ms)
        logger.info(
            "Pushing to %s every %d ms",
            self.url,
            interval_ms,
            extra={"job_name": self.job_name},
        )
        interval = interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                await self.push()
            except httpx.HTTPError:
                logger.exception("Push to %s failed", self.url)

    async def aclose(self) -> None:
        """Close the HTTP client if the relay created it."""
        if self._owns_client:
            await self._client.aclose()

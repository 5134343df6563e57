"""Service registry that wires the HTTP client, fetcher and aggregator together."""
import asyncio
import logging
from typing import Optional

import httpx

from aggregate_exporter.core.config import ExporterConfig
from aggregate_exporter.core.exceptions import ServiceUnavailableError
from aggregate_exporter.core.metrics import MetricsCollector
from aggregate_exporter.core.request_context import request_context
from aggregate_exporter.services.aggregator import Aggregator
from aggregate_exporter.services.fetcher import Fetcher, build_http_client

logger = logging.getLogger(__name__)


class ServiceRegistry:
    """Container object for dependency injection.

    The HTTP client is created on startup and shared read-only by every
    fetch task of every scrape until shutdown.
    """

    def __init__(
        self,
        config: ExporterConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        stats: MetricsCollector | None = None,
    ) -> None:
        self.config = config
        self.stats = stats if stats is not None else MetricsCollector()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._aggregator: Optional[Aggregator] = None
        self._lock = asyncio.Lock()

    @property
    def targets(self) -> tuple[str, ...]:
        return self.config.targets

    @property
    def aggregator(self) -> Aggregator:
        if self._aggregator is None:
            raise ServiceUnavailableError("Aggregator not started")
        return self._aggregator

    async def startup(self) -> None:
        async with self._lock:
            if self._client is not None:
                return
            if self.config.insecure_skip_verify:
                logger.warning("disabled verification of TLS certificates")
            self._client = build_http_client(
                timeout_ms=self.config.timeout_ms,
                insecure_skip_verify=self.config.insecure_skip_verify,
                transport=self._transport,
            )
            fetcher = Fetcher(self._client, timeout_ms=self.config.timeout_ms, stats=self.stats)
            self._aggregator = Aggregator(
                fetcher.fetch,
                label_enabled=self.config.label_enabled,
                label_name=self.config.label_name,
            )
            with request_context("startup"):
                logger.info("Starting server on %s with targets:", self.config.bind)
                for target in self.config.targets:
                    logger.info("  - %s", target)

    async def shutdown(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
            self._aggregator = None
            if client is not None:
                await client.aclose()
                logger.info("HTTP client closed")

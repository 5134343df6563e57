"""FastAPI application factory."""
from __future__ import annotations

from contextlib import asynccontextmanager
import time

import httpx
from fastapi import FastAPI
from starlette.datastructures import MutableHeaders
from starlette.requests import Request

from aggregate_exporter import __version__
from aggregate_exporter.api.error_handlers import register_exception_handlers
from aggregate_exporter.api.router import api_router
from aggregate_exporter.core.config import ExporterConfig
from aggregate_exporter.core.logging import configure_logging
from aggregate_exporter.core.metrics import MetricsCollector
from aggregate_exporter.core.request_context import clear_request_id, new_request_id, set_request_id
from aggregate_exporter.services.registry import ServiceRegistry


class RequestIdMiddleware:
    """Bind an ``X-Request-ID`` to every request and record its duration."""

    def __init__(self, app, stats: MetricsCollector):
        self.app = app
        self.stats = stats

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        path = scope.get("path") or ""
        request_id = request.headers.get("X-Request-ID") or new_request_id()
        set_request_id(request_id)
        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            clear_request_id()

        if status_code < 400:
            duration_ms = int((time.perf_counter() - start) * 1000)
            self.stats.record(f"api.{path}", ok=True, duration_ms=duration_ms)


def create_app(
    config: ExporterConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    stats: MetricsCollector | None = None,
) -> FastAPI:
    """Build the ASGI application for ``config``.

    ``transport`` replaces the network layer of the shared HTTP client.
    Fetches, requests and errors are all recorded in the registry's
    ``stats`` collector.
    """

    configure_logging(config)
    registry = ServiceRegistry(config, transport=transport, stats=stats)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the shared HTTP client for the lifetime of the server."""

        app.state.services = registry
        await registry.startup()
        try:
            yield
        finally:
            await registry.shutdown()

    app = FastAPI(
        title="Aggregate Exporter",
        description="Scrapes several Prometheus endpoints and serves their merged metrics",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(RequestIdMiddleware, stats=registry.stats)
    app.include_router(api_router)
    register_exception_handlers(app, registry.stats)
    return app

import asyncio

import httpx
import pytest

from aggregate_exporter.core.config import ExporterConfig
from aggregate_exporter.core.exceptions import TargetTransportError
from aggregate_exporter.core.metrics import MetricsCollector
from aggregate_exporter.models.domain import FetchResult
from aggregate_exporter.services.codec import decode_families

TARGET_A = "http://a.example/metrics"
TARGET_B = "http://b.example/metrics"
TARGET_C = "http://c.example/metrics"

PAYLOAD_A = """\
# HELP up Whether the target is up.
# TYPE up gauge
up 1
# HELP requests_total Requests handled.
# TYPE requests_total counter
requests_total{code="200"} 10
requests_total{code="500"} 2
"""

PAYLOAD_B = """\
# HELP up Target liveness.
# TYPE up gauge
up 1
# HELP queue_depth Items waiting.
# TYPE queue_depth gauge
queue_depth{queue="default"} 3
"""

PAYLOAD_C = """\
# HELP build_info Build metadata.
# TYPE build_info gauge
build_info{version="1.2.3"} 1
"""


class FakeFetch:
    """Deterministic stand-in for ``Fetcher.fetch``.

    ``payloads`` maps a target to exposition text, or to an exception that
    becomes a transport failure.
    """

    def __init__(self, payloads: dict, *, delays: dict | None = None) -> None:
        self.payloads = payloads
        self.delays = delays or {}
        self.calls: list[str] = []

    async def __call__(self, target: str) -> FetchResult:
        self.calls.append(target)
        delay = self.delays.get(target)
        if delay:
            await asyncio.sleep(delay)
        payload = self.payloads[target]
        if isinstance(payload, Exception):
            return FetchResult.failure(
                target,
                delay or 0.0,
                TargetTransportError(target, f"failed to fetch URL {target} due to error: {payload}"),
            )
        return FetchResult.success(target, delay or 0.0, decode_families(payload))


class RecordingHandler:
    """``httpx.MockTransport`` handler serving canned bodies per URL."""

    def __init__(self, bodies: dict, *, status_code: int = 200) -> None:
        self.bodies = bodies
        self.status_code = status_code
        self.requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        body = self.bodies.get(url)
        if body is None:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.status_code, text=body)


@pytest.fixture()
def stats() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture()
def config() -> ExporterConfig:
    return ExporterConfig(
        host="127.0.0.1",
        port=8080,
        bind="127.0.0.1:8080",
        targets=(TARGET_A, TARGET_B),
        timeout_ms=500,
    )

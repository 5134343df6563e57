"""Fetch one target's exposition page and decode it."""
from __future__ import annotations

import asyncio
import logging
import time

import httpx

from aggregate_exporter.core.exceptions import TargetDecodeError, TargetTransportError
from aggregate_exporter.core.metrics import MetricsCollector, target_metric_name
from aggregate_exporter.models.domain import FetchResult
from aggregate_exporter.services.codec import CodecError, decode_families

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (httpx.HTTPError, httpx.InvalidURL, OSError, asyncio.TimeoutError)


def build_http_client(
    *,
    timeout_ms: int,
    insecure_skip_verify: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the client shared by every fetch task."""

    return httpx.AsyncClient(
        timeout=timeout_ms / 1000,
        verify=not insecure_skip_verify,
        follow_redirects=True,
        transport=transport,
    )


class Fetcher:
    """Issue one bounded GET per call and turn the outcome into a ``FetchResult``.

    ``fetch`` never raises for target-side problems: unreachable targets,
    deadline expiry and unparsable payloads all come back as failed results.
    Status codes are not inspected; whatever body arrives is decoded.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout_ms: int,
        stats: MetricsCollector | None = None,
    ) -> None:
        self._client = client
        self._timeout = timeout_ms / 1000
        self._stats = stats if stats is not None else MetricsCollector()

    async def fetch(self, target: str) -> FetchResult:
        start = time.perf_counter()
        try:
            body = await asyncio.wait_for(self._read_body(target), timeout=self._timeout)
        except TRANSPORT_ERRORS as exc:
            result = FetchResult.failure(
                target,
                time.perf_counter() - start,
                TargetTransportError(target, f"failed to fetch URL {target} due to error: {_describe(exc)}"),
            )
        except Exception as exc:  # noqa: BLE001
            logger.debug("Unexpected error fetching %s", target, exc_info=exc)
            result = FetchResult.failure(
                target,
                time.perf_counter() - start,
                TargetTransportError(target, f"failed to fetch URL {target} due to error: {_describe(exc)}"),
            )
        else:
            result = self._decode(target, body, start)

        self._record(result)
        return result

    async def _read_body(self, target: str) -> bytes:
        async with self._client.stream("GET", target) as response:
            return await response.aread()

    def _decode(self, target: str, body: bytes, start: float) -> FetchResult:
        try:
            families = decode_families(body)
        except CodecError as exc:
            return FetchResult.failure(
                target,
                time.perf_counter() - start,
                TargetDecodeError(target, f"failed to parse metrics from target {target}: {exc}"),
            )
        return FetchResult.success(target, time.perf_counter() - start, families)

    def _record(self, result: FetchResult) -> None:
        name = target_metric_name(result.target)
        self._stats.record(name, ok=result.ok, duration_ms=int(result.seconds_taken * 1000))
        if self._stats.should_alert(name):
            logger.warning("Target alert for %s (slow or error rate)", result.target)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "timeout exceeded"
    return str(exc) or exc.__class__.__name__

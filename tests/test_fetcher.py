import asyncio

import httpx
import pytest

from aggregate_exporter.core.exceptions import TargetDecodeError, TargetTransportError
from aggregate_exporter.core.metrics import target_metric_name
from aggregate_exporter.services.fetcher import Fetcher, build_http_client
from conftest import PAYLOAD_A, TARGET_A, TARGET_B, RecordingHandler


def _fetcher(handler, stats, timeout_ms: int = 500) -> tuple[Fetcher, httpx.AsyncClient]:
    client = build_http_client(timeout_ms=timeout_ms, transport=httpx.MockTransport(handler))
    return Fetcher(client, timeout_ms=timeout_ms, stats=stats), client


@pytest.mark.asyncio
async def test_fetch_decodes_families(stats):
    fetcher, client = _fetcher(RecordingHandler({TARGET_A: PAYLOAD_A}), stats)
    async with client:
        result = await fetcher.fetch(TARGET_A)

    assert result.ok
    assert result.error is None
    assert set(result.families) == {"up", "requests_total"}
    assert result.target == TARGET_A
    assert result.seconds_taken >= 0


@pytest.mark.asyncio
async def test_fetch_ignores_status_code(stats):
    handler = RecordingHandler({TARGET_A: PAYLOAD_A}, status_code=503)
    fetcher, client = _fetcher(handler, stats)
    async with client:
        result = await fetcher.fetch(TARGET_A)

    assert result.ok
    assert "up" in result.families


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error(stats):
    fetcher, client = _fetcher(RecordingHandler({}), stats)
    async with client:
        result = await fetcher.fetch(TARGET_B)

    assert not result.ok
    assert result.families is None
    assert isinstance(result.error, TargetTransportError)
    assert result.error.target == TARGET_B
    assert "failed to fetch URL" in result.error.detail
    assert "connection refused" in result.error.detail


@pytest.mark.asyncio
async def test_malformed_payload_is_decode_error(stats):
    fetcher, client = _fetcher(RecordingHandler({TARGET_A: "<html>oops</html>\n"}), stats)
    async with client:
        result = await fetcher.fetch(TARGET_A)

    assert isinstance(result.error, TargetDecodeError)
    assert "failed to parse metrics" in result.error.detail
    assert result.families is None


@pytest.mark.asyncio
async def test_slow_target_times_out(stats):
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, text=PAYLOAD_A)

    fetcher, client = _fetcher(slow, stats, timeout_ms=50)
    async with client:
        result = await fetcher.fetch(TARGET_A)

    assert isinstance(result.error, TargetTransportError)
    assert "timeout exceeded" in result.error.detail
    assert result.seconds_taken < 1


@pytest.mark.asyncio
async def test_invalid_url_is_transport_error(stats):
    fetcher, client = _fetcher(RecordingHandler({}), stats)
    async with client:
        result = await fetcher.fetch("not a url")

    assert isinstance(result.error, TargetTransportError)


@pytest.mark.asyncio
async def test_outcomes_are_recorded(stats):
    fetcher, client = _fetcher(RecordingHandler({TARGET_A: PAYLOAD_A}), stats)
    async with client:
        await fetcher.fetch(TARGET_A)
        await fetcher.fetch(TARGET_B)

    assert stats.summary(target_metric_name(TARGET_A))["errors"] == 0
    assert stats.summary(target_metric_name(TARGET_B))["last_ok"] is False

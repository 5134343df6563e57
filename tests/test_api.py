import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client import CONTENT_TYPE_LATEST

from aggregate_exporter.core.metrics import MetricsCollector
from aggregate_exporter.main import create_app
from aggregate_exporter.services.codec import decode_families
from conftest import PAYLOAD_A, PAYLOAD_B, TARGET_A, TARGET_B, RecordingHandler


@pytest.fixture()
def handler() -> RecordingHandler:
    return RecordingHandler({TARGET_A: PAYLOAD_A, TARGET_B: PAYLOAD_B})


@pytest.fixture()
def client(config, handler):
    app = create_app(config, transport=httpx.MockTransport(handler))
    with TestClient(app) as test_client:
        yield test_client


def test_metrics_aggregates_all_targets(client, handler):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"] == CONTENT_TYPE_LATEST
    families = decode_families(response.text)
    assert set(families) == {"up", "requests_total", "queue_depth"}
    assert len(families["up"].samples) == 2
    assert sorted(handler.requests) == [TARGET_A, TARGET_B]


def test_metrics_selects_single_target_by_index(client, handler):
    response = client.get("/metrics", params={"t": "1"})

    assert response.status_code == 200
    families = decode_families(response.text)
    assert set(families) == {"up", "queue_depth"}
    assert handler.requests == [TARGET_B]
    assert families["up"].samples[0].labels == {"ae_source": TARGET_B}


def test_empty_index_means_all_targets(client, handler):
    response = client.get("/metrics?t=")

    assert response.status_code == 200
    assert len(handler.requests) == 2


@pytest.mark.parametrize("value", ["5", "2", "abc", "-1", "1.0", " 1"])
def test_invalid_index_is_rejected_without_fetching(client, handler, value):
    response = client.get("/metrics", params={"t": value})

    assert response.status_code == 400
    assert response.json()["error"] == "bad_request"
    assert handler.requests == []


def test_unreachable_target_still_returns_document(config):
    handler = RecordingHandler({TARGET_A: PAYLOAD_A})
    app = create_app(config, transport=httpx.MockTransport(handler))

    with TestClient(app) as client:
        response = client.get("/metrics")

    assert response.status_code == 200
    families = decode_families(response.text)
    assert {s.labels["ae_source"] for f in families.values() for s in f.samples} == {TARGET_A}


def test_targets_listing(client):
    client.get("/metrics")

    response = client.get("/targets")

    assert response.status_code == 200
    listing = response.json()["targets"]
    assert [(entry["index"], entry["url"]) for entry in listing] == [(0, TARGET_A), (1, TARGET_B)]
    assert listing[0]["stats"]["count"] >= 1


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["targets"] == 2


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "scrape-42"})

    assert response.headers["X-Request-ID"] == "scrape-42"


def test_requests_and_errors_are_recorded_in_the_app_stats(config, handler):
    stats = MetricsCollector()
    app = create_app(config, transport=httpx.MockTransport(handler), stats=stats)

    with TestClient(app) as client:
        client.get("/health")
        client.get("/metrics", params={"t": "9"})

    assert stats.summary("api./health")["count"] == 1
    assert stats.summary("api./health")["errors"] == 0
    assert stats.summary("api./metrics")["errors"] == 1


def test_apps_do_not_share_stats(config, handler):
    first = MetricsCollector()
    second = MetricsCollector()

    with TestClient(create_app(config, transport=httpx.MockTransport(handler), stats=first)) as client:
        client.get("/health")
    with TestClient(create_app(config, transport=httpx.MockTransport(handler), stats=second)):
        pass

    assert first.summary("api./health")["count"] == 1
    assert second.summary("api./health") is None
